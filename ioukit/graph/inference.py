"""Relation inference — turns one document's mentions into graph relations.

Pure functions: the same mention list always yields the same relations,
in the same order, whatever the state of the graph.
"""

import re
from itertools import combinations
from typing import Iterable, NamedTuple, Sequence

from ioukit.core.schemas import EntityMention, EntityType, canonical_key
from ioukit.ner.gazetteers import MUNICIPALITY_PROVINCE
from .schemas import RelationKind

_SEAT_PREFIX = re.compile(r"^(?P<prefix>Gemeente|Provincie|Waterschap)\s+(?P<name>.+)$", re.IGNORECASE)

_REFERRING_TYPES = frozenset({
    EntityType.ORGANIZATION,
    EntityType.PROJECT,
    EntityType.PERSON,
})

_PROVINCE_BY_MUNICIPALITY = {k.casefold(): v for k, v in MUNICIPALITY_PROVINCE.items()}


class Relation(NamedTuple):
    kind: RelationKind
    source: str
    target: str


def _gap(a: EntityMention, b: EntityMention) -> int:
    """Characters between two spans; 0 when they touch."""
    return max(0, b.start - a.end, a.start - b.end)


def node_ids_in_order(mentions: Iterable[EntityMention]) -> list[str]:
    """Distinct canonical node ids in order of first appearance."""
    seen: dict[str, None] = {}
    for mention in sorted(mentions, key=lambda m: (m.start, -(m.end - m.start))):
        seen.setdefault(mention.key, None)
    return list(seen)


def co_occurrences(node_ids: Sequence[str]) -> list[Relation]:
    pairs = combinations(sorted(set(node_ids)), 2)
    return [Relation(RelationKind.CO_OCCURRENCE, a, b) for a, b in pairs]


def explicit_references(mentions: Sequence[EntityMention], window: int) -> list[Relation]:
    laws = [m for m in mentions if m.entity_type == EntityType.LAW]
    if not laws:
        return []
    found = set()
    for mention in mentions:
        if mention.entity_type not in _REFERRING_TYPES:
            continue
        for law in laws:
            if _gap(mention, law) <= window and mention.key != law.key:
                found.add(Relation(RelationKind.EXPLICIT_REFERENCE, mention.key, law.key))
    return sorted(found)


def hierarchical(mentions: Sequence[EntityMention]) -> list[Relation]:
    """Nesting relations: municipality within province, body within its seat."""
    present = {m.key for m in mentions}
    found = set()
    for mention in mentions:
        if mention.entity_type == EntityType.ORGANIZATION:
            match = _SEAT_PREFIX.match(mention.normalized)
            if not match:
                continue
            prefix = match.group("prefix").capitalize()
            name = match.group("name")
            place = canonical_key(name, EntityType.LOCATION)
            if place in present:
                found.add(Relation(RelationKind.HIERARCHICAL, mention.key, place))
            province = _PROVINCE_BY_MUNICIPALITY.get(name.casefold())
            if prefix == "Gemeente" and province:
                parent = canonical_key(f"Provincie {province}", EntityType.ORGANIZATION)
                if parent in present:
                    found.add(Relation(RelationKind.HIERARCHICAL, mention.key, parent))
        elif mention.entity_type == EntityType.LOCATION:
            province = _PROVINCE_BY_MUNICIPALITY.get(mention.normalized.casefold())
            if not province:
                continue
            parent = canonical_key(province, EntityType.LOCATION)
            if parent in present and parent != mention.key:
                found.add(Relation(RelationKind.HIERARCHICAL, mention.key, parent))
    return sorted(found)


def infer_relations(mentions: Sequence[EntityMention], reference_window: int) -> list[Relation]:
    """All relations one document contributes, each at most once."""
    node_ids = node_ids_in_order(mentions)
    relations = co_occurrences(node_ids)
    relations.extend(explicit_references(mentions, reference_window))
    relations.extend(hierarchical(mentions))
    return relations
