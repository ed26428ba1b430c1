"""Knowledge Graph — thread-safe entity store with per-document provenance.

Nodes and edges live in id-keyed tables.  Every node and edge remembers
which documents support it, so re-ingesting or deleting a document
retracts exactly what that document contributed and nothing else.
"""

import logging
import threading
import time
from collections import Counter
from typing import Iterable, Optional, Sequence

from ioukit.core.config import Settings, get_settings
from ioukit.core.events import (
    COMMUNITIES_DETECTED,
    DOCUMENT_INGESTED,
    DOCUMENT_RETRACTED,
    INVARIANT_VIOLATED,
    EventBus,
    event_bus,
)
from ioukit.core.exceptions import (
    InvalidInputError,
    InvariantViolation,
    NotFoundError,
    OperationCancelledError,
)
from ioukit.core.locks import ReadWriteLock
from ioukit.core.schemas import EntityMention, EntityType
from .communities import greedy_modularity
from .inference import infer_relations
from .models import DocumentContribution, EdgeKey, EdgeRecord, GraphSnapshot, NodeRecord
from .networkx_ops import (
    bounded_shortest_path,
    build_networkx_graph,
    compute_centrality,
    partition_modularity,
    snapshot_graph,
)
from .schemas import (
    RELATION_KIND_ORDER,
    Community,
    CommunityPartition,
    GraphEdge,
    GraphNode,
    GraphStats,
    IngestReport,
    RelatedDocument,
    RelationKind,
)

logger = logging.getLogger(__name__)

COMMUNITY_LABELS = {
    EntityType.ORGANIZATION: "Organisatienetwerk",
    EntityType.LAW: "Wettelijk kader",
    EntityType.LOCATION: "Geografisch cluster",
    EntityType.POLICY: "Beleidsdomein",
    EntityType.PERSON: "Personennetwerk",
    EntityType.PROJECT: "Projectportfolio",
}

_TYPE_ORDER = {t: i for i, t in enumerate(EntityType)}
_KIND_ORDER = {k: i for i, k in enumerate(RELATION_KIND_ORDER)}


def _relation_kinds(relation_kinds: Optional[Iterable]) -> frozenset:
    if relation_kinds is None:
        return frozenset(RelationKind)
    if isinstance(relation_kinds, str):
        relation_kinds = [relation_kinds]
    try:
        return frozenset(RelationKind(k) for k in relation_kinds)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown relation kind: {exc}") from exc


def _community_label(members: Sequence[str], node_types: dict[str, EntityType]) -> str:
    counts = Counter(node_types[m] for m in members if m in node_types)
    if not counts:
        return ""
    dominant = min(counts, key=lambda t: (-counts[t], _TYPE_ORDER[t]))
    return COMMUNITY_LABELS[dominant]


class KnowledgeGraph:
    """Graph of the entities found across all ingested documents.

    Readers run concurrently; ingestion, deletion and publishing a
    community partition are exclusive.  Snapshots returned to callers
    are immutable pydantic models and never alias internal state.

    Usage:
        graph = KnowledgeGraph()
        graph.ingest("doc-1", extractor.extract(text, document_id="doc-1"))
        graph.neighbors("organization:gemeente almere")
    """

    def __init__(self, settings: Optional[Settings] = None, events: Optional[EventBus] = None):
        self.settings = settings or get_settings()
        self.events = events or event_bus
        self._lock = ReadWriteLock()
        self._nodes: dict[str, NodeRecord] = {}
        self._edges: dict[EdgeKey, EdgeRecord] = {}
        self._adjacency: dict[str, set[EdgeKey]] = {}
        self._documents: dict[str, DocumentContribution] = {}
        self._version = 0
        self._partition: Optional[CommunityPartition] = None
        self._membership: dict[str, Community] = {}

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def ingest(self, document_id: str, mentions: Iterable[EntityMention]) -> IngestReport:
        """Add (or replace) one document's entities and relations.

        Re-ingesting a document first retracts everything it contributed
        before, so ingesting the same mentions twice leaves the graph
        exactly as after the first call.

        Raises:
            InvalidInputError: for an empty document id, a non-mention item
                or a mention stamped with another document id.
        """
        mentions = self._validate(document_id, mentions)
        relations = infer_relations(mentions, self.settings.reference_window)
        violations: list[EdgeKey] = []

        with self._lock.write_locked():
            pruned_nodes, pruned_edges = self._retract(document_id, violations)
            new_nodes, new_edges = self._add(document_id, mentions, relations)
            self._version += 1

        report = IngestReport(
            document_id=document_id,
            mention_count=len(mentions),
            nodes_created=len(new_nodes - pruned_nodes),
            nodes_pruned=len(pruned_nodes - new_nodes),
            edges_created=len(new_edges - pruned_edges),
            edges_pruned=len(pruned_edges - new_edges),
            node_ids=sorted({m.key for m in mentions}),
        )
        self._report_violations(violations)
        logger.info(
            "Ingested document %s: %d mentions, +%d/-%d nodes, +%d/-%d edges",
            document_id, report.mention_count, report.nodes_created,
            report.nodes_pruned, report.edges_created, report.edges_pruned,
        )
        self.events.emit(DOCUMENT_INGESTED, document_id=document_id, report=report)
        return report

    def remove_document(self, document_id: str) -> IngestReport:
        """Retract a deleted document.  Unknown ids are a no-op."""
        violations: list[EdgeKey] = []
        with self._lock.write_locked():
            known = document_id in self._documents
            pruned_nodes, pruned_edges = self._retract(document_id, violations)
            if known:
                self._version += 1

        report = IngestReport(
            document_id=document_id,
            nodes_pruned=len(pruned_nodes),
            edges_pruned=len(pruned_edges),
        )
        self._report_violations(violations)
        if known:
            logger.info(
                "Retracted document %s: -%d nodes, -%d edges",
                document_id, report.nodes_pruned, report.edges_pruned,
            )
            self.events.emit(DOCUMENT_RETRACTED, document_id=document_id, report=report)
        return report

    @staticmethod
    def _validate(document_id: str, mentions: Iterable[EntityMention]) -> list[EntityMention]:
        if not isinstance(document_id, str) or not document_id.strip():
            raise InvalidInputError("document_id must be a non-empty string")
        if mentions is None:
            raise InvalidInputError("mentions must be an iterable of EntityMention")
        checked = []
        for mention in mentions:
            if not isinstance(mention, EntityMention):
                raise InvalidInputError(
                    f"Expected EntityMention, got {type(mention).__name__}"
                )
            if mention.document_id is None:
                mention = mention.model_copy(update={"document_id": document_id})
            elif mention.document_id != document_id:
                raise InvalidInputError(
                    f"Mention belongs to document {mention.document_id!r}, not {document_id!r}"
                )
            checked.append(mention)
        return checked

    def _retract(self, document_id: str, violations: list[EdgeKey]) -> tuple[set[str], set[EdgeKey]]:
        contribution = self._documents.pop(document_id, None)
        pruned_nodes: set[str] = set()
        pruned_edges: set[EdgeKey] = set()
        if contribution is None:
            return pruned_nodes, pruned_edges

        for key in contribution.edge_keys:
            record = self._edges.get(key)
            if record is None:
                continue
            record.support.pop(document_id, None)
            if not record.support:
                self._drop_edge(key)
                pruned_edges.add(key)

        for node_id in contribution.node_refs:
            record = self._nodes.get(node_id)
            if record is None:
                continue
            record.support.pop(document_id, None)
            if record.is_supported():
                continue
            del self._nodes[node_id]
            pruned_nodes.add(node_id)
            for key in sorted(self._adjacency.pop(node_id, set())):
                # An edge outliving its endpoint is corruption.
                self._flag(key, violations)
                self._prune_edge(key)
        return pruned_nodes, pruned_edges

    def _add(
        self,
        document_id: str,
        mentions: Sequence[EntityMention],
        relations: Iterable[tuple[RelationKind, str, str]],
    ) -> tuple[set[str], set[EdgeKey]]:
        new_nodes: set[str] = set()
        new_edges: set[EdgeKey] = set()
        if not mentions:
            return new_nodes, new_edges

        contribution = DocumentContribution(mention_count=len(mentions))
        for mention in mentions:
            node_id = mention.key
            record = self._nodes.get(node_id)
            if record is None:
                record = NodeRecord(id=node_id, entity_type=mention.entity_type, label=mention.normalized)
                self._nodes[node_id] = record
                self._adjacency.setdefault(node_id, set())
                new_nodes.add(node_id)
            record.support.setdefault(document_id, {})[mention.ref] = mention.confidence
            contribution.node_refs.setdefault(node_id, set()).add(mention.ref)

        for kind, source, target in relations:
            key = EdgeKey(kind, source, target)
            record = self._edges.get(key)
            if record is None:
                record = EdgeRecord(key=key)
                self._edges[key] = record
                self._adjacency[source].add(key)
                self._adjacency[target].add(key)
                new_edges.add(key)
            record.support[document_id] = 1
            contribution.edge_keys.add(key)

        self._documents[document_id] = contribution
        return new_nodes, new_edges

    def _drop_edge(self, key: EdgeKey) -> None:
        self._edges.pop(key, None)
        for endpoint in (key.source, key.target):
            adjacent = self._adjacency.get(endpoint)
            if adjacent is not None:
                adjacent.discard(key)

    def _prune_edge(self, key: EdgeKey) -> None:
        """Remove an edge together with every document's claim on it."""
        record = self._edges.get(key)
        if record is not None:
            for document_id in record.support:
                contribution = self._documents.get(document_id)
                if contribution is not None:
                    contribution.edge_keys.discard(key)
        self._drop_edge(key)

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def _is_dangling(self, key: EdgeKey) -> bool:
        return key.source not in self._nodes or key.target not in self._nodes

    def _flag(self, key: EdgeKey, violations: list[EdgeKey]) -> None:
        message = f"{key.kind.value} edge {key.source} -> {key.target} references a missing node"
        if self.settings.strict_invariants:
            raise InvariantViolation(message)
        violations.append(key)

    def _sound(self, key: EdgeKey, violations: list[EdgeKey]) -> bool:
        """False (after flagging) when an edge must not be exposed."""
        if not self._is_dangling(key):
            return True
        self._flag(key, violations)
        return False

    def _heal(self, violations: list[EdgeKey]) -> None:
        """Prune edges flagged during a read.  Must be called without the lock."""
        if not violations:
            return
        with self._lock.write_locked():
            for key in violations:
                if self._is_dangling(key):
                    self._prune_edge(key)
            self._version += 1
        self._report_violations(violations)

    def _report_violations(self, violations: list[EdgeKey]) -> None:
        for key in violations:
            logger.error(
                "Graph invariant violated: %s edge %s -> %s has a missing endpoint; "
                "edge pruned (nodes=%d, edges=%d, documents=%d, version=%d)",
                key.kind.value, key.source, key.target,
                len(self._nodes), len(self._edges), len(self._documents), self._version,
            )
            self.events.emit(
                INVARIANT_VIOLATED,
                kind=key.kind.value,
                source=key.source,
                target=key.target,
            )

    def verify(self) -> list[str]:
        """Scan the whole graph and repair what is broken.

        Returns:
            Human-readable descriptions of every problem found; empty for
            a healthy graph.

        Raises:
            InvariantViolation: in strict mode, on the first problem.
        """
        problems: list[str] = []
        violations: list[EdgeKey] = []
        with self._lock.write_locked():
            for key in sorted(self._edges):
                if self._is_dangling(key):
                    self._flag(key, violations)
                    problems.append(f"dangling edge {key.kind.value} {key.source} -> {key.target}")
                    self._prune_edge(key)
            for node_id, keys in sorted(self._adjacency.items()):
                stale = sorted(k for k in keys if k not in self._edges)
                for key in stale:
                    problems.append(f"stale adjacency {node_id} -> {key.kind.value} {key.source}/{key.target}")
                    keys.discard(key)
            if problems:
                self._version += 1
        self._report_violations(violations)
        return problems

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> GraphNode:
        with self._lock.read_locked():
            record = self._nodes.get(node_id)
            if record is None:
                raise NotFoundError("node", node_id)
            return record.snapshot()

    def nodes(self, entity_type: Optional[EntityType] = None) -> list[GraphNode]:
        with self._lock.read_locked():
            return [
                self._nodes[node_id].snapshot()
                for node_id in sorted(self._nodes)
                if entity_type is None or self._nodes[node_id].entity_type == entity_type
            ]

    def edges(self, relation_kinds: Optional[Iterable] = None) -> list[GraphEdge]:
        kinds = _relation_kinds(relation_kinds)
        violations: list[EdgeKey] = []
        with self._lock.read_locked():
            result = [
                self._edges[key].snapshot()
                for key in sorted(self._edges, key=lambda k: (k.source, k.target, k.kind.value))
                if key.kind in kinds and self._sound(key, violations)
            ]
        self._heal(violations)
        return result

    def document_nodes(self, document_id: str) -> list[GraphNode]:
        with self._lock.read_locked():
            contribution = self._documents.get(document_id)
            if contribution is None:
                raise NotFoundError("document", document_id)
            return [
                self._nodes[node_id].snapshot()
                for node_id in sorted(contribution.node_refs)
                if node_id in self._nodes
            ]

    def documents(self) -> list[str]:
        with self._lock.read_locked():
            return sorted(self._documents)

    def neighbors(self, node_id: str, relation_kinds: Optional[Iterable] = None) -> list[GraphNode]:
        """Nodes sharing at least one edge of the given kinds with ``node_id``.

        Edge direction is ignored.  Sorted by node id.
        """
        kinds = _relation_kinds(relation_kinds)
        violations: list[EdgeKey] = []
        with self._lock.read_locked():
            if node_id not in self._nodes:
                raise NotFoundError("node", node_id)
            found = {
                key.other(node_id)
                for key in self._adjacency.get(node_id, ())
                if key.kind in kinds and self._sound(key, violations)
            }
            result = [self._nodes[n].snapshot() for n in sorted(found)]
        self._heal(violations)
        return result

    def shortest_path(
        self,
        from_id: str,
        to_id: str,
        max_hops: int,
        relation_kinds: Optional[Iterable] = None,
    ) -> Optional[list[GraphEdge]]:
        """Fewest-hop path between two nodes, at most ``max_hops`` edges long.

        Returns:
            The edges along the path in walking order; ``[]`` when both ids
            are the same node; None when no path fits within the bound.
            Where several edge kinds join two consecutive nodes the
            heaviest is reported.

        Raises:
            InvalidInputError: if ``max_hops`` is negative.
            NotFoundError: if either endpoint is not in the graph.
        """
        if isinstance(max_hops, bool) or not isinstance(max_hops, int) or max_hops < 0:
            raise InvalidInputError(f"max_hops must be a non-negative integer, got {max_hops!r}")
        kinds = _relation_kinds(relation_kinds)
        violations: list[EdgeKey] = []
        result: Optional[list[GraphEdge]] = None

        with self._lock.read_locked():
            for endpoint in (from_id, to_id):
                if endpoint not in self._nodes:
                    raise NotFoundError("node", endpoint)
            if from_id == to_id:
                result = []
            else:
                usable = [
                    key for key in self._edges
                    if key.kind in kinds and self._sound(key, violations)
                ]
                G = build_networkx_graph(
                    self._nodes,
                    ((k.source, k.target, self._edges[k].weight) for k in usable),
                )
                hops = bounded_shortest_path(G, from_id, to_id, max_hops)
                if hops is not None:
                    result = [
                        self._best_edge(a, b, kinds).snapshot()
                        for a, b in zip(hops, hops[1:])
                    ]
        self._heal(violations)
        return result

    def _best_edge(self, a: str, b: str, kinds: frozenset) -> EdgeRecord:
        candidates = [
            self._edges[key]
            for key in self._adjacency.get(a, ())
            if key.kind in kinds and key.other(a) == b and key in self._edges
        ]
        return min(candidates, key=lambda r: (-r.weight, _KIND_ORDER[r.key.kind], r.key.source))

    def related_documents(self, document_id: str) -> list[RelatedDocument]:
        """Other documents mentioning the same entities, strongest first.

        ``strength`` is the share of this document's entities the other
        document also mentions.
        """
        with self._lock.read_locked():
            contribution = self._documents.get(document_id)
            if contribution is None:
                raise NotFoundError("document", document_id)
            own = sorted(contribution.node_refs)
            shared: dict[str, list[str]] = {}
            for node_id in own:
                record = self._nodes.get(node_id)
                if record is None:
                    continue
                for other in record.support:
                    if other != document_id:
                        shared.setdefault(other, []).append(node_id)

        ranked = sorted(shared.items(), key=lambda item: (-len(item[1]), item[0]))
        return [
            RelatedDocument(
                document_id=other,
                shared_node_ids=node_ids,
                strength=round(len(node_ids) / len(own), 6),
            )
            for other, node_ids in ranked
        ]

    def stats(self) -> GraphStats:
        with self._lock.read_locked():
            n = len(self._nodes)
            pairs = {tuple(sorted((k.source, k.target))) for k in self._edges}
            density = (2 * len(pairs)) / (n * (n - 1)) if n > 1 else 0.0
            return GraphStats(
                node_count=n,
                edge_count=len(self._edges),
                document_count=len(self._documents),
                density=round(density, 6),
                community_count=len(self._partition.communities) if self._partition else None,
            )

    def centrality(self) -> dict[str, float]:
        """Betweenness centrality of every node over all edge kinds."""
        snapshot, violations = self._snapshot()
        self._heal(violations)
        return compute_centrality(snapshot_graph(snapshot))

    # ------------------------------------------------------------------
    # Communities
    # ------------------------------------------------------------------

    def _snapshot(self) -> tuple[GraphSnapshot, list[EdgeKey]]:
        violations: list[EdgeKey] = []
        with self._lock.read_locked():
            node_types = {node_id: r.entity_type for node_id, r in self._nodes.items()}
            pair_weights: dict[tuple[str, str], int] = {}
            for key, record in self._edges.items():
                if key.source == key.target or not self._sound(key, violations):
                    continue
                pair = (min(key.source, key.target), max(key.source, key.target))
                pair_weights[pair] = pair_weights.get(pair, 0) + record.weight
            snapshot = GraphSnapshot(
                version=self._version,
                node_types=node_types,
                pair_weights=pair_weights,
            )
        return snapshot, violations

    def detect_communities(
        self,
        resolution: Optional[float] = None,
        max_iterations: Optional[int] = None,
        deadline: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Community]:
        """Partition the graph into communities and publish the result.

        Args:
            resolution: Modularity resolution γ (> 0).  Defaults to
                ``IOU_COMMUNITY_RESOLUTION``.
            max_iterations: Merge cap.  Defaults to
                ``IOU_COMMUNITY_MAX_ITERATIONS``.
            deadline: ``time.monotonic()`` value; when reached the partial
                partition is published with ``converged=False``.
            cancel_event: When set, the run is abandoned and nothing is
                published.

        Returns:
            Communities covering every node exactly once (singletons kept),
            largest first.

        Raises:
            InvalidInputError: for a non-positive resolution or negative cap.
            OperationCancelledError: if ``cancel_event`` is set.
        """
        if resolution is None:
            resolution = self.settings.community_resolution
        if max_iterations is None:
            max_iterations = self.settings.community_max_iterations
        if resolution <= 0:
            raise InvalidInputError(f"resolution must be > 0, got {resolution}")
        if max_iterations < 0:
            raise InvalidInputError(f"max_iterations must be >= 0, got {max_iterations}")

        snapshot, violations = self._snapshot()
        self._heal(violations)

        started = time.monotonic()
        result = greedy_modularity(
            snapshot,
            resolution=resolution,
            max_iterations=max_iterations,
            deadline=deadline,
            cancel_event=cancel_event,
        )
        modularity = partition_modularity(snapshot_graph(snapshot), result.partition, resolution)
        communities = self._describe(result.partition, snapshot)

        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("community detection cancelled")

        partition = CommunityPartition(
            communities=communities,
            modularity=round(modularity, 6),
            resolution=resolution,
            iterations=result.iterations,
            converged=result.converged,
            graph_version=snapshot.version,
        )
        with self._lock.write_locked():
            self._partition = partition
            self._membership = {m: c for c in communities for m in c.members}

        logger.info(
            "Detected %d communities over %d nodes (modularity=%.4f, merges=%d, converged=%s, %.3fs)",
            len(communities), len(snapshot.node_types), partition.modularity,
            result.iterations, result.converged, time.monotonic() - started,
        )
        self.events.emit(COMMUNITIES_DETECTED, partition=partition)
        return communities

    @staticmethod
    def _describe(partition: list[list[str]], snapshot: GraphSnapshot) -> list[Community]:
        owner = {m: i for i, group in enumerate(partition) for m in group}
        internal = [0] * len(partition)
        boundary = [0] * len(partition)
        for (a, b), weight in snapshot.pair_weights.items():
            ca, cb = owner[a], owner[b]
            if ca == cb:
                internal[ca] += weight
            else:
                boundary[ca] += weight
                boundary[cb] += weight

        communities = []
        for i, members in enumerate(partition):
            total = internal[i] + boundary[i]
            communities.append(Community(
                id=f"community:{members[0]}",
                members=members,
                cohesion=round(internal[i] / total, 6) if total else 0.0,
                label=_community_label(members, snapshot.node_types),
            ))
        return communities

    def communities(self) -> list[Community]:
        """The last published partition; empty before the first detection."""
        with self._lock.read_locked():
            return list(self._partition.communities) if self._partition else []

    def community_partition(self) -> Optional[CommunityPartition]:
        with self._lock.read_locked():
            return self._partition

    def community_of(self, node_id: str) -> Optional[Community]:
        with self._lock.read_locked():
            if node_id not in self._nodes:
                raise NotFoundError("node", node_id)
            return self._membership.get(node_id)
