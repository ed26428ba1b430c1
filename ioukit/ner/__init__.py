"""IOU Kit entity recognition — rule-driven NER for Dutch government text."""

from .extractor import EntityExtractor, ensure_text
from .rules import PatternRule, RuleKind, build_rules, default_rules, iter_matches, load_rules

__all__ = [
    "EntityExtractor",
    "ensure_text",
    "PatternRule",
    "RuleKind",
    "build_rules",
    "default_rules",
    "iter_matches",
    "load_rules",
]
