"""IOU Kit compliance — rule-based Woo, AVG and Archiefwet classification."""

from .assessor import ComplianceAssessor
from .context import GraphContext, OrganizationRegistry, build_graph_context, context_from_mentions
from .models import (
    ArchivalValue,
    Classification,
    ComplianceResult,
    ComplianceSignal,
    DomainType,
    ObjectType,
    PrivacyLevel,
    RegulatoryBasis,
)
from .rules import ComplianceRule, build_rules, default_rules, evaluate, load_rules

__all__ = [
    "ComplianceAssessor",
    "ComplianceRule",
    "ComplianceResult",
    "ComplianceSignal",
    "GraphContext",
    "OrganizationRegistry",
    "build_graph_context",
    "context_from_mentions",
    "ArchivalValue",
    "Classification",
    "DomainType",
    "ObjectType",
    "PrivacyLevel",
    "RegulatoryBasis",
    "build_rules",
    "default_rules",
    "evaluate",
    "load_rules",
]
