"""Governance engine: rule registry, drift tracking and integrity state."""

from .engine import COMMAND_KEY, GovernanceEngine, djb2_hex
from .persistence import GovernanceStateStore
from .registry import (
    GovernanceRule,
    RuleBehaviour,
    RuleDescriptor,
    RuleRegistry,
    RuleVerdict,
)
from .similarity import levenshtein_distance, levenshtein_similarity
from .state import (
    FeedbackEntry,
    FeedbackSeverity,
    GovernanceEvent,
    GovernanceMetrics,
    GovernanceSnapshot,
    MemoryKernel,
)

__all__ = [
    "COMMAND_KEY",
    "FeedbackEntry",
    "FeedbackSeverity",
    "GovernanceEngine",
    "GovernanceEvent",
    "GovernanceMetrics",
    "GovernanceRule",
    "GovernanceSnapshot",
    "GovernanceStateStore",
    "MemoryKernel",
    "RuleBehaviour",
    "RuleDescriptor",
    "RuleRegistry",
    "RuleVerdict",
    "djb2_hex",
    "levenshtein_distance",
    "levenshtein_similarity",
]
