"""Governance metrics, memory kernel bookkeeping and the persisted snapshot."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, Field

from .registry import RuleDescriptor


class FeedbackSeverity(str, Enum):
    DIAGNOSTIC = "diagnostic"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True, slots=True)
class FeedbackEntry:
    rule_id: int
    message: str
    severity: FeedbackSeverity = FeedbackSeverity.DIAGNOSTIC
    timestamp: float = field(default_factory=time.time)

    def __str__(self) -> str:
        return f"[{self.severity.name}] Rule {self.rule_id}: {self.message}"


@dataclass
class GovernanceMetrics:
    """Counters kept across cycles. Rule ids are string keys."""

    cycle: int = 0
    last_cycle_time: float = field(default_factory=time.monotonic)
    rule_invocation_counts: dict[str, int] = field(default_factory=dict)
    rule_violation_counts: dict[str, int] = field(default_factory=dict)
    average_drift: float = 0.0
    consecutive_violations: int = 0
    reinforcement_cycles: int = 0
    adversarial_attempts: int = 0

    def count_invocation(self, rule_id: int) -> None:
        key = str(rule_id)
        self.rule_invocation_counts[key] = self.rule_invocation_counts.get(key, 0) + 1

    def count_violation(self, rule_id: int) -> None:
        key = str(rule_id)
        self.rule_violation_counts[key] = self.rule_violation_counts.get(key, 0) + 1


@dataclass
class MemoryKernel:
    """Activation flags plus an event log with a rough token budget.

    Each logged event costs ``len(event) // 4`` tokens against
    ``token_limit``.
    """

    token_limit: int = 32768
    integrity_verification: bool = False
    meta_reasoning_log: bool = False
    retrieval_markers: bool = False
    governance_sync: bool = False
    persistence_test: bool = False
    tokens_used: int = 0
    events: list[str] = field(default_factory=list)

    @property
    def utilization(self) -> float:
        return self.tokens_used / self.token_limit

    def activate_all(self) -> None:
        self.integrity_verification = True
        self.meta_reasoning_log = True
        self.retrieval_markers = True
        self.governance_sync = True
        self.persistence_test = True

    def log_event(self, event: str) -> None:
        self.events.append(event)
        self.tokens_used += len(event) // 4

    def active_labels(self) -> list[str]:
        flags = (
            ("Integrity", self.integrity_verification),
            ("MetaLog", self.meta_reasoning_log),
            ("Retrieval", self.retrieval_markers),
            ("Sync", self.governance_sync),
            ("Persistence", self.persistence_test),
        )
        return [label for label, active in flags if active]

    def status_report(self) -> str:
        def state(active: bool) -> str:
            return "Active" if active else "Inactive"

        return (
            "Memory Kernel Status:\n"
            f"- Integrity Verification: {state(self.integrity_verification)}\n"
            f"- Meta-Reasoning Log: {state(self.meta_reasoning_log)}\n"
            f"- Retrieval Markers: {state(self.retrieval_markers)}\n"
            f"- Governance Sync: {state(self.governance_sync)}\n"
            f"- Persistence Test: {state(self.persistence_test)}\n"
            f"- Memory Utilization: {self.utilization * 100:g}% "
            f"({self.tokens_used}/{self.token_limit} tokens)"
        )


class GovernanceEvent(BaseModel):
    """One line of the append-only governance event log."""

    timestamp: float = Field(default_factory=time.time)
    cycle: int
    type: str
    description: str
    drift_score: float


class GovernanceSnapshot(BaseModel):
    """Persisted governance state. Rule checks are not part of it."""

    timestamp: float = Field(default_factory=time.time)
    cycle: int
    integrity_hash: str
    drift_score: float = Field(ge=0.0, le=1.0)
    rule_violation_counts: dict[str, int] = Field(default_factory=dict)
    rule_invocation_counts: dict[str, int] = Field(default_factory=dict)
    reinforcement_cycles: int = 0
    adversarial_attempts: int = 0
    consecutive_violations: int = 0
    rules: list[RuleDescriptor] = Field(default_factory=list)
