"""
Governance rule registry.

Rule descriptions (data) are kept apart from rule checks (behaviour).
Only descriptors are persisted; on load, checks are re-bound through a
behaviour factory keyed by rule id.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable

from loguru import logger
from pydantic import BaseModel


RuleCheck = Callable[[str], str | None]


class RuleDescriptor(BaseModel):
    """Serializable description of one rule."""

    id: int
    name: str
    category: str
    description: str
    has_finalize_check: bool = False
    has_streaming_check: bool = False


@dataclass(frozen=True, slots=True)
class RuleBehaviour:
    """Executable checks attached to a rule. Either may be absent."""

    finalize: RuleCheck | None = None
    streaming: RuleCheck | None = None


BehaviourFactory = Callable[[int], RuleBehaviour]


@dataclass(frozen=True, slots=True)
class RuleVerdict:
    """A check result that replaces or flags the inspected text."""

    rule_id: int
    message: str


@dataclass(slots=True)
class GovernanceRule:
    id: int
    name: str
    category: str
    description: str
    behaviour: RuleBehaviour = field(default_factory=RuleBehaviour)

    @property
    def has_finalize_check(self) -> bool:
        return self.behaviour.finalize is not None

    @property
    def has_streaming_check(self) -> bool:
        return self.behaviour.streaming is not None

    def to_descriptor(self) -> RuleDescriptor:
        return RuleDescriptor(
            id=self.id,
            name=self.name,
            category=self.category,
            description=self.description,
            has_finalize_check=self.has_finalize_check,
            has_streaming_check=self.has_streaming_check,
        )

    def __str__(self) -> str:
        return f"Rule {self.id}: {self.name} ({self.category})\n  {self.description}"


class RuleRegistry:
    """Rules indexed by id and by category.

    Registering an id that already exists replaces the earlier rule.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, GovernanceRule] = {}
        self._by_category: dict[str, list[GovernanceRule]] = {}

    # ------------------------------------------------------------------
    # Management
    # ------------------------------------------------------------------

    def register(self, rule: GovernanceRule) -> None:
        if rule.id in self._by_id:
            self.unregister(rule.id)
        self._by_id[rule.id] = rule
        self._by_category.setdefault(rule.category, []).append(rule)

    def unregister(self, rule_id: int) -> None:
        rule = self._by_id.pop(rule_id, None)
        if rule is None:
            return

        remaining = [r for r in self._by_category[rule.category] if r.id != rule_id]
        if remaining:
            self._by_category[rule.category] = remaining
        else:
            del self._by_category[rule.category]

    def clear(self) -> None:
        self._by_id.clear()
        self._by_category.clear()

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get(self, rule_id: int) -> GovernanceRule | None:
        return self._by_id.get(rule_id)

    def by_category(self, category: str) -> list[GovernanceRule]:
        return sorted(self._by_category.get(category, []), key=lambda r: r.id)

    def all_rules(self) -> list[GovernanceRule]:
        """All rules in ascending id order."""
        return sorted(self._by_id.values(), key=lambda r: r.id)

    def count(self) -> int:
        return len(self._by_id)

    def find(self, query: str) -> GovernanceRule | None:
        """First rule (by id) whose name or description contains *query*.

        Matching ignores case.
        """
        needle = query.lower()
        for rule in self.all_rules():
            if needle in rule.name.lower() or needle in rule.description.lower():
                return rule
        return None

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, text: str, category: str | None = None) -> RuleVerdict | None:
        """Run finalize checks in id order; the first veto wins."""
        rules = self.by_category(category) if category else self.all_rules()
        for rule in rules:
            if rule.behaviour.finalize is None:
                continue
            message = rule.behaviour.finalize(text)
            if message is not None:
                logger.debug(f"Rule {rule.id} detected a violation in finalize")
                return RuleVerdict(rule.id, message)
        return None

    def evaluate_streaming(self, text: str) -> RuleVerdict | None:
        """Run streaming checks in id order; the first warning wins."""
        for rule in self.all_rules():
            if rule.behaviour.streaming is None:
                continue
            message = rule.behaviour.streaming(text)
            if message is not None:
                logger.debug(f"Rule {rule.id} streaming check detected an issue")
                return RuleVerdict(rule.id, message)
        return None

    # ------------------------------------------------------------------
    # Reporting and serialization
    # ------------------------------------------------------------------

    def status_report(self) -> str:
        lines = ["## Governance Rules Status", ""]
        for category in sorted(self._by_category):
            lines.append(f"### Category: {category}")
            lines.append("")
            for rule in self.by_category(category):
                lines.append(f"- **Rule {rule.id}**: {rule.name}")
                lines.append(f"  {rule.description}")
                lines.append("")
        return "\n".join(lines) + "\n"

    def to_descriptors(self) -> list[RuleDescriptor]:
        return [rule.to_descriptor() for rule in self.all_rules()]

    def load_descriptors(
        self,
        descriptors: Iterable[RuleDescriptor],
        behaviour_factory: BehaviourFactory,
    ) -> None:
        """Replace all rules with *descriptors*, re-binding their checks.

        A descriptor that claims a check the factory cannot provide is
        loaded without it and logged.
        """
        self.clear()
        for descriptor in descriptors:
            behaviour = behaviour_factory(descriptor.id)
            if descriptor.has_finalize_check and behaviour.finalize is None:
                logger.warning(f"No finalize check available for rule {descriptor.id}")
            if descriptor.has_streaming_check and behaviour.streaming is None:
                logger.warning(f"No streaming check available for rule {descriptor.id}")

            self.register(
                GovernanceRule(
                    id=descriptor.id,
                    name=descriptor.name,
                    category=descriptor.category,
                    description=descriptor.description,
                    behaviour=behaviour,
                )
            )
        logger.debug(f"Loaded {self.count()} rule descriptors")
