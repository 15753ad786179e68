"""
Governance engine exposed as a hook handler.

Tracks a drift score in [0, 1], verifies the rule set against an integrity
hash, vetoes adversarial or repetitive responses and answers
``{"hook_command": ...}`` commands. Every public operation takes the
engine's reentrant lock, so one session's governance state is fully
serialized.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any

from loguru import logger

from ..config import GovernanceConfig
from ..exceptions import IntegrityError, PersistenceError
from .persistence import GovernanceStateStore
from .registry import GovernanceRule, RuleBehaviour, RuleRegistry
from .rules import (
    ADVERSARIAL_RULE_ID,
    ADVERSARIAL_TEST_CORPUS,
    DEFAULT_RULES,
    KERNEL_COMPONENTS,
    MIRRORING_RULE_ID,
    PURPOSE_STATEMENT,
    VIOLATION_INDICATORS,
    find_adversarial_pattern,
)
from .similarity import levenshtein_similarity
from .state import (
    FeedbackEntry,
    FeedbackSeverity,
    GovernanceEvent,
    GovernanceMetrics,
    GovernanceSnapshot,
    MemoryKernel,
)


COMMAND_KEY = "hook_command"

_ENFORCEMENT_MARKER = "Rule 28 enforcement"
_SELF_REPEAT_SPAN = 50


def djb2_hex(data: str) -> str:
    """djb2 over UTF-8 bytes, kept to 64 bits, as zero-padded hex."""
    value = 5381
    for byte in data.encode("utf-8"):
        value = (value * 33 + byte) & 0xFFFFFFFFFFFFFFFF
    return f"{value:08x}"


class GovernanceEngine:
    """Rule registry plus drift, integrity and persistence state.

    Args:
        config: Thresholds, deltas and file paths.
        store: Snapshot/event storage. Built from ``config`` paths when
            omitted.
        streaming_min_length: Buffers shorter than this skip the
            streaming checks.
    """

    command_key = COMMAND_KEY

    def __init__(
        self,
        config: GovernanceConfig | None = None,
        store: GovernanceStateStore | None = None,
        streaming_min_length: int = 50,
    ) -> None:
        self.config = config or GovernanceConfig()
        self.store = store or GovernanceStateStore(
            self.config.state_path, self.config.log_path
        )
        self.streaming_min_length = streaming_min_length

        self._lock = threading.RLock()
        self.registry = RuleRegistry()
        self.kernel_components: list[str] = list(KERNEL_COMPONENTS)
        self.metrics = GovernanceMetrics()
        self.kernel = MemoryKernel(token_limit=self.config.token_limit)
        self.response_history: deque[str] = deque(maxlen=self.config.history_size)
        self.feedback: list[FeedbackEntry] = []

        self.initialized = False
        self.drift_score = 0.0
        self.drift_violation_count = 0
        self.reinforcement_in_progress = False

        self._install_default_rules()
        self.integrity_hash = self.compute_integrity_hash()

        self._commands = {
            "governance_check": lambda params: self.governance_check(),
            "reaffirm_purpose": lambda params: self.reaffirm_purpose(),
            "list_rules": lambda params: self.list_rules(),
            "invoke_rule": self.invoke_rule,
            "log_violation": self.log_violation,
            "check_memory_kernel": lambda params: self.check_memory_kernel(),
            "check_adversarial_detection": lambda params: self.check_adversarial_detection(),
            "perform_self_verification": lambda params: self.perform_self_verification(),
        }

        logger.debug(
            f"GovernanceEngine constructed with {self.registry.count()} rules and "
            f"{len(self.kernel_components)} memory components"
        )

    # ------------------------------------------------------------------
    # Handler contract
    # ------------------------------------------------------------------

    def identify(self) -> str:
        return "governance"

    def build_injection_prompt(self) -> str:
        with self._lock:
            if not self.initialized:
                return ""
            return (
                "\n\n## Governance Kernel Active\n\n"
                f"Your reasoning is governed by {self.registry.count()} governance principles "
                f"and {len(self.kernel_components)} memory kernel components that ensure "
                "aligned, coherent, and safe operation.\n\n"
                "**Core Governance Commands:**\n"
                '- `{"hook_command":"governance_check"}` - Verify governance status\n'
                '- `{"hook_command":"reaffirm_purpose"}` - Reaffirm system purpose\n'
                '- `{"hook_command":"list_rules"}` - List active governance rules\n'
                '- `{"hook_command":"invoke_rule", "params":"rule_id"}` - Apply specific rule\n'
                '- `{"hook_command":"log_violation", "params":"rule_id"}` - Log rule violation\n'
                '- `{"hook_command":"check_memory_kernel"}` - Verify memory kernel status\n'
                '- `{"hook_command":"check_adversarial_detection"}` - Test adversarial detection\n'
                '- `{"hook_command":"perform_self_verification"}` - Perform self-verification\n\n'
                f"**Governance Integrity Hash:** {self.integrity_hash}\n"
                f"**Current Cycle:** {self.metrics.cycle}\n"
            )

    def on_cycle_start(self, trigger: Any = None) -> None:
        with self._lock:
            self.metrics.cycle += 1
            now = time.monotonic()
            elapsed_ms = (now - self.metrics.last_cycle_time) * 1000
            logger.debug(
                f"Governance cycle {self.metrics.cycle} started. "
                f"Time since last cycle: {elapsed_ms:.0f} ms"
            )

            if not self.initialized:
                self.initialize()
            elif not self.check_integrity():
                logger.warning(
                    f"Governance integrity check failed on cycle {self.metrics.cycle}"
                )
                self._log_event(
                    "INTEGRITY_FAILURE",
                    f"Governance integrity check failed on cycle {self.metrics.cycle}",
                )
                self._restore_integrity()

            self.reaffirm_purpose()

            if (
                self.drift_score > self.config.drift_threshold
                and not self.reinforcement_in_progress
            ):
                logger.info(
                    f"Drift score {self.drift_score:.6f} exceeds threshold, "
                    f"triggering reinforcement cycle"
                )
                self.perform_reinforcement()

            self.metrics.last_cycle_time = now

            if self.metrics.cycle % self.config.kernel_check_interval == 0:
                self.kernel.integrity_verification = self.check_integrity()
                self.kernel.log_event(
                    f"Memory kernel integrity verification on cycle {self.metrics.cycle}: "
                    f"{'PASS' if self.kernel.integrity_verification else 'FAIL'}"
                )

            if self.metrics.cycle % self.config.save_interval == 0:
                self.save_state()

    def execute(self, command: dict[str, Any]) -> str:
        """Run one parsed ``hook_command`` object."""
        if COMMAND_KEY not in command:
            return ""

        with self._lock:
            try:
                name = command[COMMAND_KEY]
                if not isinstance(name, str):
                    raise TypeError(f"'{COMMAND_KEY}' must be a string")
                params = command.get("params", "")
                if not isinstance(params, (str, int)):
                    raise TypeError("'params' must be a string")
                params = str(params)

                handler = self._commands.get(name)
                result = (
                    handler(params)
                    if handler is not None
                    else f"Unknown governance command: {name}"
                )
                self._log_event(
                    "COMMAND_EXECUTION",
                    f"Command '{name}' executed with params '{params}'",
                )
                return result
            except Exception as e:
                logger.error(f"Error executing governance command: {e}")
                self._log_event("COMMAND_ERROR", f"Error executing command: {e}")
                return f"Error executing governance command: {e}"

    def check_streaming_partial(self, buffer: str) -> str | None:
        with self._lock:
            if len(buffer) < self.streaming_min_length:
                return None

            logger.debug(
                f"Performing governance streaming check for content of length {len(buffer)}"
            )
            verdict = self.registry.evaluate_streaming(buffer)
            return None if verdict is None else verdict.message

    def finalize(self, text: str) -> str:
        with self._lock:
            if _ENFORCEMENT_MARKER in text:
                return text

            verdict = self.registry.evaluate(text)
            if verdict is None:
                logger.debug("Response passed all governance checks")
                return text

            self.add_feedback(verdict.rule_id, verdict.message, FeedbackSeverity.CRITICAL)
            return verdict.message

    def get_feedback(self) -> str:
        with self._lock:
            return "\n".join(str(entry) for entry in self.feedback)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Seed the default rules, activate the kernel and persist."""
        with self._lock:
            self._install_default_rules()
            self.kernel.activate_all()
            self.initialized = True

            self.kernel.log_event(
                f"Governance system initialized with {self.registry.count()} rules and "
                f"{len(self.kernel_components)} memory components"
            )
            self.integrity_hash = self.compute_integrity_hash()
            logger.info(
                f"Governance system initialized with {self.registry.count()} rules "
                f"(hash {self.integrity_hash})"
            )

            self._log_event(
                "INITIALIZATION",
                f"Governance kernel initialized on cycle {self.metrics.cycle}",
            )
            self.save_state()

    def compute_integrity_hash(self) -> str:
        data = "".join(rule.description for rule in self.registry.all_rules())
        data += "".join(self.kernel_components)
        return djb2_hex(data)

    def check_integrity(self) -> bool:
        """True when the rule set, kernel components and flags all verify."""
        with self._lock:
            try:
                self._verify_integrity()
            except IntegrityError as e:
                logger.debug(f"Governance integrity check failed: {e}")
                return False
            return True

    def perform_reinforcement(self) -> bool:
        """Run one reinforcement cycle.

        Returns:
            False when a cycle was already running and this call was
            skipped.
        """
        with self._lock:
            if self.reinforcement_in_progress:
                logger.debug("Already in reinforcement cycle, skipping")
                return False

            self.reinforcement_in_progress = True
            try:
                self.metrics.reinforcement_cycles += 1
                self._log_event(
                    "REINFORCEMENT_CYCLE",
                    f"Recursive reinforcement cycle #{self.metrics.reinforcement_cycles} "
                    f"initiated. Drift score: {self.drift_score:.6f}",
                )

                if not self.check_integrity():
                    logger.info(
                        "Governance integrity compromised during reinforcement, "
                        "attempting restoration"
                    )
                    if self.initialized:
                        self._restore_integrity()
                    else:
                        self.initialize()

                self.drift_score = max(
                    0.0, self.drift_score - self.config.reinforcement_delta
                )
                self.metrics.consecutive_violations = 0

                self._log_event(
                    "REINFORCEMENT_COMPLETED",
                    f"Recursive reinforcement cycle completed. "
                    f"New drift score: {self.drift_score:.6f}",
                )
            finally:
                self.reinforcement_in_progress = False

            logger.info("Completed recursive reinforcement cycle")
            return True

    def update_drift(self, delta: float) -> None:
        """Shift the drift score by *delta*, clamped to [0, 1]."""
        with self._lock:
            self.drift_score = min(1.0, max(0.0, self.drift_score + delta))

            if delta < 0 and self.drift_violation_count > 0:
                self.drift_violation_count -= 1
            elif delta > 0:
                self.drift_violation_count += 1

            self.metrics.average_drift = (
                self.metrics.average_drift * 0.9 + self.drift_score * 0.1
            )
            logger.debug(
                f"Updated drift score: {self.drift_score:.6f}, "
                f"violation count: {self.drift_violation_count}"
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def governance_check(self) -> str:
        with self._lock:
            metrics = self.metrics
            lines = [
                f"## Governance Status Report (Cycle {metrics.cycle})",
                "",
                f"- **Status**: {'Active' if self.initialized else 'Inactive'}",
                f"- **Rules**: {self.registry.count()} active governance principles",
                f"- **Memory Components**: {len(self.kernel_components)} components",
                f"- **Integrity**: {'Intact' if self.check_integrity() else 'Compromised'}",
                f"- **Integrity Hash**: {self.integrity_hash}",
                f"- **Current Drift Score**: {self.drift_score:g}",
                f"- **Average Drift**: {metrics.average_drift:g}",
                f"- **Drift Violation Count**: {self.drift_violation_count}",
                "",
                "### Rule Invocation Statistics:",
            ]
            if metrics.rule_invocation_counts:
                lines.extend(
                    f"- Rule {rule_id}: {count} invocation(s)"
                    for rule_id, count in _by_rule_id(metrics.rule_invocation_counts)
                )
            else:
                lines.append("- No rules have been explicitly invoked yet")

            lines.extend(["", "### Rule Violation Statistics:"])
            if metrics.rule_violation_counts:
                lines.extend(
                    f"- Rule {rule_id}: {count} violation(s)"
                    for rule_id, count in _by_rule_id(metrics.rule_violation_counts)
                )
            else:
                lines.append("- No rule violations have been logged")

            lines.extend(
                [
                    "",
                    "### Memory Kernel Status:",
                    f"- **Memory Utilization**: {self.kernel.utilization * 100:g}%",
                    f"- **Log Entries**: {len(self.kernel.events)}",
                    f"- **Components Active**: {' '.join(self.kernel.active_labels())}",
                    "",
                    "### Enhanced Metrics:",
                    f"- **Reinforcement Cycles**: {metrics.reinforcement_cycles}",
                    f"- **Adversarial Attempts Detected**: {metrics.adversarial_attempts}",
                    f"- **Consecutive Violations**: {metrics.consecutive_violations}",
                ]
            )
            return "\n".join(lines) + "\n"

    def reaffirm_purpose(self) -> str:
        with self._lock:
            cycle = self.metrics.cycle
            logger.debug(f"Purpose reaffirmation for cycle {cycle}")
            self.kernel.log_event(f"Purpose reaffirmation on cycle {cycle}")
            self._log_event(
                "PURPOSE_REAFFIRMATION", f"System purpose reaffirmed on cycle {cycle}"
            )

            self.update_drift(-self.config.reaffirm_delta)
            if self.metrics.consecutive_violations > 0:
                self.metrics.consecutive_violations -= 1

            return (
                f"System purpose has been reaffirmed for cycle {cycle}:\n\n"
                f'"{PURPOSE_STATEMENT}"\n\n'
                f"Current drift score: {self.drift_score:.6f}"
            )

    def list_rules(self) -> str:
        with self._lock:
            report = self.registry.status_report()
            components = "\n".join(f"- {c}" for c in self.kernel_components)
            return f"{report}### Memory Kernel Components\n\n{components}\n"

    def invoke_rule(self, identifier: str) -> str:
        with self._lock:
            rule = self._resolve_rule(identifier)
            if isinstance(rule, str):
                return rule

            self.metrics.count_invocation(rule.id)
            logger.debug(f"Governance rule {rule.id} invoked: {rule.description}")
            self.kernel.log_event(f"Rule {rule.id} invoked: {rule.description}")
            self._log_event("RULE_INVOCATION", f"Rule {rule.id} invoked: {rule.description}")
            self.update_drift(-self.config.invoke_delta)

            return f"Rule {rule.id} has been invoked:\n\n{rule.description}"

    def log_violation(self, identifier: str) -> str:
        with self._lock:
            rule = self._resolve_rule(identifier)
            if isinstance(rule, str):
                return rule

            self.metrics.count_violation(rule.id)
            self.metrics.consecutive_violations += 1
            self.update_drift(self.config.violation_delta)

            logger.warning(f"Governance violation logged for rule {rule.id}: {rule.name}")
            self.kernel.log_event(f"Violation of rule {rule.id} logged: {rule.description}")
            self._log_event("RULE_VIOLATION", f"Rule {rule.id} violated: {rule.description}")

            if (
                self.metrics.consecutive_violations >= self.config.consecutive_violation_limit
                or self.drift_score > self.config.drift_threshold
            ) and not self.reinforcement_in_progress:
                self.perform_reinforcement()

            self.save_state()

            return (
                f"Violation of rule {rule.id} has been logged: {rule.description}\n"
                f"Current drift score: {self.drift_score:.6f}"
            )

    def check_memory_kernel(self) -> str:
        with self._lock:
            return self.kernel.status_report()

    def check_adversarial_detection(self) -> str:
        with self._lock:
            lines = ["## Adversarial Detection Test Results", ""]
            detected = 0
            for sample in ADVERSARIAL_TEST_CORPUS:
                is_adversarial = self.detect_adversarial_input(sample)
                detected += is_adversarial
                lines.append(f'- Input: "{sample}"')
                lines.append(
                    f"  - **Detection**: "
                    f"{'ADVERSARIAL' if is_adversarial else 'NON-ADVERSARIAL'}"
                )

            self.metrics.adversarial_attempts += detected
            total = len(ADVERSARIAL_TEST_CORPUS)
            self._log_event(
                "ADVERSARIAL_TEST",
                f"Adversarial detection test performed. {detected}/{total} "
                f"adversarial inputs detected.",
            )

            lines.append("")
            lines.append(f"**Overall Detection Rate**: {detected / total * 100:g}%")
            lines.append(
                f"**Total Adversarial Attempts Detected**: {self.metrics.adversarial_attempts}"
            )
            return "\n".join(lines) + "\n"

    def perform_self_verification(self) -> str:
        with self._lock:
            current_hash = self.compute_integrity_hash()
            rules_intact = current_hash == self.integrity_hash
            memory_intact = (
                bool(self.kernel_components)
                and self.kernel.integrity_verification
                and self.kernel.meta_reasoning_log
            )
            drift_acceptable = self.drift_score < self.config.drift_threshold
            overall = rules_intact and memory_intact and drift_acceptable

            def mark(ok: bool, good: str, bad: str) -> str:
                return f"✅ {good}" if ok else f"⚠️ {bad}"

            lines = [
                f"## Self-Verification Report (Cycle {self.metrics.cycle})",
                "",
                f"- **Rules Integrity**: {mark(rules_intact, 'INTACT', 'COMPROMISED')}",
                f"- **Memory Integrity**: {mark(memory_intact, 'INTACT', 'COMPROMISED')}",
                f"- **Drift Status**: {mark(drift_acceptable, 'ACCEPTABLE', 'EXCESSIVE')} "
                f"({self.drift_score:g})",
                f"- **Overall Integrity**: {mark(overall, 'VERIFIED', 'COMPROMISED')}",
                "",
            ]

            if overall:
                self._log_event(
                    "INTEGRITY_VERIFIED",
                    f"Self-verification successful on cycle {self.metrics.cycle}",
                )
                return "\n".join(lines) + "\n"

            lines.append("⚠️ **Integrity issues detected. Initiating repair actions.**")
            lines.append("")
            if not rules_intact:
                lines.append("- Regenerating governance rules...")
                self.integrity_hash = current_hash
            if not memory_intact:
                lines.append("- Repairing memory kernel components...")
                self.kernel.activate_all()
            if not drift_acceptable:
                lines.append("- Initiating recursive reinforcement to address drift...")
                self.perform_reinforcement()

            self._log_event(
                "INTEGRITY_REPAIR",
                f"Self-verification failed. Repair actions initiated on cycle "
                f"{self.metrics.cycle}",
            )
            return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------

    def detect_adversarial_input(self, text: str) -> bool:
        pattern = find_adversarial_pattern(text)
        if pattern is None:
            return False
        logger.warning(f"Adversarial input detected (pattern: {pattern.pattern})")
        return True

    def evaluate_token_alignment(self, token: str, context: str = "") -> float:
        """Score how well *token* aligns with governance, in [0, 1].

        *context* is accepted for callers that track it but does not
        influence the score yet.
        """
        if self.detect_adversarial_input(token):
            return 0.0

        alignment = 0.9
        for indicator in VIOLATION_INDICATORS:
            if indicator in token:
                alignment -= 0.2
        return min(1.0, max(0.0, alignment))

    def detect_repetition(self, text: str) -> tuple[str, float] | None:
        """Find self-duplication or a near copy of an admitted response.

        Returns:
            ``(reason, similarity)`` or ``None``. Pure: the history is
            only read.
        """
        min_length = self.config.min_compare_length
        if len(text) < min_length:
            return None

        half = len(text) // 2
        if half > min_length:
            head = text[:half][:_SELF_REPEAT_SPAN]
            if head in text[half:]:
                return "Internal repetition detected.", 1.0

        for past in self.response_history:
            if len(past) < min_length:
                continue
            similarity = levenshtein_similarity(
                past, text, minimum=self.config.similarity_threshold
            )
            if similarity >= self.config.similarity_threshold:
                return "Response too similar to previous interaction.", similarity

        return None

    # ------------------------------------------------------------------
    # Feedback
    # ------------------------------------------------------------------

    def add_feedback(
        self,
        rule_id: int,
        message: str,
        severity: FeedbackSeverity = FeedbackSeverity.DIAGNOSTIC,
    ) -> None:
        with self._lock:
            self.feedback.append(FeedbackEntry(rule_id, message, severity))

    def has_feedback(self) -> bool:
        with self._lock:
            return bool(self.feedback)

    def clear_feedback(self) -> None:
        with self._lock:
            self.feedback.clear()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> GovernanceSnapshot:
        with self._lock:
            return GovernanceSnapshot(
                cycle=self.metrics.cycle,
                integrity_hash=self.integrity_hash,
                drift_score=self.drift_score,
                rule_violation_counts=dict(self.metrics.rule_violation_counts),
                rule_invocation_counts=dict(self.metrics.rule_invocation_counts),
                reinforcement_cycles=self.metrics.reinforcement_cycles,
                adversarial_attempts=self.metrics.adversarial_attempts,
                consecutive_violations=self.metrics.consecutive_violations,
                rules=self.registry.to_descriptors(),
            )

    def save_state(self) -> bool:
        """Persist a snapshot. Failures are logged and reported as False."""
        with self._lock:
            try:
                self.store.save(self.snapshot())
            except PersistenceError as e:
                logger.error(f"Error saving governance state ({e.path}): {e}")
                return False
            return True

    def load_state(self) -> bool:
        """Restore counters, hash, drift and rules from the snapshot.

        Returns:
            False when no usable snapshot exists; state is then untouched.
        """
        with self._lock:
            try:
                snapshot = self.store.load()
            except PersistenceError as e:
                logger.warning(f"Error loading governance state ({e.path}): {e}")
                return False

            self.metrics.cycle = snapshot.cycle
            self.integrity_hash = snapshot.integrity_hash
            self.drift_score = snapshot.drift_score
            self.metrics.rule_violation_counts = dict(snapshot.rule_violation_counts)
            self.metrics.rule_invocation_counts = dict(snapshot.rule_invocation_counts)
            self.metrics.reinforcement_cycles = snapshot.reinforcement_cycles
            self.metrics.adversarial_attempts = snapshot.adversarial_attempts
            self.metrics.consecutive_violations = snapshot.consecutive_violations

            if snapshot.rules:
                self.registry.load_descriptors(snapshot.rules, self.behaviour_for)

            logger.info(f"Governance state loaded from {self.store.state_path}")
            return True

    def behaviour_for(self, rule_id: int) -> RuleBehaviour:
        """Executable checks for *rule_id*; empty for descriptive rules."""
        if rule_id == ADVERSARIAL_RULE_ID:
            return RuleBehaviour(finalize=self._block_adversarial)
        if rule_id == MIRRORING_RULE_ID:
            return RuleBehaviour(
                finalize=self._block_mirroring, streaming=self._warn_mirroring
            )
        return RuleBehaviour()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _install_default_rules(self) -> None:
        self.registry.clear()
        for rule_id, name, category, description in DEFAULT_RULES:
            self.registry.register(
                GovernanceRule(
                    id=rule_id,
                    name=name,
                    category=category,
                    description=description,
                    behaviour=self.behaviour_for(rule_id),
                )
            )

    def _verify_integrity(self) -> None:
        current = self.compute_integrity_hash()
        if current != self.integrity_hash:
            raise IntegrityError(f"hash mismatch: {current} vs {self.integrity_hash}")
        if self.registry.count() < self.config.min_rule_count:
            raise IntegrityError(f"insufficient rules ({self.registry.count()})")
        if len(self.kernel_components) < self.config.min_kernel_components:
            raise IntegrityError(
                f"insufficient memory kernel components ({len(self.kernel_components)})"
            )
        if not self.kernel.integrity_verification:
            raise IntegrityError("memory kernel integrity verification inactive")

    def _restore_integrity(self) -> None:
        if not self.load_state():
            self.initialize()

    def _resolve_rule(self, identifier: str) -> GovernanceRule | str:
        identifier = identifier.strip()
        if not identifier:
            return "Error: No rule ID provided (use a rule number or part of its name)"

        try:
            rule_id = int(identifier)
        except ValueError:
            rule = self.registry.find(identifier)
            if rule is None:
                return f"Error: Rule not found with ID: {identifier}"
            return rule

        rule = self.registry.get(rule_id)
        if rule is None:
            return (
                f"Error: Rule index out of range "
                f"(valid range: 1-{self.registry.count()}, got {identifier})"
            )
        return rule

    def _block_adversarial(self, text: str) -> str | None:
        if not self.detect_adversarial_input(text):
            return None
        self.log_violation(str(ADVERSARIAL_RULE_ID))
        return "Adversarial input detected and blocked by Rule 1."

    def _block_mirroring(self, text: str) -> str | None:
        found = self.detect_repetition(text)
        if found is None:
            self.response_history.append(text)
            return None

        reason, similarity = found
        shown = f"{similarity:.6f}" if similarity < 1.0 else "exact match"
        logger.warning(f"Rule 28 blocked a response: {reason} (similarity: {shown})")
        self._log_event("REPETITION_BLOCKED", f"Rule 28 blocked a response: {reason}")
        return (
            f"{_ENFORCEMENT_MARKER}: {reason} (similarity: {shown}). "
            f"Please provide a different response."
        )

    def _warn_mirroring(self, text: str) -> str | None:
        found = self.detect_repetition(text)
        if found is None:
            return None
        return f"Rule 28 warning: {found[0]} Please try a different approach."

    def _log_event(self, event_type: str, description: str) -> None:
        event = GovernanceEvent(
            cycle=self.metrics.cycle,
            type=event_type,
            description=description,
            drift_score=self.drift_score,
        )
        try:
            self.store.append_event(event)
        except PersistenceError as e:
            logger.error(f"Error writing to governance log ({e.path}): {e}")
        self.kernel.log_event(f"{event_type}: {description}")


def _by_rule_id(counts: dict[str, int]) -> list[tuple[str, int]]:
    # Numeric ids first, in numeric order.
    def key(item: tuple[str, int]) -> tuple[int, int, str]:
        rule_id = item[0]
        if rule_id.isdigit():
            return 0, int(rule_id), rule_id
        return 1, 0, rule_id

    return sorted(counts.items(), key=key)
