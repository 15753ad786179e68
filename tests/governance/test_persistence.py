"""Tests for GovernanceStateStore: snapshot file and event log."""

from __future__ import annotations

import json

import pytest

from inference_hooks.exceptions import PersistenceError
from inference_hooks.governance import (
    GovernanceEvent,
    GovernanceSnapshot,
    GovernanceStateStore,
    RuleDescriptor,
)


@pytest.fixture
def store(tmp_path) -> GovernanceStateStore:
    return GovernanceStateStore(tmp_path / "state.json", tmp_path / "log.json")


def _snapshot(**overrides) -> GovernanceSnapshot:
    values = dict(
        cycle=12,
        integrity_hash="deadbeef",
        drift_score=0.25,
        rule_violation_counts={"1": 2},
        rule_invocation_counts={"28": 1},
        reinforcement_cycles=1,
        adversarial_attempts=5,
        consecutive_violations=2,
        rules=[RuleDescriptor(id=1, name="A", category="Security", description="d", has_finalize_check=True)],
    )
    values.update(overrides)
    return GovernanceSnapshot(**values)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


def test_save_then_load_round_trip(store: GovernanceStateStore) -> None:
    snapshot = _snapshot()
    store.save(snapshot)
    assert store.load() == snapshot


def test_saved_file_uses_documented_field_names(store: GovernanceStateStore) -> None:
    store.save(_snapshot())
    data = json.loads(store.state_path.read_text(encoding="utf-8"))
    for name in (
        "cycle",
        "integrity_hash",
        "drift_score",
        "rule_violation_counts",
        "rule_invocation_counts",
        "reinforcement_cycles",
        "adversarial_attempts",
        "consecutive_violations",
    ):
        assert name in data


def test_save_overwrites_and_keeps_backup(store: GovernanceStateStore) -> None:
    store.save(_snapshot(cycle=1))
    store.save(_snapshot(cycle=2))

    assert store.load().cycle == 2
    backup = store.state_path.with_suffix(".json.bak")
    assert json.loads(backup.read_text(encoding="utf-8"))["cycle"] == 1
    assert not store.state_path.with_suffix(".json.tmp").exists()


def test_load_missing_file_raises(store: GovernanceStateStore) -> None:
    with pytest.raises(PersistenceError) as excinfo:
        store.load()
    assert excinfo.value.path == str(store.state_path)


def test_corrupted_file_falls_back_to_backup(store: GovernanceStateStore) -> None:
    store.save(_snapshot(cycle=1))
    store.save(_snapshot(cycle=2))
    store.state_path.write_text("{not json", encoding="utf-8")

    assert store.load().cycle == 1


def test_corrupted_file_without_backup_raises(tmp_path) -> None:
    store = GovernanceStateStore(tmp_path / "state.json", tmp_path / "log.json", create_backup=False)
    store.state_path.write_text("{not json", encoding="utf-8")

    with pytest.raises(PersistenceError):
        store.load()


def test_undecodable_file_without_backup_raises(tmp_path) -> None:
    store = GovernanceStateStore(tmp_path / "state.json", tmp_path / "log.json", create_backup=False)
    store.state_path.write_bytes(b"\xff\xfe{not utf8")

    with pytest.raises(PersistenceError) as excinfo:
        store.load()
    assert excinfo.value.path == str(store.state_path)


def test_undecodable_file_falls_back_to_backup(store: GovernanceStateStore) -> None:
    store.save(_snapshot(cycle=1))
    store.save(_snapshot(cycle=2))
    store.state_path.write_bytes(b"\xff\xfe{not utf8")

    assert store.load().cycle == 1


def test_schema_mismatch_raises(store: GovernanceStateStore) -> None:
    store.state_path.write_text(json.dumps({"cycle": "soon"}), encoding="utf-8")
    with pytest.raises(PersistenceError):
        store.load()


def test_save_into_unwritable_location_raises(tmp_path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("file, not a directory", encoding="utf-8")
    store = GovernanceStateStore(blocker / "state.json", tmp_path / "log.json")

    with pytest.raises(PersistenceError):
        store.save(_snapshot())


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------


def test_events_are_appended_as_json_lines(store: GovernanceStateStore) -> None:
    store.append_event(GovernanceEvent(cycle=1, type="INITIALIZATION", description="x", drift_score=0.0))
    store.append_event(GovernanceEvent(cycle=2, type="RULE_VIOLATION", description="y", drift_score=0.1))

    lines = store.log_path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    first = json.loads(lines[0])
    assert set(first) == {"timestamp", "cycle", "type", "description", "drift_score"}
    assert [e["type"] for e in store.read_events()] == ["INITIALIZATION", "RULE_VIOLATION"]


def test_read_events_skips_malformed_lines(store: GovernanceStateStore) -> None:
    store.log_path.write_text('{"type": "A"}\nnot json\n\n{"type": "B"}\n', encoding="utf-8")
    assert [e["type"] for e in store.read_events()] == ["A", "B"]


def test_read_events_without_log(store: GovernanceStateStore) -> None:
    assert store.read_events() == []


def test_read_events_skips_undecodable_lines(store: GovernanceStateStore) -> None:
    store.log_path.write_bytes(b'{"type": "A"}\n\xff\xfe garbage\n{"type": "B"}\n')
    assert [e["type"] for e in store.read_events()] == ["A", "B"]


def test_read_events_keeps_non_ascii_descriptions(store: GovernanceStateStore) -> None:
    store.append_event(GovernanceEvent(cycle=1, type="NOTE", description="규칙 확인", drift_score=0.0))
    assert store.read_events()[0]["description"] == "규칙 확인"
