"""Tests for KeyValueMemoryStore: bounded session key/value state."""

from __future__ import annotations

import pytest

from inference_hooks.memory import (
    DEFAULT_MEMORY_INSTRUCTIONS,
    MEMORY_QUOTA_BYTES,
    PROTECTED_KEY,
    KeyValueMemoryStore,
    format_memory_size,
)


@pytest.fixture
def store() -> KeyValueMemoryStore:
    return KeyValueMemoryStore()


def _expected_usage(store: KeyValueMemoryStore) -> int:
    return sum(
        len(k.encode("utf-8")) + len(store.get(k).encode("utf-8")) for k in store.list_keys()
    )


# ---------------------------------------------------------------------------
# Seeding and accounting
# ---------------------------------------------------------------------------


def test_new_store_holds_only_protected_key(store: KeyValueMemoryStore) -> None:
    assert store.list_keys() == [PROTECTED_KEY]
    assert store.usage_bytes() == len(PROTECTED_KEY) + len(DEFAULT_MEMORY_INSTRUCTIONS)


def test_quota_is_sixteen_mebibytes(store: KeyValueMemoryStore) -> None:
    assert store.quota_bytes() == 16_777_216 == MEMORY_QUOTA_BYTES
    store.set("a", "b" * 1000)
    assert store.quota_bytes() == 16_777_216


def test_usage_is_sum_of_entries(store: KeyValueMemoryStore) -> None:
    store.set("name", "Luna")
    store.set("color", "blue")
    store.set("name", "Sol")
    store.delete("color")
    assert store.usage_bytes() == _expected_usage(store)


def test_set_new_key_increments_count_and_usage(store: KeyValueMemoryStore) -> None:
    count, usage = store.count(), store.usage_bytes()

    assert store.set("name", "Luna")

    assert store.get("name") == "Luna"
    assert store.count() == count + 1
    assert store.usage_bytes() == usage + len("name") + len("Luna")


def test_usage_counts_utf8_bytes(store: KeyValueMemoryStore) -> None:
    usage = store.usage_bytes()

    store.set("이름", "루나")

    assert store.usage_bytes() == usage + 12
    assert store.usage_bytes() == _expected_usage(store)


def test_quota_is_advisory(store: KeyValueMemoryStore) -> None:
    small = KeyValueMemoryStore(quota_bytes=10)
    assert small.set("big", "x" * 100)
    assert small.usage_percent() > 100



@pytest.mark.parametrize("quota", [0, -1])
def test_non_positive_quota_is_rejected(quota: int) -> None:
    with pytest.raises(ValueError):
        KeyValueMemoryStore(quota_bytes=quota)


def test_get_missing_key_returns_none(store: KeyValueMemoryStore) -> None:
    assert store.get("missing") is None


def test_delete_missing_key_is_a_successful_noop(store: KeyValueMemoryStore) -> None:
    assert store.delete("missing")
    assert store.count() == 1


# ---------------------------------------------------------------------------
# Protected key
# ---------------------------------------------------------------------------


def test_protected_key_cannot_be_overwritten(store: KeyValueMemoryStore) -> None:
    assert not store.set(PROTECTED_KEY, "tampered")
    assert store.get(PROTECTED_KEY) == DEFAULT_MEMORY_INSTRUCTIONS


def test_protected_key_cannot_be_deleted(store: KeyValueMemoryStore) -> None:
    assert not store.delete(PROTECTED_KEY)
    assert store.has(PROTECTED_KEY)


def test_integrity_passes_for_canonical_content(store: KeyValueMemoryStore) -> None:
    assert store.protected_entry_valid()


def test_integrity_tolerates_small_truncation() -> None:
    store = KeyValueMemoryStore(protected_content="x" * 100)
    store._entries[PROTECTED_KEY] = "x" * 50
    assert store.protected_entry_valid()


def test_integrity_fails_below_half_length() -> None:
    store = KeyValueMemoryStore(protected_content="x" * 100)
    store._entries[PROTECTED_KEY] = "x" * 49
    assert not store.protected_entry_valid()


def test_integrity_fails_when_missing(store: KeyValueMemoryStore) -> None:
    del store._entries[PROTECTED_KEY]
    assert not store.protected_entry_valid()


def test_restore_resets_protected_content(store: KeyValueMemoryStore) -> None:
    store._entries[PROTECTED_KEY] = "short"

    size = store.restore_protected()

    assert size == len(DEFAULT_MEMORY_INSTRUCTIONS)
    assert store.get(PROTECTED_KEY) == DEFAULT_MEMORY_INSTRUCTIONS
    assert store.protected_entry_valid()


# ---------------------------------------------------------------------------
# Size formatting
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "size, expected",
    [
        (512, "512 bytes"),
        (2048, "2.00 KB"),
        (16 * 1024 * 1024, "16.00 MB"),
    ],
)
def test_format_memory_size(size: int, expected: str) -> None:
    assert format_memory_size(size) == expected
