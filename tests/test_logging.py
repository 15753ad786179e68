"""Tests for the optional loguru sink setup."""

from __future__ import annotations

import sys

import pytest
from loguru import logger

from inference_hooks import configure_logging
from inference_hooks.memory import MemoryStoreHook


@pytest.fixture(autouse=True)
def restore_default_sink():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_info_level_hides_command_tracing(capsys) -> None:
    configure_logging()

    MemoryStoreHook().execute({"memory_command": "count_keys"})
    logger.info("visible")

    err = capsys.readouterr().err
    assert "visible" in err
    assert "DEBUG" not in err


def test_debug_level_shows_command_tracing(capsys) -> None:
    sink_id = configure_logging(debug=True)

    logger.debug("traced")

    assert isinstance(sink_id, int)
    assert "traced" in capsys.readouterr().err
