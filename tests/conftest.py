"""Shared fixtures for the sync tests."""

from __future__ import annotations

import io
import logging

import pytest

from gbif_collectory_sync.outcome_log import OutcomeLog


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def outcome_log(log_stream: io.StringIO) -> OutcomeLog:
    return OutcomeLog(log_stream)
