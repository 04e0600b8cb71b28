"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import os

import pytest

_ISOLATED_VARS = (
    "GITHUB_REPOSITORY",
    "GITHUB_TOKEN",
    "RUNNER_TEMP",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the runner's environment from leaking into configuration."""
    for name in list(os.environ):
        if name.startswith("TRIAGE_ASSISTANT_") or name in _ISOLATED_VARS:
            monkeypatch.delenv(name, raising=False)
