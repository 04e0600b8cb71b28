"""Shared fixtures for BDD feature tests."""

from __future__ import annotations

import pytest

from tests.unit.engagement_test_helpers import FakeEngagementSource


@pytest.fixture
def engagement_source() -> FakeEngagementSource:
    """Provide an empty fake GitHub source for a scenario."""
    return FakeEngagementSource()
