"""Unit tests for writing engagement scores back to a project."""

from __future__ import annotations

import typing as typ

import pytest

from triage_assistant.engagement.config import EngagementConfig
from triage_assistant.engagement.models import (
    EngagementIssue,
    EngagementItem,
    EngagementProject,
    EngagementResponse,
    EngagementScore,
)
from triage_assistant.engagement.updater import update_project_with_scores
from tests.helpers.femtologging_capture import capture_femto_logs
from tests.unit.engagement_test_helpers import FakeEngagementSource

_FIELD_NAME = "Engagement Score"


def _config(**overrides: typ.Any) -> EngagementConfig:  # noqa: ANN401
    values: dict[str, typ.Any] = {
        "repo_owner": "octo",
        "repo_name": "reef",
        "project_number": 1,
        "apply_scores": True,
    }
    values.update(overrides)
    return EngagementConfig(**values)


def _item(number: int, score: int) -> EngagementItem:
    return EngagementItem(
        id=f"PVTI_{number}",
        issue=EngagementIssue(
            id=f"I_{number}", owner="octo", repo="reef", number=number
        ),
        engagement=EngagementScore.from_scores(score, 0),
    )


def _response(*items: EngagementItem) -> EngagementResponse:
    return EngagementResponse.from_items(
        list(items), project=EngagementProject(id="PVT_1", owner="octo", number=1)
    )


def _source() -> FakeEngagementSource:
    source = FakeEngagementSource()
    source.fields = [("F_status", "Status"), ("F_score", _FIELD_NAME)]
    return source


@pytest.mark.asyncio
async def test_each_item_gets_its_own_mutation() -> None:
    """Every project item is updated with its score."""
    source = _source()

    updated = await update_project_with_scores(
        _config(), source, _response(_item(1, 5), _item(2, 9))
    )

    assert updated == 2, "Expected both items updated"
    assert source.updates == [
        ("PVTI_1", "F_score", "PVT_1", 5),
        ("PVTI_2", "F_score", "PVT_1", 9),
    ], "Expected one mutation per item with the score field"


@pytest.mark.asyncio
async def test_apply_scores_disabled_is_a_no_op() -> None:
    """Nothing is written unless scores are applied."""
    source = _source()

    updated = await update_project_with_scores(
        _config(apply_scores=False), source, _response(_item(1, 5))
    )

    assert updated == 0, "Expected no updates"
    assert source.updates == [], "Expected no mutations"


@pytest.mark.asyncio
async def test_without_project_nothing_is_written() -> None:
    """Single-issue responses have nowhere to write."""
    source = _source()
    response = EngagementResponse.from_items([_item(1, 5)])

    updated = await update_project_with_scores(
        _config(project_number=None, issue_number=1), source, response
    )

    assert updated == 0, "Expected no updates without a project"


@pytest.mark.asyncio
async def test_dry_run_never_mutates() -> None:
    """Dry runs log intended writes and send no mutations."""
    source = _source()

    with capture_femto_logs("triage_assistant.engagement.updater") as capture:
        updated = await update_project_with_scores(
            _config(dry_run=True), source, _response(_item(1, 5), _item(2, 9))
        )
        capture.wait_for_count(3)

    assert source.updates == [], "Expected no mutations in dry run"
    assert updated == 2, "Expected dry run to count would-be updates"
    assert sum("Dry run" in r.message for r in capture.records) == 2, (
        "Expected one dry-run log per item"
    )


@pytest.mark.asyncio
async def test_missing_field_warns_and_skips() -> None:
    """An unknown project column is reported and nothing is written."""
    source = _source()

    with capture_femto_logs("triage_assistant.engagement.updater") as capture:
        updated = await update_project_with_scores(
            _config(project_column="Heat"), source, _response(_item(1, 5))
        )
        capture.wait_for_count(1)

    assert updated == 0, "Expected no updates"
    assert source.updates == [], "Expected no mutations"
    assert any("Heat" in message for message in capture.messages("WARNING")), (
        "Expected a warning naming the missing field"
    )


@pytest.mark.asyncio
async def test_item_failures_do_not_stop_the_batch() -> None:
    """A failing item is logged and the remaining items are still written."""
    source = _source()
    source.failing_items.add("PVTI_2")

    with capture_femto_logs("triage_assistant.engagement.updater") as capture:
        updated = await update_project_with_scores(
            _config(), source, _response(_item(1, 5), _item(2, 9), _item(3, 1))
        )
        capture.wait_for_count(2)

    assert updated == 2, "Expected the two healthy items updated"
    assert [update[0] for update in source.updates] == ["PVTI_1", "PVTI_3"], (
        "Expected the batch to continue past the failure"
    )
    assert any("Updated 2 of 3 items" in r.message for r in capture.records), (
        "Expected a summary log line"
    )


@pytest.mark.asyncio
async def test_repeated_application_is_idempotent() -> None:
    """Applying the same response twice writes the same values."""
    source = _source()
    response = _response(_item(1, 5))

    await update_project_with_scores(_config(), source, response)
    await update_project_with_scores(_config(), source, response)

    assert source.updates[0] == source.updates[1], "Expected identical writes"
