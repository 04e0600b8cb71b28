"""Unit tests for paginated issue and project collection."""

from __future__ import annotations

import pytest

from triage_assistant.github.collector import GitHubCollector
from triage_assistant.github.errors import IssueNotFoundError, ProjectNotFoundError
from triage_assistant.github.pagination import CursorState
from tests.helpers.github_payloads import (
    comment_node,
    connection,
    project_item_node,
    reaction_node,
)
from tests.unit.engagement_test_helpers import (
    FakeEngagementSource,
    issue_fixture,
    project_items,
)

_TS = "2025-01-02T03:04:05Z"


def _comments(count: int) -> list[dict[str, object]]:
    return [comment_node(f"user{index}", _TS) for index in range(count)]


def _reactions(count: int) -> list[dict[str, object]]:
    return [reaction_node(f"fan{index}", _TS) for index in range(count)]


@pytest.mark.asyncio
async def test_single_page_issue_needs_one_query() -> None:
    """Issues whose connections fit on one page are fetched once."""
    source = FakeEngagementSource()
    source.add_issue(issue_fixture(1, comments=_comments(2), reactions=_reactions(1)))

    issue = await GitHubCollector(source).get_issue_details("octo", "reef", 1)

    assert len(source.issue_calls) == 1, "Expected a single query"
    assert len(issue.comments) == 2, "Expected both comments"
    assert len(issue.reactions) == 1, "Expected the reaction"
    assert issue.user.login == "octocat", "Expected the author"


@pytest.mark.asyncio
async def test_axes_paginate_independently() -> None:
    """A finished axis is excluded while the other keeps paging."""
    source = FakeEngagementSource(page_size=2)
    source.add_issue(issue_fixture(1, comments=_comments(5), reactions=_reactions(1)))

    issue = await GitHubCollector(source).get_issue_details("octo", "reef", 1)

    assert [c.user.login for c in issue.comments] == [
        f"user{index}" for index in range(5)
    ], "Expected every comment in page order"
    assert len(issue.reactions) == 1, "Expected the single reaction once"
    assert len(source.issue_calls) == 3, "Expected three comment pages"
    first, second, third = source.issue_calls
    assert first.include_comments, "Expected comments on the first page"
    assert first.include_reactions, "Expected reactions on the first page"
    assert not second.include_reactions, "Expected finished reactions excluded"
    assert not third.include_reactions, "Expected finished reactions excluded"
    assert (second.comments_after, third.comments_after) == (
        "comments:2",
        "comments:4",
    ), "Expected comment cursors to advance"


@pytest.mark.asyncio
async def test_both_axes_paginate_in_one_loop() -> None:
    """Comments and reactions with several pages share each request."""
    source = FakeEngagementSource(page_size=2)
    source.add_issue(issue_fixture(1, comments=_comments(3), reactions=_reactions(5)))

    issue = await GitHubCollector(source).get_issue_details("octo", "reef", 1)

    assert len(issue.comments) == 3, "Expected all comments"
    assert len(issue.reactions) == 5, "Expected all reactions"
    assert len(source.issue_calls) == 3, "Expected the longer axis to set the count"
    assert source.issue_calls[1].include_comments, "Expected comments page two"
    assert not source.issue_calls[2].include_comments, "Expected comments finished"


@pytest.mark.asyncio
async def test_comment_reactions_and_deleted_users() -> None:
    """Nested comment reactions are parsed and deleted users become ghost."""
    source = FakeEngagementSource()
    source.add_issue(
        issue_fixture(
            1,
            author=None,
            comments=[
                comment_node(None, _TS, reactions=[reaction_node("fan", _TS)])
            ],
        )
    )

    issue = await GitHubCollector(source).get_issue_details("octo", "reef", 1)

    assert issue.user.login == "ghost", "Expected ghost author"
    assert issue.comments[0].user.login == "ghost", "Expected ghost commenter"
    assert issue.comments[0].reactions[0].user.login == "fan", (
        "Expected the nested reaction"
    )


@pytest.mark.asyncio
async def test_missing_issue_raises_not_found() -> None:
    """Unknown issues fail instead of returning a partial snapshot."""
    source = FakeEngagementSource()

    with pytest.raises(IssueNotFoundError, match="octo/reef#9"):
        await GitHubCollector(source).get_issue_details("octo", "reef", 9)


@pytest.mark.asyncio
async def test_project_items_are_collected_across_pages() -> None:
    """Two pages of project items take exactly two queries."""
    source = FakeEngagementSource(page_size=2)
    source.add_project(project_items(1, 2, 3), project_id="PVT_9")

    project = await GitHubCollector(source).get_project_details("octo", "reef", 4)

    assert source.project_calls == [None, "items:2"], "Expected two paged queries"
    assert project.id == "PVT_9", "Expected project id"
    assert [item.content.number for item in project.items] == [1, 2, 3], (
        "Expected items in board order"
    )


@pytest.mark.asyncio
async def test_non_issue_project_items_are_skipped() -> None:
    """Pull requests, drafts and empty content are dropped silently."""
    source = FakeEngagementSource()
    source.add_project(
        [
            project_item_node("PVTI_pr", number=0, typename="PullRequest"),
            project_item_node("PVTI_1", number=1, owner="other", repo="coral"),
            project_item_node("PVTI_draft", number=0, typename="DraftIssue"),
            {"id": "PVTI_empty", "content": None},
        ]
    )

    project = await GitHubCollector(source).get_project_details("octo", "reef", 1)

    assert [item.id for item in project.items] == ["PVTI_1"], "Expected issue only"
    ref = project.items[0].content
    assert (ref.owner, ref.repo) == ("other", "coral"), "Expected item repository"


@pytest.mark.asyncio
async def test_missing_project_raises_not_found() -> None:
    """Unknown projects raise ProjectNotFoundError."""
    source = FakeEngagementSource()

    with pytest.raises(ProjectNotFoundError):
        await GitHubCollector(source).get_project_details("octo", "reef", 3)


@pytest.mark.asyncio
async def test_find_project_field_by_name() -> None:
    """Fields are looked up by exact name."""
    source = FakeEngagementSource()
    source.fields = [("F_1", "Status"), ("F_2", "Engagement Score")]
    collector = GitHubCollector(source)

    found = await collector.find_project_field("octo", "reef", 1, "Engagement Score")
    missing = await collector.find_project_field("octo", "reef", 1, "Priority")

    assert found is not None, "Expected the score field"
    assert found.id == "F_2", "Expected the score field id"
    assert missing is None, "Expected unknown field to be None"


def test_cursor_state_stops_on_repeated_cursor() -> None:
    """A cursor that does not advance ends pagination."""
    state = CursorState(field="issue.comments")

    state.advance(connection([], end_cursor="c1", has_next_page=True))
    state.advance(connection([], end_cursor="c1", has_next_page=True))

    assert state.done, "Expected a repeated cursor to finish the axis"
    assert state.pages == 2, "Expected both pages counted"
    with pytest.raises(RuntimeError):
        state.advance(connection([]))
