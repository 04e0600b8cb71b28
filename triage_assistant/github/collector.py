"""Collect complete issue and project snapshots from paginated GraphQL data.

The issue collector advances two independent cursors (comments and
reactions). The first request asks for both connections; later requests only
include the connections that still have pages left, so a finished axis is
never fetched twice. Nodes are appended in page order.
"""

from __future__ import annotations

import typing as typ

from triage_assistant.common.time import parse_github_datetime
from triage_assistant.logging import get_logger, log_debug

from .errors import (
    GitHubResponseShapeError,
    IssueNotFoundError,
    ProjectNotFoundError,
)
from .models import (
    CommentData,
    IssueDetails,
    IssueRef,
    ProjectDetails,
    ProjectField,
    ProjectItem,
    ReactionData,
    UserInfo,
)
from .pagination import CursorState, connection_nodes

if typ.TYPE_CHECKING:
    import datetime as dt

    from .client import EngagementDataSource

logger = get_logger(__name__)

GHOST_USER = UserInfo(login="ghost", type="User")


def _user_from_node(node: object) -> UserInfo:
    """Map an actor node to UserInfo; deleted accounts become ``ghost``."""
    if not isinstance(node, dict):
        return GHOST_USER
    login = node.get("login")
    if not isinstance(login, str):
        return GHOST_USER
    typename = node.get("__typename")
    return UserInfo(login=login, type=typename if isinstance(typename, str) else "User")


def _required_str(node: dict[str, typ.Any], key: str, *, field: str) -> str:
    value = node.get(key)
    if not isinstance(value, str):
        raise GitHubResponseShapeError.missing(f"{field}.{key}")
    return value


def _reactions_from_nodes(
    nodes: list[dict[str, typ.Any]],
) -> list[ReactionData]:
    return [
        ReactionData(
            user=_user_from_node(node.get("user")),
            reaction=_required_str(node, "content", field="reaction"),
            created_at=parse_github_datetime(
                _required_str(node, "createdAt", field="reaction")
            ),
        )
        for node in nodes
    ]


def _comment_from_node(node: dict[str, typ.Any]) -> CommentData:
    reactions: list[ReactionData] = []
    raw_reactions = node.get("reactions")
    if isinstance(raw_reactions, dict):
        # Comment reactions never realistically exceed one page; only the
        # first page is read.
        reactions = _reactions_from_nodes(
            connection_nodes(raw_reactions, field="comment.reactions")
        )
    return CommentData(
        user=_user_from_node(node.get("author")),
        created_at=parse_github_datetime(
            _required_str(node, "createdAt", field="comment")
        ),
        reactions=tuple(reactions),
    )


def _optional_datetime(value: object) -> dt.datetime | None:
    return parse_github_datetime(value) if isinstance(value, str) else None


def _issue_node(
    data: dict[str, typ.Any], owner: str, repo: str, number: int
) -> dict[str, typ.Any]:
    repository = data.get("repository")
    issue = repository.get("issue") if isinstance(repository, dict) else None
    if not isinstance(issue, dict):
        raise IssueNotFoundError.for_issue(owner, repo, number)
    return issue


def _issue_from_nodes(  # noqa: PLR0913
    node: dict[str, typ.Any],
    *,
    owner: str,
    repo: str,
    comments: list[CommentData],
    reactions: list[ReactionData],
) -> IssueDetails:
    raw_assignees = node.get("assignees")
    assignees = (
        connection_nodes(raw_assignees, field="issue.assignees")
        if isinstance(raw_assignees, dict)
        else []
    )
    number = node.get("number")
    if not isinstance(number, int):
        raise GitHubResponseShapeError.missing("issue.number")
    body = node.get("body")
    return IssueDetails(
        id=_required_str(node, "id", field="issue"),
        owner=owner,
        repo=repo,
        number=number,
        title=_required_str(node, "title", field="issue"),
        body=body if isinstance(body, str) else "",
        state=_required_str(node, "state", field="issue").lower(),
        created_at=parse_github_datetime(
            _required_str(node, "createdAt", field="issue")
        ),
        updated_at=parse_github_datetime(
            _required_str(node, "updatedAt", field="issue")
        ),
        closed_at=_optional_datetime(node.get("closedAt")),
        user=_user_from_node(node.get("author")),
        assignees=tuple(_user_from_node(assignee) for assignee in assignees),
        comments=tuple(comments),
        reactions=tuple(reactions),
    )


def _project_node(
    data: dict[str, typ.Any], owner: str, repo: str, number: int
) -> dict[str, typ.Any]:
    repository = data.get("repository")
    project = repository.get("projectV2") if isinstance(repository, dict) else None
    if not isinstance(project, dict):
        raise ProjectNotFoundError.for_project(owner, repo, number)
    return project


def _project_item_from_node(node: dict[str, typ.Any]) -> ProjectItem | None:
    """Return a ProjectItem for issue content, or None for anything else."""
    content = node.get("content")
    if not isinstance(content, dict) or content.get("__typename") != "Issue":
        return None
    repository = content.get("repository")
    if not isinstance(repository, dict):
        raise GitHubResponseShapeError.missing("item.content.repository")
    owner_node = repository.get("owner")
    if not isinstance(owner_node, dict):
        raise GitHubResponseShapeError.missing("item.content.repository.owner")
    number = content.get("number")
    if not isinstance(number, int):
        raise GitHubResponseShapeError.missing("item.content.number")
    return ProjectItem(
        id=_required_str(node, "id", field="item"),
        content=IssueRef(
            id=_required_str(content, "id", field="item.content"),
            owner=_required_str(owner_node, "login", field="repository.owner"),
            repo=_required_str(repository, "name", field="item.content.repository"),
            number=number,
        ),
    )


class GitHubCollector:
    """Build IssueDetails and ProjectDetails snapshots from a data source."""

    def __init__(self, source: EngagementDataSource) -> None:
        """Store the data source used for every query."""
        self._source = source

    async def get_issue_details(
        self, owner: str, repo: str, number: int
    ) -> IssueDetails:
        """Return the issue with every comment and reaction page merged in.

        Raises
        ------
        IssueNotFoundError
            If the repository or issue does not resolve.

        """
        comments_cursor = CursorState(field="issue.comments")
        reactions_cursor = CursorState(field="issue.reactions")
        comments: list[CommentData] = []
        reactions: list[ReactionData] = []
        issue_node: dict[str, typ.Any] | None = None

        while not (comments_cursor.done and reactions_cursor.done):
            data = await self._source.fetch_issue_page(
                owner,
                repo,
                number,
                comments_after=comments_cursor.after,
                reactions_after=reactions_cursor.after,
                include_comments=not comments_cursor.done,
                include_reactions=not reactions_cursor.done,
            )
            node = _issue_node(data, owner, repo, number)
            if issue_node is None:
                issue_node = node
            if not comments_cursor.done:
                comments.extend(
                    _comment_from_node(comment)
                    for comment in comments_cursor.advance(node.get("comments"))
                )
            if not reactions_cursor.done:
                reactions.extend(
                    _reactions_from_nodes(
                        reactions_cursor.advance(node.get("reactions"))
                    )
                )

        if issue_node is None:  # pragma: no cover - loop always runs once
            raise IssueNotFoundError.for_issue(owner, repo, number)

        log_debug(
            logger,
            "Collected %s/%s#%d: comments=%d (pages=%d) reactions=%d (pages=%d)",
            owner,
            repo,
            number,
            len(comments),
            comments_cursor.pages,
            len(reactions),
            reactions_cursor.pages,
        )
        return _issue_from_nodes(
            issue_node,
            owner=owner,
            repo=repo,
            comments=comments,
            reactions=reactions,
        )

    async def get_project_details(
        self, owner: str, repo: str, project_number: int
    ) -> ProjectDetails:
        """Return the project with all of its issue items in board order.

        Items whose content is not an issue are skipped.

        Raises
        ------
        ProjectNotFoundError
            If the project does not resolve.

        """
        cursor = CursorState(field="projectV2.items")
        items: list[ProjectItem] = []
        project_id = ""
        title = ""

        while not cursor.done:
            data = await self._source.fetch_project_items_page(
                owner, repo, project_number, after=cursor.after
            )
            project = _project_node(data, owner, repo, project_number)
            project_id = _required_str(project, "id", field="projectV2")
            raw_title = project.get("title")
            title = raw_title if isinstance(raw_title, str) else title
            for node in cursor.advance(project.get("items")):
                item = _project_item_from_node(node)
                if item is not None:
                    items.append(item)

        return ProjectDetails(
            id=project_id,
            owner=owner,
            repo=repo,
            number=project_number,
            title=title,
            items=tuple(items),
        )

    async def get_project_fields(
        self, owner: str, repo: str, project_number: int
    ) -> list[ProjectField]:
        """Return the fields defined on a project."""
        data = await self._source.fetch_project_fields(owner, repo, project_number)
        project = _project_node(data, owner, repo, project_number)
        fields = project.get("fields")
        if not isinstance(fields, dict):
            raise GitHubResponseShapeError.missing("projectV2.fields")
        return [
            ProjectField(
                id=node["id"],
                name=node["name"],
                data_type=str(node.get("dataType", "")),
            )
            for node in connection_nodes(fields, field="projectV2.fields")
            if isinstance(node.get("id"), str) and isinstance(node.get("name"), str)
        ]

    async def find_project_field(
        self, owner: str, repo: str, project_number: int, name: str
    ) -> ProjectField | None:
        """Return the project field called ``name``, if any."""
        for field in await self.get_project_fields(owner, repo, project_number):
            if field.name == name:
                return field
        return None
