"""Typed snapshots of GitHub issue and project data used for scoring."""

from __future__ import annotations

import dataclasses
import typing as typ

from triage_assistant.common.slug import repo_slug

if typ.TYPE_CHECKING:
    import datetime as dt


@dataclasses.dataclass(frozen=True, slots=True)
class RepositoryRef:
    """Owner/name pair identifying a repository."""

    owner: str
    name: str

    @property
    def slug(self) -> str:
        """Return the ``owner/name`` slug."""
        return repo_slug(self.owner, self.name)


@dataclasses.dataclass(frozen=True, slots=True)
class UserInfo:
    """GitHub actor reference; ``type`` is the GraphQL ``__typename``."""

    login: str
    type: str = "User"


@dataclasses.dataclass(frozen=True, slots=True)
class ReactionData:
    """A single reaction on an issue or comment."""

    user: UserInfo
    reaction: str
    created_at: dt.datetime


@dataclasses.dataclass(frozen=True, slots=True)
class CommentData:
    """An issue comment with the reactions left on it."""

    user: UserInfo
    created_at: dt.datetime
    reactions: tuple[ReactionData, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class IssueDetails:
    """Immutable snapshot of an issue and all of its activity.

    The collector builds one snapshot per scoring pass with every comment and
    reaction already paginated in; calculators only ever read it.
    """

    id: str
    owner: str
    repo: str
    number: int
    title: str
    body: str
    state: str
    created_at: dt.datetime
    updated_at: dt.datetime
    user: UserInfo
    closed_at: dt.datetime | None = None
    assignees: tuple[UserInfo, ...] = ()
    comments: tuple[CommentData, ...] = ()
    reactions: tuple[ReactionData, ...] = ()
    linked_pull_requests: int = 0

    @property
    def repository(self) -> RepositoryRef:
        """Return the repository the issue lives in."""
        return RepositoryRef(owner=self.owner, name=self.repo)


@dataclasses.dataclass(frozen=True, slots=True)
class IssueRef:
    """Identity of an issue referenced from a project item."""

    id: str
    owner: str
    repo: str
    number: int


@dataclasses.dataclass(frozen=True, slots=True)
class ProjectItem:
    """A project board row whose content is an issue."""

    id: str
    content: IssueRef


@dataclasses.dataclass(frozen=True, slots=True)
class ProjectDetails:
    """A Projects v2 board and its issue items in board order."""

    id: str
    owner: str
    repo: str
    number: int
    title: str
    items: tuple[ProjectItem, ...] = ()


@dataclasses.dataclass(frozen=True, slots=True)
class ProjectField:
    """A project field definition."""

    id: str
    name: str
    data_type: str
