"""GitHub GraphQL access and paginated issue and project collection."""

from __future__ import annotations

from .client import EngagementDataSource, GitHubGraphQLClient, GitHubGraphQLConfig
from .collector import GitHubCollector
from .errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    IssueNotFoundError,
    NotFoundError,
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
    RepositoryRef,
    UserInfo,
)

__all__ = [
    "CommentData",
    "EngagementDataSource",
    "GitHubAPIError",
    "GitHubCollector",
    "GitHubConfigError",
    "GitHubGraphQLClient",
    "GitHubGraphQLConfig",
    "GitHubResponseShapeError",
    "IssueDetails",
    "IssueNotFoundError",
    "IssueRef",
    "NotFoundError",
    "ProjectDetails",
    "ProjectField",
    "ProjectItem",
    "ProjectNotFoundError",
    "ReactionData",
    "RepositoryRef",
    "UserInfo",
]
