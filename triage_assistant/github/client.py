"""GitHub GraphQL client used by the engagement engine."""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx

from .errors import GitHubAPIError, GitHubConfigError, GitHubResponseShapeError

if typ.TYPE_CHECKING:
    import datetime as dt


class EngagementDataSource(typ.Protocol):
    """Interface for the GitHub queries the engagement engine depends on."""

    async def fetch_issue_page(  # noqa: PLR0913
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        comments_after: str | None = None,
        reactions_after: str | None = None,
        include_comments: bool = True,
        include_reactions: bool = True,
    ) -> dict[str, typ.Any]:
        """Return one page of an issue with its comment/reaction connections."""
        ...

    async def fetch_project_items_page(
        self, owner: str, repo: str, project_number: int, *, after: str | None = None
    ) -> dict[str, typ.Any]:
        """Return one page of project items."""
        ...

    async def fetch_project_fields(
        self, owner: str, repo: str, project_number: int
    ) -> dict[str, typ.Any]:
        """Return the project field list."""
        ...

    async def update_project_item_field(
        self,
        project_item_id: str,
        field_id: str,
        project_id: str,
        value: float,
    ) -> None:
        """Write a numeric value into a project item field."""
        ...

    async def fetch_collaborator_permission(
        self, owner: str, repo: str, login: str
    ) -> str | None:
        """Return the collaborator permission or ``None`` if not a collaborator."""
        ...

    async def fetch_organization_membership(self, org: str, login: str) -> bool:
        """Return whether ``login`` is a visible member of ``org``."""
        ...

    async def fetch_contribution_counts(
        self, login: str, *, since: dt.datetime, until: dt.datetime
    ) -> int:
        """Return issue + pull request + commit contributions in a window."""
        ...

    async def search_count(self, query: str) -> int:
        """Return the number of issues/PRs matching a search query."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubGraphQLConfig:
    """Configuration for the GitHub GraphQL API client."""

    token: str
    endpoint: str = "https://api.github.com/graphql"
    timeout_s: float = 20.0
    user_agent: str = "triage-assistant/0.1"

    @classmethod
    def from_env(cls) -> GitHubGraphQLConfig:
        """Build configuration from ``TRIAGE_ASSISTANT_TOKEN`` or ``GITHUB_TOKEN``."""
        token = (
            os.environ.get("TRIAGE_ASSISTANT_TOKEN", "").strip()
            or os.environ.get("GITHUB_TOKEN", "").strip()
        )
        if not token:
            raise GitHubConfigError.missing_token()
        endpoint = os.environ.get("TRIAGE_ASSISTANT_GRAPHQL_URL", "").strip()
        if endpoint:
            return cls(token=token, endpoint=endpoint)
        return cls(token=token)


PAGE_SIZE = 100

_REACTION_FIELDS = """
pageInfo { hasNextPage endCursor }
nodes {
  content
  createdAt
  user { login __typename }
}
"""

ISSUE_DETAILS_QUERY = f"""
query GetIssueDetails(
  $owner: String!
  $repo: String!
  $number: Int!
  $commentsAfter: String
  $reactionsAfter: String
  $includeComments: Boolean!
  $includeReactions: Boolean!
) {{
  repository(owner: $owner, name: $repo) {{
    issue(number: $number) {{
      id
      number
      title
      body
      state
      createdAt
      updatedAt
      closedAt
      author {{ login __typename }}
      assignees(first: {PAGE_SIZE}) {{ nodes {{ login __typename }} }}
      reactions(first: {PAGE_SIZE}, after: $reactionsAfter)
        @include(if: $includeReactions) {{
        {_REACTION_FIELDS}
      }}
      comments(first: {PAGE_SIZE}, after: $commentsAfter)
        @include(if: $includeComments) {{
        pageInfo {{ hasNextPage endCursor }}
        nodes {{
          createdAt
          author {{ login __typename }}
          reactions(first: {PAGE_SIZE}) {{
            {_REACTION_FIELDS}
          }}
        }}
      }}
    }}
  }}
}}
"""

PROJECT_ITEMS_QUERY = f"""
query GetProjectItems(
  $owner: String!
  $repo: String!
  $projectNumber: Int!
  $cursor: String
) {{
  repository(owner: $owner, name: $repo) {{
    projectV2(number: $projectNumber) {{
      id
      title
      items(first: {PAGE_SIZE}, after: $cursor) {{
        pageInfo {{ hasNextPage endCursor }}
        nodes {{
          id
          content {{
            __typename
            ... on Issue {{
              id
              number
              repository {{ name owner {{ login }} }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""

PROJECT_FIELDS_QUERY = """
query GetProjectFields($owner: String!, $repo: String!, $projectNumber: Int!) {
  repository(owner: $owner, name: $repo) {
    projectV2(number: $projectNumber) {
      id
      fields(first: 100) {
        nodes {
          ... on ProjectV2FieldCommon {
            id
            name
            dataType
          }
        }
      }
    }
  }
}
"""

UPDATE_PROJECT_ITEM_FIELD_MUTATION = """
mutation UpdateProjectItemField(
  $projectItemId: ID!
  $projectFieldId: ID!
  $projectId: ID!
  $engagementScoreNumber: Float!
) {
  updateProjectV2ItemFieldValue(
    input: {
      itemId: $projectItemId
      fieldId: $projectFieldId
      projectId: $projectId
      value: { number: $engagementScoreNumber }
    }
  ) {
    projectV2Item { id }
  }
}
"""

COLLABORATOR_PERMISSION_QUERY = """
query GetUserRepositoryPermission($owner: String!, $repo: String!, $login: String!) {
  repository(owner: $owner, name: $repo) {
    collaborators(query: $login, first: 10) {
      edges {
        permission
        node { login }
      }
    }
  }
}
"""

ORGANIZATION_MEMBERSHIP_QUERY = """
query GetUserOrganizationMembership($org: String!, $login: String!) {
  user(login: $login) {
    organization(login: $org) { login }
  }
}
"""

CONTRIBUTION_HISTORY_QUERY = """
query GetUserContributionHistory($login: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $login) {
    contributionsCollection(from: $from, to: $to) {
      totalIssueContributions
      totalPullRequestContributions
      totalCommitContributions
    }
  }
}
"""

SEARCH_COUNT_QUERY = """
query SearchIssues($query: String!) {
  search(query: $query, type: ISSUE, first: 1) {
    issueCount
  }
}
"""

_HTTP_ERROR_STATUS_THRESHOLD = 400
_NOT_FOUND_ERROR_TYPE = "NOT_FOUND"


def _only_not_found(errors: object) -> bool:
    return isinstance(errors, list) and all(
        isinstance(error, dict) and error.get("type") == _NOT_FOUND_ERROR_TYPE
        for error in errors
    )


def _parse_graphql_payload(payload_raw: object) -> dict[str, typ.Any]:
    """Validate a GraphQL response payload and return its ``data`` field.

    GitHub reports a missing object as a ``NOT_FOUND`` error next to a
    ``data`` tree holding ``null`` at that path. Such responses return the
    data so callers can raise their typed not-found errors.
    """
    if not isinstance(payload_raw, dict):
        raise GitHubResponseShapeError.missing("response")

    errors = payload_raw.get("errors")
    data = payload_raw.get("data")
    if errors and not (isinstance(data, dict) and _only_not_found(errors)):
        raise GitHubAPIError.graphql_errors(errors)

    if not isinstance(data, dict):
        raise GitHubResponseShapeError.missing("data")
    return data


def _mapping(node: object, field: str) -> dict[str, typ.Any]:
    if not isinstance(node, dict):
        raise GitHubResponseShapeError.missing(field)
    return node


def _int_field(node: dict[str, typ.Any], key: str, *, field: str) -> int:
    value = node.get(key)
    if not isinstance(value, int):
        raise GitHubResponseShapeError.missing(f"{field}.{key}")
    return value


class GitHubGraphQLClient:
    """GitHub GraphQL implementation of :class:`EngagementDataSource`."""

    def __init__(
        self,
        config: GitHubGraphQLConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise the client with the provided API configuration."""
        if not config.token.strip():
            raise GitHubConfigError.empty_token()

        self._config = config
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=config.timeout_s,
            headers={
                "Authorization": f"Bearer {config.token}",
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch_issue_page(  # noqa: PLR0913
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        comments_after: str | None = None,
        reactions_after: str | None = None,
        include_comments: bool = True,
        include_reactions: bool = True,
    ) -> dict[str, typ.Any]:
        """Fetch one page of issue details.

        A connection excluded with ``include_*=False`` is absent from the
        returned issue node.
        """
        return await self._graphql(
            ISSUE_DETAILS_QUERY,
            {
                "owner": owner,
                "repo": repo,
                "number": number,
                "commentsAfter": comments_after,
                "reactionsAfter": reactions_after,
                "includeComments": include_comments,
                "includeReactions": include_reactions,
            },
        )

    async def fetch_project_items_page(
        self, owner: str, repo: str, project_number: int, *, after: str | None = None
    ) -> dict[str, typ.Any]:
        """Fetch one page of project items."""
        return await self._graphql(
            PROJECT_ITEMS_QUERY,
            {
                "owner": owner,
                "repo": repo,
                "projectNumber": project_number,
                "cursor": after,
            },
        )

    async def fetch_project_fields(
        self, owner: str, repo: str, project_number: int
    ) -> dict[str, typ.Any]:
        """Fetch the field definitions of a project."""
        return await self._graphql(
            PROJECT_FIELDS_QUERY,
            {"owner": owner, "repo": repo, "projectNumber": project_number},
        )

    async def update_project_item_field(
        self,
        project_item_id: str,
        field_id: str,
        project_id: str,
        value: float,
    ) -> None:
        """Set a number field on a project item."""
        data = await self._graphql(
            UPDATE_PROJECT_ITEM_FIELD_MUTATION,
            {
                "projectItemId": project_item_id,
                "projectFieldId": field_id,
                "projectId": project_id,
                "engagementScoreNumber": value,
            },
        )
        _mapping(
            data.get("updateProjectV2ItemFieldValue"),
            "updateProjectV2ItemFieldValue",
        )

    async def fetch_collaborator_permission(
        self, owner: str, repo: str, login: str
    ) -> str | None:
        """Return the collaborator permission of ``login`` on the repository.

        The collaborators connection matches logins by prefix, so only an edge
        whose node login equals ``login`` (case-insensitively) counts.
        """
        data = await self._graphql(
            COLLABORATOR_PERMISSION_QUERY,
            {"owner": owner, "repo": repo, "login": login},
        )
        repository = _mapping(data.get("repository"), "repository")
        collaborators = repository.get("collaborators")
        if not isinstance(collaborators, dict):
            return None
        for edge in collaborators.get("edges") or []:
            if not isinstance(edge, dict):
                continue
            node = edge.get("node")
            if not isinstance(node, dict):
                continue
            edge_login = node.get("login")
            permission = edge.get("permission")
            if (
                isinstance(edge_login, str)
                and edge_login.lower() == login.lower()
                and isinstance(permission, str)
            ):
                return permission
        return None

    async def fetch_organization_membership(self, org: str, login: str) -> bool:
        """Return True when ``login`` is a visible member of ``org``."""
        data = await self._graphql(
            ORGANIZATION_MEMBERSHIP_QUERY, {"org": org, "login": login}
        )
        user = data.get("user")
        if not isinstance(user, dict):
            return False
        return isinstance(user.get("organization"), dict)

    async def fetch_contribution_counts(
        self, login: str, *, since: dt.datetime, until: dt.datetime
    ) -> int:
        """Return issue, pull request and commit contributions in the window."""
        data = await self._graphql(
            CONTRIBUTION_HISTORY_QUERY,
            {"login": login, "from": since.isoformat(), "to": until.isoformat()},
        )
        user = data.get("user")
        if not isinstance(user, dict):
            return 0
        collection = _mapping(
            user.get("contributionsCollection"), "user.contributionsCollection"
        )
        field = "user.contributionsCollection"
        return (
            _int_field(collection, "totalIssueContributions", field=field)
            + _int_field(collection, "totalPullRequestContributions", field=field)
            + _int_field(collection, "totalCommitContributions", field=field)
        )

    async def search_count(self, query: str) -> int:
        """Return the ``issueCount`` of an issue/PR search."""
        data = await self._graphql(SEARCH_COUNT_QUERY, {"query": query})
        search = _mapping(data.get("search"), "search")
        return _int_field(search, "issueCount", field="search")

    async def _graphql(
        self, query: str, variables: dict[str, typ.Any]
    ) -> dict[str, typ.Any]:
        """Execute a GraphQL query and return the validated data field."""
        response = await self._client.post(
            self._config.endpoint,
            json={"query": query, "variables": variables},
        )
        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise GitHubAPIError.http_error(response.status_code)
        return _parse_graphql_payload(response.json())
