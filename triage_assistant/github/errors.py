"""GitHub access errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an error response."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> GitHubAPIError:
        """Return an error for non-2xx HTTP responses."""
        return cls(f"GitHub GraphQL HTTP {status_code}", status_code=status_code)

    @classmethod
    def graphql_errors(cls, errors: object) -> GitHubAPIError:
        """Return an error for GraphQL `errors` payloads."""
        return cls(f"GitHub GraphQL errors: {errors}")


class GitHubResponseShapeError(RuntimeError):
    """Raised when GitHub GraphQL responses are missing expected fields."""

    @classmethod
    def missing(cls, field: str) -> GitHubResponseShapeError:
        """Return an error for a missing GraphQL response field."""
        return cls(f"GitHub GraphQL response missing expected field: {field}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def missing_token(cls) -> GitHubConfigError:
        """Return an error when no GitHub token is configured."""
        return cls("GITHUB_TOKEN or TRIAGE_ASSISTANT_TOKEN is required for GitHub API")

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")


class NotFoundError(LookupError):
    """Raised when a requested issue or project does not exist."""


class IssueNotFoundError(NotFoundError):
    """Raised when an issue cannot be resolved."""

    @classmethod
    def for_issue(cls, owner: str, repo: str, number: int) -> IssueNotFoundError:
        """Return an error naming the missing issue."""
        return cls(f"Issue {owner}/{repo}#{number} not found")


class ProjectNotFoundError(NotFoundError):
    """Raised when a Projects v2 board cannot be resolved."""

    @classmethod
    def for_project(cls, owner: str, repo: str, number: int) -> ProjectNotFoundError:
        """Return an error naming the missing project."""
        return cls(f"Project #{number} not found for {owner}/{repo}")
