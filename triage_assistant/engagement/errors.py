"""Engagement scoring errors."""

from __future__ import annotations


class EngagementConfigError(ValueError):
    """Raised when engagement scoring is misconfigured."""

    @classmethod
    def missing_target(cls) -> EngagementConfigError:
        """Return an error when neither a project nor an issue is selected."""
        return cls("Either project number or issue number must be specified")

    @classmethod
    def missing_repository(cls) -> EngagementConfigError:
        """Return an error when the repository owner/name is unknown."""
        return cls(
            "TRIAGE_ASSISTANT_REPO_OWNER and TRIAGE_ASSISTANT_REPO_NAME "
            "(or GITHUB_REPOSITORY) are required"
        )

    @classmethod
    def invalid_integer(cls, env_var: str, raw: str) -> EngagementConfigError:
        """Return an error for a non-integer environment value."""
        return cls(f"{env_var} must be an integer, got: {raw!r}")

    @classmethod
    def invalid_number(cls, env_var: str, raw: str) -> EngagementConfigError:
        """Return an error for a non-numeric environment value."""
        return cls(f"{env_var} must be a number, got: {raw!r}")

    @classmethod
    def invalid_boolean(cls, env_var: str, raw: str) -> EngagementConfigError:
        """Return an error for a non-boolean environment value."""
        return cls(f"{env_var} must be true or false, got: {raw!r}")

    @classmethod
    def invalid_file(cls, path: object, reason: str) -> EngagementConfigError:
        """Return an error for an unreadable or invalid configuration file."""
        return cls(f"Invalid engagement configuration in {path}: {reason}")


class RoleResolverRequiredError(ValueError):
    """Raised when role-based weights are scored without a role resolver."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Role-based weights require a role resolver")
