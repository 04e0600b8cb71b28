"""Observability primitives for engagement scoring runs.

Run lifecycle and write-back outcomes are emitted as structured log lines of
the form ``[event.name] key=value ...`` so log aggregators can parse them
without a metrics backend.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import typing as typ

import httpx

from triage_assistant.github.errors import (
    GitHubAPIError,
    GitHubConfigError,
    GitHubResponseShapeError,
    NotFoundError,
)
from triage_assistant.logging import get_logger, log_error, log_info

from .errors import EngagementConfigError, RoleResolverRequiredError

if typ.TYPE_CHECKING:
    import datetime as dt

logger = get_logger(__name__)

_HTTP_SERVER_ERROR_THRESHOLD = 500


class EngagementEventType(enum.StrEnum):
    """Structured log event types for scoring runs."""

    RUN_STARTED = "engagement.run.started"
    RUN_COMPLETED = "engagement.run.completed"
    RUN_FAILED = "engagement.run.failed"
    UPDATE_COMPLETED = "engagement.update.completed"


class ErrorCategory(enum.StrEnum):
    """Categories for error classification in alerts."""

    TRANSIENT = "transient"
    CLIENT_ERROR = "client_error"
    NOT_FOUND = "not_found"
    SCHEMA_DRIFT = "schema_drift"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


class RunMode(enum.StrEnum):
    """What a scoring run targets."""

    PROJECT = "project"
    ISSUE = "issue"


@dc.dataclass(frozen=True, slots=True)
class EngagementRunContext:
    """Shared context for a single scoring run."""

    mode: RunMode
    target: str
    started_at: dt.datetime


_EXCEPTION_CATEGORY_MAP: tuple[tuple[type[BaseException], ErrorCategory], ...] = (
    (NotFoundError, ErrorCategory.NOT_FOUND),
    (GitHubResponseShapeError, ErrorCategory.SCHEMA_DRIFT),
    (GitHubConfigError, ErrorCategory.CONFIGURATION),
    (EngagementConfigError, ErrorCategory.CONFIGURATION),
    (RoleResolverRequiredError, ErrorCategory.CONFIGURATION),
    (httpx.TransportError, ErrorCategory.TRANSIENT),
    (TimeoutError, ErrorCategory.TRANSIENT),
)


def categorize_error(exc: BaseException) -> ErrorCategory:
    """Categorize an exception for alerting purposes.

    Returns
    -------
    ErrorCategory
        The kind of failure, for alert routing.

    """
    if isinstance(exc, GitHubAPIError):
        if (
            exc.status_code is not None
            and exc.status_code >= _HTTP_SERVER_ERROR_THRESHOLD
        ):
            return ErrorCategory.TRANSIENT
        return ErrorCategory.CLIENT_ERROR

    for exc_type, category in _EXCEPTION_CATEGORY_MAP:
        if isinstance(exc, exc_type):
            return category

    return ErrorCategory.UNKNOWN


class EngagementEventLogger:
    """Emit structured scoring events through femtologging.

    Success events are logged at INFO and failures at ERROR.
    """

    def log_run_started(self, context: EngagementRunContext) -> None:
        """Log scoring run start."""
        log_info(
            logger,
            "[%s] mode=%s target=%s started_at=%s",
            EngagementEventType.RUN_STARTED,
            context.mode,
            context.target,
            context.started_at.isoformat(),
        )

    def log_run_completed(
        self,
        context: EngagementRunContext,
        items: int,
        duration: dt.timedelta,
    ) -> None:
        """Log a successful run with the number of scored items."""
        log_info(
            logger,
            "[%s] mode=%s target=%s items=%d duration_seconds=%.3f",
            EngagementEventType.RUN_COMPLETED,
            context.mode,
            context.target,
            items,
            duration.total_seconds(),
        )

    def log_run_failed(
        self,
        context: EngagementRunContext,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a failed run with error categorization."""
        log_error(
            logger,
            "[%s] mode=%s target=%s duration_seconds=%.3f "
            "error_type=%s error_category=%s error_message=%s",
            EngagementEventType.RUN_FAILED,
            context.mode,
            context.target,
            duration.total_seconds(),
            type(error).__name__,
            categorize_error(error),
            str(error),
            exc_info=error,
        )

    def log_update_completed(self, target: str, updated: int, total: int) -> None:
        """Log the outcome of writing scores back to a project."""
        log_info(
            logger,
            "[%s] target=%s updated=%d total=%d",
            EngagementEventType.UPDATE_COMPLETED,
            target,
            updated,
            total,
        )
