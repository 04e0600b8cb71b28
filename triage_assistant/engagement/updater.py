"""Write engagement scores back to a Projects v2 number field."""

from __future__ import annotations

import typing as typ

import httpx

from triage_assistant.common.slug import repo_slug
from triage_assistant.github.collector import GitHubCollector
from triage_assistant.github.errors import GitHubAPIError, GitHubResponseShapeError
from triage_assistant.logging import get_logger, log_info, log_warning

from .observability import EngagementEventLogger

if typ.TYPE_CHECKING:
    from triage_assistant.github.client import EngagementDataSource

    from .config import EngagementConfig
    from .models import EngagementResponse

logger = get_logger(__name__)

_ITEM_UPDATE_ERRORS = (GitHubAPIError, GitHubResponseShapeError, httpx.HTTPError)


async def update_project_with_scores(
    config: EngagementConfig,
    client: EngagementDataSource,
    response: EngagementResponse,
    *,
    event_logger: EngagementEventLogger | None = None,
) -> int:
    """Set the project score field for every scored project item.

    Parameters
    ----------
    config
        Run configuration; ``apply_scores``, ``dry_run`` and
        ``project_column`` control the write-back.
    client
        Data source used to resolve the field and send mutations.
    response
        Scores from :func:`calculate_engagement_scores`.

    Returns
    -------
    int
        Number of items updated. In dry-run mode, the number of items that
        would have been updated.

    """
    if not config.apply_scores:
        log_info(logger, "Applying scores is disabled; skipping project update")
        return 0
    if not config.has_project or response.project is None:
        log_info(logger, "No project selected; skipping project update")
        return 0

    project_number = typ.cast("int", config.project_number)
    slug = repo_slug(config.repo_owner, config.repo_name)
    target = f"{slug}/projects/{project_number}"
    collector = GitHubCollector(client)
    field = await collector.find_project_field(
        config.repo_owner, config.repo_name, project_number, config.project_column
    )
    if field is None:
        log_warning(
            logger,
            "Project field %r not found in %s; scores were not applied",
            config.project_column,
            target,
        )
        return 0

    updated = 0
    total = len(response.items)
    for item in response.items:
        if item.id is None:
            continue
        score = item.engagement.score
        if config.dry_run:
            log_info(
                logger,
                "Dry run: would set %r to %d for item %s (issue #%d)",
                field.name,
                score,
                item.id,
                item.issue.number,
            )
            updated += 1
            continue
        try:
            await client.update_project_item_field(
                item.id, field.id, response.project.id, score
            )
        except _ITEM_UPDATE_ERRORS as exc:
            log_warning(
                logger,
                "Failed to update item %s (issue #%d): %s",
                item.id,
                item.issue.number,
                exc,
            )
            continue
        updated += 1

    log_info(logger, "Updated %d of %d items", updated, total)
    (event_logger or EngagementEventLogger()).log_update_completed(
        target, updated, total
    )
    return updated
