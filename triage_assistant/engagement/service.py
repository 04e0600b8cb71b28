"""Engagement scoring orchestration.

A run scores either every issue on a Projects v2 board or one issue. Each
issue is collected in full, scored now and a week ago, and classified as
``Hot`` when its score grew.
"""

from __future__ import annotations

import asyncio
import typing as typ

from triage_assistant.common.slug import repo_slug
from triage_assistant.common.time import utcnow
from triage_assistant.github.collector import GitHubCollector
from triage_assistant.logging import get_logger, log_info, log_warning

from .config import RoleWeights, normalize_weights
from .errors import EngagementConfigError
from .models import (
    EngagementIssue,
    EngagementItem,
    EngagementProject,
    EngagementResponse,
    EngagementScore,
)
from .observability import EngagementEventLogger, EngagementRunContext, RunMode
from .roles import RoleCache, RoleDetector
from .scoring import calculate_previous_score, calculate_score

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from triage_assistant.github.client import EngagementDataSource
    from triage_assistant.github.models import IssueDetails, ProjectItem

    from .config import EngagementConfig, EngagementWeights, ScoringWeights, UserGroups
    from .scoring import RoleResolver

logger = get_logger(__name__)


class EngagementService:
    """Score issues for a single repository or project."""

    def __init__(
        self,
        client: EngagementDataSource,
        weights: ScoringWeights,
        *,
        resolver: RoleResolver | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
        event_logger: EngagementEventLogger | None = None,
    ) -> None:
        """Bind the service to a data source and normalized weights.

        Role-based weights get a :class:`RoleDetector` with a fresh
        :class:`RoleCache` unless ``resolver`` is supplied.
        """
        self._collector = GitHubCollector(client)
        self._weights = weights
        if resolver is None and isinstance(weights, RoleWeights):
            resolver = RoleDetector(client, RoleCache(), clock=clock)
        self._resolver = resolver
        self._clock = clock
        self._event_logger = event_logger or EngagementEventLogger()

    async def calculate_engagement_scores(
        self, config: EngagementConfig
    ) -> EngagementResponse:
        """Score the project or issue selected by ``config``.

        Raises
        ------
        EngagementConfigError
            If neither a project number nor an issue number is set.
        NotFoundError
            If the project or issue does not exist.

        """
        slug = repo_slug(config.repo_owner, config.repo_name)
        if config.has_project:
            mode = RunMode.PROJECT
            target = f"{slug}/projects/{config.project_number}"
        elif config.has_issue:
            mode = RunMode.ISSUE
            target = f"{slug}#{config.issue_number}"
        else:
            raise EngagementConfigError.missing_target()

        run_started_at = self._clock()
        obs_context = EngagementRunContext(
            mode=mode, target=target, started_at=run_started_at
        )
        self._event_logger.log_run_started(obs_context)

        try:
            if mode is RunMode.PROJECT:
                response = await self._score_project(config, run_started_at)
            else:
                response = await self._score_single_issue(config, run_started_at)
        except BaseException as exc:
            duration = self._clock() - run_started_at
            self._event_logger.log_run_failed(obs_context, exc, duration)
            raise

        duration = self._clock() - run_started_at
        self._event_logger.log_run_completed(
            obs_context, response.total_items, duration
        )
        return response

    async def score_issue(
        self, issue: IssueDetails, now: dt.datetime | None = None
    ) -> EngagementScore:
        """Return the current and previous score of a collected issue."""
        reference = now or self._clock()
        score = await calculate_score(
            issue, self._weights, resolver=self._resolver, now=reference
        )
        previous = await calculate_previous_score(
            issue, self._weights, resolver=self._resolver, now=reference
        )
        return EngagementScore.from_scores(score, previous)

    async def _score_single_issue(
        self, config: EngagementConfig, now: dt.datetime
    ) -> EngagementResponse:
        number = typ.cast("int", config.issue_number)
        item = await self._score_reference(
            config.repo_owner, config.repo_name, number, now=now
        )
        return EngagementResponse.from_items([item])

    async def _score_project(
        self, config: EngagementConfig, now: dt.datetime
    ) -> EngagementResponse:
        project_number = typ.cast("int", config.project_number)
        project = await self._collector.get_project_details(
            config.repo_owner, config.repo_name, project_number
        )
        identity = EngagementProject(
            id=project.id, owner=config.repo_owner, number=project_number
        )
        if not project.items:
            log_warning(
                logger,
                "Project #%d in %s has no issue items to score",
                project_number,
                repo_slug(config.repo_owner, config.repo_name),
            )
            return EngagementResponse.from_items([], project=identity)

        log_info(
            logger,
            "Scoring %d issues from project #%d",
            len(project.items),
            project_number,
        )
        semaphore = asyncio.Semaphore(max(1, config.max_concurrency))

        async def score_item(item: ProjectItem) -> EngagementItem:
            async with semaphore, asyncio.timeout(config.per_issue_timeout_s):
                return await self._score_reference(
                    item.content.owner,
                    item.content.repo,
                    item.content.number,
                    now=now,
                    item_id=item.id,
                )

        try:
            async with asyncio.TaskGroup() as group:
                tasks = [group.create_task(score_item(item)) for item in project.items]
        except ExceptionGroup as failures:
            # The group has already cancelled the remaining items.
            raise failures.exceptions[0] from None
        return EngagementResponse.from_items(
            [task.result() for task in tasks], project=identity
        )

    async def _score_reference(
        self,
        owner: str,
        repo: str,
        number: int,
        *,
        now: dt.datetime,
        item_id: str | None = None,
    ) -> EngagementItem:
        issue = await self._collector.get_issue_details(owner, repo, number)
        engagement = await self.score_issue(issue, now)
        log_info(
            logger,
            "Scored %s/%s#%d: score=%d previous=%d",
            owner,
            repo,
            number,
            engagement.score,
            engagement.previous_score,
        )
        return EngagementItem(
            id=item_id,
            issue=EngagementIssue(
                id=issue.id, owner=owner, repo=repo, number=issue.number
            ),
            engagement=engagement,
        )


async def calculate_engagement_scores(
    config: EngagementConfig,
    client: EngagementDataSource,
    weights: EngagementWeights | None = None,
    groups: UserGroups | None = None,
) -> EngagementResponse:
    """Score the target selected by ``config`` with user-facing weights."""
    service = EngagementService(client, normalize_weights(weights, groups))
    return await service.calculate_engagement_scores(config)
