"""Engagement score calculation.

The score of an issue is::

    score = sum over comments      weight(comments, role(commenter))
          + sum over reactions     weight(reactions, role(reactor))
          + sum over contributors  weight(contributors, role(contributor))
          + floor(1 / max(1, days_since(updated_at))) * lastActivity
          + floor(1 / max(1, days_since(created_at))) * issueAge
          + linked_pull_requests * linkedPullRequests

Comments and reactions count once per event; reactions include those left on
comments. Contributors are the unique logins among the author, the assignees
and the commenters.

The recency terms are a step function: they contribute their full weight
while the event is less than a day old and nothing afterwards.

With :class:`FlatWeights` every weight is a plain number and no roles are
looked up. With :class:`RoleWeights` only the factors configured as per-role
mappings resolve roles, through a :class:`RoleResolver`.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import math
import typing as typ

from triage_assistant.common.time import days_since, utcnow

from .config import FlatWeights, RoleBasedWeights, RoleWeights
from .errors import RoleResolverRequiredError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from triage_assistant.github.models import (
        IssueDetails,
        ReactionData,
        RepositoryRef,
        UserInfo,
    )

    from .config import ContributorRole, FactorWeight, ScoringWeights, UserGroups

HISTORICAL_CUTOFF_DAYS = 7


class RoleResolver(typ.Protocol):
    """Anything that can classify a login, such as ``RoleDetector``."""

    async def detect_role(
        self, login: str, repo: RepositoryRef, groups: UserGroups
    ) -> ContributorRole:
        """Return the role of ``login`` in ``repo``."""
        ...


def all_reactions(issue: IssueDetails) -> list[ReactionData]:
    """Return issue reactions followed by every comment's reactions."""
    reactions = list(issue.reactions)
    for comment in issue.comments:
        reactions.extend(comment.reactions)
    return reactions


def unique_contributors(issue: IssueDetails) -> list[UserInfo]:
    """Return author, assignees and commenters, deduplicated by login."""
    seen: dict[str, UserInfo] = {}
    candidates = [issue.user, *issue.assignees, *(c.user for c in issue.comments)]
    for user in candidates:
        seen.setdefault(user.login, user)
    return list(seen.values())


def recency_factor(moment: dt.datetime, now: dt.datetime) -> int:
    """Return ``floor(1 / max(1, days))``: 1 within the first day, else 0."""
    return math.floor(1 / max(1, days_since(moment, now)))


def _time_terms(
    issue: IssueDetails, weights: ScoringWeights, now: dt.datetime
) -> float:
    return (
        recency_factor(issue.updated_at, now) * weights.last_activity
        + recency_factor(issue.created_at, now) * weights.issue_age
        + issue.linked_pull_requests * weights.linked_pull_requests
    )


def _round_half_up(total: float) -> int:
    return math.floor(total + 0.5)


def _flat_activity(issue: IssueDetails, weights: FlatWeights) -> float:
    return (
        len(issue.comments) * weights.comments
        + len(all_reactions(issue)) * weights.reactions
        + len(unique_contributors(issue)) * weights.contributors
    )


class _IssueRoles:
    """Per-issue memo of resolved roles."""

    def __init__(
        self, issue: IssueDetails, weights: RoleWeights, resolver: RoleResolver
    ) -> None:
        self._repo = issue.repository
        self._groups = weights.groups
        self._resolver = resolver
        self._roles: dict[str, ContributorRole] = {}

    async def role_of(self, user: UserInfo) -> ContributorRole:
        role = self._roles.get(user.login)
        if role is None:
            role = await self._resolver.detect_role(
                user.login, self._repo, self._groups
            )
            self._roles[user.login] = role
        return role

    async def factor_total(
        self, weight: FactorWeight, users: cabc.Sequence[UserInfo]
    ) -> float:
        if not isinstance(weight, RoleBasedWeights):
            return weight * len(users)
        total = 0.0
        for user in users:
            total += weight.for_role(await self.role_of(user))
        return total


async def _role_activity(
    issue: IssueDetails, weights: RoleWeights, resolver: RoleResolver
) -> float:
    roles = _IssueRoles(issue, weights, resolver)
    commenters = [comment.user for comment in issue.comments]
    reactors = [reaction.user for reaction in all_reactions(issue)]
    return (
        await roles.factor_total(weights.comments, commenters)
        + await roles.factor_total(weights.reactions, reactors)
        + await roles.factor_total(weights.contributors, unique_contributors(issue))
    )


async def calculate_score(
    issue: IssueDetails,
    weights: ScoringWeights,
    *,
    resolver: RoleResolver | None = None,
    now: dt.datetime | None = None,
) -> int:
    """Return the engagement score of ``issue``, rounded half up.

    Parameters
    ----------
    issue
        Complete issue snapshot.
    weights
        Normalized weights from :func:`normalize_weights`.
    resolver
        Role resolver; required when ``weights`` is :class:`RoleWeights`.
    now
        Reference time for the recency terms. Defaults to the current time.

    Raises
    ------
    RoleResolverRequiredError
        If role-based weights are given without a resolver.

    """
    reference = now or utcnow()
    match weights:
        case RoleWeights():
            if resolver is None:
                raise RoleResolverRequiredError
            activity = await _role_activity(issue, weights, resolver)
        case FlatWeights():
            activity = _flat_activity(issue, weights)
    return _round_half_up(activity + _time_terms(issue, weights, reference))


def historical_snapshot(issue: IssueDetails, cutoff: dt.datetime) -> IssueDetails:
    """Return ``issue`` as it looked at ``cutoff``.

    Comments and reactions created after the cutoff are dropped and the last
    activity is pinned to the cutoff.
    """
    comments = tuple(
        dc.replace(
            comment,
            reactions=tuple(r for r in comment.reactions if r.created_at <= cutoff),
        )
        for comment in issue.comments
        if comment.created_at <= cutoff
    )
    reactions = tuple(r for r in issue.reactions if r.created_at <= cutoff)
    return dc.replace(
        issue, comments=comments, reactions=reactions, updated_at=cutoff
    )


async def calculate_historical_score(
    issue: IssueDetails,
    weights: ScoringWeights,
    *,
    cutoff_days: int = HISTORICAL_CUTOFF_DAYS,
    resolver: RoleResolver | None = None,
    now: dt.datetime | None = None,
) -> int:
    """Return the score ``issue`` had ``cutoff_days`` ago.

    Issues created after the cutoff score ``0``. Recency terms are measured
    from the cutoff rather than from ``now``.
    """
    cutoff = (now or utcnow()) - dt.timedelta(days=cutoff_days)
    if issue.created_at > cutoff:
        return 0
    return await calculate_score(
        historical_snapshot(issue, cutoff),
        weights,
        resolver=resolver,
        now=cutoff,
    )


async def calculate_previous_score(
    issue: IssueDetails,
    weights: ScoringWeights,
    *,
    resolver: RoleResolver | None = None,
    now: dt.datetime | None = None,
) -> int:
    """Return the score ``issue`` had a week ago."""
    return await calculate_historical_score(
        issue, weights, resolver=resolver, now=now
    )
