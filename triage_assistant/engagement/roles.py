"""Contributor role detection for role-weighted engagement scoring.

A login is classified relative to one repository. Checks run in precedence
order and stop at the first match:

1. maintainer: member of ``groups.internal``, a collaborator with write-level
   permission, or (for non-collaborators) a member of the owning organisation
2. partner: listed in ``groups.partner``
3. frequent: at least three issue, pull request and commit contributions in
   the last 90 days
4. firstTime: no issues and no pull requests authored in the repository
5. base: everything else

Lookups are memoized in a :class:`RoleCache` that the caller owns, keyed by
``login:owner:repo`` with ``:permission`` and ``:contributions`` suffixes for
the intermediate answers. Detection fails open: a lookup that errors counts as
no match and the remaining checks still run. A login that falls through to
``base`` after a failed lookup is logged and not cached, so a later call
retries it.
"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import enum
import typing as typ

from triage_assistant.common.time import utcnow
from triage_assistant.logging import get_logger, log_debug, log_warning

from .config import ContributorRole, UserGroups

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from triage_assistant.github.client import EngagementDataSource
    from triage_assistant.github.models import RepositoryRef

logger = get_logger(__name__)

FREQUENT_CONTRIBUTION_THRESHOLD = 3
FREQUENT_LOOKBACK = dt.timedelta(days=90)


class Permission(enum.StrEnum):
    """Cached permission markers for the maintainer check."""

    ADMIN = "ADMIN"
    MAINTAIN = "MAINTAIN"
    WRITE = "WRITE"
    TRIAGE = "TRIAGE"
    READ = "READ"
    ORG_MEMBER = "ORG_MEMBER"


_MAINTAINER_PERMISSIONS = frozenset(
    {Permission.ADMIN, Permission.MAINTAIN, Permission.WRITE, Permission.ORG_MEMBER}
)


@dc.dataclass(slots=True)
class RoleCache:
    """Memoized role, permission and contribution lookups.

    One cache is normally shared by every score computed in a run. It is only
    touched from the event loop thread.
    """

    roles: dict[str, ContributorRole] = dc.field(default_factory=dict)
    permissions: dict[str, str] = dc.field(default_factory=dict)
    contributions: dict[str, int] = dc.field(default_factory=dict)

    def clear(self) -> None:
        """Drop every cached answer."""
        self.roles.clear()
        self.permissions.clear()
        self.contributions.clear()


@dc.dataclass(frozen=True, slots=True)
class RoleOk:
    """A role that was classified successfully."""

    role: ContributorRole


@dc.dataclass(frozen=True, slots=True)
class RoleFailed:
    """Classification that reached ``base`` only because a lookup failed."""

    error: Exception


type RoleResult = RoleOk | RoleFailed


def role_cache_key(login: str, repo: RepositoryRef) -> str:
    """Return the cache key for ``login`` in ``repo``."""
    return f"{login}:{repo.owner}:{repo.name}"


async def _attempt(check: cabc.Awaitable[bool], failures: list[Exception]) -> bool:
    """Await one role check, recording an error as no match."""
    try:
        return await check
    except Exception as exc:  # noqa: BLE001 - a failed lookup is not a match
        failures.append(exc)
        return False


class RoleDetector:
    """Classify logins into contributor roles using GitHub lookups."""

    def __init__(
        self,
        source: EngagementDataSource,
        cache: RoleCache | None = None,
        *,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Bind the detector to a data source and an optional shared cache."""
        self._source = source
        self._cache = cache if cache is not None else RoleCache()
        self._clock = clock

    @property
    def cache(self) -> RoleCache:
        """Return the cache backing this detector."""
        return self._cache

    async def detect_role(
        self, login: str, repo: RepositoryRef, groups: UserGroups
    ) -> ContributorRole:
        """Return the contributor role of ``login`` in ``repo``.

        Never raises for lookup failures; those resolve to ``base``.
        """
        key = role_cache_key(login, repo)
        cached = self._cache.roles.get(key)
        if cached is not None:
            return cached

        result = await self._classify(login, repo, groups)
        role = self._collapse(login, repo, result)
        if isinstance(result, RoleOk):
            self._cache.roles[key] = role
        return role

    def _collapse(
        self, login: str, repo: RepositoryRef, result: RoleResult
    ) -> ContributorRole:
        match result:
            case RoleOk(role=role):
                log_debug(
                    logger, "Detected role %s for %s in %s", role, login, repo.slug
                )
                return role
            case RoleFailed(error=error):
                log_warning(
                    logger,
                    "Role detection failed for %s in %s, using base role: %s",
                    login,
                    repo.slug,
                    error,
                    exc_info=error,
                )
                return ContributorRole.BASE

    async def _classify(
        self, login: str, repo: RepositoryRef, groups: UserGroups
    ) -> RoleResult:
        failures: list[Exception] = []
        if await _attempt(self._is_maintainer(login, repo, groups), failures):
            return RoleOk(ContributorRole.MAINTAINER)
        if login in groups.partner:
            return RoleOk(ContributorRole.PARTNER)
        if await _attempt(self._is_frequent(login, repo), failures):
            return RoleOk(ContributorRole.FREQUENT)
        if await _attempt(self._is_first_time(login, repo), failures):
            return RoleOk(ContributorRole.FIRST_TIME)
        if failures:
            return RoleFailed(failures[0])
        return RoleOk(ContributorRole.BASE)

    async def _is_maintainer(
        self, login: str, repo: RepositoryRef, groups: UserGroups
    ) -> bool:
        if login in groups.internal:
            return True
        key = f"{role_cache_key(login, repo)}:permission"
        permission = self._cache.permissions.get(key)
        if permission is None:
            permission = await self._lookup_permission(login, repo)
            self._cache.permissions[key] = permission
        return permission in _MAINTAINER_PERMISSIONS

    async def _lookup_permission(self, login: str, repo: RepositoryRef) -> str:
        permission = await self._source.fetch_collaborator_permission(
            repo.owner, repo.name, login
        )
        if permission is not None:
            return permission.upper()
        if await self._source.fetch_organization_membership(repo.owner, login):
            return Permission.ORG_MEMBER
        return Permission.READ

    async def _is_frequent(self, login: str, repo: RepositoryRef) -> bool:
        key = f"{role_cache_key(login, repo)}:contributions"
        total = self._cache.contributions.get(key)
        if total is None:
            until = self._clock()
            total = await self._source.fetch_contribution_counts(
                login, since=until - FREQUENT_LOOKBACK, until=until
            )
            self._cache.contributions[key] = total
        return total >= FREQUENT_CONTRIBUTION_THRESHOLD

    async def _is_first_time(self, login: str, repo: RepositoryRef) -> bool:
        scope = f"repo:{repo.slug} author:{login}"
        issues = await self._source.search_count(f"{scope} is:issue")
        if issues:
            return False
        pulls = await self._source.search_count(f"{scope} is:pr")
        return pulls == 0
