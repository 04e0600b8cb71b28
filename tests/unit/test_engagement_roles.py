"""Unit tests for contributor role detection."""

from __future__ import annotations

import pytest

from triage_assistant.engagement.config import ContributorRole, UserGroups
from triage_assistant.engagement.roles import (
    Permission,
    RoleCache,
    RoleDetector,
    role_cache_key,
)
from triage_assistant.github.models import RepositoryRef
from tests.helpers.femtologging_capture import capture_femto_logs
from tests.unit.engagement_test_helpers import NOW, FakeEngagementSource

_REPO = RepositoryRef(owner="octo", name="reef")
_NO_GROUPS = UserGroups()


def _detector(
    source: FakeEngagementSource, cache: RoleCache | None = None
) -> RoleDetector:
    return RoleDetector(source, cache, clock=lambda: NOW)


def _mark_experienced(source: FakeEngagementSource, login: str) -> None:
    source.search_counts[f"repo:octo/reef author:{login} is:issue"] = 1


@pytest.mark.asyncio
@pytest.mark.parametrize("permission", ["ADMIN", "MAINTAIN", "WRITE", "write"])
async def test_write_level_collaborators_are_maintainers(permission: str) -> None:
    """Collaborators with write access or higher are maintainers."""
    source = FakeEngagementSource()
    source.permissions["lead"] = permission

    role = await _detector(source).detect_role("lead", _REPO, _NO_GROUPS)

    assert role is ContributorRole.MAINTAINER, (
        f"Expected {permission} to be maintainer"
    )


@pytest.mark.asyncio
async def test_org_members_without_collaborator_access_are_maintainers() -> None:
    """Non-collaborators fall back to organisation membership."""
    source = FakeEngagementSource()
    source.org_members.add("staff")
    detector = _detector(source)

    role = await detector.detect_role("staff", _REPO, _NO_GROUPS)

    assert role is ContributorRole.MAINTAINER, "Expected org member to be maintainer"
    key = f"{role_cache_key('staff', _REPO)}:permission"
    assert detector.cache.permissions[key] == Permission.ORG_MEMBER, (
        "Expected the org membership marker to be cached"
    )


@pytest.mark.asyncio
async def test_internal_group_members_skip_lookups() -> None:
    """Logins in the internal group are maintainers without any query."""
    source = FakeEngagementSource()

    role = await _detector(source).detect_role(
        "insider", _REPO, UserGroups(internal=["insider"])
    )

    assert role is ContributorRole.MAINTAINER, "Expected internal user as maintainer"
    assert source.permission_calls == [], "Expected no permission lookup"


@pytest.mark.asyncio
async def test_partner_group_outranks_frequent_contributions() -> None:
    """Partner membership is checked before contribution history."""
    source = FakeEngagementSource()
    source.contributions["ally"] = 50

    role = await _detector(source).detect_role(
        "ally", _REPO, UserGroups(partner=["ally"])
    )

    assert role is ContributorRole.PARTNER, "Expected partner role"
    assert source.contribution_calls == [], "Expected no contribution lookup"


@pytest.mark.asyncio
async def test_three_recent_contributions_make_a_frequent_contributor() -> None:
    """Frequent contributors reach the contribution threshold."""
    source = FakeEngagementSource()
    source.contributions["regular"] = 3

    role = await _detector(source).detect_role("regular", _REPO, _NO_GROUPS)

    assert role is ContributorRole.FREQUENT, "Expected frequent role at threshold"


@pytest.mark.asyncio
async def test_users_without_issues_or_prs_are_first_time() -> None:
    """No authored issues or pull requests means first-time contributor."""
    source = FakeEngagementSource()

    role = await _detector(source).detect_role("newbie", _REPO, _NO_GROUPS)

    assert role is ContributorRole.FIRST_TIME, "Expected first-time role"
    assert source.search_calls == [
        "repo:octo/reef author:newbie is:issue",
        "repo:octo/reef author:newbie is:pr",
    ], "Expected issue then pull request search"


@pytest.mark.asyncio
async def test_prior_issue_author_is_base() -> None:
    """Someone with history but few recent contributions is base."""
    source = FakeEngagementSource()
    source.contributions["visitor"] = 1
    _mark_experienced(source, "visitor")

    role = await _detector(source).detect_role("visitor", _REPO, _NO_GROUPS)

    assert role is ContributorRole.BASE, "Expected base role"
    assert source.search_calls == ["repo:octo/reef author:visitor is:issue"], (
        "Expected the pull request search to be skipped"
    )


@pytest.mark.asyncio
async def test_roles_are_cached_per_login_and_repository() -> None:
    """A second detection for the same login and repo makes no queries."""
    source = FakeEngagementSource()
    _mark_experienced(source, "visitor")
    cache = RoleCache()

    first = await _detector(source, cache).detect_role("visitor", _REPO, _NO_GROUPS)
    calls_after_first = len(source.permission_calls)
    second = await _detector(source, cache).detect_role("visitor", _REPO, _NO_GROUPS)

    assert first == second, "Expected identical cached role"
    assert len(source.permission_calls) == calls_after_first, (
        "Expected the shared cache to avoid repeat lookups"
    )
    assert role_cache_key("visitor", _REPO) in cache.roles, "Expected role cached"

    cache.clear()
    assert not cache.roles, "Expected clear() to drop cached roles"
    assert not cache.permissions, "Expected clear() to drop cached permissions"


@pytest.mark.asyncio
async def test_other_repository_is_classified_separately() -> None:
    """Cache keys include the repository."""
    source = FakeEngagementSource()
    detector = _detector(source)

    await detector.detect_role("newbie", _REPO, _NO_GROUPS)
    await detector.detect_role(
        "newbie", RepositoryRef(owner="octo", name="coral"), _NO_GROUPS
    )

    assert source.permission_calls == ["newbie", "newbie"], (
        "Expected one permission lookup per repository"
    )


@pytest.mark.asyncio
async def test_lookup_failures_fall_back_to_base_with_warning() -> None:
    """Role detection fails open, reports the failure and retries later."""
    source = FakeEngagementSource()
    source.failing_logins.add("flaky")
    _mark_experienced(source, "flaky")
    detector = _detector(source)

    with capture_femto_logs("triage_assistant.engagement.roles") as capture:
        role = await detector.detect_role("flaky", _REPO, _NO_GROUPS)
        capture.wait_for_count(1)

    assert role is ContributorRole.BASE, "Expected base role on lookup failure"
    assert any("flaky" in message for message in capture.messages("WARNING")), (
        "Expected a warning naming the login"
    )
    assert role_cache_key("flaky", _REPO) not in detector.cache.roles, (
        "Expected a failure-derived role to stay uncached"
    )

    await detector.detect_role("flaky", _REPO, _NO_GROUPS)

    assert source.permission_calls == ["flaky", "flaky"], (
        "Expected the next detection to retry the lookup"
    )


@pytest.mark.asyncio
async def test_failed_permission_lookup_still_reaches_partner_check() -> None:
    """A maintainer lookup error does not hide partner group membership."""
    source = FakeEngagementSource()
    source.failing_logins.add("ally")
    detector = _detector(source)

    role = await detector.detect_role("ally", _REPO, UserGroups(partner=["ally"]))

    assert role is ContributorRole.PARTNER, "Expected partner despite the failure"
    assert role_cache_key("ally", _REPO) in detector.cache.roles, (
        "Expected a matched role to be cached"
    )


@pytest.mark.asyncio
async def test_failed_permission_lookup_still_detects_first_time() -> None:
    """Later checks classify the login when the maintainer lookup errors."""
    source = FakeEngagementSource()
    source.failing_logins.add("newcomer")

    role = await _detector(source).detect_role("newcomer", _REPO, _NO_GROUPS)

    assert role is ContributorRole.FIRST_TIME, "Expected first-time classification"
