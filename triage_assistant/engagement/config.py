"""Configuration for engagement scoring.

Two layers of configuration feed a scoring run:

- ``EngagementConfig`` selects *what* to score (repository, project or
  issue, write-back behaviour) and is read from environment variables.
- ``EngagementSettings`` carries *how* to score (weights and user groups)
  and is read from the ``engagement`` section of ``.triagerc.yml``.

Weights accept either a plain number or a per-role mapping for the
``comments``, ``reactions`` and ``contributors`` factors:

.. code-block:: yaml

    engagement:
      weights:
        comments:
          base: 3
          firstTime: 5
        reactions: 1
        contributors: 2
      groups:
        partner: [trusted-dev-1]

``normalize_weights`` turns the user-facing shape into either
:class:`FlatWeights` or :class:`RoleWeights` once, so the calculators never
inspect weight shapes while scoring.
"""

from __future__ import annotations

import dataclasses as dc
import enum
import os
import typing as typ
from pathlib import Path

import msgspec
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from triage_assistant.common.slug import parse_repo_slug
from triage_assistant.logging import get_logger, log_info

from .errors import EngagementConfigError

logger = get_logger(__name__)

YAML_VERSION = (1, 2)
CONFIG_FILE_NAMES = (".triagerc.yml", ".github/.triagerc.yml")
DEFAULT_PROJECT_COLUMN = "Engagement Score"

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class ContributorRole(enum.StrEnum):
    """Contributor roles, listed in detection precedence order."""

    MAINTAINER = "maintainer"
    PARTNER = "partner"
    FREQUENT = "frequent"
    FIRST_TIME = "firstTime"
    BASE = "base"


class RoleBasedWeights(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """Per-role multipliers for one scoring factor.

    Attributes
    ----------
    base : float
        Weight for contributors with no special role, and the fallback for
        any role left unset.
    maintainer, partner, first_time, frequent : float, optional
        Role-specific overrides.

    """

    base: float
    maintainer: float | None = None
    partner: float | None = None
    first_time: float | None = msgspec.field(default=None, name="firstTime")
    frequent: float | None = None

    def for_role(self, role: ContributorRole) -> float:
        """Return the weight for ``role``, falling back to ``base``."""
        value = {
            ContributorRole.MAINTAINER: self.maintainer,
            ContributorRole.PARTNER: self.partner,
            ContributorRole.FIRST_TIME: self.first_time,
            ContributorRole.FREQUENT: self.frequent,
        }.get(role)
        return self.base if value is None else value


type FactorWeight = float | RoleBasedWeights


class EngagementWeights(msgspec.Struct, kw_only=True, rename="camel"):
    """User-facing weights as written in the configuration file."""

    comments: float | RoleBasedWeights = 3.0
    reactions: float | RoleBasedWeights = 1.0
    contributors: float | RoleBasedWeights = 2.0
    last_activity: float = 1.0
    issue_age: float = 1.0
    linked_pull_requests: float = 2.0


class UserGroups(msgspec.Struct, kw_only=True):
    """Static allow-lists of users supplied by configuration."""

    partner: list[str] = msgspec.field(default_factory=list)
    internal: list[str] = msgspec.field(default_factory=list)


class EngagementSettings(msgspec.Struct, kw_only=True):
    """The ``engagement`` section of the triage configuration file."""

    weights: EngagementWeights = msgspec.field(default_factory=EngagementWeights)
    groups: UserGroups = msgspec.field(default_factory=UserGroups)


class _ConfigFile(msgspec.Struct, kw_only=True):
    # Other sections (labels, prompts) belong to the triage tooling.
    engagement: EngagementSettings = msgspec.field(
        default_factory=EngagementSettings
    )


@dc.dataclass(frozen=True, slots=True)
class FlatWeights:
    """Weights where every factor is a plain number."""

    comments: float = 3.0
    reactions: float = 1.0
    contributors: float = 2.0
    last_activity: float = 1.0
    issue_age: float = 1.0
    linked_pull_requests: float = 2.0


@dc.dataclass(frozen=True, slots=True)
class RoleWeights:
    """Weights where at least one factor varies by contributor role."""

    comments: FactorWeight
    reactions: FactorWeight
    contributors: FactorWeight
    last_activity: float
    issue_age: float
    linked_pull_requests: float
    groups: UserGroups = dc.field(default_factory=UserGroups)


type ScoringWeights = FlatWeights | RoleWeights


def normalize_weights(
    weights: EngagementWeights | None = None,
    groups: UserGroups | None = None,
) -> ScoringWeights:
    """Resolve user-facing weights into the variant used for scoring.

    Examples
    --------
    >>> normalize_weights(EngagementWeights())
    FlatWeights(comments=3.0, reactions=1.0, contributors=2.0, last_activity=1.0, issue_age=1.0, linked_pull_requests=2.0)

    """  # noqa: E501
    resolved = weights or EngagementWeights()
    factors = (resolved.comments, resolved.reactions, resolved.contributors)
    if any(isinstance(factor, RoleBasedWeights) for factor in factors):
        return RoleWeights(
            comments=resolved.comments,
            reactions=resolved.reactions,
            contributors=resolved.contributors,
            last_activity=resolved.last_activity,
            issue_age=resolved.issue_age,
            linked_pull_requests=resolved.linked_pull_requests,
            groups=groups or UserGroups(),
        )
    return FlatWeights(
        comments=typ.cast("float", resolved.comments),
        reactions=typ.cast("float", resolved.reactions),
        contributors=typ.cast("float", resolved.contributors),
        last_activity=resolved.last_activity,
        issue_age=resolved.issue_age,
        linked_pull_requests=resolved.linked_pull_requests,
    )


def _yaml() -> YAML:
    yaml = YAML(typ="safe")
    yaml.version = YAML_VERSION
    yaml.allow_duplicate_keys = False
    return yaml


def parse_engagement_settings(
    text: str, *, source: object = "<string>"
) -> EngagementSettings:
    """Parse the engagement section from triage configuration YAML.

    Raises
    ------
    EngagementConfigError
        If the YAML is malformed or the engagement section fails validation.

    """
    try:
        loaded = _yaml().load(text)
    except YAMLError as exc:
        raise EngagementConfigError.invalid_file(source, str(exc)) from exc

    if loaded is None:
        return EngagementSettings()

    try:
        return msgspec.convert(loaded, type=_ConfigFile).engagement
    except msgspec.ValidationError as exc:
        raise EngagementConfigError.invalid_file(source, str(exc)) from exc


def load_engagement_settings(workspace: Path | str = ".") -> EngagementSettings:
    """Load engagement settings from the first triage config file found.

    ``.triagerc.yml`` is preferred over ``.github/.triagerc.yml``. Defaults
    are returned when neither exists.
    """
    root = Path(workspace)
    for name in CONFIG_FILE_NAMES:
        candidate = root / name
        if not candidate.is_file():
            continue
        try:
            text = candidate.read_text(encoding="utf-8")
        except OSError as exc:
            raise EngagementConfigError.invalid_file(candidate, str(exc)) from exc
        settings = parse_engagement_settings(text, source=candidate)
        log_info(logger, "Loaded engagement configuration from %s", candidate)
        return settings

    log_info(
        logger,
        "No triage configuration found in %s; using default engagement weights",
        root,
    )
    return EngagementSettings()


def _env_str(env_var: str) -> str:
    return os.environ.get(env_var, "").strip()


def _env_int(env_var: str, default: int | None) -> int | None:
    raw = _env_str(env_var)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise EngagementConfigError.invalid_integer(env_var, raw) from exc


def _env_float(env_var: str) -> float | None:
    raw = _env_str(env_var)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError as exc:
        raise EngagementConfigError.invalid_number(env_var, raw) from exc


def _env_bool(env_var: str, *, default: bool) -> bool:
    raw = _env_str(env_var).lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise EngagementConfigError.invalid_boolean(env_var, raw)


@dc.dataclass(frozen=True, slots=True)
class EngagementConfig:
    """Selects the scoring target and write-back behaviour for a run.

    Attributes
    ----------
    repo_owner, repo_name
        Repository that owns the issue or the project.
    project_number
        Projects v2 number; when set and positive, the whole project is
        scored and ``issue_number`` is ignored.
    issue_number
        Single issue to score when no project is selected.
    project_column
        Name of the number field that receives scores.
    apply_scores
        Write scores back to the project.
    dry_run
        Log the writes instead of performing them.
    temp_dir
        Directory that receives ``engagement-response.json``.
    max_concurrency
        Number of project issues scored at once. Pages within one issue are
        always fetched in order.
    per_issue_timeout_s
        Optional timeout wrapping each issue's collection and scoring.

    """

    repo_owner: str
    repo_name: str
    project_number: int | None = None
    issue_number: int | None = None
    project_column: str = DEFAULT_PROJECT_COLUMN
    apply_scores: bool = False
    dry_run: bool = False
    temp_dir: Path | None = None
    max_concurrency: int = 1
    per_issue_timeout_s: float | None = None

    @property
    def has_project(self) -> bool:
        """Return True when a positive project number is configured."""
        return self.project_number is not None and self.project_number > 0

    @property
    def has_issue(self) -> bool:
        """Return True when a positive issue number is configured."""
        return self.issue_number is not None and self.issue_number > 0

    @classmethod
    def from_env(cls) -> EngagementConfig:
        """Create configuration from environment variables.

        Reads ``TRIAGE_ASSISTANT_REPO_OWNER`` and ``TRIAGE_ASSISTANT_REPO_NAME``
        (falling back to ``GITHUB_REPOSITORY``), ``TRIAGE_ASSISTANT_PROJECT_NUMBER``,
        ``TRIAGE_ASSISTANT_ISSUE_NUMBER``, ``TRIAGE_ASSISTANT_PROJECT_COLUMN``,
        ``TRIAGE_ASSISTANT_APPLY_SCORES``, ``TRIAGE_ASSISTANT_DRY_RUN``,
        ``TRIAGE_ASSISTANT_TEMP_DIR``, ``TRIAGE_ASSISTANT_MAX_CONCURRENCY`` and
        ``TRIAGE_ASSISTANT_ISSUE_TIMEOUT_S``.

        Raises
        ------
        EngagementConfigError
            If the repository is unknown or a value cannot be parsed.

        """
        owner = _env_str("TRIAGE_ASSISTANT_REPO_OWNER")
        name = _env_str("TRIAGE_ASSISTANT_REPO_NAME")
        if not (owner and name):
            slug = _env_str("GITHUB_REPOSITORY")
            if not slug:
                raise EngagementConfigError.missing_repository()
            try:
                slug_owner, slug_name = parse_repo_slug(slug)
            except ValueError as exc:
                raise EngagementConfigError.missing_repository() from exc
            owner = owner or slug_owner
            name = name or slug_name

        raw_temp_dir = _env_str("TRIAGE_ASSISTANT_TEMP_DIR") or _env_str(
            "RUNNER_TEMP"
        )
        max_concurrency = _env_int("TRIAGE_ASSISTANT_MAX_CONCURRENCY", 1) or 1

        return cls(
            repo_owner=owner,
            repo_name=name,
            project_number=_env_int("TRIAGE_ASSISTANT_PROJECT_NUMBER", None),
            issue_number=_env_int("TRIAGE_ASSISTANT_ISSUE_NUMBER", None),
            project_column=_env_str("TRIAGE_ASSISTANT_PROJECT_COLUMN")
            or DEFAULT_PROJECT_COLUMN,
            apply_scores=_env_bool("TRIAGE_ASSISTANT_APPLY_SCORES", default=False),
            dry_run=_env_bool("TRIAGE_ASSISTANT_DRY_RUN", default=False),
            temp_dir=Path(raw_temp_dir) if raw_temp_dir else None,
            max_concurrency=max(1, max_concurrency),
            per_issue_timeout_s=_env_float("TRIAGE_ASSISTANT_ISSUE_TIMEOUT_S"),
        )
