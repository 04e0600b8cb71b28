"""Engagement response structures.

The response is the engine's only output artefact. It is encoded with
``msgspec.json`` using camelCase keys; optional fields that are unset are
omitted rather than written as ``null``.
"""

from __future__ import annotations

import enum

import msgspec


class EngagementClassification(enum.StrEnum):
    """Trend classification of an engagement score."""

    HOT = "Hot"


class EngagementScore(msgspec.Struct, kw_only=True, rename="camel", omit_defaults=True):
    """Current and historical score of one issue."""

    score: int
    previous_score: int
    classification: EngagementClassification | None = None

    @classmethod
    def from_scores(cls, score: int, previous_score: int) -> EngagementScore:
        """Build a score, classifying it as Hot when it grew."""
        return cls(
            score=score,
            previous_score=previous_score,
            classification=(
                EngagementClassification.HOT if score > previous_score else None
            ),
        )


class EngagementIssue(msgspec.Struct, kw_only=True):
    """Identity of a scored issue."""

    id: str
    owner: str
    repo: str
    number: int


class EngagementProject(msgspec.Struct, kw_only=True):
    """Identity of a scored project."""

    id: str
    owner: str
    number: int


class EngagementItem(msgspec.Struct, kw_only=True, omit_defaults=True):
    """One scored issue; ``id`` is the project item id in project mode."""

    issue: EngagementIssue
    engagement: EngagementScore
    id: str | None = None


class EngagementResponse(
    msgspec.Struct, kw_only=True, rename="camel", omit_defaults=True
):
    """All scores produced by a run."""

    items: list[EngagementItem]
    total_items: int
    project: EngagementProject | None = None

    @classmethod
    def from_items(
        cls,
        items: list[EngagementItem],
        project: EngagementProject | None = None,
    ) -> EngagementResponse:
        """Build a response whose ``totalItems`` matches ``items``."""
        return cls(items=items, total_items=len(items), project=project)

    def to_json(self) -> bytes:
        """Encode the response as JSON bytes."""
        return msgspec.json.encode(self)
