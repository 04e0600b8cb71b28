"""Engagement scoring for GitHub issues and project boards."""

from __future__ import annotations

from .config import (
    ContributorRole,
    EngagementConfig,
    EngagementSettings,
    EngagementWeights,
    FlatWeights,
    RoleBasedWeights,
    RoleWeights,
    UserGroups,
    load_engagement_settings,
    normalize_weights,
)
from .errors import EngagementConfigError, RoleResolverRequiredError
from .models import (
    EngagementClassification,
    EngagementIssue,
    EngagementItem,
    EngagementProject,
    EngagementResponse,
    EngagementScore,
)
from .observability import (
    EngagementEventLogger,
    EngagementEventType,
    ErrorCategory,
    categorize_error,
)
from .roles import RoleCache, RoleDetector
from .scoring import (
    calculate_historical_score,
    calculate_previous_score,
    calculate_score,
)
from .service import EngagementService, calculate_engagement_scores
from .sink import write_engagement_response
from .updater import update_project_with_scores

__all__ = [
    "ContributorRole",
    "EngagementClassification",
    "EngagementConfig",
    "EngagementConfigError",
    "EngagementEventLogger",
    "EngagementEventType",
    "EngagementIssue",
    "EngagementItem",
    "EngagementProject",
    "EngagementResponse",
    "EngagementScore",
    "EngagementService",
    "EngagementSettings",
    "EngagementWeights",
    "ErrorCategory",
    "FlatWeights",
    "RoleBasedWeights",
    "RoleCache",
    "RoleDetector",
    "RoleResolverRequiredError",
    "RoleWeights",
    "UserGroups",
    "calculate_engagement_scores",
    "calculate_historical_score",
    "calculate_previous_score",
    "calculate_score",
    "categorize_error",
    "load_engagement_settings",
    "normalize_weights",
    "update_project_with_scores",
    "write_engagement_response",
]
