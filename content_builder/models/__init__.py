"""Content Builder data models."""

from content_builder.models.quality import (
    QualityAssessment,
    QualityBreakdown,
    QualityRating,
    QualitySignals,
    ReadinessBlocker,
)
from content_builder.models.session import (
    AutoSaveConfig,
    BuilderSession,
    CollaboratorPresence,
    ContentBlock,
    LayoutConfig,
    PreviewSettings,
    PublishReadiness,
    SelectionCriteria,
    ValidationResults,
    WorkflowState,
)
from content_builder.models.workflow import TransitionCheck

__all__ = [
    "AutoSaveConfig",
    "BuilderSession",
    "CollaboratorPresence",
    "ContentBlock",
    "LayoutConfig",
    "PreviewSettings",
    "PublishReadiness",
    "QualityAssessment",
    "QualityBreakdown",
    "QualityRating",
    "QualitySignals",
    "ReadinessBlocker",
    "SelectionCriteria",
    "TransitionCheck",
    "ValidationResults",
    "WorkflowState",
]
