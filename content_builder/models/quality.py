"""Quality Assessment — output of the Quality Gate's evaluation."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from content_builder.models.session import PublishReadiness, WorkflowState


class QualityRating(str, Enum):
    EXCELLENT = "excellent"     # >= 90
    GOOD = "good"               # >= 75
    FAIR = "fair"               # >= 60
    POOR = "poor"               # >= 40
    NEEDS_WORK = "needs-work"


class QualitySignals(BaseModel):
    """
    The derived flags the Quality Gate scores.

    Computed from a canonical session by the Session View; the gate never
    reads the session record itself.
    """
    has_content: bool = False
    selected_content_count: int = 0
    content_is_ordered: bool = False
    has_valid_layout: bool = False
    has_custom_styling: bool = False
    has_content_blocks: bool = False
    is_validated: bool = False
    validation_errors: List[str] = []
    has_validation_warnings: bool = False
    has_conflicts: bool = False
    auto_save_enabled: bool = False
    has_unsaved_changes: bool = True
    can_preview: bool = False
    has_test_recipients: bool = False
    can_send_test: bool = False
    publish_readiness: PublishReadiness = PublishReadiness.NOT_READY


class QualityBreakdown(BaseModel):
    """Points earned per category. Maximums: 30 / 25 / 25 / 10 / 10."""
    content: int = Field(default=0, ge=0, le=30)
    layout: int = Field(default=0, ge=0, le=25)
    validation: int = Field(default=0, ge=0, le=25)
    collaboration: int = Field(default=0, ge=0, le=10)
    preview: int = Field(default=0, ge=0, le=10)

    @property
    def total(self) -> int:
        return self.content + self.layout + self.validation + self.collaboration + self.preview


class ReadinessBlocker(BaseModel):
    """One reason publishing is not permitted, with where to send the user."""
    code: str                               # Machine-readable, e.g. "not_validated"
    detail: str                             # Human-readable
    route_to: Optional[WorkflowState] = None
    errors: List[str] = []


class QualityAssessment(BaseModel):
    """The Quality Gate's ruling on a session snapshot."""
    score: int = Field(ge=0, le=100)
    rating: QualityRating
    breakdown: QualityBreakdown
    is_ready_to_publish: bool
    blockers: List[ReadinessBlocker] = []
