"""
Quality Gate — scores a session snapshot and rules on publish readiness.

Behavioral Contract:
- Accepts QualitySignals derived from a canonical session
- Returns a QualityAssessment: bounded score, rating, per-category
  breakdown and machine-readable readiness blockers
- Advisory: returns data, never raises on a failing session
- Ready to publish requires BOTH the externally asserted readiness flag
  and a passing local validation snapshot
"""

from typing import List

from content_builder.models.quality import (
    QualityAssessment,
    QualityBreakdown,
    QualityRating,
    QualitySignals,
    ReadinessBlocker,
)
from content_builder.models.session import PublishReadiness, WorkflowState

MAX_SCORE = 100

# (threshold, rating), checked top-down
RATING_THRESHOLDS = [
    (90, QualityRating.EXCELLENT),
    (75, QualityRating.GOOD),
    (60, QualityRating.FAIR),
    (40, QualityRating.POOR),
]


def _content_points(signals: QualitySignals, min_content: int) -> int:
    points = 0
    if signals.has_content:
        points += 15
    if signals.selected_content_count >= min_content:
        points += 10
    if signals.content_is_ordered:
        points += 5
    return points


def _layout_points(signals: QualitySignals) -> int:
    points = 0
    if signals.has_valid_layout:
        points += 15
    if signals.has_custom_styling:
        points += 5
    if signals.has_content_blocks:
        points += 5
    return points


def _validation_points(signals: QualitySignals) -> int:
    points = 0
    if signals.is_validated:
        points += 20
    if not signals.has_validation_warnings:
        points += 5
    return points


def _collaboration_points(signals: QualitySignals) -> int:
    points = 0
    if not signals.has_conflicts:
        points += 5
    if signals.auto_save_enabled:
        points += 3
    if not signals.has_unsaved_changes:
        points += 2
    return points


def _preview_points(signals: QualitySignals) -> int:
    points = 0
    if signals.can_preview:
        points += 5
    if signals.has_test_recipients:
        points += 3
    if signals.can_send_test:
        points += 2
    return points


def rate_score(score: int) -> QualityRating:
    """Bucket a score into its categorical rating."""
    for threshold, rating in RATING_THRESHOLDS:
        if score >= threshold:
            return rating
    return QualityRating.NEEDS_WORK


def is_ready_to_publish(publish_readiness: PublishReadiness, is_validated: bool) -> bool:
    return publish_readiness == PublishReadiness.READY and is_validated


class QualityGate:
    """Scores completeness/correctness and derives the publish verdict."""

    def __init__(self, min_content_for_quality: int = 5):
        self.min_content_for_quality = min_content_for_quality

    def breakdown(self, signals: QualitySignals) -> QualityBreakdown:
        return QualityBreakdown(
            content=_content_points(signals, self.min_content_for_quality),
            layout=_layout_points(signals),
            validation=_validation_points(signals),
            collaboration=_collaboration_points(signals),
            preview=_preview_points(signals),
        )

    def score(self, signals: QualitySignals) -> int:
        return max(0, min(MAX_SCORE, self.breakdown(signals).total))

    def readiness_blockers(self, signals: QualitySignals) -> List[ReadinessBlocker]:
        """
        Every reason the session may not be published, each naming the
        workflow state where it gets fixed. Empty when ready.
        """
        blockers = []

        if not signals.has_content:
            blockers.append(ReadinessBlocker(
                code="no_content",
                detail="No content has been selected.",
                route_to=WorkflowState.SELECTING,
            ))
        elif not signals.has_valid_layout:
            blockers.append(ReadinessBlocker(
                code="layout_incomplete",
                detail="Layout needs a template and every selected item placed in order.",
                route_to=WorkflowState.ARRANGING,
            ))

        if not signals.is_validated:
            count = len(signals.validation_errors)
            blockers.append(ReadinessBlocker(
                code="not_validated",
                detail=(
                    f"Validation failed with {count} error(s)."
                    if count else "Session has not passed validation."
                ),
                route_to=WorkflowState.PREVIEWING,
                errors=list(signals.validation_errors),
            ))

        if signals.publish_readiness == PublishReadiness.COMPLETED:
            blockers.append(ReadinessBlocker(
                code="already_completed",
                detail="Session has already been finalized.",
            ))
        elif signals.publish_readiness != PublishReadiness.READY:
            blockers.append(ReadinessBlocker(
                code="not_ready",
                detail="Session has not been marked ready to publish.",
                route_to=WorkflowState.PREVIEWING,
            ))

        return blockers

    def assess(self, signals: QualitySignals) -> QualityAssessment:
        breakdown = self.breakdown(signals)
        score = max(0, min(MAX_SCORE, breakdown.total))
        ready = is_ready_to_publish(signals.publish_readiness, signals.is_validated)
        return QualityAssessment(
            score=score,
            rating=rate_score(score),
            breakdown=breakdown,
            is_ready_to_publish=ready,
            blockers=[] if ready else self.readiness_blockers(signals),
        )
