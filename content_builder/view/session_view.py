"""
Session View — read-only projection of a canonical Builder Session.

Every derived property is computed once, when the view is built, from a
single snapshot of the record. The view is frozen; build a new one to see
newer data. ``build_session_view(None)`` yields the empty view used for
absent sessions.
"""

import math
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from content_builder.collaboration.monitor import CollaborationMonitor
from content_builder.config import BuilderSettings, get_settings
from content_builder.models.quality import (
    QualityAssessment,
    QualityBreakdown,
    QualityRating,
    QualitySignals,
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
    utcnow,
)
from content_builder.quality.gate import QualityGate
from content_builder.workflow.state_machine import WorkflowStateMachine


class SessionView(BaseModel):
    """
    Frozen facade over one session snapshot.

    Field defaults describe the empty view: nothing selected, nothing
    permitted, quality 0.
    """

    model_config = ConfigDict(frozen=True)

    exists: bool = False
    record: Optional[BuilderSession] = None

    # IDENTITY
    id: Optional[str] = None
    session_id: Optional[str] = None
    digest_id: Optional[str] = None
    user_id: Optional[str] = None

    # WORKFLOW
    current_state: WorkflowState = WorkflowState.SELECTING
    is_selecting: bool = True
    is_arranging: bool = False
    is_previewing: bool = False
    is_publishing: bool = False
    state_progress: int = 1
    total_states: int = 4
    completion_percent: float = 25.0
    can_advance: bool = False
    can_go_back: bool = False
    next_state: Optional[WorkflowState] = None
    previous_state: Optional[WorkflowState] = None

    # CONTENT
    selected_content: List[str] = []
    content_order: List[str] = []
    selected_content_count: int = 0
    has_content: bool = False
    ordered_content_count: int = 0
    missing_content_count: int = 0
    has_ordered_content: bool = False
    content_is_ordered: bool = True

    # CONTENT BLOCKS
    content_blocks: List[ContentBlock] = []
    content_block_count: int = 0
    has_content_blocks: bool = False
    block_types: List[str] = []
    primary_block_type: Optional[str] = None

    # LAYOUT
    layout_config: LayoutConfig = LayoutConfig(template_id="default", theme="modern")
    styling_applied: Dict[str, Any] = {}
    template_id: Optional[str] = "default"
    theme: Optional[str] = "modern"
    has_custom_styling: bool = False
    has_valid_layout: bool = False
    layout_complexity: int = 0
    layout_complexity_rating: str = "simple"

    # AUTOSAVE
    auto_save_config: AutoSaveConfig = AutoSaveConfig()
    auto_save_data: Dict[str, Any] = {}
    auto_save_enabled: bool = True
    auto_save_interval: int = 30
    has_auto_save_data: bool = False
    last_saved_at: Optional[datetime] = None
    last_saved_minutes_ago: Optional[int] = None
    needs_save: bool = False
    has_unsaved_changes: bool = False

    # COLLABORATION
    collaboration_data: List[CollaboratorPresence] = []
    has_collaborators: bool = False
    collaborator_count: int = 0
    active_collaborators: List[CollaboratorPresence] = []
    active_collaborator_count: int = 0
    locked_sections: List[str] = []
    has_locked_sections: bool = False
    has_conflicts: bool = False
    conflicting_section: Optional[str] = None

    # PREVIEW
    preview_settings: PreviewSettings = PreviewSettings()
    test_recipients: List[str] = []
    preview_format: str = "email"
    preview_device: str = "desktop"
    has_test_recipients: bool = False
    test_recipient_count: int = 0
    can_preview: bool = False
    can_send_test: bool = False

    # VALIDATION & PUBLISHING
    validation_results: ValidationResults = ValidationResults()
    publish_readiness: PublishReadiness = PublishReadiness.NOT_READY
    is_validated: bool = False
    validation_errors: List[str] = []
    validation_warnings: List[str] = []
    has_validation_errors: bool = False
    has_validation_warnings: bool = False
    error_count: int = 0
    warning_count: int = 0
    is_ready_to_publish: bool = False

    # QUALITY
    quality: QualityAssessment = QualityAssessment(
        score=0,
        rating=QualityRating.NEEDS_WORK,
        breakdown=QualityBreakdown(),
        is_ready_to_publish=False,
    )
    quality_score: int = 0
    quality_rating: QualityRating = QualityRating.NEEDS_WORK

    # SELECTION CRITERIA
    selection_criteria: SelectionCriteria = SelectionCriteria()
    min_quality_threshold: float = 0
    max_content_age: int = 168
    required_keywords: List[str] = []
    excluded_keywords: List[str] = []
    has_selection_criteria: bool = False

    # TEMPLATE & CUSTOMIZATION
    template_data: Dict[str, Any] = {}
    customizations: Dict[str, Any] = {}
    metadata: Dict[str, Any] = {}
    has_template_data: bool = False
    has_customizations: bool = False
    customization_count: int = 0

    # TIMING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    age_days: int = 0
    session_duration_minutes: int = 0
    is_active_session: bool = False
    is_long_session: bool = False
    is_quick_session: bool = False

    # RECORD VALIDITY
    is_valid: bool = False
    is_complete: bool = False
    is_session_active: bool = False

    @classmethod
    def empty(cls) -> "SessionView":
        return cls()

    # --- Lookups ---

    def get_content_block(self, block_id: str) -> Optional[ContentBlock]:
        return next((b for b in self.content_blocks if b.id == block_id), None)

    def get_blocks_by_type(self, block_type: str) -> List[ContentBlock]:
        return [b for b in self.content_blocks if b.type == block_type]

    def has_selected_content(self, content_id: str) -> bool:
        return content_id in self.selected_content

    def get_collaborator(self, user_id: str) -> Optional[CollaboratorPresence]:
        return CollaborationMonitor(self.collaboration_data).get_collaborator(user_id)

    def is_section_locked(self, section: str) -> bool:
        return section in self.locked_sections

    def can_edit_section(self, section: str, user_id: str) -> bool:
        if not self.exists:
            return False
        return CollaborationMonitor(self.collaboration_data).can_edit_section(section, user_id)

    def can_transition_to(self, new_state: str) -> bool:
        if not self.exists:
            return False
        return WorkflowStateMachine().can_transition(self.current_state, new_state)

    # --- Serialization ---

    def debug_info(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "digest_id": self.digest_id,
            "current_state": self.current_state.value,
            "state_progress": self.state_progress,
            "completion_percent": self.completion_percent,
            "selected_content_count": self.selected_content_count,
            "quality_score": self.quality_score,
            "quality_rating": self.quality_rating.value,
            "is_ready_to_publish": self.is_ready_to_publish,
            "has_collaborators": self.has_collaborators,
            "has_unsaved_changes": self.has_unsaved_changes,
            "is_valid": self.is_valid,
            "is_complete": self.is_complete,
        }

    def to_record(self) -> Dict[str, Any]:
        """The canonical camelCase record behind this view."""
        if self.record is None:
            return {"id": None, "currentState": WorkflowState.SELECTING.value, "isNew": True}
        return self.record.to_record()


def _primary_block_type(blocks: List[ContentBlock]) -> Optional[str]:
    """Most frequent block type; ties go to the type seen first."""
    counts = Counter(b.type for b in blocks if b.type)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def _layout_complexity(has_custom_styling: bool, block_types: List[str], block_count: int) -> int:
    complexity = 0
    if has_custom_styling:
        complexity += 2
    if len(block_types) > 3:
        complexity += 2
    if block_count > 10:
        complexity += 1
    return complexity


def _complexity_rating(complexity: int) -> str:
    if complexity >= 4:
        return "complex"
    if complexity >= 2:
        return "moderate"
    return "simple"


def _whole_minutes(delta: timedelta) -> int:
    return math.floor(delta.total_seconds() / 60)


def build_session_view(
    session: Optional[BuilderSession],
    current_time: Optional[datetime] = None,
    settings: Optional[BuilderSettings] = None,
    gate: Optional[QualityGate] = None,
    machine: Optional[WorkflowStateMachine] = None,
) -> SessionView:
    """Project a canonical session into a frozen SessionView."""
    if session is None:
        return SessionView.empty()

    settings = settings or get_settings()
    if current_time is None:
        current_time = utcnow()
    elif current_time.tzinfo is None:
        current_time = current_time.replace(tzinfo=timezone.utc)
    gate = gate or QualityGate(settings.min_content_for_quality)
    machine = machine or WorkflowStateMachine()

    state = session.current_state

    # Content
    selected_count = len(session.selected_content)
    ordered_count = len(session.content_order)
    missing = max(0, selected_count - ordered_count)
    has_content = selected_count > 0
    content_is_ordered = missing == 0

    # Blocks & layout
    blocks = session.content_blocks
    block_types = list(dict.fromkeys(b.type for b in blocks if b.type))
    has_custom_styling = len(session.styling_applied) > 0
    template_id = session.layout_config.template_id
    has_valid_layout = bool(template_id) and content_is_ordered
    complexity = _layout_complexity(has_custom_styling, block_types, len(blocks))

    # Save staleness
    minutes_since_save = None
    if session.last_saved_at is not None:
        minutes_since_save = _whole_minutes(current_time - session.last_saved_at)
    needs_save = (
        minutes_since_save is None
        or minutes_since_save >= settings.save_stale_after_minutes
    )

    # Collaboration
    monitor = CollaborationMonitor(
        session.collaboration_data,
        active_window_minutes=settings.collaborator_active_minutes,
    )
    active = monitor.active_collaborators(current_time)
    locked = monitor.locked_sections
    conflict = monitor.conflicting_section()

    # Preview
    has_test_recipients = len(session.test_recipients) > 0
    can_preview = has_valid_layout and content_is_ordered
    can_send_test = can_preview and has_test_recipients

    # Validation & quality
    results = session.validation_results
    signals = QualitySignals(
        has_content=has_content,
        selected_content_count=selected_count,
        content_is_ordered=content_is_ordered,
        has_valid_layout=has_valid_layout,
        has_custom_styling=has_custom_styling,
        has_content_blocks=len(blocks) > 0,
        is_validated=results.valid,
        validation_errors=results.errors,
        has_validation_warnings=len(results.warnings) > 0,
        has_conflicts=conflict is not None,
        auto_save_enabled=session.auto_save_config.enabled,
        has_unsaved_changes=needs_save,
        can_preview=can_preview,
        has_test_recipients=has_test_recipients,
        can_send_test=can_send_test,
        publish_readiness=session.publish_readiness,
    )
    assessment = gate.assess(signals)

    # Timing
    age = current_time - session.created_at
    duration_minutes = _whole_minutes(age)
    is_active_session = (
        current_time - session.updated_at <= timedelta(hours=settings.active_session_hours)
    )

    criteria = session.selection_criteria
    is_valid = bool(session.id and session.session_id and session.user_id)

    return SessionView(
        exists=True,
        record=session,
        id=session.id,
        session_id=session.session_id,
        digest_id=session.digest_id,
        user_id=session.user_id,
        current_state=state,
        is_selecting=state == WorkflowState.SELECTING,
        is_arranging=state == WorkflowState.ARRANGING,
        is_previewing=state == WorkflowState.PREVIEWING,
        is_publishing=state == WorkflowState.PUBLISHING,
        state_progress=machine.state_progress(state),
        total_states=machine.total_states,
        completion_percent=machine.completion_percent(state),
        can_advance=machine.can_advance(
            state,
            has_content=has_content,
            has_valid_layout=has_valid_layout,
            is_validated=results.valid,
            is_ready_to_publish=assessment.is_ready_to_publish,
        ),
        can_go_back=machine.can_go_back(state),
        next_state=machine.next_state(state),
        previous_state=machine.previous_state(state),
        selected_content=session.selected_content,
        content_order=session.content_order,
        selected_content_count=selected_count,
        has_content=has_content,
        ordered_content_count=ordered_count,
        missing_content_count=missing,
        has_ordered_content=ordered_count > 0,
        content_is_ordered=content_is_ordered,
        content_blocks=blocks,
        content_block_count=len(blocks),
        has_content_blocks=len(blocks) > 0,
        block_types=block_types,
        primary_block_type=_primary_block_type(blocks),
        layout_config=session.layout_config,
        styling_applied=session.styling_applied,
        template_id=template_id,
        theme=session.layout_config.theme,
        has_custom_styling=has_custom_styling,
        has_valid_layout=has_valid_layout,
        layout_complexity=complexity,
        layout_complexity_rating=_complexity_rating(complexity),
        auto_save_config=session.auto_save_config,
        auto_save_data=session.auto_save_data,
        auto_save_enabled=session.auto_save_config.enabled,
        auto_save_interval=session.auto_save_config.interval_seconds,
        has_auto_save_data=len(session.auto_save_data) > 0,
        last_saved_at=session.last_saved_at,
        last_saved_minutes_ago=minutes_since_save,
        needs_save=needs_save,
        has_unsaved_changes=needs_save,
        collaboration_data=session.collaboration_data,
        has_collaborators=len(session.collaboration_data) > 0,
        collaborator_count=len(session.collaboration_data),
        active_collaborators=active,
        active_collaborator_count=len(active),
        locked_sections=locked,
        has_locked_sections=len(locked) > 0,
        has_conflicts=conflict is not None,
        conflicting_section=conflict,
        preview_settings=session.preview_settings,
        test_recipients=session.test_recipients,
        preview_format=session.preview_settings.format,
        preview_device=session.preview_settings.device,
        has_test_recipients=has_test_recipients,
        test_recipient_count=len(session.test_recipients),
        can_preview=can_preview,
        can_send_test=can_send_test,
        validation_results=results,
        publish_readiness=session.publish_readiness,
        is_validated=results.valid,
        validation_errors=results.errors,
        validation_warnings=results.warnings,
        has_validation_errors=len(results.errors) > 0,
        has_validation_warnings=len(results.warnings) > 0,
        error_count=len(results.errors),
        warning_count=len(results.warnings),
        is_ready_to_publish=assessment.is_ready_to_publish,
        quality=assessment,
        quality_score=assessment.score,
        quality_rating=assessment.rating,
        selection_criteria=criteria,
        min_quality_threshold=criteria.min_quality_score,
        max_content_age=criteria.max_age,
        required_keywords=criteria.keywords,
        excluded_keywords=criteria.exclude_keywords,
        has_selection_criteria=bool(criteria.sources or criteria.categories or criteria.keywords),
        template_data=session.template_data,
        customizations=session.customizations,
        metadata=session.metadata,
        has_template_data=len(session.template_data) > 0,
        has_customizations=len(session.customizations) > 0,
        customization_count=len(session.customizations),
        created_at=session.created_at,
        updated_at=session.updated_at,
        age_days=math.floor(age.total_seconds() / 86400),
        session_duration_minutes=duration_minutes,
        is_active_session=is_active_session,
        is_long_session=duration_minutes > settings.long_session_minutes,
        is_quick_session=duration_minutes <= settings.quick_session_minutes,
        is_valid=is_valid,
        is_complete=is_valid and has_content and has_valid_layout,
        is_session_active=is_valid and is_active_session,
    )
