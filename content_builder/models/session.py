"""Builder Session — the canonical record for one digest-construction workflow."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WorkflowState(str, Enum):
    SELECTING = "selecting"     # Content selection and curation
    ARRANGING = "arranging"     # Ordering, layout and styling
    PREVIEWING = "previewing"   # Preview, test sends, validation
    PUBLISHING = "publishing"   # Final publication


class PublishReadiness(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"
    COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _message_text(item: Any) -> str:
    """Validators may report structured issues; keep their message."""
    if isinstance(item, dict) and item.get("message"):
        return str(item["message"])
    return str(item)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RecordModel(BaseModel):
    """Base for record shapes: snake_case in Python, camelCase on the record."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class ContentBlock(RecordModel):
    """A layout block referencing one content item."""
    id: Optional[str] = None
    content_id: Optional[str] = None
    type: Optional[str] = None              # "article" | "image" | "divider" | ...
    order: Optional[int] = None
    position: Dict[str, Any] = {}
    styling: Dict[str, Any] = {}
    config: Dict[str, Any] = {}


class LayoutConfig(RecordModel):
    template_id: Optional[str] = None
    theme: Optional[str] = None
    grid_settings: Dict[str, Any] = {}
    spacing: Dict[str, Any] = {}
    typography: Dict[str, Any] = {}
    color_scheme: Dict[str, Any] = {}


class AutoSaveConfig(RecordModel):
    """Advisory autosave settings. The interval is driven by a caller-owned timer."""
    enabled: bool = True
    interval_seconds: int = 30
    max_versions: int = Field(default=10, ge=0)
    save_on_change: bool = False


class CollaboratorPresence(RecordModel):
    """Presence record for one collaborator editing the session."""
    user_id: Optional[str] = None
    username: Optional[str] = None
    current_section: Optional[str] = None
    last_activity: Optional[datetime] = None
    cursor: Any = None                      # Editor-specific position payload
    locks: List[str] = []

    @field_validator("last_activity")
    @classmethod
    def _utc_activity(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @field_validator("locks", mode="before")
    @classmethod
    def _locks_list(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(lock) for lock in value if lock is not None]


class PreviewSettings(RecordModel):
    format: str = "email"
    device: str = "desktop"
    show_metrics: bool = True


class ValidationResults(RecordModel):
    """Last computed validation snapshot."""
    valid: bool = False
    errors: List[str] = []
    warnings: List[str] = []
    checks: Dict[str, Any] = {}

    @field_validator("errors", "warnings", mode="before")
    @classmethod
    def _messages(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [_message_text(item) for item in value if item is not None]


class SelectionCriteria(RecordModel):
    """Rules used to pre-filter eligible content."""
    sources: List[str] = []
    categories: List[str] = []
    min_quality_score: float = 0
    max_age: int = 168                      # Hours (7 days)
    keywords: List[str] = []
    exclude_keywords: List[str] = []


class BuilderSession(RecordModel):
    """
    The unit of work for one in-progress digest-construction workflow.

    Instances are canonical: produce them with ``normalize_session`` rather
    than constructing from untrusted payloads directly.
    """

    model_config = ConfigDict(extra="ignore")

    # IDENTITY
    id: str
    session_id: str
    digest_id: Optional[str] = None
    user_id: Optional[str] = None

    # WORKFLOW
    current_state: WorkflowState = WorkflowState.SELECTING

    # CONTENT
    selected_content: List[str] = []        # Duplicates tolerated
    content_order: List[str] = []           # May lag behind selected_content
    content_blocks: List[ContentBlock] = []

    # LAYOUT
    layout_config: LayoutConfig = LayoutConfig(template_id="default", theme="modern")
    styling_applied: Dict[str, Any] = {}

    # AUTOSAVE
    auto_save_config: AutoSaveConfig = AutoSaveConfig()
    auto_save_data: Dict[str, Any] = {}
    last_saved_at: Optional[datetime] = None

    # COLLABORATION
    collaboration_data: List[CollaboratorPresence] = []

    # PREVIEW
    preview_settings: PreviewSettings = PreviewSettings()
    test_recipients: List[str] = []

    # VALIDATION & PUBLISHING
    validation_results: ValidationResults = ValidationResults()
    publish_readiness: PublishReadiness = PublishReadiness.NOT_READY

    # SELECTION
    selection_criteria: SelectionCriteria = SelectionCriteria()

    # TEMPLATE & CUSTOMIZATION
    template_data: Dict[str, Any] = {}
    customizations: Dict[str, Any] = {}
    metadata: Dict[str, Any] = {}

    # TIMESTAMPS
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at", "last_saved_at")
    @classmethod
    def _utc_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the camelCase record shape handed to record stores."""
        return self.model_dump(mode="json", by_alias=True)
