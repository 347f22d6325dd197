"""Tests for core data models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from content_builder.models import (
    AutoSaveConfig,
    BuilderSession,
    CollaboratorPresence,
    ContentBlock,
    LayoutConfig,
    PublishReadiness,
    QualityAssessment,
    QualityBreakdown,
    QualityRating,
    ReadinessBlocker,
    TransitionCheck,
    WorkflowState,
)


class TestBuilderSession:
    def test_create_basic_session(self):
        session = BuilderSession(
            id="builder_1",
            session_id="sess_1",
            user_id="user_1",
            current_state=WorkflowState.ARRANGING,
            selected_content=["a", "b"],
        )
        assert session.id == "builder_1"
        assert session.current_state == WorkflowState.ARRANGING
        assert session.publish_readiness == PublishReadiness.NOT_READY
        assert session.layout_config.template_id == "default"

    def test_accepts_camel_case_keys(self):
        session = BuilderSession.model_validate({
            "id": "builder_1",
            "sessionId": "sess_1",
            "currentState": "previewing",
            "testRecipients": ["qa@example.com"],
        })
        assert session.session_id == "sess_1"
        assert session.current_state == WorkflowState.PREVIEWING
        assert session.test_recipients == ["qa@example.com"]

    def test_record_uses_camel_case(self):
        session = BuilderSession(id="builder_1", session_id="sess_1")
        record = session.to_record()
        assert record["sessionId"] == "sess_1"
        assert record["currentState"] == "selecting"
        assert record["layoutConfig"]["templateId"] == "default"
        assert record["autoSaveConfig"]["maxVersions"] == 10
        assert "session_id" not in record

    def test_naive_timestamps_become_utc(self):
        session = BuilderSession(
            id="builder_1",
            session_id="sess_1",
            created_at=datetime(2026, 10, 19, 9, 0),
        )
        assert session.created_at.tzinfo is not None
        assert session.created_at == datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)

    def test_unknown_top_level_fields_ignored(self):
        session = BuilderSession.model_validate({
            "id": "builder_1", "sessionId": "s", "wpPostId": 5,
        })
        assert "wpPostId" not in session.to_record()

    def test_invalid_state_rejected(self):
        with pytest.raises(ValidationError):
            BuilderSession(id="builder_1", session_id="s", current_state="drafting")


class TestNestedRecords:
    def test_content_block_keeps_extras(self):
        block = ContentBlock.model_validate({"id": "b1", "contentId": "c1", "caption": "x"})
        assert block.content_id == "c1"
        assert block.model_dump(by_alias=True)["caption"] == "x"

    def test_layout_config_defaults(self):
        layout = LayoutConfig()
        assert layout.template_id is None
        assert layout.grid_settings == {}

    def test_auto_save_rejects_negative_versions(self):
        with pytest.raises(ValidationError):
            AutoSaveConfig(max_versions=-1)

    def test_collaborator_locks_must_be_a_list(self):
        presence = CollaboratorPresence.model_validate({"userId": "u1", "locks": "header"})
        assert presence.locks == []

    def test_collaborator_cursor_is_free_form(self):
        presence = CollaboratorPresence.model_validate(
            {"userId": "u1", "cursor": {"line": 3, "column": 14}}
        )
        assert presence.cursor == {"line": 3, "column": 14}


class TestQualityModels:
    def test_breakdown_total(self):
        breakdown = QualityBreakdown(content=30, layout=20, validation=25, collaboration=8, preview=5)
        assert breakdown.total == 88

    def test_breakdown_category_caps(self):
        with pytest.raises(ValidationError):
            QualityBreakdown(content=31)

    def test_assessment_score_bounds(self):
        with pytest.raises(ValidationError):
            QualityAssessment(
                score=101,
                rating=QualityRating.EXCELLENT,
                breakdown=QualityBreakdown(),
                is_ready_to_publish=False,
            )

    def test_blocker_defaults(self):
        blocker = ReadinessBlocker(code="already_completed", detail="done")
        assert blocker.route_to is None
        assert blocker.errors == []


class TestTransitionCheck:
    def test_serializes_states_as_values(self):
        check = TransitionCheck(
            from_state=WorkflowState.SELECTING,
            to_state=WorkflowState.PUBLISHING,
            allowed=False,
            legal_targets=[WorkflowState.ARRANGING],
            reason="skips_states",
        )
        data = check.model_dump(mode="json")
        assert data["from_state"] == "selecting"
        assert data["legal_targets"] == ["arranging"]
