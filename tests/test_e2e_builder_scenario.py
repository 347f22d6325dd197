"""
End-to-end scenario: one editor builds a digest from selection to publish.

Create a session, select and order five items, pick the 'modern'
template, pass validation, mark ready, then finalize.
"""

from datetime import datetime, timedelta, timezone

import pytest

from content_builder.collaborators import InMemoryDigestCreator, StaticIdentityProvider
from content_builder.config import BuilderSettings
from content_builder.errors import PreconditionError
from content_builder.lifecycle.operations import SessionLifecycle
from content_builder.models.session import PublishReadiness, WorkflowState
from content_builder.store.repository import InMemoryRecordStore, SessionRepository

START = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)
CONTENT_IDS = ["post_101", "post_102", "post_103", "post_104", "post_105"]


@pytest.fixture
def scenario():
    primary = InMemoryRecordStore()
    digests = InMemoryDigestCreator()
    lifecycle = SessionLifecycle(
        repository=SessionRepository(primary=primary),
        identity=StaticIdentityProvider({"id": "editor_7", "name": "Sam"}),
        digest_creator=digests,
        settings=BuilderSettings(),
    )
    return lifecycle, primary, digests


def test_full_builder_workflow(scenario):
    lifecycle, primary, digests = scenario
    clock = iter(START + timedelta(minutes=m) for m in range(0, 60, 2))

    # 1. Create
    view = lifecycle.create_session(current_time=next(clock))
    session_id = view.id
    assert view.current_state == WorkflowState.SELECTING
    assert primary.find_by_id(session_id) is not None

    # 2. Select content
    view = lifecycle.update_session(
        session_id, {"selectedContent": CONTENT_IDS}, current_time=next(clock)
    )
    assert view.selected_content_count == 5
    assert view.missing_content_count == 5
    assert view.can_advance
    view = lifecycle.transition_session(session_id, "arranging", current_time=next(clock))

    # 3. Arrange, autosaving as the editor works
    view = lifecycle.autosave_session(
        session_id,
        {"contentOrder": CONTENT_IDS, "layoutConfig": {"templateId": "modern"}},
        current_time=next(clock),
    )
    assert view.content_is_ordered
    assert view.template_id == "modern"
    assert view.has_valid_layout
    assert not view.needs_save
    view = lifecycle.transition_session(session_id, "previewing", current_time=next(clock))

    # Finalize is refused until validation passes
    with pytest.raises(PreconditionError) as exc_info:
        lifecycle.finalize_session(session_id, current_time=next(clock))
    assert "not_validated" in exc_info.value.codes
    assert digests.calls == []

    # 4. Validate and mark ready
    view = lifecycle.update_session(
        session_id,
        {
            "validationResults": {"valid": True, "errors": [], "warnings": []},
            "publishReadiness": "ready",
        },
        current_time=next(clock),
    )
    assert view.is_ready_to_publish
    assert view.quality_score >= 60

    # 5. Finalize
    digest = lifecycle.finalize_session(session_id, current_time=next(clock))
    assert digest["id"]
    assert digests.calls[0]["layoutConfig"]["templateId"] == "modern"
    assert digests.calls[0]["status"] == "draft"

    final = lifecycle.get_session(session_id, current_time=next(clock))
    assert final.current_state == WorkflowState.PUBLISHING
    assert final.publish_readiness == PublishReadiness.COMPLETED
    assert final.digest_id == digest["id"]
    assert not final.is_ready_to_publish

    active = lifecycle.list_active_sessions(current_time=next(clock))
    assert [v.id for v in active] == [session_id]
