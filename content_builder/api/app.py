"""
Content Builder API — FastAPI endpoints.

Thin HTTP wrapper over the session query surface:
- Session create / fetch / list active
- Update, autosave and checked transitions
- Quality assessment and finalize
- Workflow transition table
"""

from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from content_builder.collaborators import DigestCreator, IdentityProvider
from content_builder.config import BuilderSettings
from content_builder.errors import (
    AuthorizationError,
    IllegalTransitionError,
    NotFoundError,
    PersistenceError,
    PreconditionError,
)
from content_builder.lifecycle.operations import SessionLifecycle
from content_builder.logging_setup import configure_logging
from content_builder.models.session import WorkflowState
from content_builder.store.repository import SessionRepository
from content_builder.view.session_view import SessionView
from content_builder.workflow.state_machine import TRANSITIONS


# --- Request Models ---

class SessionCreateRequest(BaseModel):
    fields: dict = {}


class SessionUpdateRequest(BaseModel):
    fields: dict


class TransitionRequest(BaseModel):
    target_state: WorkflowState


def _session_body(view: SessionView) -> dict:
    """Canonical record plus the derived fields a client needs to render."""
    return {
        "session": view.to_record(),
        "derived": view.model_dump(
            mode="json",
            exclude={
                "record",
                "selected_content",
                "content_order",
                "content_blocks",
                "layout_config",
                "styling_applied",
                "auto_save_config",
                "auto_save_data",
                "collaboration_data",
                "preview_settings",
                "test_recipients",
                "validation_results",
                "selection_criteria",
                "template_data",
                "customizations",
                "metadata",
            },
        ),
    }


# --- Application Factory ---

def create_app(
    repository: Optional[SessionRepository] = None,
    identity: Optional[IdentityProvider] = None,
    digest_creator: Optional[DigestCreator] = None,
    settings: Optional[BuilderSettings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Content Builder API",
        description="Collaborative digest builder workflow",
        version="0.1.0",
    )

    lifecycle = SessionLifecycle(
        repository=repository,
        identity=identity,
        digest_creator=digest_creator,
        settings=settings,
    )
    configure_logging(lifecycle.settings)
    app.state.lifecycle = lifecycle

    @app.exception_handler(PreconditionError)
    def precondition_failed(request, exc: PreconditionError):
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(exc),
                "blockers": [b.model_dump(mode="json") for b in exc.blockers],
            },
        )

    @app.exception_handler(IllegalTransitionError)
    def illegal_transition(request, exc: IllegalTransitionError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(exc), "legal_targets": exc.legal_targets},
        )

    @app.exception_handler(AuthorizationError)
    def unauthorized(request, exc: AuthorizationError):
        return JSONResponse(status_code=401, content={"detail": str(exc)})

    @app.exception_handler(NotFoundError)
    def not_found(request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(PersistenceError)
    def persistence_failed(request, exc: PersistenceError):
        content = {"detail": str(exc)}
        if exc.digest_id is not None:
            content["digest_id"] = exc.digest_id
        return JSONResponse(status_code=502, content=content)

    # === SESSIONS ===

    @app.post("/sessions")
    def create_session(req: SessionCreateRequest):
        """Start a builder session for the current user."""
        return _session_body(lifecycle.create_session(req.fields))

    @app.get("/sessions")
    def list_sessions():
        """Active sessions for the current user."""
        return [_session_body(v) for v in lifecycle.list_active_sessions()]

    @app.get("/sessions/{session_id}")
    def get_session(session_id: str):
        view = lifecycle.get_session(session_id)
        if view is None:
            raise HTTPException(404, "Session not found")
        return _session_body(view)

    @app.patch("/sessions/{session_id}")
    def update_session(session_id: str, req: SessionUpdateRequest):
        """Merge fields. Workflow legality is not checked."""
        return _session_body(lifecycle.update_session(session_id, req.fields))

    @app.post("/sessions/{session_id}/autosave")
    def autosave_session(session_id: str, req: SessionUpdateRequest):
        return _session_body(lifecycle.autosave_session(session_id, req.fields))

    @app.post("/sessions/{session_id}/transition")
    def transition_session(session_id: str, req: TransitionRequest):
        """Checked move through the workflow table."""
        return _session_body(lifecycle.transition_session(session_id, req.target_state))

    @app.get("/sessions/{session_id}/quality")
    def get_quality(session_id: str):
        view = lifecycle.get_session(session_id)
        if view is None:
            raise HTTPException(404, "Session not found")
        return view.quality.model_dump(mode="json")

    @app.post("/sessions/{session_id}/finalize")
    def finalize_session(session_id: str):
        """Create a digest from a session that is ready to publish."""
        digest = lifecycle.finalize_session(session_id)
        return {"digest": digest}

    # === WORKFLOW ===

    @app.get("/workflow/transitions")
    def get_transitions():
        """The workflow transition table."""
        return {
            state.value: [t.value for t in targets]
            for state, targets in TRANSITIONS.items()
        }

    return app


# Default application instance
app = create_app()
