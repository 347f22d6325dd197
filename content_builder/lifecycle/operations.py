"""
Session Lifecycle — create, mutate, autosave and finalize builder sessions.

Behavioral Contract:
- Every write goes through the Normalizer before reaching the repository
- Every read returns a freshly built SessionView
- update/autosave are permissive: they never check workflow legality.
  Callers consult WorkflowStateMachine first, or use transition_session
  for a checked move.
- Failures abort the whole operation; nothing is written on failure
- finalize hands the session's blocks and layout to the digest collaborator
  only after the Quality Gate reports the session ready to publish
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

import structlog
from pydantic_core import to_jsonable_python

from content_builder.collaborators import (
    DigestCreator,
    IdentityProvider,
    InMemoryDigestCreator,
    StaticIdentityProvider,
)
from content_builder.config import BuilderSettings, get_settings
from content_builder.errors import (
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    PreconditionError,
)
from content_builder.models.session import (
    BuilderSession,
    PublishReadiness,
    WorkflowState,
    utcnow,
)
from content_builder.normalizer.normalize import canonical_fields, normalize_session
from content_builder.quality.gate import QualityGate
from content_builder.store.repository import SessionRepository
from content_builder.view.session_view import SessionView, build_session_view
from content_builder.workflow.state_machine import StateLike, WorkflowStateMachine

logger = structlog.get_logger()

DEFAULT_DIGEST_TITLE = "Untitled Digest"


def _aware(current_time: Optional[datetime]) -> datetime:
    if current_time is None:
        return utcnow()
    if current_time.tzinfo is None:
        return current_time.replace(tzinfo=timezone.utc)
    return current_time


class SessionLifecycle:
    """
    The session query surface: the operations a UI or API layer calls.
    """

    def __init__(
        self,
        repository: Optional[SessionRepository] = None,
        identity: Optional[IdentityProvider] = None,
        digest_creator: Optional[DigestCreator] = None,
        settings: Optional[BuilderSettings] = None,
        gate: Optional[QualityGate] = None,
        machine: Optional[WorkflowStateMachine] = None,
    ):
        self.settings = settings or get_settings()
        self.repository = repository or SessionRepository()
        self.identity = identity or StaticIdentityProvider()
        self.digest_creator = digest_creator or InMemoryDigestCreator()
        self.gate = gate or QualityGate(self.settings.min_content_for_quality)
        self.machine = machine or WorkflowStateMachine()
        # Digests created for sessions whose link write failed, keyed by session id
        self._unlinked_digests: Dict[str, dict] = {}

    # --- Reads ---

    def _view(
        self, session: Optional[BuilderSession], current_time: Optional[datetime] = None
    ) -> SessionView:
        return build_session_view(
            session,
            current_time=current_time,
            settings=self.settings,
            gate=self.gate,
            machine=self.machine,
        )

    def _load(self, session_id: str) -> BuilderSession:
        session = normalize_session(self.repository.find_by_id(session_id))
        if session is None:
            raise NotFoundError(session_id)
        return session

    def _require_user(self, operation: str) -> dict:
        user = self.identity.get_current_user()
        if not user or not user.get("id"):
            logger.warning("Builder operation requires a user", operation=operation)
            raise AuthorizationError(
                f"User must be authenticated to {operation} a builder session"
            )
        return user

    def get_session(
        self, session_id: str, current_time: Optional[datetime] = None
    ) -> Optional[SessionView]:
        """Fetch a session view, or None when the id cannot be resolved."""
        session = normalize_session(self.repository.find_by_id(session_id))
        if session is None:
            return None
        return self._view(session, current_time)

    def list_active_sessions(
        self, current_time: Optional[datetime] = None
    ) -> List[SessionView]:
        """
        The current user's sessions updated within the inactivity window,
        newest first. Empty when nobody is signed in.
        """
        user = self.identity.get_current_user()
        if not user or not user.get("id"):
            return []

        now = _aware(current_time)
        cutoff = now - timedelta(hours=self.settings.active_session_hours)

        sessions = []
        for record in self.repository.find_by_user(user["id"]):
            session = normalize_session(record)
            if session is not None and session.updated_at >= cutoff:
                sessions.append(session)

        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return [self._view(s, now) for s in sessions]

    # --- Writes ---

    def create_session(
        self,
        initial: Optional[Mapping[str, Any]] = None,
        current_time: Optional[datetime] = None,
    ) -> SessionView:
        """Start a new session in 'selecting' with no content."""
        user = self._require_user("create")
        now = _aware(current_time)

        record = {
            **canonical_fields(initial or {}),
            "id": str(uuid4()),
            "sessionId": str(uuid4()),
            "userId": str(user["id"]),
            "currentState": WorkflowState.SELECTING.value,
            "selectedContent": [],
            "contentOrder": [],
            "createdAt": now.isoformat(),
            "updatedAt": now.isoformat(),
        }
        session = normalize_session(record)
        self.repository.create(session.to_record())

        logger.info(
            "Builder session created",
            session_id=session.id,
            user_id=session.user_id,
        )
        return self._view(session, now)

    def update_session(
        self,
        session_id: str,
        fields: Mapping[str, Any],
        current_time: Optional[datetime] = None,
    ) -> SessionView:
        """
        Merge ``fields`` into the session and return a fresh view.

        Permissive: workflow legality is NOT checked here, so collaborators
        are never blocked mid-edit. Merges are top-level; last write per
        field wins at the store.
        """
        now = _aware(current_time)
        current = self._load(session_id)

        changes = canonical_fields(fields)
        # Identity is fixed at creation
        for key in ("id", "sessionId", "createdAt"):
            changes.pop(key, None)
        changes["updatedAt"] = now.isoformat()

        merged = normalize_session({**current.to_record(), **changes})

        # last_saved_at never moves backward
        if current.last_saved_at is not None and (
            merged.last_saved_at is None or merged.last_saved_at < current.last_saved_at
        ):
            merged = merged.model_copy(update={"last_saved_at": current.last_saved_at})

        merged_record = merged.to_record()
        written = {key: merged_record[key] for key in changes if key in merged_record}
        self.repository.update(session_id, written)

        logger.info(
            "Builder session updated",
            session_id=session_id,
            fields=sorted(written),
        )

        # A store with eventual consistency may not serve the write back yet
        reread = normalize_session(self.repository.find_by_id(session_id))
        return self._view(reread or merged, now)

    def autosave_session(
        self,
        session_id: str,
        changes: Mapping[str, Any],
        current_time: Optional[datetime] = None,
    ) -> SessionView:
        """
        Update plus save bookkeeping: stamps ``lastSavedAt`` and records the
        delta in ``autoSaveData`` with a version history capped at
        ``autoSaveConfig.maxVersions``.
        """
        now = _aware(current_time)
        current = self._load(session_id)

        saved_at = now
        if current.last_saved_at is not None and current.last_saved_at > now:
            saved_at = current.last_saved_at

        delta = to_jsonable_python(dict(changes))
        entry = {"timestamp": now.isoformat(), "changes": delta}
        history = current.auto_save_data.get("versions")
        versions = (list(history) if isinstance(history, list) else []) + [entry]
        max_versions = current.auto_save_config.max_versions
        versions = versions[-max_versions:] if max_versions > 0 else []

        payload: Dict[str, Any] = {
            **canonical_fields(changes),
            "lastSavedAt": saved_at.isoformat(),
            "autoSaveData": {**entry, "versions": versions},
        }
        view = self.update_session(session_id, payload, current_time=now)

        logger.debug(
            "Builder session auto-saved",
            session_id=session_id,
            versions=len(versions),
        )
        return view

    def transition_session(
        self,
        session_id: str,
        target_state: StateLike,
        current_time: Optional[datetime] = None,
    ) -> SessionView:
        """Checked state move: raises IllegalTransitionError for moves outside the table."""
        current = self._load(session_id)
        self.machine.assert_transition(current.current_state, target_state)
        return self.update_session(
            session_id,
            {"currentState": WorkflowState(target_state).value},
            current_time=current_time,
        )

    def finalize_session(
        self, session_id: str, current_time: Optional[datetime] = None
    ) -> dict:
        """
        Produce a digest from a ready session.

        Raises PreconditionError, listing each failed check, when the session
        is not ready to publish. The digest collaborator is not called in
        that case and the session is left untouched.

        When the digest is created but linking it to the session fails, the
        PersistenceError carries ``digest_id``; a retry links that digest
        instead of creating another.
        """
        user = self._require_user("finalize")
        now = _aware(current_time)
        session = self._load(session_id)
        view = self._view(session, now)

        if not view.is_ready_to_publish:
            blockers = view.quality.blockers
            logger.warning(
                "Builder session not ready to publish",
                session_id=session_id,
                blockers=[b.code for b in blockers],
            )
            raise PreconditionError(session_id, blockers)

        digest_data = {
            "title": session.template_data.get("title") or DEFAULT_DIGEST_TITLE,
            "contentBlocks": [b.model_dump(mode="json", by_alias=True) for b in session.content_blocks],
            "layoutConfig": session.layout_config.model_dump(mode="json", by_alias=True),
            "stylingOptions": session.styling_applied,
            "status": "draft",
        }
        digest = self._unlinked_digests.get(session_id)
        if digest is None:
            digest = self.digest_creator.create_digest(digest_data)
        else:
            logger.info(
                "Linking previously created digest",
                session_id=session_id,
                digest_id=digest["id"],
            )

        try:
            self.update_session(
                session_id,
                {
                    "currentState": WorkflowState.PUBLISHING.value,
                    "publishReadiness": PublishReadiness.COMPLETED.value,
                    "digestId": digest["id"],
                },
                current_time=now,
            )
        except PersistenceError as e:
            self._unlinked_digests[session_id] = digest
            logger.error(
                "Digest created but not linked to builder session",
                session_id=session_id,
                digest_id=digest["id"],
                error=str(e),
            )
            raise PersistenceError(
                f"Digest {digest['id']} was created but builder session {session_id} "
                f"could not be updated: {e}",
                session_id=session_id,
                digest_id=digest["id"],
            ) from e
        self._unlinked_digests.pop(session_id, None)

        logger.info(
            "Builder session finalized",
            session_id=session_id,
            digest_id=digest["id"],
            user_id=user["id"],
        )
        return digest
