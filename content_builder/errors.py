"""Content Builder exceptions."""

from typing import List, Optional

from content_builder.models.quality import ReadinessBlocker


class ContentBuilderError(Exception):
    """Base exception for all content builder errors."""
    pass


class AuthorizationError(ContentBuilderError):
    """Raised when an operation requires an authenticated user and there is none."""
    pass


class NotFoundError(ContentBuilderError):
    """Raised when a builder session cannot be resolved."""

    def __init__(self, session_id: str):
        super().__init__(f"Builder session {session_id} not found")
        self.session_id = session_id


class PreconditionError(ContentBuilderError):
    """
    Raised when finalize is called on a session that is not ready to publish.

    ``blockers`` names every failed precondition and the workflow state the
    user should be routed back to.
    """

    def __init__(self, session_id: str, blockers: List[ReadinessBlocker]):
        codes = ", ".join(b.code for b in blockers) or "unknown"
        super().__init__(f"Builder session {session_id} is not ready to publish: {codes}")
        self.session_id = session_id
        self.blockers = blockers

    @property
    def codes(self) -> List[str]:
        return [b.code for b in self.blockers]


class PersistenceError(ContentBuilderError):
    """
    Raised when the record store rejects a write.

    ``digest_id`` is set when a digest was created but could not be linked
    to its session.
    """

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        digest_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.session_id = session_id
        self.digest_id = digest_id


class IllegalTransitionError(ContentBuilderError):
    """Raised by checked transitions when the workflow table forbids the move."""

    def __init__(self, from_state: str, to_state: str, legal_targets: List[str]):
        super().__init__(
            f"Cannot move from '{from_state}' to '{to_state}'. "
            f"Legal targets: {legal_targets}"
        )
        self.from_state = from_state
        self.to_state = to_state
        self.legal_targets = legal_targets
