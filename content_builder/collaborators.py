"""
External collaborators consumed by the lifecycle operations.

Identity and digest creation live outside this package; these protocols
are the narrow seams, and the in-memory implementations back local runs
and tests.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol
from uuid import uuid4


class IdentityProvider(Protocol):
    def get_current_user(self) -> Optional[dict]:
        ...


class DigestCreator(Protocol):
    def create_digest(self, digest_data: dict) -> dict:
        """Create a digest and return it; the result must carry an ``id``."""
        ...


class StaticIdentityProvider:
    """Always reports the same user (or nobody)."""

    def __init__(self, user: Optional[dict] = None):
        self.user = user

    def get_current_user(self) -> Optional[dict]:
        return self.user


class InMemoryDigestCreator:
    """Records every digest it is asked to create."""

    def __init__(self):
        self._digests: Dict[str, dict] = {}
        self.calls: List[dict] = []

    def create_digest(self, digest_data: dict) -> dict:
        self.calls.append(digest_data)
        digest = {
            "id": f"digest_{uuid4().hex[:12]}",
            **digest_data,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        self._digests[digest["id"]] = digest
        return digest

    def get(self, digest_id: str) -> Optional[dict]:
        return self._digests.get(digest_id)
