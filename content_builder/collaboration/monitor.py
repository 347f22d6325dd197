"""
Collaboration Monitor — derives presence, locks, and conflicts from
collaborator records.

Detection only. Two collaborators claiming the same section is reported,
never resolved; resolution belongs to the caller.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from content_builder.models.session import CollaboratorPresence, utcnow


class CollaborationMonitor:
    """Read-side view over one snapshot of collaborator presence records."""

    def __init__(
        self,
        collaborators: Sequence[CollaboratorPresence],
        active_window_minutes: int = 5,
    ):
        self._collaborators = list(collaborators)
        self.active_window = timedelta(minutes=active_window_minutes)

    @property
    def collaborators(self) -> List[CollaboratorPresence]:
        return list(self._collaborators)

    def active_collaborators(
        self, current_time: Optional[datetime] = None
    ) -> List[CollaboratorPresence]:
        """Collaborators whose last activity falls inside the presence window."""
        if current_time is None:
            current_time = utcnow()
        cutoff = current_time - self.active_window
        return [
            c for c in self._collaborators
            if c.last_activity is not None and c.last_activity > cutoff
        ]

    @property
    def locked_sections(self) -> List[str]:
        """Every lock held by any collaborator, in record order."""
        return [lock for c in self._collaborators for lock in c.locks]

    def conflicting_section(self) -> Optional[str]:
        """
        First section claimed by two or more collaborator records.

        Single pass: each claimed section goes into a set and the first
        repeat is returned.
        """
        seen = set()
        for collaborator in self._collaborators:
            section = collaborator.current_section
            if not section:
                continue
            if section in seen:
                return section
            seen.add(section)
        return None

    @property
    def has_conflicts(self) -> bool:
        return self.conflicting_section() is not None

    def get_collaborator(self, user_id: str) -> Optional[CollaboratorPresence]:
        return next((c for c in self._collaborators if c.user_id == user_id), None)

    def is_section_locked(self, section: str) -> bool:
        return section in self.locked_sections

    def can_edit_section(self, section: str, user_id: str) -> bool:
        """True when the section is unlocked or one of ``user_id``'s records holds the lock."""
        if not self.is_section_locked(section):
            return True
        return any(
            section in c.locks
            for c in self._collaborators
            if c.user_id == user_id
        )
