"""Workflow transition results."""

from typing import List, Optional

from pydantic import BaseModel

from content_builder.models.session import WorkflowState


class TransitionCheck(BaseModel):
    """Whether moving between two workflow states is legal."""
    from_state: WorkflowState
    to_state: WorkflowState
    allowed: bool
    legal_targets: List[WorkflowState] = []
    reason: Optional[str] = None            # Machine-readable, set when not allowed
