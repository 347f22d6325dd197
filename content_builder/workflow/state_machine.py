"""
Workflow State Machine — legality and readiness of moves between the four
builder states.

  selecting <-> arranging <-> previewing <-> publishing

Forward moves go one step at a time; each state may step back once.
The machine reports; it never executes a transition.
"""

from typing import Dict, List, Optional, Union

from content_builder.errors import IllegalTransitionError
from content_builder.models.session import WorkflowState
from content_builder.models.workflow import TransitionCheck

StateLike = Union[WorkflowState, str]

STATE_ORDER: List[WorkflowState] = [
    WorkflowState.SELECTING,
    WorkflowState.ARRANGING,
    WorkflowState.PREVIEWING,
    WorkflowState.PUBLISHING,
]

TRANSITIONS: Dict[WorkflowState, List[WorkflowState]] = {
    WorkflowState.SELECTING: [WorkflowState.ARRANGING],
    WorkflowState.ARRANGING: [WorkflowState.SELECTING, WorkflowState.PREVIEWING],
    WorkflowState.PREVIEWING: [WorkflowState.ARRANGING, WorkflowState.PUBLISHING],
    WorkflowState.PUBLISHING: [WorkflowState.PREVIEWING],
}


def _coerce(state: StateLike) -> Optional[WorkflowState]:
    try:
        return WorkflowState(state)
    except ValueError:
        return None


class WorkflowStateMachine:
    """Transition table for builder sessions."""

    total_states = len(STATE_ORDER)

    def legal_targets(self, state: StateLike) -> List[WorkflowState]:
        current = _coerce(state)
        if current is None:
            return []
        return list(TRANSITIONS[current])

    def can_transition(self, from_state: StateLike, to_state: StateLike) -> bool:
        target = _coerce(to_state)
        return target is not None and target in self.legal_targets(from_state)

    def check_transition(self, from_state: StateLike, to_state: StateLike) -> TransitionCheck:
        """
        Legality of a move between two known states, returned as data.

        Raises IllegalTransitionError when either state is not a workflow state.
        """
        source = _coerce(from_state)
        target = _coerce(to_state)
        if source is None or target is None:
            raise IllegalTransitionError(
                str(getattr(from_state, "value", from_state)),
                str(getattr(to_state, "value", to_state)),
                [s.value for s in self.legal_targets(source)] if source is not None else [],
            )

        legal = self.legal_targets(source)
        reason = None
        if target == source:
            reason = "self_transition"
        elif target not in legal:
            reason = "skips_states"

        return TransitionCheck(
            from_state=source,
            to_state=target,
            allowed=reason is None,
            legal_targets=legal,
            reason=reason,
        )

    def assert_transition(self, from_state: StateLike, to_state: StateLike) -> None:
        """Raise IllegalTransitionError unless the move is in the table."""
        check = self.check_transition(from_state, to_state)
        if not check.allowed:
            raise IllegalTransitionError(
                check.from_state.value,
                check.to_state.value,
                [s.value for s in check.legal_targets],
            )

    def next_state(self, state: StateLike) -> Optional[WorkflowState]:
        progress = self.state_progress(state)
        if progress == 0 or progress == self.total_states:
            return None
        return STATE_ORDER[progress]

    def previous_state(self, state: StateLike) -> Optional[WorkflowState]:
        progress = self.state_progress(state)
        if progress <= 1:
            return None
        return STATE_ORDER[progress - 2]

    def state_progress(self, state: StateLike) -> int:
        """1-based position in the workflow; 0 for an unknown state."""
        current = _coerce(state)
        if current is None:
            return 0
        return STATE_ORDER.index(current) + 1

    def completion_percent(self, state: StateLike) -> float:
        return self.state_progress(state) / self.total_states * 100

    def can_go_back(self, state: StateLike) -> bool:
        return self.state_progress(state) > 1

    def can_advance(
        self,
        state: StateLike,
        has_content: bool,
        has_valid_layout: bool,
        is_validated: bool,
        is_ready_to_publish: bool,
    ) -> bool:
        """Whether the work required by ``state`` is done."""
        current = _coerce(state)
        if current == WorkflowState.SELECTING:
            return has_content
        if current == WorkflowState.ARRANGING:
            return has_valid_layout
        if current == WorkflowState.PREVIEWING:
            return is_validated
        if current == WorkflowState.PUBLISHING:
            return is_ready_to_publish
        return False
