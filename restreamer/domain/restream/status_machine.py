"""Operation status state machine for provisioning runs."""

from restreamer.schemas import OperationStatus


class OperationStateMachine:
    """State machine for provisioning run status.

    State flow with triggers:
    - IDLE -> IN_PROGRESS (prepare_live() called)
    - IN_PROGRESS -> OK (api.video stream provisioned) | FAIL (first error)
    - OK / FAIL -> IDLE (reset(), explicit or at the start of the next run)
    """

    TRANSITIONS: dict[OperationStatus, set[OperationStatus]] = {
        OperationStatus.IDLE: {OperationStatus.IN_PROGRESS},
        OperationStatus.IN_PROGRESS: {OperationStatus.OK, OperationStatus.FAIL},
        OperationStatus.OK: {OperationStatus.IDLE},
        OperationStatus.FAIL: {OperationStatus.IDLE},
    }

    TERMINAL_STATES: set[OperationStatus] = {OperationStatus.OK, OperationStatus.FAIL}

    @classmethod
    def can_transition(cls, current: OperationStatus, new: OperationStatus) -> bool:
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: OperationStatus) -> bool:
        """Terminal for a run; only a reset leaves these states."""
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_transitions(cls, state: OperationStatus) -> set[OperationStatus]:
        return cls.TRANSITIONS.get(state, set())
