"""Restream domain models."""

from collections.abc import Callable

from loguru import logger
from pydantic import BaseModel

from restreamer.schemas import OperationStatus, RestreamDestination
from restreamer.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .status_machine import OperationStateMachine


class ProvisioningOutputs(BaseModel):
    """Identifiers and ingest fields produced by the last run."""

    broadcast_id: str = ""
    livestream_id: str = ""
    rtmp_url: str = ""
    stream_key: str = ""
    module_ready: bool = False


class StatusSnapshot(BaseModel):
    """Read-only view handed to status subscribers and the HTTP surface."""

    status: OperationStatus
    last_error: str
    outputs: ProvisioningOutputs


class PrepareLiveResult(BaseModel):
    """Outcome of one prepare_live run."""

    status: OperationStatus
    error: str | None = None
    stream_name: str | None = None
    restreams: list[RestreamDestination] = []
    outputs: ProvisioningOutputs


StatusListener = Callable[[StatusSnapshot], None]


class ProvisioningStatus:
    """Status of the orchestrator's runs plus change notifications.

    Transitions are checked against OperationStateMachine; listeners are called
    after every change with a snapshot.
    """

    def __init__(self) -> None:
        self.state = OperationStatus.IDLE
        self.last_error = ""
        self.outputs = ProvisioningOutputs()
        self._listeners: list[StatusListener] = []

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def snapshot(self) -> StatusSnapshot:
        return StatusSnapshot(
            status=self.state,
            last_error=self.last_error,
            outputs=self.outputs.model_copy(),
        )

    def transition(self, new: OperationStatus, error: str = "") -> None:
        """Move to new, recording error as the last error.

        Raises:
            AppError: If the transition is not allowed
        """
        if not OperationStateMachine.can_transition(self.state, new):
            allowed = sorted(s.value for s in OperationStateMachine.get_valid_transitions(self.state))
            raise AppError(
                f"Invalid status transition {self.state.value} -> {new.value} "
                f"(allowed: {', '.join(allowed)})",
                errcode=AppErrorCode.E_INVALID_STATE_TRANSITION,
                status_code=HttpStatusCode.CONFLICT,
            )
        self.state = new
        self.last_error = error
        logger.debug(f"Provisioning status changed to: {new.value}")
        self.notify()

    def notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Status listener failed")
