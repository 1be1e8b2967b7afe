"""Provisioning run status values."""

from enum import Enum


class OperationStatus(str, Enum):
    """Status of the current provisioning run.

    State Transition Flow:

    IDLE → IN_PROGRESS → OK
                      ↘ FAIL
    OK / FAIL → IDLE (reset)

    - IDLE: Nothing running, no result to show.
    - IN_PROGRESS: prepare_live() is sequencing provider calls.
    - OK: Every enabled destination and the api.video stream were provisioned.
    - FAIL: The run stopped at the first failure; last_error holds the message.
    """

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    OK = "ok"
    FAIL = "fail"

    def __str__(self) -> str:
        return self.value


__all__ = ["OperationStatus"]
