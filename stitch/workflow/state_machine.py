"""Stitch status values and transition checks.

Thin wrapper around the FSM in fsm.py. All transition rules live in fsm.py -
this module provides:
- StitchStatus enum for type safety
- transition() which validates a status change and returns the new status
- Convenience functions for status queries

Usage:
    from stitch.workflow.state_machine import transition, StitchStatus

    new_status = transition("open", StitchStatus.CLOSED, stitch_id=doc.id)
"""

import logging
from enum import Enum

from transitions import MachineError

from stitch.lib.errors import StitchError
from stitch.workflow.fsm import STATES, TRIGGER_FOR, StitchFSM

logger = logging.getLogger(__name__)


class StitchStatus(Enum):
    """All valid stitch statuses.

    Values match FSM state strings.
    """

    OPEN = "open"

    # Terminal
    CLOSED = "closed"
    SUPERSEDED = "superseded"
    ABANDONED = "abandoned"


TERMINAL_STATUSES = frozenset({
    StitchStatus.CLOSED.value,
    StitchStatus.SUPERSEDED.value,
    StitchStatus.ABANDONED.value,
})


class InvalidTransition(StitchError):
    """Raised when attempting an invalid status transition."""

    def __init__(self, from_status: str, to_status: str, stitch_id: str = ""):
        self.from_status = from_status
        self.to_status = to_status
        self.stitch_id = stitch_id
        super().__init__(
            f"Invalid transition: {from_status} -> {to_status}"
            + (f" (stitch: {stitch_id})" if stitch_id else "")
        )


def parse_status(status_str: str | None) -> StitchStatus | None:
    """Parse a status string into StitchStatus enum.

    Returns None if status is unknown.
    """
    if status_str is None:
        return None
    for status in StitchStatus:
        if status.value == status_str:
            return status
    return None


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def _value(status: StitchStatus | str) -> str:
    return status.value if isinstance(status, StitchStatus) else status


def can_transition(from_status: str, to_status: StitchStatus | str) -> bool:
    """Check if moving from from_status to to_status is allowed.

    Self-transitions are always allowed (re-finishing is a no-op for status).
    """
    to_value = _value(to_status)
    if from_status not in STATES or to_value not in STATES:
        return False
    if from_status == to_value:
        return True
    return (from_status, to_value) in TRIGGER_FOR


def transition(from_status: str, to_status: StitchStatus | str, stitch_id: str = "") -> str:
    """Validate a status change and return the resulting status.

    Raises:
        InvalidTransition: If the transition is not in the lifecycle table
    """
    to_value = _value(to_status)

    if from_status == to_value and from_status in STATES:
        logger.debug(f"[STATE] {stitch_id}: already {to_value}, no-op")
        return to_value

    trigger = TRIGGER_FOR.get((from_status, to_value))
    if trigger is None:
        raise InvalidTransition(from_status, to_value, stitch_id)

    fsm = StitchFSM(from_status, stitch_id=stitch_id)
    try:
        getattr(fsm, trigger)()
    except MachineError as e:
        raise InvalidTransition(from_status, to_value, stitch_id) from e

    return fsm.state
