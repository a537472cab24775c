"""Stitch lifecycle state machine using transitions library.

Usage:
    from stitch.workflow.fsm import StitchFSM

    fsm = StitchFSM("open", stitch_id="S-20250101-ab12")
    fsm.close()       # open -> closed
    fsm.supersede()   # closed -> superseded

The FSM only tracks state in memory. Writing the new status to the stitch
file is the caller's job, so a cascade can stage every change before
touching disk.
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)


# State values match the status strings stored in stitch frontmatter
STATES = [
    "open",
    "closed",
    "superseded",
    "abandoned",
]

# open is the only non-terminal state. Terminal states may move to any other
# terminal state to correct a mistake; nothing moves back to open.
TRANSITIONS = [
    # Work done
    {"trigger": "close", "source": "open", "dest": "closed"},
    {"trigger": "close", "source": "superseded", "dest": "closed"},
    {"trigger": "close", "source": "abandoned", "dest": "closed"},

    # Replaced by another stitch
    {"trigger": "supersede", "source": "open", "dest": "superseded"},
    {"trigger": "supersede", "source": "closed", "dest": "superseded"},
    {"trigger": "supersede", "source": "abandoned", "dest": "superseded"},

    # Dropped
    {"trigger": "abandon", "source": "open", "dest": "abandoned"},
    {"trigger": "abandon", "source": "closed", "dest": "abandoned"},
    {"trigger": "abandon", "source": "superseded", "dest": "abandoned"},
]


def _build_trigger_lookup() -> dict[tuple[str, str], str]:
    """Build lookup from (source, dest) -> trigger name."""
    lookup: dict[tuple[str, str], str] = {}
    for t in TRANSITIONS:
        key = (t["source"], t["dest"])
        if key not in lookup:  # First trigger wins for a given source->dest
            lookup[key] = t["trigger"]
    return lookup


TRIGGER_FOR = _build_trigger_lookup()


class StitchFSM:
    """State machine for one stitch's status.

    Wraps the transitions library with stitch-specific logic:
    - Starts from the status read from the stitch file
    - Logs all transitions
    - Optionally reports each transition to a callback
    """

    def __init__(
        self,
        status: str,
        stitch_id: str = "",
        on_transition: Callable[[str, str, str], None] | None = None,
    ):
        """Initialize FSM for a stitch.

        Args:
            status: Current status of the stitch
            stitch_id: Stitch ID for log messages
            on_transition: Optional callback(from_state, to_state, trigger) called after transitions

        Raises:
            ValueError: If status is not a known state
        """
        if status not in STATES:
            raise ValueError(f"Unknown stitch status '{status}'")

        self.stitch_id = stitch_id
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=status,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        """Callback after any state transition."""
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.debug(f"[FSM] {self.stitch_id}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)

    def get_available_triggers(self) -> list[str]:
        """Get list of triggers available in current state."""
        return self.machine.get_triggers(self.state)
