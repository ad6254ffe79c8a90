"""
State Machine for the scripted appointment booking dialogue.
Implements deterministic state transitions with validation and exit hooks.

States: GREETING → ASKING_NAME → ASKING_PHONE → ASKING_EMAIL → ASKING_DOCTOR
        → ASKING_DATE → ASKING_TIME → COMPLETED → GREETING
"""

import logging
import time
from enum import Enum
from typing import Callable, Dict, Optional, Set

from pydantic import BaseModel

from frontdesk.errors import InvalidTransition, SlotAlreadyFilled

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """
    Booking dialogue states.

    GREETING: Idle front desk, classifying what the visitor wants
    ASKING_*: Collecting one appointment field per turn
    COMPLETED: Booking confirmed, waiting for a closing remark
    """
    GREETING = "GREETING"
    ASKING_NAME = "ASKING_NAME"
    ASKING_PHONE = "ASKING_PHONE"
    ASKING_EMAIL = "ASKING_EMAIL"
    ASKING_DOCTOR = "ASKING_DOCTOR"
    ASKING_DATE = "ASKING_DATE"
    ASKING_TIME = "ASKING_TIME"
    COMPLETED = "COMPLETED"


# Field collected while in each asking state, in booking order
SLOT_FOR_STATE: Dict[ConversationState, str] = {
    ConversationState.ASKING_NAME: "name",
    ConversationState.ASKING_PHONE: "phone",
    ConversationState.ASKING_EMAIL: "email",
    ConversationState.ASKING_DOCTOR: "doctor",
    ConversationState.ASKING_DATE: "date",
    ConversationState.ASKING_TIME: "time",
}


class AppointmentSlots(BaseModel):
    """Appointment details gathered during one booking session."""
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    doctor: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None

    def fill(self, field: str, value: str) -> None:
        """
        Write a slot once.

        Raises:
            SlotAlreadyFilled: field was set earlier in this booking
        """
        if getattr(self, field) is not None:
            raise SlotAlreadyFilled(f"Slot '{field}' is already filled")
        setattr(self, field, value)

    def clear(self) -> None:
        for field in SLOT_FOR_STATE.values():
            setattr(self, field, None)

    def is_empty(self) -> bool:
        return all(getattr(self, field) is None for field in SLOT_FOR_STATE.values())


class BookingStateMachine:
    """
    Deterministic state machine for the booking script.

    Enforces valid state transitions, owns the appointment slots and
    runs exit hooks on state changes. Returning to GREETING always clears
    the slots.
    """

    # Define all valid state transitions
    ALLOWED_TRANSITIONS: Dict[ConversationState, Set[ConversationState]] = {
        ConversationState.GREETING: {
            ConversationState.ASKING_NAME,  # Booking intent
        },
        ConversationState.ASKING_NAME: {ConversationState.ASKING_PHONE},
        ConversationState.ASKING_PHONE: {ConversationState.ASKING_EMAIL},
        ConversationState.ASKING_EMAIL: {ConversationState.ASKING_DOCTOR},
        ConversationState.ASKING_DOCTOR: {ConversationState.ASKING_DATE},
        ConversationState.ASKING_DATE: {ConversationState.ASKING_TIME},
        ConversationState.ASKING_TIME: {ConversationState.COMPLETED},
        ConversationState.COMPLETED: {
            ConversationState.GREETING,  # Closing, or visitor wants something else
        },
    }

    def __init__(self, initial_state: ConversationState = ConversationState.GREETING):
        """
        Initialize state machine.

        Args:
            initial_state: Starting state (default: GREETING)
        """
        self._current_state: ConversationState = initial_state
        self._previous_state: Optional[ConversationState] = None
        self._state_history: list[dict] = []
        self.slots = AppointmentSlots()

        # Hooks run when leaving a state
        self._on_exit_hooks: Dict[ConversationState, list[Callable[[], None]]] = {
            state: [] for state in ConversationState
        }

        logger.info(f"Booking state machine initialized in state: {initial_state.value}")
        self._record_state_change(None, initial_state, "initialization")

    @property
    def current_state(self) -> ConversationState:
        """Get current state."""
        return self._current_state

    @property
    def previous_state(self) -> Optional[ConversationState]:
        """Get previous state."""
        return self._previous_state

    @property
    def state_history(self) -> list[dict]:
        """Get state history for debugging/telemetry."""
        return self._state_history.copy()

    def can_transition(self, to_state: ConversationState) -> bool:
        """
        Check if transition to target state is allowed.

        Args:
            to_state: Target state

        Returns:
            True if transition is allowed, False otherwise
        """
        return to_state in self.ALLOWED_TRANSITIONS.get(self._current_state, set())

    def transition(self, to_state: ConversationState, reason: str = "") -> None:
        """
        Transition to new state with validation and hooks.

        Args:
            to_state: Target state
            reason: Optional reason for transition (for logging)

        Raises:
            InvalidTransition: If transition is not allowed
        """
        if not self.can_transition(to_state):
            raise InvalidTransition(
                f"Invalid state transition: {self._current_state.value} → {to_state.value}. "
                f"Allowed transitions: {sorted(s.value for s in self.get_allowed_transitions())}"
            )
        self._move(to_state, reason)

    def collect(self, value: str) -> ConversationState:
        """
        Store the answer for the current asking state and move to the next one.

        Args:
            value: Visitor's answer, stored verbatim

        Returns:
            The new state

        Raises:
            InvalidTransition: If the current state does not collect a slot
        """
        field = SLOT_FOR_STATE.get(self._current_state)
        if field is None:
            raise InvalidTransition(f"State {self._current_state.value} does not collect a slot")

        (next_state,) = self.ALLOWED_TRANSITIONS[self._current_state]
        self.slots.fill(field, value)
        self._move(next_state, f"{field} collected")
        return next_state

    def register_on_exit(self, state: ConversationState, callback: Callable[[], None]) -> None:
        """
        Register callback to execute when exiting a state.

        Args:
            state: State to hook into
            callback: Callback function
        """
        self._on_exit_hooks[state].append(callback)
        logger.debug(f"Registered on_exit hook for state: {state.value}")

    def _move(self, to_state: ConversationState, reason: str) -> None:
        from_state = self._current_state

        self._run_hooks(self._on_exit_hooks[from_state], f"on_exit for {from_state.value}")

        self._previous_state = from_state
        self._current_state = to_state
        if to_state == ConversationState.GREETING:
            self.slots.clear()

        self._record_state_change(from_state, to_state, reason)

        log_msg = f"Booking state: {from_state.value} → {to_state.value}"
        if reason:
            log_msg += f" (reason: {reason})"
        logger.info(log_msg)

    def _run_hooks(self, callbacks: list[Callable[[], None]], label: str) -> None:
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in {label} hook: {e}", exc_info=True)

    def _record_state_change(
        self,
        from_state: Optional[ConversationState],
        to_state: ConversationState,
        reason: str
    ) -> None:
        """Record state change in history."""
        self._state_history.append({
            "from_state": from_state.value if from_state else None,
            "to_state": to_state.value,
            "reason": reason,
            "timestamp": int(time.time() * 1000),  # Unix timestamp in milliseconds
        })

    def get_allowed_transitions(self) -> Set[ConversationState]:
        """Get all allowed transitions from current state."""
        return self.ALLOWED_TRANSITIONS.get(self._current_state, set()).copy()

    def __repr__(self) -> str:
        return (
            f"BookingStateMachine(current={self._current_state.value}, "
            f"previous={self._previous_state.value if self._previous_state else None})"
        )
