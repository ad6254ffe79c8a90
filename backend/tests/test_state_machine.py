"""
Unit tests for BookingStateMachine.
Tests the booking chain, invalid transitions, slot handling and hooks.
"""

import pytest
from frontdesk.errors import InvalidTransition, SlotAlreadyFilled
from frontdesk.state_machine import (
    SLOT_FOR_STATE,
    AppointmentSlots,
    BookingStateMachine,
    ConversationState,
)


class TestStateMachineInitialization:
    """Test state machine initialization."""

    def test_default_initialization(self):
        """Test state machine starts in GREETING with empty slots."""
        sm = BookingStateMachine()
        assert sm.current_state == ConversationState.GREETING
        assert sm.previous_state is None
        assert sm.slots.is_empty()
        assert len(sm.state_history) == 1

    def test_custom_initialization(self):
        """Test state machine can start in custom state."""
        sm = BookingStateMachine(initial_state=ConversationState.ASKING_EMAIL)
        assert sm.current_state == ConversationState.ASKING_EMAIL


class TestValidTransitions:
    """Test the allowed transitions."""

    def test_greeting_to_asking_name(self):
        """Test GREETING → ASKING_NAME (booking intent)."""
        sm = BookingStateMachine()
        assert sm.can_transition(ConversationState.ASKING_NAME)
        sm.transition(ConversationState.ASKING_NAME, reason="booking requested")
        assert sm.current_state == ConversationState.ASKING_NAME
        assert sm.previous_state == ConversationState.GREETING

    def test_completed_to_greeting(self):
        """Test COMPLETED → GREETING (booking closed)."""
        sm = BookingStateMachine(ConversationState.COMPLETED)
        sm.transition(ConversationState.GREETING)
        assert sm.current_state == ConversationState.GREETING

    def test_collect_walks_chain(self):
        """Test collect() fills each slot in order and advances."""
        sm = BookingStateMachine()
        sm.transition(ConversationState.ASKING_NAME)

        answers = ["Jane Doe", "555-1212", "jane@x.com", "Dr. Smith", "2026-01-15", "10 AM"]
        for answer in answers:
            sm.collect(answer)

        assert sm.current_state == ConversationState.COMPLETED
        assert sm.slots.name == "Jane Doe"
        assert sm.slots.phone == "555-1212"
        assert sm.slots.email == "jane@x.com"
        assert sm.slots.doctor == "Dr. Smith"
        assert sm.slots.date == "2026-01-15"
        assert sm.slots.time == "10 AM"
        # init + booking start + 6 collected
        assert len(sm.state_history) == 8


class TestInvalidTransitions:
    """Test invalid state transitions are rejected."""

    def test_greeting_to_completed_invalid(self):
        sm = BookingStateMachine()
        assert not sm.can_transition(ConversationState.COMPLETED)
        with pytest.raises(InvalidTransition):
            sm.transition(ConversationState.COMPLETED)
        assert sm.current_state == ConversationState.GREETING

    def test_skipping_a_slot_invalid(self):
        sm = BookingStateMachine(ConversationState.ASKING_NAME)
        with pytest.raises(InvalidTransition):
            sm.transition(ConversationState.ASKING_EMAIL)
        assert sm.current_state == ConversationState.ASKING_NAME

    def test_asking_state_to_greeting_invalid(self):
        sm = BookingStateMachine(ConversationState.ASKING_DATE)
        with pytest.raises(InvalidTransition):
            sm.transition(ConversationState.GREETING)

    def test_collect_outside_asking_state(self):
        sm = BookingStateMachine()
        with pytest.raises(InvalidTransition):
            sm.collect("hello")
        assert sm.slots.is_empty()


class TestSlots:
    """Test appointment slot handling."""

    def test_slot_written_once(self):
        slots = AppointmentSlots()
        slots.fill("name", "Jane")
        with pytest.raises(SlotAlreadyFilled):
            slots.fill("name", "John")
        assert slots.name == "Jane"

    def test_clear(self):
        slots = AppointmentSlots(name="Jane", phone="1")
        assert not slots.is_empty()
        slots.clear()
        assert slots.is_empty()

    def test_slot_order(self):
        assert list(SLOT_FOR_STATE.values()) == ["name", "phone", "email", "doctor", "date", "time"]

    def test_returning_to_greeting_clears_slots(self):
        sm = BookingStateMachine()
        sm.transition(ConversationState.ASKING_NAME)
        for answer in ["Jane", "1", "j@x.com", "Dr. Brown", "Monday", "noon"]:
            sm.collect(answer)

        sm.transition(ConversationState.GREETING)
        assert sm.slots.is_empty()


class TestStateHooks:
    """Test exit hooks."""

    def test_exit_hook_runs_before_entering(self):
        sm = BookingStateMachine()
        calls = []

        sm.register_on_exit(ConversationState.GREETING, lambda: calls.append(sm.current_state))
        sm.transition(ConversationState.ASKING_NAME)

        assert calls == [ConversationState.GREETING]

    def test_exit_hook_only_for_its_state(self):
        sm = BookingStateMachine()
        calls = []
        sm.register_on_exit(ConversationState.COMPLETED, lambda: calls.append("left completed"))

        sm.transition(ConversationState.ASKING_NAME)
        assert calls == []

    def test_failing_hook_does_not_block_transition(self):
        sm = BookingStateMachine()

        def broken():
            raise RuntimeError("hook failed")

        sm.register_on_exit(ConversationState.GREETING, broken)
        sm.transition(ConversationState.ASKING_NAME)
        assert sm.current_state == ConversationState.ASKING_NAME
