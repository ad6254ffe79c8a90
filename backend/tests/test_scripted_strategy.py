"""
Tests for the scripted booking receptionist.
"""

import asyncio

import pytest

from frontdesk.dialogue.scripted import (
    CLINIC_GREETING,
    CLOSING_REPLIES,
    EMPTY_INPUT_REPLY,
    GREETING_REPLIES,
    ScriptedStrategy,
)
from frontdesk.dialogue.intents import ClosingIntent, GreetingIntent
from frontdesk.orchestration.transcript import Transcript
from frontdesk.state_machine import ConversationState

BOOKING = ["Jane Doe", "555-1212", "jane@x.com", "Dr. Smith", "2026-01-15", "10 AM"]


def book(strategy: ScriptedStrategy) -> str:
    strategy.respond("I want to book an appointment")
    reply = ""
    for answer in BOOKING:
        reply = strategy.respond(answer)
    return reply


class TestGreetingState:

    def test_greeting_text(self):
        assert ScriptedStrategy().greeting == CLINIC_GREETING

    def test_booking_request_asks_for_name(self):
        strategy = ScriptedStrategy()
        reply = strategy.respond("I want to book an appointment")

        assert strategy.state == ConversationState.ASKING_NAME
        assert "name" in reply.lower()

    @pytest.mark.parametrize("text,intent", [
        ("What are your hours?", GreetingIntent.OFFICE_HOURS),
        ("where are you located", GreetingIntent.LOCATION),
        ("which doctor is available", GreetingIntent.DOCTORS),
        ("hi there", GreetingIntent.HELP),
    ])
    def test_information_requests_stay_in_greeting(self, text, intent):
        strategy = ScriptedStrategy()
        assert strategy.respond(text) == GREETING_REPLIES[intent]
        assert strategy.state == ConversationState.GREETING

    def test_blank_input(self):
        strategy = ScriptedStrategy()
        assert strategy.respond("   ") == EMPTY_INPUT_REPLY
        assert strategy.state == ConversationState.GREETING


class TestBookingWalk:

    def test_full_booking(self):
        strategy = ScriptedStrategy()
        reply = book(strategy)

        assert strategy.state == ConversationState.COMPLETED
        assert "Dr. Smith" in reply
        assert "2026-01-15" in reply
        assert "10 AM" in reply
        assert "jane@x.com" in reply

    def test_prompts_follow_slot_order(self):
        strategy = ScriptedStrategy()
        strategy.respond("book")

        assert "Thank you, Jane Doe" in strategy.respond("Jane Doe")
        assert "email" in strategy.respond("555-1212").lower()
        assert "doctor" in strategy.respond("jane@x.com").lower()
        assert "date" in strategy.respond("Dr. Smith").lower()
        assert "time" in strategy.respond("2026-01-15").lower()
        assert strategy.state == ConversationState.ASKING_TIME

    def test_slots_stored_verbatim(self):
        strategy = ScriptedStrategy()
        strategy.respond("book")
        strategy.respond("  Jane O'Neil ")
        assert strategy.slots.name == "Jane O'Neil"

    def test_answers_are_not_classified(self):
        """Keyword text inside an answer is just the answer."""
        strategy = ScriptedStrategy()
        strategy.respond("book")
        strategy.respond("Jane")
        strategy.respond("555")
        strategy.respond("jane@x.com")
        strategy.respond("No preference, any doctor")
        assert strategy.slots.doctor == "No preference, any doctor"
        assert strategy.state == ConversationState.ASKING_DATE

    def test_deterministic(self):
        inputs = ["hello", "book an appointment", *BOOKING, "yes", "what are your hours"]
        first, second = ScriptedStrategy(), ScriptedStrategy()
        assert [first.respond(t) for t in inputs] == [second.respond(t) for t in inputs]


class TestClosing:

    @pytest.mark.asyncio
    async def test_negative_returns_to_greeting_after_delay(self):
        strategy = ScriptedStrategy(idle_return_delay_ms=30)
        book(strategy)

        reply = strategy.respond("no, that's all")
        assert reply == CLOSING_REPLIES[ClosingIntent.NEGATIVE]
        # Held in COMPLETED until the idle delay elapses
        assert strategy.state == ConversationState.COMPLETED
        assert strategy.idle_return_pending

        await asyncio.sleep(0.1)
        assert strategy.state == ConversationState.GREETING
        assert strategy.slots.is_empty()
        assert not strategy.idle_return_pending

    @pytest.mark.asyncio
    async def test_affirmative_returns_immediately(self):
        strategy = ScriptedStrategy()
        book(strategy)

        assert strategy.respond("yes") == CLOSING_REPLIES[ClosingIntent.AFFIRMATIVE]
        assert strategy.state == ConversationState.GREETING
        assert strategy.slots.is_empty()

    @pytest.mark.asyncio
    async def test_other_returns_immediately(self):
        strategy = ScriptedStrategy()
        book(strategy)

        assert strategy.respond("hmm") == CLOSING_REPLIES[ClosingIntent.OTHER]
        assert strategy.state == ConversationState.GREETING

    @pytest.mark.asyncio
    async def test_new_booking_cancels_pending_idle_return(self):
        strategy = ScriptedStrategy(idle_return_delay_ms=40)
        book(strategy)
        strategy.respond("nothing else")
        assert strategy.idle_return_pending

        strategy.respond("yes")
        strategy.respond("book another appointment")
        assert not strategy.idle_return_pending

        await asyncio.sleep(0.1)
        assert strategy.state == ConversationState.ASKING_NAME

    @pytest.mark.asyncio
    async def test_close_cancels_idle_return(self):
        strategy = ScriptedStrategy(idle_return_delay_ms=20)
        book(strategy)
        strategy.respond("no")

        await strategy.close()
        await asyncio.sleep(0.06)
        assert strategy.state == ConversationState.COMPLETED

    @pytest.mark.asyncio
    async def test_next_turn(self):
        strategy = ScriptedStrategy()
        reply = await strategy.next_turn(Transcript(), "book an appointment")
        assert "name" in reply.text.lower()
