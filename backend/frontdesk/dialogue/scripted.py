"""
Scripted slot-filling receptionist.

Runs entirely locally: classifies the visitor's request with keyword rules,
walks the booking chain one field per turn, and after a closed booking waits
idle_return_delay_ms before returning to the greeting state so a trailing
remark still lands in the closing turn.
"""

import logging

from frontdesk.dialogue.base import AssistantReply, DialogueStrategy
from frontdesk.dialogue.intents import (
    ClosingIntent,
    GreetingIntent,
    classify_closing,
    classify_greeting,
)
from frontdesk.errors import InvalidTransition
from frontdesk.orchestration.delay_timer import DelayTimer
from frontdesk.orchestration.transcript import Transcript
from frontdesk.state_machine import (
    SLOT_FOR_STATE,
    AppointmentSlots,
    BookingStateMachine,
    ConversationState,
)

logger = logging.getLogger(__name__)

CLINIC_GREETING = (
    "Hello! Welcome to HealthCare Clinic. I'm Sarah, your virtual receptionist. "
    "How may I help you today?"
)

GREETING_REPLIES = {
    GreetingIntent.BOOK_APPOINTMENT: (
        "Great! I'd be happy to help you book an appointment. "
        "May I have your full name, please?"
    ),
    GreetingIntent.OFFICE_HOURS: (
        "We're open Monday to Friday, 9 AM to 5 PM, and Saturday 9 AM to 1 PM. "
        "Would you like to book an appointment?"
    ),
    GreetingIntent.LOCATION: (
        "We're located at 123 Medical Plaza, Downtown. "
        "Would you like to book an appointment?"
    ),
    GreetingIntent.DOCTORS: (
        "We have Dr. Smith (General Physician), Dr. Johnson (Cardiologist), "
        "Dr. Williams (Pediatrician), and Dr. Brown (Dermatologist). "
        "Would you like to book an appointment with any of them?"
    ),
    GreetingIntent.HELP: (
        "I can help you book an appointment, provide information about our doctors, "
        "office hours, or location. What would you like to know?"
    ),
}

CLOSING_REPLIES = {
    ClosingIntent.NEGATIVE: "Great! Have a wonderful day and we'll see you at your appointment!",
    ClosingIntent.AFFIRMATIVE: "Of course! What else can I help you with?",
    ClosingIntent.OTHER: "I'm here to help! What do you need?",
}

EMPTY_INPUT_REPLY = "I'm sorry, I didn't catch that. Could you say it again?"


def slot_prompt(state: ConversationState, slots: AppointmentSlots) -> str:
    """Prompt spoken on entering state, given what has been collected."""
    if state == ConversationState.ASKING_PHONE:
        return f"Thank you, {slots.name}. What's the best phone number to reach you?"
    if state == ConversationState.ASKING_EMAIL:
        return "Perfect! And your email address?"
    if state == ConversationState.ASKING_DOCTOR:
        return (
            "Great! Which doctor would you like to see? "
            "We have Dr. Smith, Dr. Johnson, Dr. Williams, or Dr. Brown."
        )
    if state == ConversationState.ASKING_DATE:
        return (
            "Excellent choice! What date works best for you? Please say or type the date "
            "in format like 'January 15th' or '2026-01-15'."
        )
    if state == ConversationState.ASKING_TIME:
        return "Perfect! What time would you prefer? Morning, afternoon, or a specific time like 10 AM?"
    if state == ConversationState.COMPLETED:
        return (
            f"Wonderful! I've booked your appointment with {slots.doctor} on {slots.date} "
            f"at {slots.time}. You'll receive a confirmation email at {slots.email}. "
            "Is there anything else I can help you with?"
        )
    raise InvalidTransition(f"No prompt for state {state.value}")


class ScriptedStrategy(DialogueStrategy):
    """Deterministic booking receptionist backed by BookingStateMachine."""

    name = "scripted"
    is_remote = False

    def __init__(self, idle_return_delay_ms: int = 3000):
        self.fsm = BookingStateMachine()
        self._idle_timer = DelayTimer(
            self._return_to_idle,
            idle_return_delay_ms,
            name="idle return",
        )
        # Any move out of COMPLETED supersedes a pending idle return
        self.fsm.register_on_exit(ConversationState.COMPLETED, self._idle_timer.cancel)

    @property
    def greeting(self) -> str:
        return CLINIC_GREETING

    @property
    def state(self) -> ConversationState:
        return self.fsm.current_state

    @property
    def slots(self) -> AppointmentSlots:
        return self.fsm.slots

    @property
    def idle_return_pending(self) -> bool:
        return self._idle_timer.is_running()

    async def next_turn(self, transcript: Transcript, user_text: str) -> AssistantReply:
        return AssistantReply(text=self.respond(user_text))

    def respond(self, user_text: str) -> str:
        """
        Advance the booking script by one visitor input.

        Args:
            user_text: Raw visitor input

        Returns:
            Reply text
        """
        text = user_text.strip()
        if not text:
            return EMPTY_INPUT_REPLY

        state = self.fsm.current_state
        if state == ConversationState.GREETING:
            return self._handle_greeting(text)
        if state in SLOT_FOR_STATE:
            next_state = self.fsm.collect(text)
            return slot_prompt(next_state, self.fsm.slots)
        if state == ConversationState.COMPLETED:
            return self._handle_closing(text)

        raise InvalidTransition(f"Unhandled booking state {state.value}")

    def _handle_greeting(self, text: str) -> str:
        intent = classify_greeting(text)
        logger.info(f"Greeting intent: {intent.value}")
        if intent == GreetingIntent.BOOK_APPOINTMENT:
            self.fsm.transition(ConversationState.ASKING_NAME, reason="booking requested")
        return GREETING_REPLIES[intent]

    def _handle_closing(self, text: str) -> str:
        intent = classify_closing(text)
        logger.info(f"Closing intent: {intent.value}")
        if intent == ClosingIntent.NEGATIVE:
            # Stay in COMPLETED until the idle delay runs out
            self._idle_timer.start()
        else:
            self.fsm.transition(ConversationState.GREETING, reason=f"closing reply: {intent.value}")
        return CLOSING_REPLIES[intent]

    def _return_to_idle(self) -> None:
        if self.fsm.current_state == ConversationState.COMPLETED:
            self.fsm.transition(ConversationState.GREETING, reason="idle timeout")

    async def close(self) -> None:
        self._idle_timer.cancel()
