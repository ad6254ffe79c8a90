"""
Keyword intent classifier for the scripted receptionist.

Plain keyword matching: lower-case the input and test substring membership
against fixed keyword sets. Rules are checked in order and the first match
wins, so "book a time" is a booking request, not an hours question.
"""

from enum import Enum
from typing import Tuple


class GreetingIntent(str, Enum):
    BOOK_APPOINTMENT = "book_appointment"
    OFFICE_HOURS = "office_hours"
    LOCATION = "location"
    DOCTORS = "doctors"
    HELP = "help"


class ClosingIntent(str, Enum):
    NEGATIVE = "negative"
    AFFIRMATIVE = "affirmative"
    OTHER = "other"


GREETING_RULES: Tuple[Tuple[GreetingIntent, Tuple[str, ...]], ...] = (
    (GreetingIntent.BOOK_APPOINTMENT, ("appointment", "book", "schedule")),
    (GreetingIntent.OFFICE_HOURS, ("hours", "time", "open")),
    (GreetingIntent.LOCATION, ("location", "address", "where")),
    (GreetingIntent.DOCTORS, ("doctor", "physicians")),
)

CLOSING_RULES: Tuple[Tuple[ClosingIntent, Tuple[str, ...]], ...] = (
    (ClosingIntent.NEGATIVE, ("no", "that's all", "nothing")),
    (ClosingIntent.AFFIRMATIVE, ("yes", "another")),
)


def _first_match(text: str, rules, default):
    lowered = text.lower()
    for intent, keywords in rules:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return default


def classify_greeting(text: str) -> GreetingIntent:
    """Classify what a visitor at the front desk is asking for."""
    return _first_match(text, GREETING_RULES, GreetingIntent.HELP)


def classify_closing(text: str) -> ClosingIntent:
    """Classify the reply to "anything else?" after a booking."""
    return _first_match(text, CLOSING_RULES, ClosingIntent.OTHER)
