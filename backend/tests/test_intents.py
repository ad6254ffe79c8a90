"""
Unit tests for the keyword intent classifier.
"""

import pytest
from frontdesk.dialogue.intents import (
    ClosingIntent,
    GreetingIntent,
    classify_closing,
    classify_greeting,
)


class TestGreetingIntent:

    @pytest.mark.parametrize("text,intent", [
        ("I want to book an appointment", GreetingIntent.BOOK_APPOINTMENT),
        ("Can I SCHEDULE a visit?", GreetingIntent.BOOK_APPOINTMENT),
        ("What are your hours?", GreetingIntent.OFFICE_HOURS),
        ("Are you open on Saturday", GreetingIntent.OFFICE_HOURS),
        ("What's your address?", GreetingIntent.LOCATION),
        ("Where are you?", GreetingIntent.LOCATION),
        ("Which doctors work there", GreetingIntent.DOCTORS),
        ("hello", GreetingIntent.HELP),
    ])
    def test_classification(self, text, intent):
        assert classify_greeting(text) == intent

    def test_first_match_wins(self):
        """Booking keywords are checked before hours keywords."""
        assert classify_greeting("book a time") == GreetingIntent.BOOK_APPOINTMENT
        assert classify_greeting("what time is the doctor in") == GreetingIntent.OFFICE_HOURS

    def test_substring_match(self):
        """Plain substring test, no word boundaries."""
        assert classify_greeting("reopening soon?") == GreetingIntent.OFFICE_HOURS


class TestClosingIntent:

    @pytest.mark.parametrize("text,intent", [
        ("no, that's all", ClosingIntent.NEGATIVE),
        ("Nothing else, thanks", ClosingIntent.NEGATIVE),
        ("yes please", ClosingIntent.AFFIRMATIVE),
        ("Yes", ClosingIntent.AFFIRMATIVE),
        ("hmm", ClosingIntent.OTHER),
    ])
    def test_classification(self, text, intent):
        assert classify_closing(text) == intent

    def test_negative_checked_first(self):
        assert classify_closing("yes... no") == ClosingIntent.NEGATIVE

    def test_substring_match(self):
        """"another" contains "no", so it lands on the negative rule."""
        assert classify_closing("I need another one") == ClosingIntent.NEGATIVE
