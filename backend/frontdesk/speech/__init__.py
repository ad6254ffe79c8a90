from frontdesk.speech.adapter import AdapterListener, SessionKind, SpeechAdapter, SpeechSession
from frontdesk.speech.engine import SpeechEngine, TextOnlySpeechEngine

__all__ = [
    "AdapterListener",
    "SessionKind",
    "SpeechAdapter",
    "SpeechEngine",
    "SpeechSession",
    "TextOnlySpeechEngine",
]
