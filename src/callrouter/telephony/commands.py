"""
Vendor-neutral call-control commands.

The routing engine answers every webhook with an ordered list of these
commands; each telephony adapter serializes the list into its own wire
format (TwiML, JSON command list).
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Answer:
    """Pick up the inbound call."""


@dataclass(frozen=True)
class Transfer:
    """Hand the call to a phone number or SIP URI."""

    to: str
    caller_id: str | None = None


@dataclass(frozen=True)
class Bridge:
    """Ring a destination and connect the caller when it picks up."""

    to: str
    timeout_secs: int


@dataclass(frozen=True)
class Speak:
    """Text-to-speech prompt."""

    text: str


@dataclass(frozen=True)
class Playback:
    """Play a pre-recorded audio file."""

    audio_url: str


@dataclass(frozen=True)
class RecordStart:
    """Start recording the caller (voicemail)."""

    format: str = "mp3"
    max_length_secs: int | None = None
    transcribe: bool | None = None


@dataclass(frozen=True)
class Hangup:
    """End the call."""


Command = Answer | Transfer | Bridge | Speak | Playback | RecordStart | Hangup

# Commands after which the router no longer controls the call.
TERMINAL_COMMANDS: tuple[type, ...] = (Hangup, Transfer, Bridge, RecordStart)


def is_terminated(commands: list[Command]) -> bool:
    """Return True when the sequence ends by yielding control of the call."""
    return bool(commands) and isinstance(commands[-1], TERMINAL_COMMANDS)


def voicemail_sequence(
    greeting: str,
    max_length_secs: int,
    transcribe: bool | None = None,
) -> list[Command]:
    """Answer, greet the caller and record a message."""
    return [
        Answer(),
        Speak(text=greeting),
        RecordStart(format="mp3", max_length_secs=max_length_secs, transcribe=transcribe),
    ]


def message_and_hangup(text: str) -> list[Command]:
    return [Speak(text=text), Hangup()]
