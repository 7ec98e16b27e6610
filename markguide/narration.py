"""Situation messages, guide prompts, and narration sinks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import sys
from typing import List, Optional, Protocol, TextIO

from markguide.direction import Sector
from markguide.marks import Mark


class Situation(Enum):
    NONE = "None"
    NEAR = "Near"
    INSIDE = "Inside"


NO_MARK_MESSAGE = "No mark nearby."


@dataclass(frozen=True)
class Observation:
    """What the probe sees this tick."""

    situation: Situation
    label: Optional[str]
    direction: Optional[Sector]
    message: str
    mark: Optional[Mark] = None


@dataclass(frozen=True)
class NarrationRequest:
    """A fired trigger, ready for text generation and playback."""

    prompt: str
    message: str
    label: Optional[str]
    situation: Situation
    direction: Optional[Sector]
    keyword: str = ""
    details: str = ""


class NarrationSink(Protocol):
    def emit(self, prompt: str, label: Optional[str]) -> None:
        ...


def describe(situation: Situation, label: Optional[str], direction: Optional[Sector]) -> str:
    """Return the display message for a situation."""

    if situation is Situation.INSIDE:
        return f"The user is right inside the {label}."
    if situation is Situation.NEAR:
        return (
            f"The user is now near {label}, the {label} is {direction} of the user."
        )
    return NO_MARK_MESSAGE


def _sanitize(text: Optional[str]) -> str:
    return (text or "").replace("\n", " ").replace("\r", " ").replace('"', "'")


def build_prompt(
    message: str,
    label: Optional[str],
    mark: Optional[Mark],
    language_code: str = "en-US",
) -> str:
    """Build the guide prompt handed to the narration sink."""

    lines = [f"You are a helpful guide. The user message: '{_sanitize(message)}'."]
    if label:
        lines.append(f"Target Place: {_sanitize(label)}.")
        if mark is not None:
            if mark.keyword:
                lines.append(f"Keywords: {_sanitize(mark.keyword)}.")
            if mark.details:
                lines.append(f"Details: {_sanitize(mark.details)}.")
    lines.append(
        "Provide a guidance for user to know how to get to this place, and short "
        "introduce about the place. Keep it under 50 words. Be concise and friendly."
    )
    if language_code:
        lines.append(f"Respond in {_sanitize(language_code)}.")
    lines.append("Return only the text of the introduction (no extra metadata or quotes).")
    return "\n".join(lines) + "\n"


class ConsoleSink:
    """Print narration prompts, one block per trigger."""

    def __init__(self, stream: Optional[TextIO] = None, prefix: str = "Guide") -> None:
        self._stream = stream
        self._prefix = prefix

    def emit(self, prompt: str, label: Optional[str]) -> None:
        stream = self._stream or sys.stdout
        tag = f"{self._prefix} [{label}]" if label else self._prefix
        print(f"{tag}: {prompt.rstrip()}", file=stream, flush=True)


class RecordingSink:
    """Keep emitted prompts in memory."""

    def __init__(self) -> None:
        self.emitted: List[tuple[str, Optional[str]]] = []

    def emit(self, prompt: str, label: Optional[str]) -> None:
        self.emitted.append((prompt, label))
