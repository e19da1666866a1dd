"""
Typed Reveal Engine.

Reveals a message character by character with a natural typing rhythm:
longer pauses after sentences and clauses, quicker common letters, slower
digits and symbols, and a little jitter everywhere else.

Usage:
    reveal = TypewriterReveal(
        scheduler,
        "Hello! Welcome to SecureBank.",
        base_speed=40,
        start_delay=300,
        on_start=lambda: print("typing"),
        on_complete=lambda: print("done"),
    )
    reveal.start()
"""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .scheduler import Scheduler, TimerGroup


__all__ = [
    "RevealStep",
    "TypewriterReveal",
    "reveal_steps",
    "typing_delay",
]


logger = logging.getLogger(__name__)


SENTENCE_TERMINATORS = frozenset(".!?")
SECONDARY_PUNCTUATION = frozenset(",;:")
HIGH_FREQUENCY_LETTERS = frozenset("etaoinshr")
ASCII_ALNUM = frozenset(string.ascii_letters + string.digits)

SENTENCE_PAUSE_FACTOR = 3.0
CLAUSE_PAUSE_FACTOR = 2.0
SPACE_FACTOR = 1.3
LONG_WORD_SPACE_FACTOR = 2.0
LONG_WORD_THRESHOLD = 7
COMMON_LETTER_FACTOR = 0.7
DIGIT_FACTOR = 1.4
SYMBOL_FACTOR = 1.3
JITTER_SPAN = 0.5
MIN_SPEED_FACTOR = 0.3


def typing_delay(
    text: str,
    index: int,
    base_speed: float,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Delay in ms before text[index] is appended.

    Args:
        text: Full text being revealed.
        index: Position of the character about to be appended.
        base_speed: Base milliseconds per character.
        rng: Random source for the jitter on ordinary letters.

    Returns:
        Delay in milliseconds.
    """
    char = text[index]

    if char in SENTENCE_TERMINATORS:
        return base_speed * SENTENCE_PAUSE_FACTOR

    if char in SECONDARY_PUNCTUATION:
        return base_speed * CLAUSE_PAUSE_FACTOR

    if char == " ":
        word_before = text[:index].split(" ")[-1]
        if len(word_before) > LONG_WORD_THRESHOLD:
            return base_speed * LONG_WORD_SPACE_FACTOR
        return base_speed * SPACE_FACTOR

    if char.lower() in HIGH_FREQUENCY_LETTERS:
        return base_speed * COMMON_LETTER_FACTOR

    if char in string.digits:
        return base_speed * DIGIT_FACTOR

    if char not in ASCII_ALNUM and not char.isspace():
        return base_speed * SYMBOL_FACTOR

    # +/-25% around the base speed
    source = rng if rng is not None else random
    variation = (source.random() - 0.5) * JITTER_SPAN
    return max(base_speed * (1 + variation), base_speed * MIN_SPEED_FACTOR)


@dataclass(frozen=True)
class RevealStep:
    """Wait delay_ms, then show prefix."""

    delay_ms: float
    prefix: str


def reveal_steps(
    text: str,
    base_speed: float = 50.0,
    start_delay: float = 0.0,
    rng: Optional[random.Random] = None,
) -> Iterator[RevealStep]:
    """
    Lazily yield the reveal of text, one character per step.

    The first character waits start_delay; every later one waits
    typing_delay() for that character. Jitter is drawn when the step is
    produced, not up front.
    """
    for index in range(len(text)):
        delay = start_delay if index == 0 else typing_delay(text, index, base_speed, rng)
        yield RevealStep(delay_ms=delay, prefix=text[: index + 1])


class TypewriterReveal:
    """
    Plays reveal_steps() for one message on its own timer line.

    on_start fires once right before the first character is appended and
    on_complete fires once right after the last. set_text() with a
    different text abandons the current reveal and starts over; cancel()
    stops it for good.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        text: str,
        *,
        base_speed: float = 50.0,
        start_delay: float = 0.0,
        on_start: Optional[Callable[[], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        on_progress: Optional[Callable[[str], None]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._timers = TimerGroup(scheduler, name="typewriter")
        self._text = text
        self._base_speed = base_speed
        self._start_delay = start_delay
        self._on_start = on_start
        self._on_complete = on_complete
        self._on_progress = on_progress
        self._rng = rng

        self._steps: Optional[Iterator[RevealStep]] = None
        self._generation = 0
        self._displayed = ""
        self._started = False
        self._typing = False
        self._complete = False
        self._cancelled = False

    @property
    def text(self) -> str:
        return self._text

    @property
    def displayed_text(self) -> str:
        return self._displayed

    @property
    def is_typing(self) -> bool:
        return self._typing

    @property
    def is_complete(self) -> bool:
        return self._complete

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        """Begin revealing the current text. No-op once started."""
        if self._cancelled:
            raise RuntimeError("Cannot start a cancelled reveal")
        if self._started:
            return
        self._started = True
        self._restart()

    def set_text(self, text: str) -> None:
        """
        Switch to new text, discarding any reveal in progress.

        ConversationDriver never calls this since a scripted turn's text is
        fixed once its reveal begins. It is for embedders that retarget a
        live reveal, e.g. a bubble whose text is corrected mid-typing.
        """
        if text == self._text:
            return
        self._text = text
        if self._started and not self._cancelled:
            logger.debug("Reveal text changed, restarting (%d chars)", len(text))
            self._restart()

    def cancel(self) -> None:
        """Stop the reveal; no further appends or callbacks."""
        self._cancelled = True
        self._typing = False
        self._generation += 1
        self._timers.close()

    def _restart(self) -> None:
        self._timers.cancel_all()
        self._generation += 1
        self._displayed = ""
        self._typing = False
        self._complete = False
        self._steps = reveal_steps(self._text, self._base_speed, self._start_delay, self._rng)
        self._schedule_next(self._generation)

    def _schedule_next(self, generation: int) -> None:
        step = next(self._steps, None) if self._steps is not None else None
        if step is None:
            self._finish()
            return
        self._timers.call_later(step.delay_ms, lambda: self._append(generation, step))

    def _append(self, generation: int, step: RevealStep) -> None:
        if generation != self._generation or self._cancelled:
            return
        if not self._displayed:
            self._typing = True
            if self._on_start is not None:
                self._on_start()
        self._displayed = step.prefix
        if self._on_progress is not None:
            self._on_progress(step.prefix)
        # a callback may have restarted or cancelled this reveal
        if generation != self._generation or self._cancelled:
            return
        self._schedule_next(generation)

    def _finish(self) -> None:
        self._typing = False
        self._complete = True
        if self._on_complete is not None:
            self._on_complete()
