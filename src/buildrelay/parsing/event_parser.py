"""
Incremental parser turning build tool output into build events.

The parser only ever holds the trailing partial line. Each feed() returns
the events that can be recognized from complete lines seen so far, so the
caller can deliver them while the build tool is still running. How the
output is split into chunks never affects the resulting events.
"""

import logging
from typing import Iterable, Iterator, List, Optional

from ..models.events import BuildEvent, EventKind, EventSequencer
from ..validation import ParserClosedError
from .grammar import EventGrammar

logger = logging.getLogger(__name__)


class EventParser:
    """
    Streaming line parser.

    Args:
        grammar: Recognition rules; defaults to the built-in step markers
        sequencer: Source of sequence numbers, shared with whoever
            synthesizes the surrounding run events
    """

    def __init__(
        self,
        grammar: Optional[EventGrammar] = None,
        sequencer: Optional[EventSequencer] = None,
    ):
        self.grammar = grammar or EventGrammar()
        self.sequencer = sequencer or EventSequencer()
        self._pending: List[str] = []
        self._closed = False
        self.lines_parsed = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def has_partial_line(self) -> bool:
        return any(self._pending)

    def feed(self, text: str) -> List[BuildEvent]:
        """
        Consume a chunk of output.

        Args:
            text: Any slice of the output; need not end on a line boundary

        Returns:
            Events for every line completed by this chunk, in stream order

        Raises:
            ParserClosedError: If end_of_stream() was already called
        """
        if self._closed:
            raise ParserClosedError("Cannot feed an event parser after end of stream")
        if not text:
            return []

        if "\n" not in text:
            self._pending.append(text)
            return []

        self._pending.append(text)
        lines = "".join(self._pending).split("\n")
        tail = lines.pop()
        self._pending = [tail] if tail else []
        return [self._emit(line) for line in lines]

    def end_of_stream(self) -> List[BuildEvent]:
        """
        Flush the buffered partial line and close the parser.

        A non-empty trailing fragment becomes a final message event. Calling
        this more than once is harmless and returns no events.
        """
        if self._closed:
            return []
        self._closed = True

        tail = "".join(self._pending)
        self._pending = []
        if not tail:
            return []

        line = tail[:-1] if tail.endswith("\r") else tail
        self.lines_parsed += 1
        logger.debug(f"Flushing unterminated final line ({len(line)} chars)")
        kind, payload = EventGrammar.message(line)
        return [self.sequencer.make(kind, payload)]

    def _emit(self, line: str) -> BuildEvent:
        if line.endswith("\r"):
            line = line[:-1]
        self.lines_parsed += 1
        kind, payload = self.grammar.recognize(line)
        if kind is not EventKind.MESSAGE:
            logger.debug(f"Recognized {kind.value}: {payload.get('name', '')}")
        return self.sequencer.make(kind, payload)


def iter_events(
    chunks: Iterable[str],
    grammar: Optional[EventGrammar] = None,
    sequencer: Optional[EventSequencer] = None,
) -> Iterator[BuildEvent]:
    """
    Lazily parse an iterable of output chunks.

    Events are yielded as soon as the chunk completing their line has been
    consumed; the trailing fragment is flushed once the iterable is exhausted.
    """
    parser = EventParser(grammar=grammar, sequencer=sequencer)
    for chunk in chunks:
        yield from parser.feed(chunk)
    yield from parser.end_of_stream()
