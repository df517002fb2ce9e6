"""
Build event data models.

A BuildEvent is one discrete, typed notification about build progress. Events
are produced by the event parser (steps and messages) or synthesized by the
orchestrator (run begin/end), and each carries a sequence number drawn from
a shared EventSequencer so that ordering within a run is total.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Union

PayloadValue = Union[str, int, float, bool]


class EventKind(str, Enum):
    """Kinds of build events."""
    BEGIN_RUN = "begin-run"
    END_RUN = "end-run"
    BEGIN_STEP = "begin-step"
    END_STEP = "end-step"
    MESSAGE = "message"
    RAW = "raw"


@dataclass(frozen=True)
class BuildEvent:
    """
    An immutable build lifecycle event.

    Attributes:
        kind: Which lifecycle notification this is
        payload: Flat mapping of string keys to scalar values (step name,
            status, duration, message text, ...)
        sequence: Position of the event within its run
    """

    kind: EventKind
    payload: Mapping[str, PayloadValue] = field(default_factory=dict)
    sequence: int = 0

    def __post_init__(self):
        for key, value in self.payload.items():
            if not isinstance(key, str):
                raise TypeError(f"Event payload keys must be strings, got {key!r}")
            if not isinstance(value, (str, int, float, bool)):
                raise TypeError(
                    f"Event payload value for '{key}' must be str/int/float/bool, "
                    f"got {type(value).__name__}"
                )
        object.__setattr__(self, "payload", MappingProxyType(dict(self.payload)))

    def get(self, key: str, default: Any = None) -> Any:
        return self.payload.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the event to a plain dictionary."""
        return {
            **dict(self.payload),
            "event": self.kind.value,
            "sequence": self.sequence,
        }


class EventSequencer:
    """
    Hands out strictly increasing sequence numbers for one run.

    The parser and the orchestrator share one instance so that synthesized
    run events and parsed events interleave into a single total order.
    """

    def __init__(self, start: int = 1):
        self._next = start
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            value = self._next
            self._next += 1
            return value

    @property
    def last(self) -> int:
        """The most recently issued number (start - 1 before any issue)."""
        with self._lock:
            return self._next - 1

    def make(self, kind: EventKind, payload: Mapping[str, PayloadValue]) -> BuildEvent:
        """Create an event stamped with the next sequence number."""
        return BuildEvent(kind=kind, payload=payload, sequence=self.next())
