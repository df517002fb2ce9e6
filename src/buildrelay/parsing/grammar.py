"""
Recognition rules that map one line of build tool output to an event.

The grammar is replaceable: the default patterns match the
`Step started: <name>` / `Step finished: <name> (<secs>s) <STATUS>` markers,
and structured tools may instead print JSON objects carrying an "event" key.
Anything that is not recognized, including markers that look right but
carry malformed fields, becomes a plain message.
"""

import json
import logging
import math
import re
from typing import Any, Dict, Iterable, Optional, Tuple

from ..models.config import (
    DEFAULT_BEGIN_STEP_PATTERN,
    DEFAULT_END_STEP_PATTERN,
    ParserConfig,
)
from ..models.events import EventKind, PayloadValue
from ..validation import validate_regex_pattern

logger = logging.getLogger(__name__)

Recognition = Tuple[EventKind, Dict[str, PayloadValue]]

# Structured event names mapped onto step events; other names become RAW.
_JSON_EVENT_KINDS = {
    "begin-step": EventKind.BEGIN_STEP,
    "end-step": EventKind.END_STEP,
}


class EventGrammar:
    """
    Classifies single lines of output.

    Args:
        begin_step_pattern: Regex with a `name` group
        end_step_pattern: Regex with `name` and `status` groups and an
            optional `duration` group (seconds)
        success_statuses: Statuses counted as a succeeded step
        recognize_json_events: Whether JSON object lines are structured events
    """

    def __init__(
        self,
        begin_step_pattern: str = DEFAULT_BEGIN_STEP_PATTERN,
        end_step_pattern: str = DEFAULT_END_STEP_PATTERN,
        success_statuses: Iterable[str] = ("OK", "SUCCEEDED", "PASSED"),
        recognize_json_events: bool = True,
    ):
        validate_regex_pattern(
            begin_step_pattern, "begin_step_pattern", required_groups=("name",)
        )
        validate_regex_pattern(
            end_step_pattern, "end_step_pattern", required_groups=("name", "status")
        )
        self.begin_step_re = re.compile(begin_step_pattern)
        self.end_step_re = re.compile(end_step_pattern)
        self.success_statuses = frozenset(s.upper() for s in success_statuses)
        self.recognize_json_events = recognize_json_events

    @classmethod
    def from_config(cls, parser_config: ParserConfig) -> "EventGrammar":
        return cls(
            begin_step_pattern=parser_config.begin_step_pattern,
            end_step_pattern=parser_config.end_step_pattern,
            success_statuses=parser_config.success_statuses,
            recognize_json_events=parser_config.recognize_json_events,
        )

    def recognize(self, line: str) -> Recognition:
        """
        Classify one line (without its line terminator).

        Returns:
            Tuple of (event kind, payload). Never raises for any input line.
        """
        if self.recognize_json_events and line.lstrip().startswith("{"):
            structured = self._recognize_json(line)
            if structured is not None:
                return structured

        match = self.begin_step_re.search(line)
        if match:
            name = match.group("name")
            if name and name.strip():
                return EventKind.BEGIN_STEP, {"name": name.strip(), "raw": line}

        match = self.end_step_re.search(line)
        if match:
            recognized = self._recognize_end_step(match, line)
            if recognized is not None:
                return recognized

        return self.message(line)

    @staticmethod
    def message(line: str) -> Recognition:
        """A generic message; whitespace-only lines keep an empty text."""
        text = "" if not line.strip() else line
        return EventKind.MESSAGE, {"text": text, "raw": line}

    def _recognize_end_step(self, match: "re.Match[str]", line: str) -> Optional[Recognition]:
        name = (match.group("name") or "").strip()
        status = (match.group("status") or "").strip()
        if not name or not status:
            logger.debug(f"End-step marker without name or status, keeping as message: {line!r}")
            return None

        payload: Dict[str, PayloadValue] = {
            "name": name,
            "status": status,
            "succeeded": status.upper() in self.success_statuses,
        }

        duration_text = match.groupdict().get("duration")
        if duration_text is not None:
            duration = _parse_duration(duration_text)
            if duration is None:
                logger.debug(f"Invalid step duration {duration_text!r}, keeping as message")
                return None
            payload["duration"] = duration

        payload["raw"] = line
        return EventKind.END_STEP, payload

    def _recognize_json(self, line: str) -> Optional[Recognition]:
        try:
            obj = json.loads(line)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Line looks like JSON but does not parse ({type(e).__name__}), "
                         f"keeping as message: {line[:200]!r}")
            return None

        if not isinstance(obj, dict):
            return None
        event_name = obj.get("event")
        if not isinstance(event_name, str) or not event_name:
            logger.debug("JSON line without an 'event' name, keeping as message")
            return None

        kind = _JSON_EVENT_KINDS.get(event_name, EventKind.RAW)
        try:
            payload = _flatten_payload(obj)
        except RecursionError:
            logger.debug(f"JSON event {event_name!r} nests too deeply, keeping as message")
            return None
        if kind is EventKind.RAW:
            payload["raw_event"] = event_name
        elif not self._check_json_step(kind, payload):
            logger.debug(f"Malformed JSON {event_name} event, keeping as message: {line[:200]!r}")
            return None
        payload["raw"] = line
        return kind, payload

    def _check_json_step(self, kind: EventKind, payload: Dict[str, PayloadValue]) -> bool:
        """Apply the text marker rules to a JSON step payload, normalizing it in place."""
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            return False
        payload["name"] = name.strip()
        if kind is EventKind.BEGIN_STEP:
            return True

        status = payload.get("status")
        if not isinstance(status, str) or not status.strip():
            return False
        payload["status"] = status.strip()

        if "duration" in payload:
            duration = _parse_duration(payload["duration"])
            if duration is None:
                return False
            payload["duration"] = duration

        if "succeeded" not in payload:
            payload["succeeded"] = payload["status"].upper() in self.success_statuses
        elif not isinstance(payload["succeeded"], bool):
            return False
        return True


def _parse_duration(value: PayloadValue) -> Optional[float]:
    """A finite, non-negative number of seconds, or None."""
    if isinstance(value, bool):
        return None
    try:
        duration = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    if not math.isfinite(duration) or duration < 0:
        return None
    return duration


def _flatten_payload(obj: Dict[str, Any]) -> Dict[str, PayloadValue]:
    """Keep scalar fields, JSON-encode nested ones, drop nulls and reserved keys."""
    payload: Dict[str, PayloadValue] = {}
    for key, value in obj.items():
        if key in ("event", "sequence") or value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            payload[str(key)] = value
        else:
            payload[str(key)] = json.dumps(value, sort_keys=True)
    return payload
