"""
Synchronous fan-out of build events to reporter sinks.
"""

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.events import BuildEvent
from ..models.results import LaunchResult, ReporterFault
from .base import ReporterSink, reporter_name

logger = logging.getLogger(__name__)

PHASE_EVENT = "event"
PHASE_FINISH = "finish"


class ReporterMultiplexer:
    """
    Delivers every event to every registered sink, in registration order.

    Delivery happens on the caller's thread and completes before deliver()
    returns; there is no buffering. An exception raised by one sink is
    recorded as a ReporterFault and does not prevent delivery to the
    remaining sinks or of later events. Only the first fault of each sink is
    kept; later ones are counted as suppressed.

    Args:
        reporters: Sinks in delivery order
    """

    def __init__(self, reporters: Iterable[ReporterSink] = ()):
        self._sinks: List[ReporterSink] = list(reporters)
        self._faults: Dict[int, ReporterFault] = {}
        self._events_delivered = 0
        self._started = False
        self._finished = False

    @property
    def sinks(self) -> Tuple[ReporterSink, ...]:
        return tuple(self._sinks)

    @property
    def events_delivered(self) -> int:
        return self._events_delivered

    @property
    def finished(self) -> bool:
        return self._finished

    @property
    def faults(self) -> List[ReporterFault]:
        """First fault of each faulting sink, in registration order."""
        return [self._faults[index] for index in sorted(self._faults)]

    def register(self, sink: ReporterSink) -> None:
        """
        Append a sink.

        Raises:
            RuntimeError: If delivery has already started
        """
        if self._started:
            raise RuntimeError("Reporters cannot be registered once delivery has started")
        self._sinks.append(sink)

    def deliver(self, event: BuildEvent) -> None:
        """Hand one event to each sink exactly once."""
        if self._finished:
            raise RuntimeError("Cannot deliver events after finish()")
        self._started = True
        self._events_delivered += 1
        for index, sink in enumerate(self._sinks):
            try:
                sink.on_event(event)
            except Exception as e:
                self._record_fault(index, sink, PHASE_EVENT, event.sequence, e)

    def deliver_all(self, events: Iterable[BuildEvent]) -> None:
        for event in events:
            self.deliver(event)

    def finish(self, result: LaunchResult) -> None:
        """
        Notify each sink of the run outcome exactly once.

        Raises:
            RuntimeError: If called a second time
        """
        if self._finished:
            raise RuntimeError("finish() was already called for this run")
        self._started = True
        self._finished = True
        for index, sink in enumerate(self._sinks):
            try:
                sink.on_finish(result)
            except Exception as e:
                self._record_fault(index, sink, PHASE_FINISH, None, e)

        if self._faults:
            logger.info(f"{len(self._faults)} of {len(self._sinks)} reporters faulted during the run")

    def _record_fault(
        self,
        index: int,
        sink: ReporterSink,
        phase: str,
        sequence: Optional[int],
        error: Exception,
    ) -> None:
        name = reporter_name(sink)
        existing = self._faults.get(index)
        if existing is not None:
            self._faults[index] = replace(existing, suppressed=existing.suppressed + 1)
            logger.debug(
                f"Suppressed further fault from reporter '{name}' in {phase}: "
                f"{type(error).__name__}: {error}"
            )
            return

        self._faults[index] = ReporterFault(
            reporter_name=name,
            reporter_index=index,
            phase=phase,
            sequence=sequence,
            exception_type=type(error).__name__,
            message=str(error),
        )
        logger.warning(
            f"Reporter '{name}' failed in {phase}"
            f"{f' for event {sequence}' if sequence is not None else ''}: "
            f"{type(error).__name__}: {error}",
            exc_info=logger.isEnabledFor(logging.DEBUG),
        )
