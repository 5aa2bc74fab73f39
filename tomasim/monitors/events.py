#    Copyright 2026 Two Sigma Open Source, LLC
#
#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at
#
#        http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""Structured event stream produced by the scheduling engine.

The engine appends one Event per notable transition and the caller drains
them after each cycle. Each event is also sent to the engine's logger.
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto


class EventKind(Enum):
    """Kinds of engine transitions."""

    CYCLE = auto()
    ISSUE = auto()
    STALL = auto()
    ADDRESS = auto()
    CACHE_HIT = auto()
    CACHE_MISS = auto()
    CACHE_FILL = auto()
    EXEC_START = auto()
    EXEC_FINISH = auto()
    WRITEBACK = auto()
    BROADCAST = auto()
    BRANCH_TAKEN = auto()
    BRANCH_NOT_TAKEN = auto()
    BRANCH_OUT_OF_RANGE = auto()


# Informational kinds surfaced above DEBUG
_LOG_LEVELS = {
    EventKind.BRANCH_OUT_OF_RANGE: logging.INFO,
}


@dataclass(frozen=True)
class Event:
    """One engine transition.

    Attributes:
        cycle: Cycle the transition happened in
        kind: Transition kind
        message: Human-readable log line
        station: Station involved, if any (the receiver for BROADCAST)
    """

    cycle: int
    kind: EventKind
    message: str
    station: str | None = None

    def __str__(self) -> str:  # noqa: D105
        return f"Cycle {self.cycle}: {self.message}"


class EventStream:
    """Ordered buffer of events owned by one engine."""

    def __init__(self, logger: logging.Logger) -> None:
        """Initialize an empty stream that mirrors events to logger."""
        self._events: list[Event] = []
        self._logger = logger

    def __len__(self) -> int:  # noqa: D105
        return len(self._events)

    def emit(
        self, cycle: int, kind: EventKind, message: str, station: str | None = None
    ) -> Event:
        """Record an event and log it."""
        event = Event(cycle=cycle, kind=kind, message=message, station=station)
        self._events.append(event)
        self._logger.log(_LOG_LEVELS.get(kind, logging.DEBUG), "%s", event)
        return event

    def drain(self) -> list[Event]:
        """Return every buffered event and empty the buffer."""
        events, self._events = self._events, []
        return events
