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

"""Per-cycle invariant monitors for the scheduling engine.

Monitors
========

Monitors run alongside a simulation and check the engine's structural
invariants after every cycle, raising AssertionError on the first violation.

How Monitors Work:
    Before each cycle, a monitor may sample engine state (before_cycle).
    After the cycle, it receives the events drained for that cycle and
    compares them with the engine's new state (check). A non-None message
    from check() becomes an AssertionError naming the monitor and cycle.

Monitors Provided:
    - CommonDataBusMonitor: at most one station leaves ResultPending per cycle
    - RegisterTagMonitor: every rename tag names a busy station producing
      that register; R0 is never tagged
    - BubbleMonitor: no station starts executing in the cycle it was issued
      or received a broadcast operand
    - LoadStoreUnitMonitor: at most one load/store station uses the memory
      port per cycle
"""

from abc import ABC, abstractmethod

from tomasim.config import ZERO_REGISTER
from tomasim.encoders.op_tables import defines_destination
from tomasim.models.instruction import Instruction, Pool
from tomasim.monitors.events import Event, EventKind
from tomasim.tomasulo.tomasulo_model import TomasuloEngine


class Monitor(ABC):
    """Abstract base class for engine invariant monitors."""

    def __init__(self, name: str = "Monitor") -> None:
        """Initialize monitor with a name for error messages."""
        self.name = name
        self.cycles_checked = 0

    def before_cycle(self, engine: TomasuloEngine) -> None:
        """Sample engine state before the next cycle (optional)."""

    @abstractmethod
    def check(self, engine: TomasuloEngine, events: list[Event]) -> str | None:
        """Check the cycle that just ran.

        Returns:
            None if the invariant holds, error message string otherwise.
        """
        ...

    def observe(self, engine: TomasuloEngine, events: list[Event]) -> None:
        """Run check() and raise AssertionError on violation."""
        error = self.check(engine, events)
        if error:
            raise AssertionError(f"{self.name} at cycle {engine.cycle}: {error}")
        self.cycles_checked += 1


class CommonDataBusMonitor(Monitor):
    """At most one result crosses the common data bus per cycle."""

    def __init__(self) -> None:  # noqa: D107
        super().__init__("CommonDataBusMonitor")
        self._pending: dict[str, Instruction | None] = {}

    def before_cycle(self, engine: TomasuloEngine) -> None:  # noqa: D102
        self._pending = {
            s.name: s.instruction
            for s in engine.all_stations()
            if s.busy and s.result_pending
        }

    def check(self, engine: TomasuloEngine, events: list[Event]) -> str | None:  # noqa: D102
        writebacks = [e for e in events if e.kind is EventKind.WRITEBACK]
        if len(writebacks) > 1:
            return f"{len(writebacks)} writebacks: {[e.station for e in writebacks]}"
        left = []
        for name, ins in self._pending.items():
            station = engine.station(name)
            if station.instruction is not ins or not station.result_pending:
                left.append(name)
        if len(left) > 1:
            return f"{len(left)} stations left ResultPending: {left}"
        return None


class RegisterTagMonitor(Monitor):
    """Every outstanding tag belongs to a busy producer of that register."""

    def __init__(self) -> None:  # noqa: D107
        super().__init__("RegisterTagMonitor")

    def check(self, engine: TomasuloEngine, events: list[Event]) -> str | None:  # noqa: D102
        tags = engine.registers.tags()
        if ZERO_REGISTER in tags:
            return f"{ZERO_REGISTER} tagged with {tags[ZERO_REGISTER]}"
        for register, tag in tags.items():
            station = engine.station(tag)
            if station is None or not station.busy:
                return f"{register} tagged with free station {tag}"
            ins = station.instruction
            if ins.dest != register or not defines_destination(ins.kind):
                return f"{register} tagged with {tag} which holds {ins}"
        return None


class BubbleMonitor(Monitor):
    """Issue and operand broadcast each cost a one-cycle bubble."""

    def __init__(self) -> None:  # noqa: D107
        super().__init__("BubbleMonitor")

    def check(self, engine: TomasuloEngine, events: list[Event]) -> str | None:  # noqa: D102
        transitioned = {
            e.station
            for e in events
            if e.kind in (EventKind.ISSUE, EventKind.BROADCAST)
        }
        for e in events:
            if e.kind is EventKind.EXEC_START and e.station in transitioned:
                return f"{e.station} started executing in its bubble cycle"
        return None


class LoadStoreUnitMonitor(Monitor):
    """At most one load/store station holds the memory port per cycle."""

    def __init__(self) -> None:  # noqa: D107
        super().__init__("LoadStoreUnitMonitor")
        self._port_cycles: dict[str, tuple[Instruction | None, int]] = {}

    def before_cycle(self, engine: TomasuloEngine) -> None:  # noqa: D102
        self._port_cycles = {
            s.name: (s.instruction, s.port_cycles)
            for s in engine.pools[Pool.LOAD_STORE]
            if s.busy
        }

    def check(self, engine: TomasuloEngine, events: list[Event]) -> str | None:  # noqa: D102
        users = []
        for s in engine.pools[Pool.LOAD_STORE]:
            if not s.busy:
                continue
            ins, before = self._port_cycles.get(s.name, (None, 0))
            if ins is not s.instruction:
                before = 0
            if s.port_cycles > before:
                users.append(s.name)
        if len(users) > 1:
            return f"port used by {users}"
        return None


def all_monitors() -> list[Monitor]:
    """Return one instance of every monitor."""
    return [
        CommonDataBusMonitor(),
        RegisterTagMonitor(),
        BubbleMonitor(),
        LoadStoreUnitMonitor(),
    ]


def run_with_monitors(
    engine: TomasuloEngine,
    monitors: list[Monitor],
    max_cycles: int,
    *,
    until_idle: bool = True,
) -> list[Event]:
    """Advance engine until idle or max_cycles, checking monitors each cycle.

    With until_idle=False exactly max_cycles cycles are advanced.

    Returns:
        Every event drained during the run, in order.
    """
    events: list[Event] = []
    for _ in range(max_cycles):
        if until_idle and engine.is_idle():
            break
        for monitor in monitors:
            monitor.before_cycle(engine)
        engine.advance_cycle()
        cycle_events = engine.drain_events()
        for monitor in monitors:
            monitor.observe(engine, cycle_events)
        events.extend(cycle_events)
    return events
