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

"""Cycle-accurate Tomasulo scheduling engine.

Composes the register file, the four reservation-station pools, the CDB
arbiter and the data cache, and advances them one cycle at a time. Each
cycle runs three phases strictly in this order:

    1. Writeback: the arbiter grants the bus to one finished station; its
       result updates memory (store), the instruction queue (taken branch)
       or the register file plus every waiting station (load, ALU op)
    2. Issue: the queue head moves into a free station of its pool, reading
       ready values or pending tags for its sources and renaming its
       destination; a saturated pool stalls the queue
    3. Execute: stations past their bubble compute addresses, run the cache
       phase and count down their latencies

Structural hazards modeled:
    - one result on the common data bus per cycle
    - one load/store station in its resident (port-holding) phase at a time
    - a one-cycle bubble after issue and after an operand broadcast

Taken branches replace only the not-yet-issued queue; stations already
issued from the fall-through path keep executing.
"""

import logging
from collections import deque

from tomasim.config import DEMO_MEMORY, SimulatorConfig
from tomasim.encoders.op_tables import (
    BRANCHES,
    IMMEDIATE_OPS,
    LOADS,
    MEMORY_OPS,
    STORES,
    branch_taken,
    defines_destination,
    evaluate,
    latency_for,
    pool_for,
)
from tomasim.models.instruction import Instruction, Pool
from tomasim.models.memory_model import CacheModel
from tomasim.monitors.events import Event, EventKind, EventStream
from tomasim.tomasulo.cdb_arbiter_model import PRIORITY_ORDER, CdbArbiterModel
from tomasim.tomasulo.register_file_model import RegisterFileModel
from tomasim.tomasulo.rs_model import (
    Operand,
    Pending,
    Ready,
    ReservationStation,
    RSPool,
    operand_ready,
    operand_value,
)

logger = logging.getLogger(__name__)


class TomasuloEngine:
    """Register file + station pools + cache, advanced one cycle per call."""

    def __init__(
        self, config: SimulatorConfig | None = None, *, demo_memory: bool = False
    ) -> None:
        """Build the machine described by config.

        Args:
            config: Machine parameters (defaults to SimulatorConfig()).
            demo_memory: Pre-populate memory with config.DEMO_MEMORY.
        """
        self.config = config if config is not None else SimulatorConfig()
        self.config.validate()

        sizes = self.config.pool_sizes()
        self.pools: dict[Pool, RSPool] = {
            pool: RSPool(pool, sizes[pool]) for pool in PRIORITY_ORDER
        }
        self.registers = RegisterFileModel()
        self.cache = CacheModel(
            self.config.cache_size_bytes,
            self.config.block_size_bytes,
            self.config.cache_hit_latency,
            self.config.cache_miss_penalty,
            preload=DEMO_MEMORY if demo_memory else None,
        )
        self.arbiter = CdbArbiterModel()
        self.events = EventStream(logger)

        self.cycle = 0
        self.program: list[Instruction] = []
        self.instruction_queue: deque[Instruction] = deque()
        self.issued_count = 0

        # Station holding the load/store port across cycles, and the station
        # that used it in the current cycle
        self.lsu_owner: str | None = None
        self._lsu_used_by: str | None = None

    # =========================================================================
    # Program control
    # =========================================================================

    def load_program(self, instructions: list[Instruction]) -> None:
        """Replace the program and queue it for issue from index 0."""
        self.program = list(instructions)
        self.instruction_queue = deque(self.program)
        self.issued_count = 0

    def all_stations(self) -> list[ReservationStation]:
        """Return every station in writeback priority order."""
        return [s for pool in PRIORITY_ORDER for s in self.pools[pool]]

    def station(self, name: str) -> ReservationStation | None:
        """Look up a station by name."""
        for s in self.all_stations():
            if s.name == name:
                return s
        return None

    def is_idle(self) -> bool:
        """Return whether the queue is drained and every station is free."""
        return not self.instruction_queue and not any(
            s.busy for s in self.all_stations()
        )

    def run(self, max_cycles: int) -> int:
        """Advance until idle or max_cycles; return the cycles advanced.

        Events are not drained here. They stay buffered on self.events until
        drain_events() is called, so long runs should drain periodically or
        use run_with_monitors(), which drains every cycle.
        """
        cycles = 0
        while cycles < max_cycles and not self.is_idle():
            self.advance_cycle()
            cycles += 1
        return cycles

    def drain_events(self) -> list[Event]:
        """Return and clear the events produced since the last drain."""
        return self.events.drain()

    def _emit(self, kind: EventKind, message: str, station: str | None = None) -> None:
        self.events.emit(self.cycle, kind, message, station)

    # =========================================================================
    # Cycle
    # =========================================================================

    def advance_cycle(self) -> None:
        """Run Writeback, Issue and Execute for one cycle."""
        self.cycle += 1
        self._emit(EventKind.CYCLE, "start")

        for s in self.all_stations():
            if s.busy:
                s.just_transitioned = False
        self._lsu_used_by = None

        self._writeback()
        self._issue()
        self._execute()

    # =========================================================================
    # Phase 1: Writeback
    # =========================================================================

    def _writeback(self) -> None:
        winner = self.arbiter.arbitrate(self.all_stations())
        if winner is None:
            return

        ins = winner.instruction
        if ins.kind in STORES:
            value = operand_value(winner.k)
            self.cache.write_word(winner.address, value)
            self._emit(
                EventKind.WRITEBACK,
                f"{winner.name} writeback: store value={value} "
                f"to addr={winner.address}",
                winner.name,
            )
        elif ins.kind in BRANCHES:
            self._emit(
                EventKind.WRITEBACK, f"{winner.name} writeback: {ins}", winner.name
            )
            self._resolve_branch(winner)
        else:
            if ins.kind in LOADS:
                value = self.cache.read_word(winner.address)
                detail = f"load value={value} from addr={winner.address}"
            else:
                value = evaluate(
                    ins.kind,
                    operand_value(winner.j),
                    operand_value(winner.k),
                    ins.immediate or 0,
                )
                detail = f"ALU result={value}"
            self._emit(
                EventKind.WRITEBACK, f"{winner.name} writeback: {detail}", winner.name
            )
            self._publish(winner, value)

        winner.clear()

    def _publish(self, producer: ReservationStation, value: int) -> None:
        """Write the destination register and broadcast to waiting stations."""
        ins = producer.instruction
        if ins.dest is not None and defines_destination(ins.kind):
            self.registers.write(ins.dest, value)
            self.registers.clear_tag_if_owner(ins.dest, producer.name)

        for s in self.all_stations():
            if s.busy and s is not producer and s.receive(producer.name, value):
                self._emit(
                    EventKind.BROADCAST,
                    f"{s.name} received {producer.name}={value}",
                    s.name,
                )

    def _resolve_branch(self, branch: ReservationStation) -> None:
        """Redirect the pending queue if the branch condition holds."""
        ins = branch.instruction
        val1 = operand_value(branch.j)
        val2 = operand_value(branch.k)
        if not branch_taken(ins.kind, val1, val2):
            self._emit(
                EventKind.BRANCH_NOT_TAKEN,
                f"{branch.name} branch NOT TAKEN, val1={val1} val2={val2}",
                branch.name,
            )
            return

        target = self.issued_count + (ins.immediate or 0)
        if not 0 <= target < len(self.program):
            self._emit(
                EventKind.BRANCH_OUT_OF_RANGE,
                f"{branch.name} branch target {target} out of range "
                f"(program has {len(self.program)} instructions)",
                branch.name,
            )
            return

        self.instruction_queue = deque(self.program[target:])
        self.issued_count = target
        self._emit(
            EventKind.BRANCH_TAKEN,
            f"{branch.name} branch TAKEN to instruction {target} "
            f"({self.program[target]}), val1={val1} val2={val2}",
            branch.name,
        )

    # =========================================================================
    # Phase 2: Issue
    # =========================================================================

    def _issue(self) -> None:
        if not self.instruction_queue:
            return
        ins = self.instruction_queue[0]
        pool = self.pools[pool_for(ins.kind)]
        if pool.is_full():
            self._emit(EventKind.STALL, f"Stall: no free station for {ins}")
            return
        free = pool.allocate_free()

        free.occupy(ins, latency_for(ins.kind, self.config))

        # Sources are read before the destination is renamed
        free.j = self._resolve_source(ins.src1)
        if ins.kind in MEMORY_OPS:
            free.k = self._resolve_source(ins.src2) if ins.kind in STORES else None
        elif ins.kind in IMMEDIATE_OPS:
            free.k = Ready(ins.immediate or 0)
        else:
            free.k = self._resolve_source(ins.src2)

        if ins.dest is not None and defines_destination(ins.kind):
            self.registers.set_tag(ins.dest, free.name)

        self.instruction_queue.popleft()
        self.issued_count += 1
        self._emit(EventKind.ISSUE, f"Issued {ins} to {free.name}", free.name)

    def _resolve_source(self, name: str | None) -> Operand:
        if name is None:
            return None
        tag = self.registers.get_tag(name)
        if tag is not None:
            return Pending(tag)
        return Ready(self.registers.read(name))

    # =========================================================================
    # Phase 3: Execute
    # =========================================================================

    def _execute(self) -> None:
        for s in self.all_stations():
            if not s.busy or s.just_transitioned or s.result_pending:
                continue
            if s.instruction.kind in MEMORY_OPS:
                self._execute_memory(s)
            else:
                self._execute_alu(s)

    def _execute_alu(self, s: ReservationStation) -> None:
        if not s.executing:
            if not s.operands_ready:
                return
            s.executing = True
            self._emit(
                EventKind.EXEC_START,
                f"{s.name} starts executing {s.instruction}",
                s.name,
            )
        self._count_down(s)

    def _execute_memory(self, s: ReservationStation) -> None:
        ins = s.instruction
        if not s.address_ready:
            if not operand_ready(s.j):
                return
            s.address = operand_value(s.j) + (ins.immediate or 0)
            s.address_ready = True
            self._emit(
                EventKind.ADDRESS, f"{s.name} computed address: {s.address}", s.name
            )

        if not s.executing:
            # Stores also wait for the value operand, which may arrive later
            if ins.kind in STORES and not operand_ready(s.k):
                return
            self._start_access(s)

        if not s.block_resident:
            # Miss: the block fetch does not occupy the load/store port
            if s.cache_remaining > 0:
                s.cache_remaining -= 1
            if s.cache_remaining == 0:
                self.cache.fill_block(s.address)
                s.block_resident = True
                self._emit(
                    EventKind.CACHE_FILL,
                    f"{s.name} filled block for addr {s.address}",
                    s.name,
                )
            return

        if self.lsu_owner not in (None, s.name) or self._lsu_used_by is not None:
            return
        self.lsu_owner = s.name
        self._lsu_used_by = s.name
        s.port_cycles += 1

        if s.cache_remaining > 0:
            s.cache_remaining -= 1
        elif s.remaining > 0:
            s.remaining -= 1
        if s.cache_remaining == 0 and s.remaining == 0:
            self.lsu_owner = None
            self._finish(s)

    def _start_access(self, s: ReservationStation) -> None:
        """Probe the cache and arm the cache-phase countdown."""
        resident = self.cache.is_resident(s.address)
        penalty = self.cache.probe(s.address)
        if penalty:
            s.cache_remaining = penalty
            s.block_resident = False
        else:
            # A zero miss penalty still has to install the block
            self.cache.fill_block(s.address)
            s.cache_remaining = self.cache.hit_latency
            s.block_resident = True
        s.executing = True

        if resident:
            self._emit(
                EventKind.CACHE_HIT, f"{s.name} cache hit at addr {s.address}", s.name
            )
        else:
            self._emit(
                EventKind.CACHE_MISS,
                f"{s.name} cache miss at addr {s.address} (penalty={penalty})",
                s.name,
            )
        self._emit(
            EventKind.EXEC_START, f"{s.name} starts executing {s.instruction}", s.name
        )

    def _count_down(self, s: ReservationStation) -> None:
        if s.remaining > 0:
            s.remaining -= 1
        if s.remaining == 0:
            self._finish(s)

    def _finish(self, s: ReservationStation) -> None:
        s.result_pending = True
        self._emit(
            EventKind.EXEC_FINISH,
            f"{s.name} finished execution of {s.instruction}",
            s.name,
        )

    # =========================================================================
    # Snapshot
    # =========================================================================

    def snapshot(self) -> dict:
        """Return the externally visible state as plain data."""
        return {
            "cycle": self.cycle,
            "instruction_queue": [str(ins) for ins in self.instruction_queue],
            "issued_count": self.issued_count,
            "stations": {
                pool.name.lower(): [s.as_row() for s in self.pools[pool]]
                for pool in PRIORITY_ORDER
            },
            "registers": self.registers.values(),
            "register_tags": self.registers.tags(),
            "cache": {
                "lines": self.cache.line_table(),
                "hits": self.cache.hits,
                "misses": self.cache.misses,
            },
        }
