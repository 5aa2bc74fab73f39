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

"""Golden model for reservation stations and their pools.

Each station holds one in-flight instruction with its two operand slots,
timing counters and phase flags. An operand slot is either Ready(value),
Pending(tag) naming the producing station, or None when the instruction
has no such source; a slot can never hold both a value and a tag.

Station lifecycle:
    Free -> Issued (bubble) -> AwaitingOperands -> Executing
         -> ResultPending -> Free
"""

from dataclasses import dataclass

from tomasim.models.instruction import Instruction, Pool


@dataclass(frozen=True)
class Ready:
    """Operand value already available."""

    value: int


@dataclass(frozen=True)
class Pending:
    """Operand waiting on the station named by tag."""

    tag: str


Operand = Ready | Pending | None


def operand_ready(operand: Operand) -> bool:
    """Return whether an operand slot needs no broadcast (absent counts)."""
    return not isinstance(operand, Pending)


def operand_value(operand: Operand) -> int:
    """Return the value of a ready slot (0 for an absent operand)."""
    return operand.value if isinstance(operand, Ready) else 0


@dataclass
class ReservationStation:
    """Single reservation-station slot.

    Attributes:
        name: Station identity, pool prefix + slot index (Add0, Load2)
        pool: Pool the slot belongs to
        busy: Slot holds an instruction
        instruction: The held instruction
        j, k: First/second operand slots
        address: Effective address (loads/stores)
        address_ready: Effective address has been computed
        remaining: Execution-latency countdown
        executing: Execution has started
        result_pending: Finished, waiting for the common data bus
        just_transitioned: One-cycle bubble after issue or operand broadcast
        cache_remaining: Cache-phase countdown (loads/stores)
        block_resident: Cache block valid for this access (loads/stores)
        port_cycles: Cycles spent holding the load/store port
    """

    name: str
    pool: Pool
    busy: bool = False
    instruction: Instruction | None = None
    j: Operand = None
    k: Operand = None
    address: int = 0
    address_ready: bool = False
    remaining: int = 0
    executing: bool = False
    result_pending: bool = False
    just_transitioned: bool = False
    cache_remaining: int = 0
    block_resident: bool = False
    port_cycles: int = 0

    def occupy(self, instruction: Instruction, latency: int) -> None:
        """Allocate the slot for instruction; the bubble is set for this cycle."""
        self.clear()
        self.busy = True
        self.instruction = instruction
        self.remaining = latency
        self.just_transitioned = True

    def clear(self) -> None:
        """Return the slot to Free with no instruction or operand state."""
        self.busy = False
        self.instruction = None
        self.j = None
        self.k = None
        self.address = 0
        self.address_ready = False
        self.remaining = 0
        self.executing = False
        self.result_pending = False
        self.just_transitioned = False
        self.cache_remaining = 0
        self.block_resident = False
        self.port_cycles = 0

    @property
    def operands_ready(self) -> bool:
        """Return whether no operand slot is waiting on a tag."""
        return operand_ready(self.j) and operand_ready(self.k)

    def receive(self, tag: str, value: int) -> bool:
        """Fill every slot pending on tag; return whether any slot matched.

        A matching station gets its bubble flag so it cannot start executing
        in the cycle the broadcast arrives.
        """
        matched = False
        if isinstance(self.j, Pending) and self.j.tag == tag:
            self.j = Ready(value)
            matched = True
        if isinstance(self.k, Pending) and self.k.tag == tag:
            self.k = Ready(value)
            matched = True
        if matched:
            self.just_transitioned = True
        return matched

    # Snapshot views (Vj/Vk/Qj/Qk in the classic table layout)

    @property
    def vj(self) -> int | None:  # noqa: D102
        return self.j.value if isinstance(self.j, Ready) else None

    @property
    def vk(self) -> int | None:  # noqa: D102
        return self.k.value if isinstance(self.k, Ready) else None

    @property
    def qj(self) -> str | None:  # noqa: D102
        return self.j.tag if isinstance(self.j, Pending) else None

    @property
    def qk(self) -> str | None:  # noqa: D102
        return self.k.tag if isinstance(self.k, Pending) else None

    def as_row(self) -> dict:
        """Build the display row used by engine snapshots."""
        return {
            "name": self.name,
            "busy": self.busy,
            "instruction": str(self.instruction) if self.instruction else None,
            "vj": self.vj,
            "vk": self.vk,
            "qj": self.qj,
            "qk": self.qk,
            "remaining": self.remaining,
        }


class RSPool:
    """Fixed-size pool of reservation stations."""

    def __init__(self, pool: Pool, size: int) -> None:
        """Create size free stations named pool prefix + index."""
        self.pool = pool
        self.size = size
        self.stations: list[ReservationStation] = [
            ReservationStation(name=f"{pool.prefix}{i}", pool=pool)
            for i in range(size)
        ]

    def __iter__(self):  # noqa: D105
        return iter(self.stations)

    def __len__(self) -> int:  # noqa: D105
        return self.size

    def allocate_free(self) -> ReservationStation | None:
        """Return the lowest-index free station, or None if saturated."""
        for station in self.stations:
            if not station.busy:
                return station
        return None

    @property
    def busy_count(self) -> int:
        """Return number of busy stations."""
        return sum(1 for s in self.stations if s.busy)

    def is_full(self) -> bool:
        """Return whether every station is busy."""
        return self.busy_count == self.size
