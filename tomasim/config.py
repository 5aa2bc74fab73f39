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

"""Central configuration for the Tomasulo simulator.

Configuration
=============

This module contains the constants and the tunable parameter set used
throughout the simulator. Centralizing these values keeps the scheduling
engine free of magic numbers and makes it easy to reconfigure the machine
(latencies, cache geometry, reservation-station counts) for an experiment.

Organization:
    - Register File Configuration (names, widths, hardwired zero)
    - Data Type Masks (32-bit wrap)
    - Memory Configuration (word size, demonstration contents)
    - Register Presets (demonstration register values)
    - SimulatorConfig (per-run machine parameters)

Usage:
    Import specific constants as needed:
    >>> from tomasim.config import MASK32, ZERO_REGISTER
    >>> value = (a + b) & MASK32

    Or build a machine configuration:
    >>> from tomasim.config import SimulatorConfig
    >>> config = SimulatorConfig(mul_latency=4, num_load_buffers=1)
    >>> config.validate()
"""

from dataclasses import dataclass, fields
from typing import Final

from tomasim.models.instruction import Pool

# ============================================================================
# Register File Configuration
# ============================================================================

NUM_REGISTERS: Final[int] = 32
"""Number of registers in each bank (R0-R31 and F0-F31)."""

INT_REGISTER_PREFIX: Final[str] = "R"
"""Name prefix of the integer register bank."""

FP_REGISTER_PREFIX: Final[str] = "F"
"""Name prefix of the floating register bank (integer-valued in this model)."""

ZERO_REGISTER: Final[str] = "R0"
"""Integer register hardwired to zero; never renamed, ignores writes."""

# ============================================================================
# Data Type Masks
# ============================================================================

MASK8: Final[int] = (1 << 8) - 1
"""Byte mask (0xFF)."""

MASK32: Final[int] = (1 << 32) - 1
"""32-bit mask (0xFFFF_FFFF)."""

SIGN_BIT32: Final[int] = 1 << 31
"""Sign bit of a 32-bit two's complement value."""

# ============================================================================
# Memory Configuration
# ============================================================================

MEMORY_WORD_SIZE_BYTES: Final[int] = 4
"""Size of a memory word in bytes (32-bit little-endian words)."""

DEMO_MEMORY: Final[dict[int, int]] = {
    100: 10,
    104: 20,
    108: 30,
    200: 7,
    204: 3,
}
"""Word values pre-populated when demonstration memory is requested.

Addresses line up with the base registers of the register presets below
(R2=100 for tc1, R2=200 for tc2).
"""

# ============================================================================
# Register Presets
# ============================================================================

REGISTER_PRESETS: Final[dict[str, dict[str, int]]] = {
    # Loads/stores off R2, multiplier operands in F1/F3/F4
    "tc1": {"R2": 100, "F4": 5, "F1": 10, "F3": 20},
    "tc2": {"R2": 200, "F1": 3, "F3": 7, "F4": 2},
    # Loop: R1 is set by the first DADDI, R2 is the loop termination value
    "tc3": {"R1": 0, "R2": 0, "F2": 3},
}
"""Named register initializations for the demonstration programs."""

# ============================================================================
# Machine Configuration
# ============================================================================


@dataclass
class SimulatorConfig:
    """Machine parameters for one simulation run.

    Latencies are execution-phase cycle counts charged after operands are
    ready (and, for memory operations, after the cache phase). Cache timing
    is split between the hit latency charged on every resident access and
    the miss penalty charged before a missing block becomes resident.

    Latencies:
        add_latency: ADD/SUB and their .D forms
        mul_latency: MUL and MUL.D
        div_latency: DIV and DIV.D
        load_latency: every load width
        store_latency: every store width
        int_latency: immediate arithmetic, branches, and the fallback for
            kinds without a dedicated latency (NOP)

    Cache:
        cache_size_bytes: total capacity
        block_size_bytes: bytes per line
        cache_hit_latency: cycles a resident access occupies the port
        cache_miss_penalty: cycles before a missing block is filled

    Reservation stations:
        num_add_stations, num_mul_stations, num_int_stations,
        num_load_buffers (unified load/store pool)
    """

    add_latency: int = 2
    mul_latency: int = 10
    div_latency: int = 40
    load_latency: int = 2
    store_latency: int = 2
    int_latency: int = 1

    cache_size_bytes: int = 1024
    block_size_bytes: int = 16
    cache_hit_latency: int = 2
    cache_miss_penalty: int = 50

    num_add_stations: int = 3
    num_mul_stations: int = 2
    num_int_stations: int = 2
    num_load_buffers: int = 3

    def validate(self) -> None:
        """Raise ValueError if any parameter is out of range."""
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or isinstance(value, bool):
                raise ValueError(f"{f.name} must be an integer, got {value!r}")
            if value < 0:
                raise ValueError(f"{f.name} must be non-negative, got {value}")
        if self.block_size_bytes == 0:
            raise ValueError("block_size_bytes must be positive")

    def pool_sizes(self) -> dict[Pool, int]:
        """Return the station count for each pool."""
        return {
            Pool.ADD: self.num_add_stations,
            Pool.MUL: self.num_mul_stations,
            Pool.INT: self.num_int_stations,
            Pool.LOAD_STORE: self.num_load_buffers,
        }
