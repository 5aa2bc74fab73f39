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

"""Direct-mapped data cache over a sparse byte-addressable memory.

Memory Model
============

The backing store is authoritative: it maps byte addresses to byte values
(unset bytes read as 0) and is never bounds-checked. The cache in front of
it only models timing, so its lines carry a valid flag and a block tag but
no data of their own.

Address decomposition for a block size B and L lines:
    block number = address // B
    line index   = block number mod L
    tag          = block number

Miss handling is split in two so the engine can charge the miss penalty
before the block becomes visible:
    probe(address)      -> 0 on a hit, else the miss penalty (line untouched)
    fill_block(address) -> mark the line valid with the address's tag
"""

from dataclasses import dataclass

from tomasim.config import MASK8, MEMORY_WORD_SIZE_BYTES
from tomasim.models.alu_model import to_signed32


@dataclass
class CacheLine:
    """One direct-mapped line."""

    valid: bool = False
    tag: int = -1


class CacheModel:
    """Direct-mapped cache with split hit-latency/miss-penalty timing."""

    def __init__(
        self,
        cache_size_bytes: int,
        block_size_bytes: int,
        hit_latency: int,
        miss_penalty: int,
        preload: dict[int, int] | None = None,
    ) -> None:
        """Initialize cache geometry and optionally pre-populate words.

        Args:
            cache_size_bytes: Total capacity in bytes.
            block_size_bytes: Bytes per line; must be positive.
            hit_latency: Cycles a resident access occupies the memory port.
            miss_penalty: Cycles before a missing block is filled.
            preload: Optional word address -> value map written to memory.
        """
        if block_size_bytes <= 0:
            raise ValueError(f"block size must be positive, got {block_size_bytes}")
        if cache_size_bytes < 0 or hit_latency < 0 or miss_penalty < 0:
            raise ValueError("cache size and latencies must be non-negative")

        self.cache_size_bytes = cache_size_bytes
        self.block_size_bytes = block_size_bytes
        self.hit_latency = hit_latency
        self.miss_penalty = miss_penalty
        self.line_count = max(1, cache_size_bytes // block_size_bytes)
        self.lines: list[CacheLine] = [CacheLine() for _ in range(self.line_count)]
        self.memory: dict[int, int] = {}
        self.hits = 0
        self.misses = 0

        for address, value in (preload or {}).items():
            self.store_word(address, value)

    # =========================================================================
    # Address decomposition
    # =========================================================================

    def block_of(self, address: int) -> int:
        """Return the block number (also the tag) of address."""
        return address // self.block_size_bytes

    def index_of(self, address: int) -> int:
        """Return the line index address maps to."""
        return self.block_of(address) % self.line_count

    def is_resident(self, address: int) -> bool:
        """Return whether the block holding address is valid in the cache."""
        line = self.lines[self.index_of(address)]
        return line.valid and line.tag == self.block_of(address)

    # =========================================================================
    # Timing
    # =========================================================================

    def probe(self, address: int) -> int:
        """Look up address and return the miss penalty owed (0 on a hit).

        A miss is counted but the line is not filled; the caller fills it
        with fill_block() once the penalty has elapsed.
        """
        if self.is_resident(address):
            self.hits += 1
            return 0
        self.misses += 1
        return self.miss_penalty

    def fill_block(self, address: int) -> None:
        """Mark the line for address valid with the matching tag."""
        line = self.lines[self.index_of(address)]
        line.valid = True
        line.tag = self.block_of(address)

    # =========================================================================
    # Data access
    # =========================================================================

    def read_byte(self, address: int) -> int:
        """Read one byte from the backing store (0 if never written)."""
        return self.memory.get(address, 0)

    def write_byte(self, address: int, value: int) -> None:
        """Write one byte to the backing store."""
        self.memory[address] = value & MASK8

    def read_word(self, address: int) -> int:
        """Read a 4-byte little-endian word as a signed 32-bit value."""
        value = 0
        for i in range(MEMORY_WORD_SIZE_BYTES):
            value |= self.read_byte(address + i) << (8 * i)
        return to_signed32(value)

    def write_word(self, address: int, value: int) -> None:
        """Write a 4-byte little-endian word (write-allocate).

        Hit/miss counters are updated as probe() would; a missing line is
        allocated immediately. Timing is the caller's responsibility.
        """
        if self.probe(address):
            self.fill_block(address)
        self.store_word(address, value)

    def store_word(self, address: int, value: int) -> None:
        """Write a word without touching the cache state."""
        for i in range(MEMORY_WORD_SIZE_BYTES):
            self.write_byte(address + i, value >> (8 * i))

    # =========================================================================
    # Debug
    # =========================================================================

    def line_table(self) -> list[dict]:
        """Return one display row per line.

        Rows carry index, valid, tag, the block's base/end address and its
        first four bytes as hex (None for lines never filled).
        """
        rows = []
        for index, line in enumerate(self.lines):
            row = {
                "index": index,
                "valid": line.valid,
                "tag": line.tag if line.valid else None,
                "base_address": None,
                "end_address": None,
                "data": None,
            }
            if line.valid:
                base = line.tag * self.block_size_bytes
                sample = min(MEMORY_WORD_SIZE_BYTES, self.block_size_bytes)
                row["base_address"] = base
                row["end_address"] = base + self.block_size_bytes - 1
                row["data"] = " ".join(
                    f"{self.read_byte(base + i):02x}" for i in range(sample)
                )
            rows.append(row)
        return rows
