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

"""Python model of the register file with Tomasulo renaming tags.

This module tracks two maps keyed by register name:
- values: signed 32-bit contents of R0-R31 and F0-F31
- tags: the reservation station committed to produce a register's next value

Rename rules:
- Issue overwrites any existing tag (the last issued producer wins)
- Writeback clears a tag only if it still names the writing station; a later
  Issue may already have re-tagged the register
- R0 is hardwired to zero: it never carries a tag and ignores writes
"""

from tomasim.config import (
    FP_REGISTER_PREFIX,
    INT_REGISTER_PREFIX,
    NUM_REGISTERS,
    ZERO_REGISTER,
)
from tomasim.models.alu_model import to_signed32


class RegisterFileModel:
    """Register values plus the register -> station rename map.

    Usage:
        regs = RegisterFileModel()

        # Rename at issue
        regs.set_tag("F2", "Mul0")
        assert regs.get_tag("F2") == "Mul0"

        # Writeback from the owning station
        regs.write("F2", 42)
        regs.clear_tag_if_owner("F2", "Mul0")
        assert regs.get_tag("F2") is None
    """

    def __init__(self) -> None:
        """Create R0-R31 and F0-F31, all zero and untagged."""
        self._values: dict[str, int] = {}
        for prefix in (INT_REGISTER_PREFIX, FP_REGISTER_PREFIX):
            for i in range(NUM_REGISTERS):
                self._values[f"{prefix}{i}"] = 0
        self._tags: dict[str, str] = {}

    # =========================================================================
    # Values
    # =========================================================================

    def read(self, name: str) -> int:
        """Return the value of a register (always 0 for R0)."""
        if name == ZERO_REGISTER:
            return 0
        return self._values.get(name, 0)

    def write(self, name: str, value: int) -> None:
        """Write a register, wrapping to signed 32 bits (R0 ignores writes)."""
        if name == ZERO_REGISTER:
            return
        self._values[name] = to_signed32(value)

    def apply_preset(self, preset: dict[str, int]) -> None:
        """Write several registers at once."""
        for name, value in preset.items():
            self.write(name, value)

    # =========================================================================
    # Rename tags
    # =========================================================================

    def set_tag(self, name: str | None, station: str) -> None:
        """Point a register at its producing station, replacing any old tag."""
        if name is None or name == ZERO_REGISTER:
            return
        self._tags[name] = station

    def get_tag(self, name: str | None) -> str | None:
        """Return the pending producer of a register, or None if ready."""
        if name is None or name == ZERO_REGISTER:
            return None
        return self._tags.get(name)

    def clear_tag_if_owner(self, name: str, station: str) -> None:
        """Clear a register's tag only if it still names station."""
        if self._tags.get(name) == station:
            del self._tags[name]

    # =========================================================================
    # Snapshots
    # =========================================================================

    def values(self) -> dict[str, int]:
        """Return a copy of all register values."""
        values = dict(self._values)
        values[ZERO_REGISTER] = 0
        return values

    def tags(self) -> dict[str, str]:
        """Return a copy of the outstanding rename tags."""
        return dict(self._tags)

    def dump_state(self) -> str:
        """Return string representation of current state."""
        lines = ["RegisterFileModel State:"]
        nonzero = [(n, v) for n, v in self._values.items() if v and n != ZERO_REGISTER]
        if nonzero:
            lines.append("  Values (non-zero):")
            for name, value in nonzero:
                lines.append(f"    {name} = {value}")
        else:
            lines.append("  Values: all zero")
        if self._tags:
            lines.append("  Tags:")
            for name, station in self._tags.items():
                lines.append(f"    {name} -> {station}")
        else:
            lines.append("  Tags: all clear")
        return "\n".join(lines)
