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

"""Decoded instruction record and operation-kind tags.

Instructions are produced by the program loader and consumed read-only by
the scheduling engine. Source and destination registers are already
normalized to bank-prefixed names ("R2", "F6"); branch immediates are
already relative instruction-index deltas.
"""

from dataclasses import dataclass
from enum import Enum


class OpKind(Enum):
    """Operation kinds understood by the engine.

    Member names follow the assembler mnemonics with "." replaced by "_"
    (L.D -> L_D, ADD.D -> ADD_D).
    """

    # Loads by width
    LD = "LD"
    LW = "LW"
    L_S = "L.S"
    L_D = "L.D"
    # Stores by width
    SD = "SD"
    SW = "SW"
    S_D = "S.D"
    S_W = "S.W"
    # Immediate arithmetic
    ADDI = "ADDI"
    SUBI = "SUBI"
    DADDI = "DADDI"
    DSUBI = "DSUBI"
    # Integer register arithmetic
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    # Floating register arithmetic (integer-valued)
    ADD_D = "ADD.D"
    SUB_D = "SUB.D"
    MUL_D = "MUL.D"
    DIV_D = "DIV.D"
    # Branches
    BEQ = "BEQ"
    BNE = "BNE"
    NOP = "NOP"

    @property
    def mnemonic(self) -> str:
        """Return the assembler spelling of this kind."""
        return self.value


class Pool(Enum):
    """Reservation-station pools, in writeback priority order."""

    ADD = "Add"
    MUL = "Mul"
    INT = "Int"
    LOAD_STORE = "Load"

    @property
    def prefix(self) -> str:
        """Return the station name prefix (Add0, Mul1, Load2, ...)."""
        return self.value


@dataclass(frozen=True)
class Instruction:
    """Immutable decoded instruction.

    Attributes:
        kind: Operation kind
        dest: Destination register (None for stores, branches, NOP)
        src1: First source; base register for loads/stores
        src2: Second source; value register for stores
        immediate: Memory/branch offset or arithmetic constant
        text: Source text, used for display
    """

    kind: OpKind
    dest: str | None = None
    src1: str | None = None
    src2: str | None = None
    immediate: int | None = None
    text: str = ""

    @classmethod
    def nop(cls) -> "Instruction":
        """Build a NOP."""
        return cls(OpKind.NOP, text="NOP")

    def __str__(self) -> str:  # noqa: D105
        return self.text or self.kind.mnemonic
