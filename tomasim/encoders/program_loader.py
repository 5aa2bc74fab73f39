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

"""Textual program loader for the Tomasulo simulator.

Program Loader
==============

Turns assembly source into the ordered list of decoded Instruction records
the engine consumes. Register names are normalized to upper case and branch
labels are resolved to relative instruction-index deltas.

Syntax:
    - One instruction per line; "#" or ";" starts a comment
    - "label:" defines a label, optionally followed by an instruction
    - Mnemonics are case-insensitive; "." and "_" are interchangeable

Instruction Forms:
    L.D  F6, 32(R2)        loads:      dest, offset(base)
    S.D  F6, 0(R2)         stores:     value, offset(base)
    ADD.D F1, F2, F3       register:   dest, src1, src2
    DADDI R1, R1, -8       immediate:  dest, src, constant
    BNE  R1, R2, loop      branches:   src1, src2, label | offset
    NOP

Branch Offsets:
    A branch operand is either a numeric offset or a label. The engine
    computes a taken branch's target at the branch's writeback, as its
    issued-instruction count plus the offset. A label resolves to
    label_index - (branch_index + 1), which lands on the label only when
    no later instruction issued between the branch and its writeback.
    With more than one free Int station the next instruction usually
    issues first, and the branch lands past the label. Programs that
    branch to labels log a warning. Pass allow_labels=False to
    accept numeric offsets only.

Example Usage:
    >>> program = load_program('''
    ...           BEQ R1, R2, skip
    ...           ADDI R3, R0, 1
    ...     skip: ADDI R4, R0, 2
    ... ''')
    >>> program[0].immediate
    1
"""

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from tomasim.config import FP_REGISTER_PREFIX, INT_REGISTER_PREFIX, NUM_REGISTERS
from tomasim.encoders.op_tables import (
    BRANCHES,
    IMMEDIATE_OPS,
    LOADS,
    REGISTER_OPS,
    STORES,
)
from tomasim.models.instruction import Instruction, OpKind

logger = logging.getLogger(__name__)

_COMMENT_RE = re.compile(r"[#;].*$")
_LABEL_RE = re.compile(r"^([A-Za-z_]\w*)\s*:\s*(.*)$")
_REGISTER_RE = re.compile(
    rf"^([{INT_REGISTER_PREFIX}{FP_REGISTER_PREFIX}])(\d+)$", re.IGNORECASE
)
_MEMORY_RE = re.compile(r"^([-+]?\w*)\s*\(\s*([^)\s]+)\s*\)$")

# Operand count per instruction form
_OPERAND_COUNTS: list[tuple[frozenset[OpKind], int]] = [
    (LOADS | STORES, 2),
    (REGISTER_OPS | IMMEDIATE_OPS | BRANCHES, 3),
    (frozenset({OpKind.NOP}), 0),
]


class ProgramLoadError(ValueError):
    """A source line could not be decoded."""

    def __init__(self, line_number: int, line: str, reason: str) -> None:
        """Record where decoding failed and why."""
        super().__init__(f"line {line_number}: {reason}: {line!r}")
        self.line_number = line_number
        self.line = line
        self.reason = reason


def parse_kind(mnemonic: str) -> OpKind:
    """Map an assembler mnemonic (L.D, add.d, DADDI) to its OpKind.

    Raises:
        KeyError: Unknown mnemonic.
    """
    return OpKind[mnemonic.strip().upper().replace(".", "_")]


def parse_register(token: str) -> str:
    """Normalize a register name ("f6" -> "F6").

    Raises:
        ValueError: Not an R0-R31 / F0-F31 register.
    """
    match = _REGISTER_RE.match(token.strip())
    if match is None or int(match.group(2)) >= NUM_REGISTERS:
        raise ValueError(f"invalid register {token.strip()!r}")
    return f"{match.group(1).upper()}{int(match.group(2))}"


def parse_int(token: str) -> int:
    """Parse a decimal or 0x-prefixed integer literal."""
    token = token.strip()
    try:
        return int(token, 0)
    except ValueError:
        # int(..., 0) rejects leading zeros such as "08"
        return int(token, 10)


def _parse_memory_operand(token: str) -> tuple[int, str]:
    """Split "offset(base)" into (offset, base register)."""
    match = _MEMORY_RE.match(token.strip())
    if match is None:
        raise ValueError(f"expected offset(base), got {token.strip()!r}")
    offset, base = match.groups()
    if offset in ("", "+", "-"):
        return 0, parse_register(base)
    return parse_int(offset), parse_register(base)


def _expected_operands(kind: OpKind) -> int:
    for kinds, count in _OPERAND_COUNTS:
        if kind in kinds:
            return count
    return 0


def decode(
    text: str, index: int = 0, labels: dict[str, int] | None = None
) -> Instruction:
    """Decode one instruction body (no label, no comment).

    Args:
        text: Instruction text, e.g. "MUL.D F0, F2, F4".
        index: Program index of the instruction (for branch labels).
        labels: Label name -> program index.

    Raises:
        ValueError: The text is not a valid instruction.
    """
    text = text.strip()
    mnemonic, *rest_list = text.split(None, 1)
    rest = rest_list[0] if rest_list else ""
    try:
        kind = parse_kind(mnemonic)
    except KeyError:
        raise ValueError(f"unknown mnemonic {mnemonic!r}") from None

    operands = [op.strip() for op in rest.split(",")] if rest.strip() else []
    expected = _expected_operands(kind)
    if len(operands) != expected:
        raise ValueError(
            f"{kind.mnemonic} takes {expected} operands, got {len(operands)}"
        )

    if kind in LOADS:
        offset, base = _parse_memory_operand(operands[1])
        return Instruction(
            kind,
            dest=parse_register(operands[0]),
            src1=base,
            immediate=offset,
            text=text,
        )
    if kind in STORES:
        offset, base = _parse_memory_operand(operands[1])
        return Instruction(
            kind,
            src1=base,
            src2=parse_register(operands[0]),
            immediate=offset,
            text=text,
        )
    if kind in REGISTER_OPS:
        return Instruction(
            kind,
            dest=parse_register(operands[0]),
            src1=parse_register(operands[1]),
            src2=parse_register(operands[2]),
            text=text,
        )
    if kind in IMMEDIATE_OPS:
        return Instruction(
            kind,
            dest=parse_register(operands[0]),
            src1=parse_register(operands[1]),
            immediate=parse_int(operands[2]),
            text=text,
        )
    if kind in BRANCHES:
        return Instruction(
            kind,
            src1=parse_register(operands[0]),
            src2=parse_register(operands[1]),
            immediate=_branch_offset(operands[2], index, labels or {}),
            text=text,
        )
    return Instruction(kind, text=text)


def _branch_offset(token: str, index: int, labels: dict[str, int]) -> int:
    if token in labels:
        return labels[token] - (index + 1)
    try:
        return parse_int(token)
    except ValueError:
        raise ValueError(f"undefined label {token!r}") from None


def load_program(
    source: str | Iterable[str], *, allow_labels: bool = True
) -> list[Instruction]:
    """Decode assembly source into an ordered instruction list.

    Args:
        source: Program text, or an iterable of lines.
        allow_labels: When False, reject label definitions so every branch
            must carry a numeric offset.

    Raises:
        ProgramLoadError: A line is malformed, a label is duplicated or
            undefined, or a label appears while labels are disallowed.
    """
    lines = source.splitlines() if isinstance(source, str) else list(source)

    # Pass 1: strip comments, collect labels and instruction bodies
    labels: dict[str, int] = {}
    bodies: list[tuple[int, str, str]] = []
    for line_number, raw in enumerate(lines, start=1):
        body = _COMMENT_RE.sub("", raw).strip()
        while True:
            match = _LABEL_RE.match(body)
            if match is None:
                break
            label, body = match.group(1), match.group(2).strip()
            if not allow_labels:
                raise ProgramLoadError(line_number, raw, f"label {label!r} not allowed")
            if label in labels:
                raise ProgramLoadError(line_number, raw, f"duplicate label {label!r}")
            labels[label] = len(bodies)
        if body:
            bodies.append((line_number, raw, body))

    # Pass 2: decode with labels known
    program = []
    label_branches = []
    for index, (line_number, raw, body) in enumerate(bodies):
        try:
            ins = decode(body, index, labels)
        except ValueError as e:
            raise ProgramLoadError(line_number, raw, str(e)) from e
        if ins.kind in BRANCHES and body.rsplit(",", 1)[-1].strip() in labels:
            label_branches.append(line_number)
        program.append(ins)

    if label_branches:
        logger.warning(
            "Label branches on line(s) %s: a taken branch lands on its label "
            "only if no later instruction issues before it resolves",
            ", ".join(map(str, label_branches)),
        )
    return program


def load_program_file(
    path: str | Path, *, allow_labels: bool = True
) -> list[Instruction]:
    """Read and decode a program file."""
    return load_program(Path(path).read_text(), allow_labels=allow_labels)
