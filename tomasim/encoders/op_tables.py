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

"""Operation tables mapping instruction kinds to pools, latencies and evaluators.

Op Tables
=========

This module is the central registry that connects each OpKind to:

    1. The reservation-station pool it issues into
    2. The SimulatorConfig field holding its execution latency
    3. The evaluator that computes its result at writeback

The engine dispatches through these tables in all three phases, so adding
an operation means extending OpKind and the tables here.

Kind Groups:
    - LOADS / STORES: word accesses through the load/store pool
    - IMMEDIATE_OPS: ADDI-style arithmetic (second operand is the immediate)
    - REGISTER_OPS: register-register arithmetic
    - BRANCHES: BEQ/BNE, resolved at writeback

Example Usage:
    >>> pool_for(OpKind.MUL_D)
    <Pool.MUL: 'Mul'>
    >>> latency_for(OpKind.LW, SimulatorConfig())
    2
    >>> evaluate(OpKind.SUBI, 10, 0, 3)
    7
"""

from collections.abc import Callable

from tomasim.config import SimulatorConfig
from tomasim.models import alu_model
from tomasim.models.instruction import OpKind, Pool

LOADS: frozenset[OpKind] = frozenset({OpKind.LD, OpKind.LW, OpKind.L_S, OpKind.L_D})
STORES: frozenset[OpKind] = frozenset({OpKind.SD, OpKind.SW, OpKind.S_D, OpKind.S_W})
MEMORY_OPS: frozenset[OpKind] = LOADS | STORES
IMMEDIATE_OPS: frozenset[OpKind] = frozenset(
    {OpKind.ADDI, OpKind.SUBI, OpKind.DADDI, OpKind.DSUBI}
)
BRANCHES: frozenset[OpKind] = frozenset({OpKind.BEQ, OpKind.BNE})
REGISTER_OPS: frozenset[OpKind] = frozenset(
    {
        OpKind.ADD,
        OpKind.SUB,
        OpKind.MUL,
        OpKind.DIV,
        OpKind.ADD_D,
        OpKind.SUB_D,
        OpKind.MUL_D,
        OpKind.DIV_D,
    }
)

# ============================================================================
# Pool routing
# ============================================================================

POOLS: dict[OpKind, Pool] = {
    OpKind.ADD: Pool.ADD,
    OpKind.SUB: Pool.ADD,
    OpKind.ADD_D: Pool.ADD,
    OpKind.SUB_D: Pool.ADD,
    OpKind.MUL: Pool.MUL,
    OpKind.DIV: Pool.MUL,
    OpKind.MUL_D: Pool.MUL,
    OpKind.DIV_D: Pool.MUL,
    **{kind: Pool.INT for kind in IMMEDIATE_OPS | BRANCHES},
    **{kind: Pool.LOAD_STORE for kind in MEMORY_OPS},
}

DEFAULT_POOL = Pool.ADD
"""Pool for kinds without an explicit mapping (NOP)."""

# ============================================================================
# Latencies (SimulatorConfig field names)
# ============================================================================

LATENCY_FIELDS: dict[OpKind, str] = {
    OpKind.ADD: "add_latency",
    OpKind.SUB: "add_latency",
    OpKind.ADD_D: "add_latency",
    OpKind.SUB_D: "add_latency",
    OpKind.MUL: "mul_latency",
    OpKind.MUL_D: "mul_latency",
    OpKind.DIV: "div_latency",
    OpKind.DIV_D: "div_latency",
    **{kind: "load_latency" for kind in LOADS},
    **{kind: "store_latency" for kind in STORES},
    **{kind: "int_latency" for kind in IMMEDIATE_OPS | BRANCHES},
}

FALLBACK_LATENCY_FIELD = "int_latency"
"""Latency field for kinds without an explicit mapping (NOP)."""

# ============================================================================
# Evaluators: (operand_a, operand_b, immediate) -> result
# ============================================================================

Evaluator = Callable[[int, int, int], int]

EVALUATORS: dict[OpKind, Evaluator] = {
    OpKind.ADD: lambda a, b, imm: alu_model.add(a, b),
    OpKind.ADD_D: lambda a, b, imm: alu_model.add(a, b),
    OpKind.SUB: lambda a, b, imm: alu_model.sub(a, b),
    OpKind.SUB_D: lambda a, b, imm: alu_model.sub(a, b),
    OpKind.MUL: lambda a, b, imm: alu_model.mul(a, b),
    OpKind.MUL_D: lambda a, b, imm: alu_model.mul(a, b),
    OpKind.DIV: lambda a, b, imm: alu_model.div(a, b),
    OpKind.DIV_D: lambda a, b, imm: alu_model.div(a, b),
    OpKind.ADDI: lambda a, b, imm: alu_model.add(a, imm),
    OpKind.DADDI: lambda a, b, imm: alu_model.add(a, imm),
    OpKind.SUBI: lambda a, b, imm: alu_model.sub(a, imm),
    OpKind.DSUBI: lambda a, b, imm: alu_model.sub(a, imm),
}


def pool_for(kind: OpKind) -> Pool:
    """Return the reservation-station pool an instruction kind issues into."""
    return POOLS.get(kind, DEFAULT_POOL)


def latency_for(kind: OpKind, config: SimulatorConfig) -> int:
    """Return the fixed execution latency of an instruction kind."""
    return getattr(config, LATENCY_FIELDS.get(kind, FALLBACK_LATENCY_FIELD))


def defines_destination(kind: OpKind) -> bool:
    """Return whether the kind writes a destination register."""
    return kind not in STORES and kind not in BRANCHES and kind is not OpKind.NOP


def evaluate(kind: OpKind, operand_a: int, operand_b: int, immediate: int) -> int:
    """Compute the writeback value of an arithmetic kind.

    Kinds without an evaluator (NOP) produce 0.
    """
    evaluator = EVALUATORS.get(kind)
    if evaluator is None:
        return 0
    return evaluator(operand_a, operand_b, immediate)


def branch_taken(kind: OpKind, operand_a: int, operand_b: int) -> bool:
    """Return whether a BEQ/BNE condition holds."""
    if kind is OpKind.BEQ:
        return operand_a == operand_b
    return operand_a != operand_b
