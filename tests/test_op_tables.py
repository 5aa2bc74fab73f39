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

"""Unit tests for the operation tables and machine configuration."""

import pytest

from tomasim.config import SimulatorConfig
from tomasim.encoders import op_tables
from tomasim.encoders.op_tables import (
    branch_taken,
    defines_destination,
    evaluate,
    latency_for,
    pool_for,
)
from tomasim.models.instruction import OpKind, Pool


# =============================================================================
# Tables
# =============================================================================


def test_every_kind_classified() -> None:
    """Each kind other than NOP belongs to exactly one group."""
    groups = [
        op_tables.LOADS,
        op_tables.STORES,
        op_tables.IMMEDIATE_OPS,
        op_tables.REGISTER_OPS,
        op_tables.BRANCHES,
    ]
    for kind in OpKind:
        memberships = sum(kind in g for g in groups)
        expected = 0 if kind is OpKind.NOP else 1
        assert memberships == expected, f"{kind} is in {memberships} groups"


@pytest.mark.parametrize(
    "kind, pool",
    [
        (OpKind.ADD_D, Pool.ADD),
        (OpKind.SUB, Pool.ADD),
        (OpKind.MUL_D, Pool.MUL),
        (OpKind.DIV, Pool.MUL),
        (OpKind.DADDI, Pool.INT),
        (OpKind.BNE, Pool.INT),
        (OpKind.L_D, Pool.LOAD_STORE),
        (OpKind.SW, Pool.LOAD_STORE),
        (OpKind.NOP, Pool.ADD),
    ],
)
def test_pool_routing(kind: OpKind, pool: Pool) -> None:
    """Kinds route to their pool; unmapped kinds fall back to Add."""
    assert pool_for(kind) is pool


def test_latency_lookup() -> None:
    """Latencies come from the matching config field."""
    config = SimulatorConfig(
        add_latency=3,
        mul_latency=7,
        div_latency=11,
        load_latency=4,
        store_latency=5,
        int_latency=2,
    )
    assert latency_for(OpKind.SUB_D, config) == 3
    assert latency_for(OpKind.MUL, config) == 7
    assert latency_for(OpKind.DIV_D, config) == 11
    assert latency_for(OpKind.LW, config) == 4
    assert latency_for(OpKind.S_D, config) == 5
    assert latency_for(OpKind.BEQ, config) == 2
    assert latency_for(OpKind.NOP, config) == 2


def test_defines_destination() -> None:
    """Stores, branches and NOP write no register."""
    assert defines_destination(OpKind.L_D)
    assert defines_destination(OpKind.ADDI)
    assert not defines_destination(OpKind.S_D)
    assert not defines_destination(OpKind.BNE)
    assert not defines_destination(OpKind.NOP)


# =============================================================================
# Evaluation
# =============================================================================


@pytest.mark.parametrize(
    "kind, a, b, imm, expected",
    [
        (OpKind.ADD, 2, 3, 0, 5),
        (OpKind.SUB_D, 2, 3, 0, -1),
        (OpKind.MUL_D, -4, 3, 0, -12),
        (OpKind.DIV, 9, 0, 0, 0),
        (OpKind.ADDI, 10, 99, -3, 7),
        (OpKind.DSUBI, 10, 99, 4, 6),
        (OpKind.NOP, 1, 2, 3, 0),
    ],
)
def test_evaluate(kind: OpKind, a: int, b: int, imm: int, expected: int) -> None:
    """Immediate ops ignore operand b; NOP yields 0."""
    assert evaluate(kind, a, b, imm) == expected


def test_branch_conditions() -> None:
    """BEQ takes on equal operands, BNE on different ones."""
    assert branch_taken(OpKind.BEQ, 4, 4)
    assert not branch_taken(OpKind.BEQ, 4, 5)
    assert branch_taken(OpKind.BNE, 4, 5)
    assert not branch_taken(OpKind.BNE, 4, 4)


# =============================================================================
# SimulatorConfig
# =============================================================================


def test_config_defaults() -> None:
    """Defaults describe the reference machine."""
    config = SimulatorConfig()
    config.validate()
    assert (config.add_latency, config.mul_latency, config.div_latency) == (2, 10, 40)
    assert (config.cache_size_bytes, config.block_size_bytes) == (1024, 16)
    assert (config.cache_hit_latency, config.cache_miss_penalty) == (2, 50)
    assert config.pool_sizes() == {
        Pool.ADD: 3,
        Pool.MUL: 2,
        Pool.INT: 2,
        Pool.LOAD_STORE: 3,
    }


@pytest.mark.parametrize(
    "overrides",
    [
        {"mul_latency": -1},
        {"num_add_stations": -2},
        {"block_size_bytes": 0},
        {"add_latency": 1.5},
        {"int_latency": True},
    ],
)
def test_config_validation(overrides: dict) -> None:
    """Negative, non-integer and zero-block configurations are rejected."""
    with pytest.raises(ValueError):
        SimulatorConfig(**overrides).validate()


def test_zero_latency_allowed() -> None:
    """Zero latencies and empty pools are legal machine parameters."""
    SimulatorConfig(int_latency=0, num_mul_stations=0, cache_miss_penalty=0).validate()
