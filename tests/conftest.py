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

"""Pytest configuration for tests."""

from collections.abc import Callable
from typing import Any

import pytest

from tomasim.config import SimulatorConfig
from tomasim.encoders.program_loader import load_program
from tomasim.tomasulo.tomasulo_model import TomasuloEngine


def pytest_configure(config: Any) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line(
        "markers", "random: mark test as a constrained-random regression"
    )


def fast_config(**overrides: int) -> SimulatorConfig:
    """Small latencies so directed tests finish in a handful of cycles."""
    params = {
        "add_latency": 2,
        "mul_latency": 4,
        "div_latency": 6,
        "load_latency": 2,
        "store_latency": 2,
        "int_latency": 1,
        "cache_size_bytes": 64,
        "block_size_bytes": 16,
        "cache_hit_latency": 1,
        "cache_miss_penalty": 3,
    }
    params.update(overrides)
    return SimulatorConfig(**params)


@pytest.fixture
def make_engine() -> Callable[..., TomasuloEngine]:
    """Build an engine from program text, register values and config overrides.

    Usage:
        engine = make_engine("ADDI R1, R0, 5", registers={"R2": 7}, int_latency=3)
    """

    def _make(
        program: str = "",
        *,
        registers: dict[str, int] | None = None,
        demo_memory: bool = False,
        **overrides: int,
    ) -> TomasuloEngine:
        engine = TomasuloEngine(fast_config(**overrides), demo_memory=demo_memory)
        engine.registers.apply_preset(registers or {})
        engine.load_program(load_program(program))
        return engine

    return _make
