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

"""Tests for the command line front end and snapshot rendering."""

from pathlib import Path

import pytest

from tomasim.cli import (
    build_parser,
    config_from_args,
    main,
    parse_memory_assignment,
    parse_register_assignment,
)
from tomasim.monitors.report import format_table, render_snapshot
from tomasim.tomasulo.tomasulo_model import TomasuloEngine


@pytest.fixture
def program_file(tmp_path: Path):
    """Write program text to a temporary file and return its path."""

    def _write(text: str) -> str:
        path = tmp_path / "prog.s"
        path.write_text(text)
        return str(path)

    return _write


# =============================================================================
# Argument helpers
# =============================================================================


def test_assignment_parsing() -> None:
    """REG=VALUE and ADDR=VALUE accept case-insensitive names and hex."""
    assert parse_register_assignment("f4=5") == ("F4", 5)
    assert parse_register_assignment("R2 = -3") == ("R2", -3)
    assert parse_memory_assignment("0x64=10") == (100, 10)


@pytest.mark.parametrize("text", ["F4", "=5", "F4=", "F99=1", "F4=x"])
def test_bad_register_assignment(text: str) -> None:
    """Malformed assignments raise ValueError."""
    with pytest.raises(ValueError):
        parse_register_assignment(text)


def test_config_flags_override_defaults() -> None:
    """Every SimulatorConfig field has a flag; unset flags keep defaults."""
    args = build_parser().parse_args(
        ["prog.s", "--mul-latency", "4", "--num-load-buffers", "1"]
    )
    config = config_from_args(args)
    assert config.mul_latency == 4
    assert config.num_load_buffers == 1
    assert config.div_latency == 40


# =============================================================================
# End-to-end runs
# =============================================================================


def test_run_until_idle(program_file, capsys: pytest.CaptureFixture) -> None:
    """Default run prints the event log and the final state."""
    path = program_file("L.D F6, 4(R2)\nMUL.D F0, F6, F4\n")
    assert main([path, "--preset", "tc1", "--demo-memory"]) == 0

    out = capsys.readouterr().out
    assert "Cycle 1: Issued L.D F6, 4(R2) to Load0" in out
    assert "F6  = 20" in out
    assert "F0  = 100" in out
    assert "Cache: hits=0 misses=1" in out
    assert "Load/store buffers:" in out


def test_fixed_cycles_and_quiet(program_file, capsys: pytest.CaptureFixture) -> None:
    """--cycles stops early and --quiet suppresses the event log."""
    path = program_file("ADDI R1, R0, 5\n")
    assert main([path, "--cycles", "1", "--quiet", "--check"]) == 0

    out = capsys.readouterr().out
    assert "Cycle 1: Issued" not in out
    assert "=== Cycle 1 ===" in out
    assert "R1  = 0  <- Int0" in out


def test_set_and_poke(program_file, capsys: pytest.CaptureFixture) -> None:
    """Registers and memory words can be initialized from the command line."""
    path = program_file("L.D F2, 16(R0)\nADD.D F3, F1, F2\n")
    args = [path, "--set", "F1=3", "--poke", "0x10=9", "--cache-miss-penalty", "1"]
    assert main(args) == 0
    assert "F3  = 12" in capsys.readouterr().out


def test_program_error_exit_code(program_file, capsys: pytest.CaptureFixture) -> None:
    """A malformed program reports the line and exits with 1."""
    path = program_file("NOP\nFOO R1\n")
    assert main([path]) == 1
    assert "line 2" in capsys.readouterr().err


def test_numeric_branches_rejects_labels(
    program_file, capsys: pytest.CaptureFixture
) -> None:
    """--numeric-branches turns a label definition into a load error."""
    path = program_file("BEQ R0, R0, 1\nskip: NOP\n")
    assert main([path, "--numeric-branches"]) == 1
    assert "label 'skip' not allowed" in capsys.readouterr().err

    path = program_file("BEQ R0, R0, 1\nADDI R3, R0, 1\nADDI R4, R0, 2\n")
    assert main([path, "--numeric-branches", "--quiet"]) == 0


@pytest.mark.parametrize(
    "extra, message",
    [
        (["--set", "F1"], "expected NAME=VALUE"),
        (["--mul-latency", "-1"], "mul_latency"),
        (["--cycles", "-2"], "--cycles"),
    ],
)
def test_bad_arguments_exit_code(
    program_file, capsys: pytest.CaptureFixture, extra: list[str], message: str
) -> None:
    """Invalid values exit with 1 and a message on stderr."""
    path = program_file("NOP\n")
    assert main([path, *extra]) == 1
    assert message in capsys.readouterr().err


def test_missing_program_file(tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
    """An unreadable program file exits with 1."""
    assert main([str(tmp_path / "missing.s")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_runaway_loop_warns(program_file, capsys: pytest.CaptureFixture) -> None:
    """A loop that never drains stops at --max-cycles with a warning."""
    path = program_file("loop: BEQ R0, R0, loop\n")
    assert main([path, "--max-cycles", "30", "--quiet"]) == 0
    captured = capsys.readouterr()
    assert "=== Cycle 30 ===" in captured.out
    assert "not idle after 30 cycles" in captured.err


# =============================================================================
# Rendering
# =============================================================================


def test_format_table_alignment() -> None:
    """Columns are padded to the widest cell; None renders as '-'."""
    lines = format_table(
        [{"a": "x", "b": None}, {"a": "long", "b": True}], ["a", "b"]
    )
    assert lines == ["a     b", "x     -", "long  yes"]


def test_render_fresh_engine() -> None:
    """An untouched engine renders empty registers and cache."""
    text = render_snapshot(TomasuloEngine().snapshot())
    assert text.startswith("=== Cycle 0 ===")
    assert "Add stations:" in text
    assert "Mul2" not in text
    assert "(all zero, no pending tags)" in text
    assert "(no valid lines)" in text
