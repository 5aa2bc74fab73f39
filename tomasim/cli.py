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

"""Command line front end for the Tomasulo simulator.

Loads a program file, applies register presets and memory pokes, runs the
engine and prints the event log followed by the final machine state.

Examples:
  tomasim loop.s --preset tc3                  # run until idle
  tomasim prog.s --cycles 12                   # stop after 12 cycles
  tomasim prog.s --set R2=100 --poke 100=10    # custom initial state
  tomasim prog.s --mul-latency 4 --check       # run under all monitors
  tomasim prog.s --numeric-branches            # numeric branch offsets only
"""

import argparse
import logging
import sys
from dataclasses import fields

from tomasim import __version__
from tomasim.config import REGISTER_PRESETS, SimulatorConfig
from tomasim.encoders.program_loader import (
    ProgramLoadError,
    load_program_file,
    parse_int,
    parse_register,
)
from tomasim.monitors.events import EventKind
from tomasim.monitors.monitors import all_monitors, run_with_monitors
from tomasim.monitors.report import render_snapshot
from tomasim.tomasulo.tomasulo_model import TomasuloEngine

logger = logging.getLogger(__name__)

DEFAULT_MAX_CYCLES = 10_000
"""Safety bound on a run-until-idle (a taken backward branch may loop forever)."""


def _split_assignment(text: str) -> tuple[str, str]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip() or not value.strip():
        raise ValueError(f"expected NAME=VALUE, got {text!r}")
    return name.strip(), value.strip()


def parse_register_assignment(text: str) -> tuple[str, int]:
    """Parse "F4=5" into ("F4", 5)."""
    name, value = _split_assignment(text)
    return parse_register(name), parse_int(value)


def parse_memory_assignment(text: str) -> tuple[int, int]:
    """Parse "100=10" (or "0x64=10") into (100, 10)."""
    address, value = _split_assignment(text)
    return parse_int(address), parse_int(value)


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser, including one flag per SimulatorConfig field."""
    parser = argparse.ArgumentParser(
        prog="tomasim",
        description="Cycle-accurate Tomasulo scheduling simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:" + __doc__.split("Examples:", 1)[1],
    )
    parser.add_argument("program", help="Assembly program file")
    parser.add_argument(
        "--cycles",
        type=int,
        help="Advance exactly this many cycles instead of running until idle",
    )
    parser.add_argument(
        "--max-cycles",
        type=int,
        default=DEFAULT_MAX_CYCLES,
        help=f"Upper bound when running until idle (default: {DEFAULT_MAX_CYCLES})",
    )
    parser.add_argument(
        "--preset",
        choices=sorted(REGISTER_PRESETS),
        help="Initialize registers from a named preset",
    )
    parser.add_argument(
        "--set",
        dest="registers",
        action="append",
        default=[],
        metavar="REG=VALUE",
        help="Initialize a register (repeatable, applied after --preset)",
    )
    parser.add_argument(
        "--poke",
        action="append",
        default=[],
        metavar="ADDR=VALUE",
        help="Initialize a memory word (repeatable)",
    )
    parser.add_argument(
        "--demo-memory",
        action="store_true",
        help="Pre-populate memory with the demonstration words",
    )
    parser.add_argument(
        "--numeric-branches",
        action="store_true",
        help="Reject branch labels; branches take numeric offsets only",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Check engine invariants every cycle",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Print only the final state, not the event log",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    machine = parser.add_argument_group("machine configuration")
    defaults = SimulatorConfig()
    for f in fields(SimulatorConfig):
        machine.add_argument(
            f"--{f.name.replace('_', '-')}",
            dest=f.name,
            type=int,
            metavar="N",
            help=f"(default: {getattr(defaults, f.name)})",
        )
    return parser


def config_from_args(args: argparse.Namespace) -> SimulatorConfig:
    """Build a SimulatorConfig from the machine configuration flags."""
    overrides = {
        f.name: getattr(args, f.name)
        for f in fields(SimulatorConfig)
        if getattr(args, f.name) is not None
    }
    config = SimulatorConfig(**overrides)
    config.validate()
    return config


def main(argv: list[str] | None = None) -> int:
    """Run the simulator; return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        program = load_program_file(
            args.program, allow_labels=not args.numeric_branches
        )
        config = config_from_args(args)
        registers = [parse_register_assignment(a) for a in args.registers]
        pokes = [parse_memory_assignment(a) for a in args.poke]
        if args.cycles is not None and args.cycles < 0:
            raise ValueError(f"--cycles must be non-negative, got {args.cycles}")
    except (ProgramLoadError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    engine = TomasuloEngine(config, demo_memory=args.demo_memory)
    if args.preset:
        engine.registers.apply_preset(REGISTER_PRESETS[args.preset])
    for name, value in registers:
        engine.registers.write(name, value)
    for address, value in pokes:
        engine.cache.store_word(address, value)
    engine.load_program(program)
    logger.debug("Loaded %d instructions from %s", len(program), args.program)

    monitors = all_monitors() if args.check else []
    until_idle = args.cycles is None
    try:
        events = run_with_monitors(
            engine,
            monitors,
            args.max_cycles if until_idle else args.cycles,
            until_idle=until_idle,
        )
    except AssertionError as e:
        print(f"Check failed: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        for event in events:
            if event.kind is not EventKind.CYCLE:
                print(event)
        print()
    print(render_snapshot(engine.snapshot()))

    if until_idle and not engine.is_idle():
        print(
            f"Warning: not idle after {args.max_cycles} cycles",
            file=sys.stderr,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
