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

"""Plain-text rendering of engine snapshots.

Turns the dictionary returned by TomasuloEngine.snapshot() into the
fixed-width tables printed by the command line front end: one table per
station pool, the registers that are non-zero or renamed, the valid cache
lines and the hit/miss counters.
"""

from tomasim.config import ZERO_REGISTER

_STATION_COLUMNS = ["name", "busy", "instruction", "vj", "vk", "qj", "qk", "remaining"]
_CACHE_COLUMNS = ["index", "tag", "base_address", "end_address", "data"]

_POOL_TITLES = {
    "add": "Add stations",
    "mul": "Mul stations",
    "int": "Int stations",
    "load_store": "Load/store buffers",
}


def _cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def format_table(rows: list[dict], columns: list[str]) -> list[str]:
    """Format rows as left-aligned columns with a header line."""
    cells = [[_cell(row.get(c)) for c in columns] for row in rows]
    widths = [
        max([len(c)] + [len(r[i]) for r in cells]) for i, c in enumerate(columns)
    ]
    lines = ["  ".join(c.ljust(w) for c, w in zip(columns, widths)).rstrip()]
    for r in cells:
        lines.append("  ".join(v.ljust(w) for v, w in zip(r, widths)).rstrip())
    return lines


def render_registers(registers: dict[str, int], tags: dict[str, str]) -> list[str]:
    """List registers that hold a non-zero value or a pending tag."""
    shown = [
        name
        for name in registers
        if name != ZERO_REGISTER and (registers[name] or name in tags)
    ]
    if not shown:
        return ["  (all zero, no pending tags)"]
    lines = []
    for name in shown:
        tag = tags.get(name)
        suffix = f"  <- {tag}" if tag else ""
        lines.append(f"  {name:<4}= {registers[name]}{suffix}")
    return lines


def render_snapshot(snapshot: dict) -> str:
    """Render a full engine snapshot as text."""
    lines = [f"=== Cycle {snapshot['cycle']} ==="]
    queue = snapshot["instruction_queue"]
    lines.append(
        f"Issued: {snapshot['issued_count']}  Queue: {len(queue)}"
        + (f"  Next: {queue[0]}" if queue else "")
    )

    for key, rows in snapshot["stations"].items():
        lines.append("")
        lines.append(f"{_POOL_TITLES.get(key, key)}:")
        if rows:
            lines.extend("  " + line for line in format_table(rows, _STATION_COLUMNS))
        else:
            lines.append("  (none)")

    lines.append("")
    lines.append("Registers:")
    lines.extend(render_registers(snapshot["registers"], snapshot["register_tags"]))

    cache = snapshot["cache"]
    valid = [row for row in cache["lines"] if row["valid"]]
    lines.append("")
    lines.append(f"Cache: hits={cache['hits']} misses={cache['misses']}")
    if valid:
        lines.extend("  " + line for line in format_table(valid, _CACHE_COLUMNS))
    else:
        lines.append("  (no valid lines)")

    return "\n".join(lines)
