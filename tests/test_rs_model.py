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

"""Unit tests for reservation stations, pools and the CDB arbiter."""

from tomasim.models.instruction import Instruction, OpKind, Pool
from tomasim.tomasulo.cdb_arbiter_model import CdbArbiterModel
from tomasim.tomasulo.rs_model import (
    Pending,
    Ready,
    ReservationStation,
    RSPool,
    operand_ready,
    operand_value,
)

ADD_D = Instruction(
    OpKind.ADD_D, dest="F1", src1="F2", src2="F3", text="ADD.D F1, F2, F3"
)


# =============================================================================
# Operands
# =============================================================================


def test_operand_helpers() -> None:
    """Absent operands are ready with value 0; pending ones are not ready."""
    assert operand_ready(Ready(4))
    assert operand_ready(None)
    assert not operand_ready(Pending("Mul0"))
    assert operand_value(Ready(4)) == 4
    assert operand_value(None) == 0


# =============================================================================
# Station lifecycle
# =============================================================================


def test_occupy_sets_bubble_and_latency() -> None:
    """A freshly issued station is busy, in its bubble and armed."""
    station = ReservationStation("Add0", Pool.ADD)
    station.occupy(ADD_D, 3)
    assert station.busy
    assert station.instruction is ADD_D
    assert station.remaining == 3
    assert station.just_transitioned
    assert not station.executing


def test_clear_resets_everything() -> None:
    """A freed station holds no instruction or operand state."""
    station = ReservationStation("Load0", Pool.LOAD_STORE)
    station.occupy(ADD_D, 2)
    station.j = Ready(1)
    station.k = Pending("Mul1")
    station.address, station.address_ready = 64, True
    station.cache_remaining, station.block_resident = 4, True
    station.port_cycles = 2
    station.clear()
    assert station == ReservationStation("Load0", Pool.LOAD_STORE)


def test_receive_fills_matching_slots() -> None:
    """A broadcast fills every slot waiting on the tag and sets the bubble."""
    station = ReservationStation("Add0", Pool.ADD)
    station.occupy(ADD_D, 2)
    station.j = Pending("Mul0")
    station.k = Pending("Mul0")
    station.just_transitioned = False

    assert station.receive("Mul0", 9)
    assert station.j == Ready(9)
    assert station.k == Ready(9)
    assert station.operands_ready
    assert station.just_transitioned


def test_receive_ignores_other_tags() -> None:
    """A broadcast from another producer leaves the station untouched."""
    station = ReservationStation("Add0", Pool.ADD)
    station.occupy(ADD_D, 2)
    station.j = Pending("Mul0")
    station.k = Ready(1)
    station.just_transitioned = False

    assert not station.receive("Mul1", 9)
    assert station.j == Pending("Mul0")
    assert not station.just_transitioned
    assert not station.operands_ready


def test_table_view() -> None:
    """Snapshot rows expose Vj/Vk/Qj/Qk."""
    station = ReservationStation("Add0", Pool.ADD)
    station.occupy(ADD_D, 2)
    station.j = Ready(5)
    station.k = Pending("Load1")
    assert station.as_row() == {
        "name": "Add0",
        "busy": True,
        "instruction": "ADD.D F1, F2, F3",
        "vj": 5,
        "vk": None,
        "qj": None,
        "qk": "Load1",
        "remaining": 2,
    }


# =============================================================================
# Pools
# =============================================================================


def test_pool_naming_and_allocation_order() -> None:
    """Stations are named by prefix and allocated lowest index first."""
    pool = RSPool(Pool.LOAD_STORE, 3)
    assert [s.name for s in pool] == ["Load0", "Load1", "Load2"]

    first = pool.allocate_free()
    assert first.name == "Load0"
    assert not first.busy, "allocate_free does not occupy the slot"
    first.occupy(ADD_D, 1)
    assert pool.allocate_free().name == "Load1"


def test_pool_saturation() -> None:
    """A full pool returns None."""
    pool = RSPool(Pool.MUL, 2)
    for station in pool:
        station.occupy(ADD_D, 1)
    assert pool.is_full()
    assert pool.busy_count == 2
    assert pool.allocate_free() is None


def test_empty_pool_always_saturated() -> None:
    """A zero-size pool never allocates."""
    pool = RSPool(Pool.INT, 0)
    assert len(pool) == 0
    assert pool.allocate_free() is None


# =============================================================================
# CDB arbitration
# =============================================================================


def test_arbiter_picks_first_pending_in_order() -> None:
    """The first finished station in priority order wins the bus."""
    add = RSPool(Pool.ADD, 2)
    load = RSPool(Pool.LOAD_STORE, 2)
    stations = [*add, *load]
    for s in (add.stations[1], load.stations[0]):
        s.occupy(ADD_D, 1)
        s.result_pending = True

    arbiter = CdbArbiterModel()
    assert arbiter.arbitrate(stations).name == "Add1"
    add.stations[1].clear()
    assert arbiter.arbitrate(stations).name == "Load0"


def test_arbiter_idle_bus() -> None:
    """No finished station means no grant."""
    pool = RSPool(Pool.ADD, 2)
    pool.stations[0].occupy(ADD_D, 1)
    assert CdbArbiterModel().arbitrate(pool) is None
