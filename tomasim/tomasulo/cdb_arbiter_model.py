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

"""Golden model for the common data bus arbiter.

One result crosses the bus per cycle. The arbiter scans stations in a fixed
priority order (Add pool, Mul pool, Int pool, Load/Store pool, ascending slot
index within each pool) and grants the first one with a result pending.
Every other finished station keeps its result and retries next cycle.
"""

from collections.abc import Iterable

from tomasim.models.instruction import Pool
from tomasim.tomasulo.rs_model import ReservationStation

# Priority order: highest priority first
PRIORITY_ORDER = [Pool.ADD, Pool.MUL, Pool.INT, Pool.LOAD_STORE]


class CdbArbiterModel:
    """Fixed-priority arbitration for the single result bus."""

    def arbitrate(
        self, stations: Iterable[ReservationStation]
    ) -> ReservationStation | None:
        """Return the station granted the bus this cycle, or None.

        Args:
            stations: Every station, already in PRIORITY_ORDER pool order and
                ascending slot order.
        """
        for station in stations:
            if station.busy and station.result_pending:
                return station
        return None
