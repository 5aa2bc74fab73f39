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

"""TOMASIM - cycle-accurate Tomasulo scheduling simulator.

This package models dynamic instruction scheduling under Tomasulo's
algorithm: register renaming through reservation-station tags, a single
common data bus, a unified load/store unit in front of a direct-mapped data
cache, and branch resolution that redirects the not-yet-issued instruction
queue. Values are simulated as signed 32-bit integers.

Note: the engine is driven externally one cycle at a time; see
tomasim.tomasulo.tomasulo_model.TomasuloEngine.
"""

from ._version import __version__

__all__ = [
    "__version__",
]
