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

"""Reference ALU operations for the simulated functional units.

ALU Operations
==============

Values are plain signed 32-bit integers in this model: the floating bank
holds the same integer-valued storage as the integer bank, so ADD.D and
ADD share one implementation. Every result wraps to signed 32 bits the way
a 32-bit register would.

Division by zero does not trap; it yields the defined fallback result 0.
"""

from collections.abc import Callable
from functools import wraps

from tomasim.config import MASK32, SIGN_BIT32


def to_signed32(value: int) -> int:
    """Interpret the low 32 bits of value as a two's complement integer."""
    value &= MASK32
    return value - (1 << 32) if value & SIGN_BIT32 else value


def wrap_to_signed32(function: Callable) -> Callable:
    """Wrap an operation result to signed 32 bits."""

    @wraps(function)
    def wrapper(*args: int, **kwargs: int) -> int:
        return to_signed32(function(*args, **kwargs))

    return wrapper


@wrap_to_signed32
def add(operand_a: int, operand_b: int) -> int:
    """Add two values (wraps on overflow)."""
    return operand_a + operand_b


@wrap_to_signed32
def sub(operand_a: int, operand_b: int) -> int:
    """Subtract operand_b from operand_a (wraps on underflow)."""
    return operand_a - operand_b


@wrap_to_signed32
def mul(operand_a: int, operand_b: int) -> int:
    """Multiply two values, keeping the low 32 bits."""
    return operand_a * operand_b


@wrap_to_signed32
def div(operand_a: int, operand_b: int) -> int:
    """Divide, truncating toward zero; division by zero yields 0."""
    if operand_b == 0:
        return 0
    quotient = abs(operand_a) // abs(operand_b)
    return quotient if (operand_a < 0) == (operand_b < 0) else -quotient
