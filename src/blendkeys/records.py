"""Value records produced by the parser.

A document looks like:
    jawOpen-12|rightEye#6.02,2.44,0.25|head#-21.4,-6.0,-6.6,-0.03,-0.1,-0.65|

and becomes a ValueRecord with three tables:
    int_keys    name -> 32-bit int
    xyz_keys    name -> (x, y, z)
    coord_keys  name -> ((x, y, z), (x, y, z))

Floats are stored as Python floats holding float32 values, so a record
compares equal to another built from the same text.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, field
from decimal import Decimal, localcontext
from typing import Any, Dict, List, Mapping, Tuple

import numpy as np

from .errors import RecordError

Vec3 = Tuple[float, float, float]
Coord = Tuple[Vec3, Vec3]

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1


def to_float32(value: float) -> float:
    """Round a Python float to float32 precision (overflow gives +/-inf)."""
    with np.errstate(over="ignore"):
        return float(np.float32(value))


_F32_MAX = np.float32(np.finfo(np.float32).max)
# Halfway between the largest float32 and 2**128; anything at or past it is inf.
_F32_OVERFLOW = Decimal(2 ** 128 - 2 ** 103)


def _f32_bits(value: np.float32) -> int:
    return int(np.array(value, dtype=np.float32).view(np.uint32))


def decimal_to_float32(text: str) -> float:
    """Convert decimal text to the nearest float32, rounding the exact value once.

    Ties go to the even mantissa. inf and nan spellings pass through.
    """
    exact = Decimal(text)
    if not exact.is_finite():
        return float(exact)
    if exact.copy_abs() >= _F32_OVERFLOW:
        return -math.inf if exact.is_signed() else math.inf

    with np.errstate(over="ignore"):
        guess = np.float32(float(exact))
    if np.isinf(guess):
        guess = _F32_MAX if guess > 0 else -_F32_MAX
    candidates = [
        np.nextafter(guess, np.float32(-np.inf)),
        guess,
        np.nextafter(guess, np.float32(np.inf)),
    ]
    with localcontext() as ctx:
        ctx.prec = max(200, len(text) + 160)
        best = min(
            (c for c in candidates if np.isfinite(c)),
            key=lambda c: (abs(Decimal(float(c)) - exact), _f32_bits(c) & 1),
        )
    return float(best)


def format_float32(value: float) -> str:
    """Shortest text that reads back as the same float32."""
    return str(np.float32(value))


@dataclass(frozen=True)
class RawEntry:
    """One '|'-delimited segment, split but not yet converted."""
    index: int
    raw: str
    name: str
    values: List[str]
    is_array: bool

    __hash__ = None  # type: ignore[assignment]


@dataclass(frozen=True)
class ValueRecord:
    int_keys: Dict[str, int] = field(default_factory=dict)
    xyz_keys: Dict[str, Vec3] = field(default_factory=dict)
    coord_keys: Dict[str, Coord] = field(default_factory=dict)

    # Tables are dicts, so records compare by value but cannot be hashed.
    __hash__ = None  # type: ignore[assignment]

    def __len__(self) -> int:
        return len(self.int_keys) + len(self.xyz_keys) + len(self.coord_keys)

    def is_empty(self) -> bool:
        return len(self) == 0

    def to_dict(self) -> Dict[str, Any]:
        """Flatten the three tables into one name -> value mapping.

        Coordinates become six-element lists (primary then secondary).
        On a name collision the later table wins: int, then xyz, then coord.
        """
        out: Dict[str, Any] = {}
        for name, ival in self.int_keys.items():
            out[name] = ival
        for name, vec in self.xyz_keys.items():
            out[name] = list(vec)
        for name, (primary, secondary) in self.coord_keys.items():
            out[name] = [*primary, *secondary]
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ValueRecord":
        """Rebuild a record from the flattened form produced by to_dict().

        Raises:
            RecordError: if a value is neither an int nor a 3/6 number sequence.
        """
        int_keys: Dict[str, int] = {}
        xyz_keys: Dict[str, Vec3] = {}
        coord_keys: Dict[str, Coord] = {}

        for name, value in data.items():
            if isinstance(value, bool):
                raise RecordError(f"boolean value for {name!r}")
            if isinstance(value, int):
                if not INT32_MIN <= value <= INT32_MAX:
                    raise RecordError(f"value for {name!r} does not fit in 32 bits: {value}")
                int_keys[name] = value
                continue
            if not isinstance(value, (list, tuple)):
                raise RecordError(f"unsupported value for {name!r}: {value!r}")
            if any(isinstance(v, bool) or not isinstance(v, (int, float, np.integer, np.floating)) for v in value):
                raise RecordError(f"non-numeric component for {name!r}: {value!r}")
            floats = [to_float32(v) for v in value]
            if len(floats) == 3:
                xyz_keys[name] = (floats[0], floats[1], floats[2])
            elif len(floats) == 6:
                coord_keys[name] = (
                    (floats[0], floats[1], floats[2]),
                    (floats[3], floats[4], floats[5]),
                )
            else:
                raise RecordError(f"expected 3 or 6 components for {name!r}, got {len(floats)}")

        return cls(int_keys=int_keys, xyz_keys=xyz_keys, coord_keys=coord_keys)

    def render(self) -> str:
        """Encode the record back into the pipe-delimited form.

        Empty names, and names holding a separator, do not survive a
        reparse.
        """
        parts: List[str] = []
        for name, ival in self.int_keys.items():
            parts.append(f"{name}-{ival}")
        for name, vec in self.xyz_keys.items():
            parts.append(f"{name}#" + ",".join(format_float32(v) for v in vec))
        for name, (primary, secondary) in self.coord_keys.items():
            parts.append(f"{name}#" + ",".join(format_float32(v) for v in (*primary, *secondary)))
        return "".join(p + "|" for p in parts)
