"""Blend-shape value string parser.

Pipeline shape:
- split the document into entries on '|' (and the '?' sentinel)
- split each entry into name + sub-values on '#' (array) or '-' (scalar)
- classify by sub-value count: 1 -> int, 3 -> xyz, 6 -> coord
- convert, insert, and drop the empty-named int entry at the end

Entries with any other sub-value count are dropped in both modes. Only a
numeric conversion failure is an error, and only in strict mode.
"""

from __future__ import annotations
import enum
import logging
import re
from typing import Dict, Iterator, List, Tuple

from .errors import InvalidValueError
from .records import INT32_MAX, INT32_MIN, Coord, RawEntry, ValueRecord, Vec3, decimal_to_float32

logger = logging.getLogger(__name__)

ENTRY_SEP = re.compile(r"[|?]")
INT_PATTERN = re.compile(r"[+-]?[0-9]+")
FLOAT_PATTERN = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?)",
    re.IGNORECASE,
)


class ParsePolicy(enum.Enum):
    STRICT = "strict"
    LOSSY = "lossy"


def split_entry(segment: str) -> Tuple[str, List[str], bool]:
    """Split one entry into (name, sub-values, is_array).

    '#' wins over '-' whenever present. Without either separator the whole
    segment is the name and the value is "0".
    """
    if "#" in segment:
        name, payload = segment.split("#", 1)
        return name, payload.split(","), True
    if "-" in segment:
        name, payload = segment.split("-", 1)
        return name, [payload], False
    return segment, ["0"], False


def iter_entries(text: str) -> Iterator[RawEntry]:
    """Yield every entry of a document, empty segments included."""
    for index, segment in enumerate(ENTRY_SEP.split(text)):
        name, values, is_array = split_entry(segment)
        yield RawEntry(index=index, raw=segment, name=name, values=values, is_array=is_array)


def _to_int(token: str) -> int:
    if INT_PATTERN.fullmatch(token) is None:
        raise ValueError(token)
    val = int(token)
    if not INT32_MIN <= val <= INT32_MAX:
        raise ValueError(token)
    return val


def _to_float(token: str) -> float:
    if FLOAT_PATTERN.fullmatch(token) is None:
        raise ValueError(token)
    return decimal_to_float32(token)


class _Converter:
    """Applies the policy to numeric conversion of one entry's tokens."""

    def __init__(self, policy: ParsePolicy) -> None:
        self.policy = policy

    def _convert(self, entry: RawEntry, token: str, func, zero):
        try:
            return func(token)
        except ValueError:
            if self.policy is ParsePolicy.STRICT:
                raise InvalidValueError(entry.index, entry.name, token) from None
            logger.debug("entry %r: %r is not a number, using %r", entry.name, token, zero)
            return zero

    def int_value(self, entry: RawEntry) -> int:
        return self._convert(entry, entry.values[0], _to_int, 0)

    def floats(self, entry: RawEntry) -> List[float]:
        return [self._convert(entry, tok, _to_float, 0.0) for tok in entry.values]


def parse_value(text: str, policy: ParsePolicy = ParsePolicy.STRICT) -> ValueRecord:
    """Parse a document into a ValueRecord under the given policy.

    Raises:
        InvalidValueError: strict policy only, on the first bad number.
        TypeError: if text is not a str.
    """
    if not isinstance(text, str):
        raise TypeError(f"expected str, got {type(text).__name__}")

    conv = _Converter(policy)
    int_keys: Dict[str, int] = {}
    xyz_keys: Dict[str, Vec3] = {}
    coord_keys: Dict[str, Coord] = {}

    for entry in iter_entries(text):
        count = len(entry.values)
        if count == 1:
            int_keys[entry.name] = conv.int_value(entry)
        elif count == 3:
            x, y, z = conv.floats(entry)
            xyz_keys[entry.name] = (x, y, z)
        elif count == 6:
            v = conv.floats(entry)
            coord_keys[entry.name] = ((v[0], v[1], v[2]), (v[3], v[4], v[5]))
        else:
            logger.debug("dropping entry %r with %d values", entry.name, count)

    # Empty segments all land here; only the int table is cleaned.
    int_keys.pop("", None)

    return ValueRecord(int_keys=int_keys, xyz_keys=xyz_keys, coord_keys=coord_keys)


def parse(text: str) -> ValueRecord:
    """Strict parse: any unparseable number raises InvalidValueError."""
    return parse_value(text, ParsePolicy.STRICT)


def parse_lossy(text: str) -> ValueRecord:
    """Lossy parse: unparseable numbers become 0 / 0.0."""
    return parse_value(text, ParsePolicy.LOSSY)
