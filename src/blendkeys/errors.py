"""Errors raised while parsing blend-shape value strings."""

from __future__ import annotations


class BlendKeysError(Exception):
    """Base error for this package."""


class ParseError(BlendKeysError):
    """Raised when an input string cannot be parsed into a ValueRecord."""


class InvalidValueError(ParseError):
    """Raised in strict mode when a numeric token does not convert.

    Carries the position of the offending entry so callers can report it.
    """

    def __init__(self, index: int, name: str, token: str) -> None:
        self.index = index
        self.name = name
        self.token = token
        super().__init__(f"invalid value {token!r} for entry {name!r} (entry #{index})")


class RecordError(BlendKeysError):
    """Raised when a mapping cannot be turned into a ValueRecord."""
