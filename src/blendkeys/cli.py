"""Command-line interface for blendkeys.

Intentionally simple:
- reads frames from stdin or a file, one encoded document per line
- parses each frame strictly (or lossily with --lossy)
- writes one JSON object (or re-rendered frame) per line to stdout
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from typing import Iterable, TextIO

from .errors import ParseError
from .parser import ParsePolicy, parse_value
from .records import ValueRecord


def _read_lines(path: str | None) -> TextIO:
    if path is None or path == "-":
        return sys.stdin
    return open(path, "r", encoding="utf-8")


def _emit(record: ValueRecord, render: bool) -> str:
    if render:
        return record.render()
    return json.dumps(record.to_dict())


def convert_lines(lines: Iterable[str], policy: ParsePolicy, render: bool = False) -> list[str]:
    """Parse every non-blank line into its output form.

    Raises:
        ParseError: with the 1-based line number prefixed to the message.
    """
    out: list[str] = []
    for lineno, line in enumerate(lines, start=1):
        raw = line.rstrip("\r\n")
        if not raw.strip():
            continue
        try:
            record = parse_value(raw, policy)
        except ParseError as ex:
            raise ParseError(f"line {lineno}: {ex}") from ex
        out.append(_emit(record, render))
    return out


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="blendkeys", description="Decode blend-shape value frames.")
    p.add_argument("path", nargs="?", default="-", help="Input file path or '-' for stdin")
    p.add_argument("--lossy", action="store_true", help="Replace unparseable numbers with zero")
    p.add_argument("--render", action="store_true", help="Write frames back in pipe form instead of JSON")
    p.add_argument("-v", "--verbose", action="store_true", help="Log dropped entries and substitutions")
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    policy = ParsePolicy.LOSSY if args.lossy else ParsePolicy.STRICT

    try:
        with _read_lines(args.path) as fh:
            out = convert_lines(fh, policy, render=args.render)
    except (ParseError, OSError) as ex:
        sys.stderr.write(f"error: {ex}\n")
        return 2

    for line in out:
        sys.stdout.write(line + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
