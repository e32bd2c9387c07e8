"""
Include directive parsing.

Recognizes lines of the form::

    #include <lib/helpers.sh>
    #include "lib/helpers.sh"
    #include 'lib/helpers.sh'
    #include lib/helpers.sh

Parsing is a pure function of the text: nothing is resolved or read here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from shrup.errors import InvalidIncludeDirectiveError

INCLUDE_MARKER = "#include"

# Characters that would make a bare (unquoted) path ambiguous.
_BARE_FORBIDDEN = frozenset("<>\"'")


class QuoteStyle(str, Enum):
    """How the path of an include directive was delimited."""

    ANGLE_BRACKETS = "angle_brackets"
    DOUBLE_QUOTES = "double_quotes"
    SINGLE_QUOTES = "single_quotes"
    BARE = "bare"


_DELIMITERS: list[tuple[str, str, QuoteStyle]] = [
    ("<", ">", QuoteStyle.ANGLE_BRACKETS),
    ('"', '"', QuoteStyle.DOUBLE_QUOTES),
    ("'", "'", QuoteStyle.SINGLE_QUOTES),
]


@dataclass(frozen=True)
class IncludeDirective:
    """One `#include` line found in a source file."""

    line_number: int
    """1-indexed line number within `source_file`."""

    file_path: str
    """The path exactly as written between the delimiters."""

    source_file: Path
    """The file containing the directive, for relative resolution."""

    quote_style: QuoteStyle


def split_path_and_style(remainder: str) -> tuple[str, QuoteStyle] | None:
    """
    Split the text after `#include` into its path and quote style, or return
    `None` if it matches none of the accepted forms.
    """
    remainder = remainder.strip()

    for opener, closer, style in _DELIMITERS:
        if remainder.startswith(opener) and remainder.endswith(closer) and len(remainder) > 2:
            return remainder[1:-1], style

    if remainder and not any(c.isspace() or c in _BARE_FORBIDDEN for c in remainder):
        return remainder, QuoteStyle.BARE

    return None


def parse_include_line(line: str, line_number: int, source_file: Path) -> IncludeDirective | None:
    """
    Parse a single line. Returns `None` for ordinary lines and raises
    `InvalidIncludeDirectiveError` for malformed `#include` lines.
    """
    trimmed = line.strip()
    if not trimmed.startswith(INCLUDE_MARKER):
        return None

    remainder = trimmed[len(INCLUDE_MARKER) :].strip()
    if not remainder:
        raise InvalidIncludeDirectiveError(line_number, trimmed)

    parsed = split_path_and_style(remainder)
    if parsed is None:
        raise InvalidIncludeDirectiveError(line_number, trimmed)

    file_path, quote_style = parsed
    return IncludeDirective(
        line_number=line_number,
        file_path=file_path,
        source_file=source_file,
        quote_style=quote_style,
    )


def parse_includes(text: str, source_file: Path) -> list[IncludeDirective]:
    """
    Find all include directives in `text`, in line order.

    Lines are the `\\n`-separated pieces of the text, numbered from 1, so line
    numbers agree with the line walk done during expansion.
    """
    directives: list[IncludeDirective] = []
    for index, line in enumerate(text.split("\n")):
        directive = parse_include_line(line, index + 1, source_file)
        if directive is not None:
            directives.append(directive)
    return directives
