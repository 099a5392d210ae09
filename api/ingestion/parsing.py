"""
CSV parsing for dataset uploads.

Dialect: comma delimiter, double-quote wrapping, doubled-quote escaping
(what spreadsheet exporters produce). Pipeline:
- split the decoded text into logical lines, skipping blank ones
- first line -> header names, every other line -> field values
- pair values with header names into numbered rows

Row policy is lenient: missing trailing values become "", extra values are
dropped, and a line whose first value is empty is skipped without consuming a
row number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Sequence

from core.errors import EmptyInputError

DELIMITER = ","
QUOTE = '"'


class LogicalLines:
    """
    Non-blank lines of `text`, produced lazily.

    Each iteration starts over from the beginning of the text.
    """

    def __init__(self, text: str):
        self._text = text or ""

    def __iter__(self) -> Iterator[str]:
        for line in self._text.split("\n"):
            if line.strip():
                yield line


@dataclass(frozen=True)
class Row:
    row_number: int
    fields: dict[str, str]

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.fields.get(name, default)


@dataclass(frozen=True)
class ParsedCsv:
    headers: list[str]
    rows: list[Row]
    skipped_lines: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)


def split_lines(text: str) -> LogicalLines:
    lines = LogicalLines(text)
    if next(iter(lines), None) is None:
        raise EmptyInputError("CSV file appears to be empty.")
    return lines


def parse_line(line: str) -> list[str]:
    """
    Split one line into field values.

    A quote outside a quoted run opens one; inside a run, `""` is a literal
    quote and a lone `"` closes it. Commas inside a run are content. A run
    still open at the end of the line is kept as-is.
    """
    values: list[str] = []
    buf: list[str] = []
    in_quotes = False

    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == QUOTE:
            if in_quotes and i + 1 < n and line[i + 1] == QUOTE:
                buf.append(QUOTE)
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == DELIMITER and not in_quotes:
            values.append("".join(buf).strip())
            buf = []
        else:
            buf.append(ch)
        i += 1

    values.append("".join(buf).strip())
    return values


def parse_header(line: str) -> list[str]:
    return [name.replace(QUOTE, "") for name in parse_line(line)]


def format_value(value: str) -> str:
    if DELIMITER in value or QUOTE in value:
        return QUOTE + value.replace(QUOTE, QUOTE * 2) + QUOTE
    return value


def format_line(values: Sequence[str]) -> str:
    """
    Inverse of `parse_line` for values without surrounding whitespace.
    """
    return DELIMITER.join(format_value(v) for v in values)


def assemble_row(headers: Sequence[str], values: Sequence[str], row_number: int) -> Row | None:
    if not values or values[0] == "":
        return None

    # Positional assignment: with duplicate header names the later column wins.
    fields: dict[str, str] = {}
    for i, name in enumerate(headers):
        fields[name] = values[i] if i < len(values) else ""
    return Row(row_number=row_number, fields=fields)


def parse_csv(text: str) -> ParsedCsv:
    lines = iter(split_lines(text))
    headers = parse_header(next(lines))

    rows: list[Row] = []
    skipped = 0
    for line in lines:
        row = assemble_row(headers, parse_line(line), row_number=len(rows) + 1)
        if row is None:
            skipped += 1
            continue
        rows.append(row)

    return ParsedCsv(headers=headers, rows=rows, skipped_lines=skipped)
