"""Delimited text parsing for voter files.

Splits a decoded document into lines, reads the header row once, and turns
every following line into a ``MappedVoterRow`` by column position.
"""

import csv
import re

from loguru import logger

from canvass_api.lib.importer.headers import build_field_map
from canvass_api.lib.importer.types import MappedVoterRow

_LINE_BREAK = re.compile(r"\r?\n")


def decode_csv_bytes(data: bytes) -> str:
    """Decode raw file bytes, trying UTF-8 (BOM stripped) before Latin-1.

    Latin-1 maps every byte, so decoding never fails.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("Voter file is not valid UTF-8, decoding as Latin-1")
        return data.decode("latin-1")


def parse_csv_line(line: str) -> list[str]:
    """Split one line of comma-delimited text into its field values.

    Double-quoted fields may contain commas; a doubled quote inside a quoted
    field is a literal quote character. A bare carriage return inside an
    unquoted field is read as a space. A line the reader still rejects yields
    no values, so its row is skipped instead of aborting the document.

    Args:
        line: A single line without its terminator.

    Returns:
        The field values in column order (empty for an empty or unreadable line).
    """
    try:
        return _read_row(line)
    except csv.Error:
        logger.debug("CSV line rejected, retrying with carriage returns read as spaces")
    try:
        return _read_row(line.replace("\r", " "))
    except csv.Error as e:
        logger.warning(f"Skipping unreadable CSV line: {e}")
        return []


def _read_row(line: str) -> list[str]:
    reader = csv.reader([line], delimiter=",", quotechar='"', doublequote=True)
    return next(reader, [])


def split_lines(text: str) -> list[str]:
    """Split a document on ``\\n`` or ``\\r\\n`` and drop whitespace-only lines."""
    return [line for line in _LINE_BREAK.split(text) if line.strip()]


def parse_csv_text(text: str) -> list[MappedVoterRow]:
    """Parse a CSV document into field-mapped voter rows.

    The first non-blank line is the header row. Each data value is assigned
    to the canonical field of the header at the same index; columns whose
    header is unrecognised are discarded, and values missing from a short
    line are left unset. When two columns map to the same field the
    rightmost one wins.

    Args:
        text: The full decoded document.

    Returns:
        One row per data line, in file order.
    """
    lines = split_lines(text)
    if not lines:
        return []

    field_map = build_field_map(parse_csv_line(lines[0]))
    rows: list[MappedVoterRow] = []
    for line in lines[1:]:
        values = parse_csv_line(line)
        mapped: dict[str, str] = {}
        for idx, field in enumerate(field_map):
            if field is None or idx >= len(values):
                continue
            mapped[field.value] = values[idx]
        rows.append(MappedVoterRow(**mapped))

    logger.debug(f"Parsed {len(rows)} data rows from {len(field_map)} columns")
    return rows
