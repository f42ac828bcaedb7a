"""Importer library public API.

Provides voter file header normalization, CSV row parsing, and isolated
XLSX conversion.
"""

from canvass_api.lib.importer.headers import build_field_map, clean_header, map_header_to_field, normalize_header
from canvass_api.lib.importer.parser import decode_csv_bytes, parse_csv_line, parse_csv_text, split_lines
from canvass_api.lib.importer.types import MappedVoterRow, VoterField
from canvass_api.lib.importer.xlsx import XlsxConversionError, is_xlsx_key, xlsx_to_csv

__all__ = [
    "MappedVoterRow",
    "VoterField",
    "XlsxConversionError",
    "build_field_map",
    "clean_header",
    "decode_csv_bytes",
    "is_xlsx_key",
    "map_header_to_field",
    "normalize_header",
    "parse_csv_line",
    "parse_csv_text",
    "split_lines",
    "xlsx_to_csv",
]
