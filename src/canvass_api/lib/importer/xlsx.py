"""XLSX to CSV conversion in an isolated subprocess.

Spreadsheets are untrusted input, so they are never opened in the API or
worker process. A separate interpreter runs openpyxl against a private
temporary directory under a hard timeout and writes the first worksheet out
as CSV with every cell stringified.
"""

import asyncio
import sys
import tempfile
from pathlib import Path

import aiofiles
from loguru import logger

DEFAULT_CONVERT_TIMEOUT = 60.0

# Run as ``python -c SCRIPT IN_PATH OUT_PATH``
_CONVERT_SCRIPT = """
import csv
import sys

from openpyxl import load_workbook

wb = load_workbook(filename=sys.argv[1], read_only=True, data_only=True)
ws = wb[wb.sheetnames[0]]
with open(sys.argv[2], "w", newline="", encoding="utf-8") as f:
    writer = csv.writer(f)
    for row in ws.iter_rows(values_only=True):
        writer.writerow(["" if v is None else str(v) for v in row])
wb.close()
"""


class XlsxConversionError(Exception):
    """The spreadsheet could not be converted (bad file, converter crash, or timeout)."""


def is_xlsx_key(key: str) -> bool:
    """Return True when a stored file key names an XLSX workbook."""
    return key.lower().endswith(".xlsx")


async def xlsx_to_csv(data: bytes, timeout: float = DEFAULT_CONVERT_TIMEOUT) -> bytes:
    """Convert the first worksheet of an XLSX workbook to UTF-8 CSV bytes.

    Args:
        data: Raw workbook bytes.
        timeout: Seconds before the converter process is killed.

    Returns:
        The CSV document as bytes.

    Raises:
        XlsxConversionError: If the converter exits non-zero, times out, or
            produces no output.
    """
    with tempfile.TemporaryDirectory(prefix="canvass-xlsx-") as tmp_dir:
        in_path = Path(tmp_dir) / "input.xlsx"
        out_path = Path(tmp_dir) / "output.csv"
        async with aiofiles.open(in_path, "wb") as f:
            await f.write(data)

        proc = await asyncio.create_subprocess_exec(
            sys.executable,
            "-c",
            _CONVERT_SCRIPT,
            str(in_path),
            str(out_path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            msg = f"XLSX conversion timed out after {timeout:g}s"
            raise XlsxConversionError(msg) from None

        if proc.returncode != 0:
            lines = stderr.decode("utf-8", errors="replace").strip().splitlines()
            detail = lines[-1] if lines else "no output"
            msg = f"XLSX conversion failed (exit {proc.returncode}): {detail}"
            raise XlsxConversionError(msg)

        if not out_path.exists():
            msg = "XLSX conversion produced no output"
            raise XlsxConversionError(msg)

        async with aiofiles.open(out_path, "rb") as f:
            csv_bytes = await f.read()

    logger.debug(f"Converted {len(data)} byte workbook to {len(csv_bytes)} byte CSV")
    return csv_bytes
