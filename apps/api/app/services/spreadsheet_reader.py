"""Decode uploaded spreadsheet exports into row matrices.

Supports:
- .xlsx workbooks (openpyxl, first worksheet, cached cell values)
  Legacy binary .xls workbooks are not supported and are rejected as an
  unsupported file type, even though form names still drop a trailing .xls.
- delimited text (.csv/.tsv/.txt): BOM / UTF-8 / UTF-16 / charset_normalizer
  encoding detection and csv.Sniffer delimiter detection

Blank cells always decode to BLANK_CELL so blank-row detection does not
depend on the source format. Row 0 is kept; the header is the caller's to
skip.
"""

from __future__ import annotations

import csv
import io
import zipfile
from typing import Any
from xml.etree.ElementTree import ParseError

from charset_normalizer import from_bytes
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.services.reconciliation_service import UploadedSheet


BLANK_CELL = ""

# Title given to delimited-text uploads, which have no sheet names
DELIMITED_SHEET_TITLE = "Sheet1"

SPREADSHEET_EXTENSIONS = {"xlsx", "xlsm"}
DELIMITED_EXTENSIONS = {"csv", "tsv", "txt"}

SPREADSHEET_CONTENT_TYPES = {
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel.sheet.macroenabled.12",
}
DELIMITED_CONTENT_TYPES = {
    "text/csv",
    "text/plain",
    "text/tab-separated-values",
    "application/csv",
}


class SpreadsheetDecodeError(ValueError):
    """Upload could not be decoded into rows."""

    pass


class UnsupportedSpreadsheetError(SpreadsheetDecodeError):
    """Upload is neither a workbook nor delimited text."""

    pass


# =============================================================================
# Format detection
# =============================================================================


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def detect_format(filename: str, content_type: str | None = None) -> str:
    """
    Return "spreadsheet" or "delimited".

    The extension wins; the declared content type is only used when the
    filename has no recognised extension (browsers report CSV inconsistently).
    """
    ext = _extension(filename or "")
    if ext in SPREADSHEET_EXTENSIONS:
        return "spreadsheet"
    if ext in DELIMITED_EXTENSIONS:
        return "delimited"

    mime = (content_type or "").split(";")[0].strip().lower()
    if mime in SPREADSHEET_CONTENT_TYPES:
        return "spreadsheet"
    if mime in DELIMITED_CONTENT_TYPES:
        return "delimited"

    raise UnsupportedSpreadsheetError(
        "Unsupported file type; upload an .xlsx workbook or a .csv export"
    )


def detect_encoding(content: bytes) -> str:
    """BOM, then UTF-8, then UTF-16, then charset_normalizer's best guess."""
    if content.startswith(b"\xef\xbb\xbf"):
        return "utf-8-sig"
    if content.startswith((b"\xff\xfe", b"\xfe\xff")):
        # The utf-16 codec reads and drops the BOM
        return "utf-16"

    try:
        content.decode("utf-8")
        return "utf-8"
    except UnicodeDecodeError:
        pass

    best = from_bytes(content).best()
    if best:
        return best.encoding
    return "latin-1"


def detect_delimiter(text: str) -> str:
    """csv.Sniffer on the first 8KB, falling back to the most frequent candidate."""
    sample = text[:8192]
    try:
        return csv.Sniffer().sniff(sample, delimiters=",\t;|").delimiter
    except csv.Error:
        pass

    counts = {delim: 0 for delim in (",", "\t", ";", "|")}
    for line in sample.splitlines()[:5]:
        for delim in counts:
            counts[delim] += line.count(delim)
    best = max(counts, key=counts.get)
    return best if counts[best] else ","


# =============================================================================
# Decoding
# =============================================================================


def _cell_value(value: Any) -> Any:
    if value is None:
        return BLANK_CELL
    if isinstance(value, str) and not value.strip():
        return BLANK_CELL
    return value


def read_workbook_rows(content: bytes) -> tuple[str, list[list[Any]]]:
    """Title and rows of the first worksheet."""
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise SpreadsheetDecodeError(f"Could not read workbook: {exc}") from exc

    try:
        if not workbook.sheetnames:
            raise SpreadsheetDecodeError("Workbook has no sheets")
        worksheet = workbook[workbook.sheetnames[0]]
        # Sheet XML is parsed lazily, so corrupt sheets only fail here
        try:
            rows = [
                [_cell_value(value) for value in row]
                for row in worksheet.iter_rows(values_only=True)
            ]
        except (ParseError, ValueError, KeyError, TypeError) as exc:
            raise SpreadsheetDecodeError(f"Could not read worksheet: {exc}") from exc
        return worksheet.title, rows
    finally:
        workbook.close()


def read_delimited_rows(content: bytes) -> list[list[Any]]:
    """Rows of a delimited-text export."""
    encoding = detect_encoding(content)
    try:
        text = content.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise SpreadsheetDecodeError(f"Could not decode file as {encoding}") from exc

    if not text.strip():
        return []

    reader = csv.reader(io.StringIO(text), delimiter=detect_delimiter(text))
    try:
        return [[_cell_value(value) for value in row] for row in reader]
    except csv.Error as exc:
        raise SpreadsheetDecodeError(f"Malformed delimited file: {exc}") from exc


def decode_upload(
    filename: str,
    content: bytes,
    content_type: str | None = None,
) -> UploadedSheet:
    """
    Decode one uploaded file into an UploadedSheet.

    Raises:
        UnsupportedSpreadsheetError: not a workbook or delimited text
        SpreadsheetDecodeError: content is corrupt or unreadable
    """
    if detect_format(filename, content_type) == "spreadsheet":
        title, rows = read_workbook_rows(content)
        return UploadedSheet(filename=filename, rows=rows, sheet_title=title)

    return UploadedSheet(
        filename=filename,
        rows=read_delimited_rows(content),
        sheet_title=DELIMITED_SHEET_TITLE,
    )
