"""Tests for decoding uploaded spreadsheet exports."""

import pytest

from app.services.spreadsheet_reader import (
    DELIMITED_SHEET_TITLE,
    SpreadsheetDecodeError,
    UnsupportedSpreadsheetError,
    decode_upload,
    detect_delimiter,
    detect_encoding,
    detect_format,
)
from app.services.submission_counter import count_submissions


def test_detect_format_by_extension():
    assert detect_format("Survey.XLSX") == "spreadsheet"
    assert detect_format("survey.csv", "application/octet-stream") == "delimited"


def test_detect_format_by_content_type():
    assert detect_format("export", "text/csv; charset=utf-8") == "delimited"


def test_detect_format_rejects_unknown():
    with pytest.raises(UnsupportedSpreadsheetError):
        detect_format("slides.pptx", "application/octet-stream")


def test_detect_encoding():
    assert detect_encoding("a,b".encode("utf-8-sig")) == "utf-8-sig"
    assert detect_encoding("a,b".encode("utf-16")) == "utf-16"
    assert detect_encoding("naïve".encode("utf-8")) == "utf-8"


def test_detect_delimiter():
    assert detect_delimiter("a;b;c\n1;2;3\n4;5;6\n") == ";"
    assert detect_delimiter("a\tb\n1\t2\n") == "\t"


def test_decode_workbook(xlsx_bytes, survey):
    content = xlsx_bytes(survey(3, blank_padding=2), title="Responses")

    sheet = decode_upload("Survey-A-1-1.xlsx", content)

    assert sheet.filename == "Survey-A-1-1.xlsx"
    assert sheet.sheet_title == "Responses"
    assert sheet.rows[0][0] == "ID"
    assert sheet.rows[1][2] == "person1@example.com"
    assert count_submissions(sheet.rows[1:]) == 3


def test_decode_corrupt_workbook():
    with pytest.raises(SpreadsheetDecodeError):
        decode_upload("Survey.xlsx", b"not a zip file")


def test_decode_utf16_semicolon_csv():
    text = "ID;Email\n1;a@example.com\n2;b@example.com\n"

    sheet = decode_upload("poll.csv", text.encode("utf-16"))

    assert sheet.sheet_title == DELIMITED_SHEET_TITLE
    assert sheet.rows == [
        ["ID", "Email"],
        ["1", "a@example.com"],
        ["2", "b@example.com"],
    ]


def test_decode_empty_csv():
    assert decode_upload("empty.csv", b"").rows == []


def test_decode_workbook_with_corrupt_sheet_xml(xlsx_bytes, corrupt_xlsx_bytes, survey):
    content = corrupt_xlsx_bytes(xlsx_bytes(survey(2)))

    with pytest.raises(SpreadsheetDecodeError, match="Could not read worksheet"):
        decode_upload("Bad.xlsx", content)


def test_legacy_xls_is_unsupported():
    with pytest.raises(UnsupportedSpreadsheetError):
        decode_upload("Survey.xls", b"\xd0\xcf\x11\xe0", "application/vnd.ms-excel")
