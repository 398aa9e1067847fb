"""Tests for the workbook decoders."""
import io
import re

import pytest
from openpyxl import Workbook

from tablereader.decoders.spreadsheet_decoder import XlsDecoder, XlsxDecoder, cell_text
from tablereader.errors.exceptions import DecoderError


def workbook_bytes() -> bytes:
    wb = Workbook()
    notes = wb.active
    notes.title = "Notes"
    notes.append(["Generated for testing"])
    data = wb.create_sheet("Data")
    data.append(["Address", "City", "State", "Zip"])
    data.append(["1 Main St", "Springfield", "IL", 62701])
    data.append(["2 Oak Ave", None, "IL", 62565])
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def xlsx_handle() -> io.BytesIO:
    return io.BytesIO(workbook_bytes())


class TestCellText:
    """Tests for rendering cell values as text."""

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        (float("nan"), ""),
        (62701.0, "62701"),
        (2.5, "2.5"),
        (7, "7"),
        ("text", "text"),
    ])
    def test_cell_text(self, value, expected):
        assert cell_text(value) == expected


class TestXlsxDecoder:
    """Tests for reading worksheets as datasets."""

    def test_sheets_are_datasets(self, xlsx_handle):
        decoder = XlsxDecoder(file_name="book.xlsx", file_handle=xlsx_handle)
        assert decoder.sheet_names == ["Notes", "Data"]
        it = decoder.iterator()
        assert it.next_row() == ["Generated for testing"]
        assert it.next_row() is None
        assert it.next_dataset() is True
        assert it.next_row() == ["Address", "City", "State", "Zip"]
        assert it.position() == "Data row 1"
        assert it.next_row() == ["1 Main St", "Springfield", "IL", "62701"]
        assert it.next_row() == ["2 Oak Ave", "", "IL", "62565"]
        assert it.next_dataset() is False

    def test_select_sheet_by_name(self, xlsx_handle):
        decoder = XlsxDecoder(file_handle=xlsx_handle, sheet="Data")
        assert decoder.sheet_names == ["Data"]
        assert decoder.iterator().next_row()[0] == "Address"

    def test_select_sheet_by_regex(self, xlsx_handle):
        decoder = XlsxDecoder(file_handle=xlsx_handle, sheet=re.compile("^Da"))
        assert decoder.sheet_names == ["Data"]

    def test_select_sheet_by_index(self, xlsx_handle):
        assert XlsxDecoder(file_handle=xlsx_handle, sheet=1).sheet_names == ["Data"]

    def test_select_sheet_by_predicate(self, xlsx_handle):
        decoder = XlsxDecoder(file_handle=xlsx_handle, sheet=lambda name: name.startswith("N"))
        assert decoder.sheet_names == ["Notes"]

    def test_missing_sheet(self, xlsx_handle, messages):
        decoder = XlsxDecoder(file_handle=xlsx_handle, sheet="Summary", log=messages)
        with pytest.raises(DecoderError) as exc_info:
            decoder.iterator()
        assert "No worksheet matches 'Summary'" in exc_info.value.message
        assert messages[-1][0] == "error"

    def test_bad_sheet_selector_type(self):
        with pytest.raises(TypeError):
            XlsxDecoder(sheet=1.5)

    def test_iterators_are_independent(self, xlsx_handle):
        decoder = XlsxDecoder(file_handle=xlsx_handle, sheet="Data")
        first = decoder.iterator()
        first.next_row()
        second = decoder.iterator()
        assert second.next_row()[0] == "Address"
        assert first.next_row()[0] == "1 Main St"

    def test_tell_seek(self, xlsx_handle):
        it = XlsxDecoder(file_handle=xlsx_handle).iterator()
        it.next_dataset()
        it.next_row()
        token = it.tell()
        row = it.next_row()
        it.seek(token)
        assert it.next_row() == row

    def test_corrupt_workbook(self, messages):
        decoder = XlsxDecoder(file_name="broken.xlsx", file_handle=io.BytesIO(b"PK\x03\x04 not a zip"), log=messages)
        with pytest.raises(DecoderError) as exc_info:
            decoder.iterator()
        assert exc_info.value.message.startswith("Can't read workbook 'broken.xlsx'")


class TestXlsDecoder:
    """Tests for the legacy workbook decoder."""

    def test_name(self):
        assert XlsDecoder().get_decoder_name() == "xls"

    def test_corrupt_workbook(self):
        decoder = XlsDecoder(file_handle=io.BytesIO(b"\xd0\xcf\x11\xe0 truncated"))
        with pytest.raises(DecoderError):
            decoder.iterator()
