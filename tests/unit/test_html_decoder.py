"""Tests for the HTML and in-memory decoders."""
import io

import pytest

from tablereader.decoders.html_decoder import HtmlDecoder
from tablereader.decoders.memory_decoder import MemoryDecoder

PAGE = b"""
<html><body>
<p>Intro</p>
<table>
  <tr><th>Address</th><th>City</th></tr>
  <tr><td> 1 Main </td><td>Springfield<table><tr><td>inner</td></tr></table></td></tr>
</table>
<table>
  <tr><td>second</td></tr>
</table>
</body></html>
"""


class TestHtmlDecoder:
    """Tests for reading top-level tables."""

    def test_tables_are_datasets(self):
        it = HtmlDecoder(file_handle=io.BytesIO(PAGE)).iterator()
        assert it.next_row() == ["Address", "City"]
        assert it.position() == "table 1 row 1"
        assert it.next_row() == [" 1 Main ", "Springfield"]
        assert it.next_row() is None
        assert it.next_dataset() is True
        assert it.next_row() == ["second"]
        assert it.position() == "table 2 row 1"
        assert it.next_dataset() is False

    def test_nested_table_warning(self, messages):
        HtmlDecoder(file_handle=io.BytesIO(PAGE), log=messages).iterator()
        assert messages == [("warn", "table 1: tables within tables are ignored (1 found)")]

    def test_document_without_tables(self):
        it = HtmlDecoder(file_handle=io.BytesIO(b"<p>nothing</p>")).iterator()
        assert it.next_row() is None
        assert it.next_dataset() is False

    def test_parsed_once(self):
        handle = io.BytesIO(PAGE)
        decoder = HtmlDecoder(file_handle=handle)
        decoder.iterator()
        second = decoder.iterator()
        assert second.next_row() == ["Address", "City"]


class TestMemoryDecoder:
    """Tests for in-memory rows."""

    def test_single_dataset(self):
        it = MemoryDecoder(data=[["a", "b"], ["1", "2"]]).iterator()
        assert it.next_row() == ["a", "b"]
        assert it.position() == "row 1"
        assert it.next_dataset() is False

    def test_several_datasets(self):
        decoder = MemoryDecoder(data=[[["a"], ["1"]], [["b"]]], names=["first", "second"])
        it = decoder.iterator()
        assert it.next_row() == ["a"]
        assert it.position() == "first row 1"
        assert it.next_dataset() is True
        assert it.next_row() == ["b"]

    def test_rejects_non_list(self):
        with pytest.raises(TypeError):
            MemoryDecoder(data="a,b\n")

    def test_name_count_must_match(self):
        with pytest.raises(ValueError):
            MemoryDecoder(data=[["a"]], names=["x", "y"])

    def test_no_file_handle_needed(self):
        assert MemoryDecoder.needs_file_handle is False
