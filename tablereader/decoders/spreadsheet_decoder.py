"""Spreadsheet decoders (XLSX via openpyxl, XLS via xlrd) built on pandas."""
import io
import math
import re
from typing import Any, BinaryIO, Callable, List, Optional, Union

import pandas as pd
import structlog

from tablereader.decoders.base_decoder import Decoder, GridSourceIterator, Row, SourceIterator
from tablereader.errors.exceptions import DecoderError
from tablereader.services.diagnostics import LogSink, log_and_raise

logger = structlog.get_logger(__name__)

SheetSelector = Union[None, int, str, "re.Pattern[str]", Callable[[str], bool]]


def cell_text(value: Any) -> str:
    """Render one worksheet cell as text; empty cells become ""."""
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


class SpreadsheetDecoder(Decoder):
    """Decoder for workbook files.

    The workbook is loaded once, on the first call to iterator(); every
    selected worksheet becomes one dataset. Because the grid is held in
    memory, any number of iterators may be created.

    Options:
        sheet: Worksheet name, 0-based index, compiled regex tested against
               the name, or a predicate receiving the name. Default: all
               worksheets in workbook order.
    """

    ENGINE = "openpyxl"

    def __init__(
        self,
        file_name: str = "",
        file_handle: Optional[BinaryIO] = None,
        log: Optional[LogSink] = None,
        sheet: SheetSelector = None,
    ):
        super().__init__(file_name=file_name, file_handle=file_handle, log=log)
        if sheet is not None and not isinstance(sheet, (int, str, re.Pattern)) and not callable(sheet):
            raise TypeError(f"sheet must be a name, index, regex or predicate, not {sheet!r}")
        self.sheet = sheet
        self._sheet_names: Optional[List[str]] = None
        self._datasets: Optional[List[List[Row]]] = None
        self.log = logger.bind(component=type(self).__name__, file_name=file_name, engine=self.ENGINE)

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "xlsx"

    @property
    def sheet_names(self) -> List[str]:
        """Names of the worksheets used as datasets, in order."""
        self._load()
        return list(self._sheet_names)

    def iterator(self) -> SourceIterator:
        """Return a new cursor at row 0 of the first selected worksheet."""
        self._load()
        return GridSourceIterator(self._datasets, names=self._sheet_names, log=self._log)

    def _load(self) -> None:
        if self._datasets is not None:
            return
        handle = self._require_handle()
        try:
            workbook = pd.ExcelFile(io.BytesIO(handle.read()), engine=self.ENGINE)
            all_sheets = [str(name) for name in workbook.sheet_names]
            selected = self._select_sheets(all_sheets)
            frames = {
                name: workbook.parse(name, header=None, dtype=object)
                for name in selected
            }
        except DecoderError:
            raise
        except Exception as e:
            log_and_raise(self._log, DecoderError(f"Can't read workbook {self.file_name!r}: {e}"))

        self._sheet_names = selected
        self._datasets = [
            [[cell_text(v) for v in row] for row in frames[name].itertuples(index=False, name=None)]
            for name in selected
        ]
        self.log.info(
            "workbook_loaded",
            sheets=selected,
            rows=[len(d) for d in self._datasets],
        )

    def _select_sheets(self, names: List[str]) -> List[str]:
        sheet = self.sheet
        if sheet is None:
            selected = names
        elif isinstance(sheet, bool):
            selected = []
        elif isinstance(sheet, int):
            selected = [names[sheet]] if -len(names) <= sheet < len(names) else []
        elif isinstance(sheet, str):
            selected = [n for n in names if n == sheet]
        elif isinstance(sheet, re.Pattern):
            selected = [n for n in names if sheet.search(n)]
        else:
            selected = [n for n in names if sheet(n)]

        if not selected:
            log_and_raise(
                self._log,
                DecoderError(f"No worksheet matches {sheet!r}; workbook has {names!r}"),
            )
        return selected


class XlsxDecoder(SpreadsheetDecoder):
    """Office Open XML workbooks (.xlsx, .xlsm)."""

    ENGINE = "openpyxl"

    def get_decoder_name(self) -> str:
        return "xlsx"


class XlsDecoder(SpreadsheetDecoder):
    """Legacy BIFF workbooks (.xls)."""

    ENGINE = "xlrd"

    def get_decoder_name(self) -> str:
        return "xls"
