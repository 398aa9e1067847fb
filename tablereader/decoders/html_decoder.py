"""HTML decoder: each top-level <table> element is one dataset."""
from typing import BinaryIO, List, Optional

from bs4 import BeautifulSoup
import structlog

from tablereader.decoders.base_decoder import Decoder, GridSourceIterator, Row, SourceIterator
from tablereader.errors.exceptions import DecoderError
from tablereader.services.diagnostics import LogSink, log_and_raise

logger = structlog.get_logger(__name__)


class HtmlDecoder(Decoder):
    """Decoder for the tables of an HTML document.

    The whole document is parsed up front, on the first call to
    iterator(). Rows are the <tr> elements of each top-level table and
    cells are their <td>/<th> children. Tables nested inside a table are
    ignored, with a warning.
    """

    def __init__(
        self,
        file_name: str = "",
        file_handle: Optional[BinaryIO] = None,
        log: Optional[LogSink] = None,
        parser: str = "html.parser",
    ):
        super().__init__(file_name=file_name, file_handle=file_handle, log=log)
        self.parser = parser
        self._datasets: Optional[List[List[Row]]] = None
        self.log = logger.bind(component="HtmlDecoder", file_name=file_name)

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "html"

    def iterator(self) -> SourceIterator:
        """Return a new cursor at row 0 of the first table."""
        self._load()
        names = [f"table {i + 1}" for i in range(len(self._datasets))]
        return GridSourceIterator(self._datasets, names=names, log=self._log)

    def _load(self) -> None:
        if self._datasets is not None:
            return
        handle = self._require_handle()
        try:
            soup = BeautifulSoup(handle.read(), self.parser)
        except Exception as e:
            log_and_raise(self._log, DecoderError(f"Can't parse HTML {self.file_name!r}: {e}"))

        tables = [t for t in soup.find_all("table") if t.find_parent("table") is None]
        self._datasets = [self._table_rows(idx, table) for idx, table in enumerate(tables)]
        self.log.info("html_tables_loaded", tables=len(tables))

    def _table_rows(self, idx: int, table) -> List[Row]:
        nested = [t for t in table.find_all("table") if t.find_parent("table") is table]
        if nested:
            self._log("warn", f"table {idx + 1}: tables within tables are ignored ({len(nested)} found)")
            self.log.warning("nested_tables_ignored", table=idx + 1, count=len(nested))
            for inner in nested:
                inner.decompose()

        rows: List[Row] = []
        for tr in table.find_all("tr"):
            rows.append([cell.get_text() for cell in tr.find_all(["td", "th"], recursive=False)])
        return rows
