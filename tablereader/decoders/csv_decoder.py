"""Delimited text decoders (CSV, TSV, loose-quoted CSV) streaming rows from a binary handle."""
import csv
import re
from typing import Any, BinaryIO, Dict, Iterator, List, Optional, Sequence

import structlog

from tablereader.config import get_settings
from tablereader.decoders.base_decoder import Decoder, Row, SourceIterator, take_slice
from tablereader.errors.exceptions import DecoderError, IteratorUsageError
from tablereader.services.diagnostics import LogSink, log_and_raise

logger = structlog.get_logger(__name__)


def is_seekable(handle: Any) -> bool:
    """Whether a file handle supports tell/seek."""
    seekable = getattr(handle, "seekable", None)
    if not callable(seekable):
        return False
    try:
        return bool(seekable())
    except (OSError, ValueError):
        return False


class CsvDecoder(Decoder):
    """Decoder for comma-separated text files.

    Rows are parsed with the standard csv module one line at a time, so an
    iterator never reads further ahead than the row it returns. On a
    seekable handle each iterator remembers its own byte offset and seeks
    there before reading, which lets several iterators share one handle.
    An unseekable handle supports exactly one iterator.
    """

    DEFAULT_DELIMITER = ","
    DEFAULT_QUOTECHAR: Optional[str] = '"'

    def __init__(
        self,
        file_name: str = "",
        file_handle: Optional[BinaryIO] = None,
        log: Optional[LogSink] = None,
        delimiter: Optional[str] = None,
        quotechar: Any = "default",
        encoding: Optional[str] = None,
        strict: bool = False,
        **csv_options: Any,
    ):
        super().__init__(file_name=file_name, file_handle=file_handle, log=log)
        self.encoding = encoding or get_settings().csv_encoding
        self.dialect: Dict[str, Any] = {
            "delimiter": delimiter or self.DEFAULT_DELIMITER,
            "strict": strict,
            **csv_options,
        }
        quotechar = self.DEFAULT_QUOTECHAR if quotechar == "default" else quotechar
        if quotechar is None:
            self.dialect["quoting"] = csv.QUOTE_NONE
        else:
            self.dialect["quotechar"] = quotechar
        self._origin: Optional[int] = None
        self._iterators_created = 0
        self._fallback_reported = False
        self.log = logger.bind(component=type(self).__name__, file_name=file_name)

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "csv"

    def iterator(self) -> SourceIterator:
        """Return a new row iterator positioned at the start of the text.

        Raises:
            IteratorUsageError: If the handle is unseekable and an iterator
                                already exists
        """
        handle = self._require_handle()
        seekable = is_seekable(handle)
        if not seekable and self._iterators_created:
            log_and_raise(
                self._log,
                IteratorUsageError("Multiple iterators on an unseekable delimited-text stream are not supported"),
            )
        if self._origin is None and seekable:
            self._origin = handle.tell()
        self._iterators_created += 1
        self.log.debug("csv_iterator_created", seekable=seekable, count=self._iterators_created)
        return CsvSourceIterator(self, handle, self._origin if seekable else None)

    def decode_line(self, line: bytes) -> str:
        """Decode one line, falling back to latin-1 for that line only."""
        try:
            return line.decode(self.encoding)
        except UnicodeDecodeError as e:
            if not self._fallback_reported:
                self._fallback_reported = True
                self.log.warning("decode_failed_trying_latin1", encoding=self.encoding, error=str(e))
                self._log("warn", f"Text is not valid {self.encoding}; decoding as latin-1")
            return line.decode("latin-1")

    def read_row(self, lines: Iterator[str]) -> Optional[List[str]]:
        """Parse the next row from decoded lines, or return None at end of text."""
        return next(csv.reader(lines, **self.dialect), None)


class TsvDecoder(CsvDecoder):
    """Decoder for tab-separated text files (no quoting)."""

    DEFAULT_DELIMITER = "\t"
    DEFAULT_QUOTECHAR = None

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "tsv"


class IdiotCsvDecoder(CsvDecoder):
    """Decoder for "quote everything" exports that never escape inner quotes.

    Such files come from code that wraps every value in quotes regardless of
    its content, producing lines like::

        "Joseph "Joe","Smith",""Smith, Joe" <jsmith@example.com>"

    A quoted value ends at the first quote followed by optional whitespace
    and then a delimiter or the end of the line. Whitespace around values
    is dropped. Each row is one physical line, so values can't span lines.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        delim = re.escape(self.dialect["delimiter"])
        quote = re.escape(self.dialect.get("quotechar") or '"')
        space = "[ ]*" if self.dialect["delimiter"] == "\t" else r"[ \t]*"
        end = f"{space}(?:({delim})|$)"
        self._quoted = re.compile(f"{space}{quote}(.*?){quote}{end}")
        self._bare = re.compile(f"{space}(.*?){end}")

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "idiotcsv"

    def split_line(self, text: str) -> List[str]:
        text = text.rstrip("\r\n")
        if not text:
            return []
        values = []
        pos = 0
        while True:
            m = self._quoted.match(text, pos) or self._bare.match(text, pos)
            values.append(m.group(1))
            if m.group(2) is None:
                return values
            pos = m.end()

    def read_row(self, lines: Iterator[str]) -> Optional[List[str]]:
        line = next(lines, None)
        return None if line is None else self.split_line(line)


class CsvSourceIterator(SourceIterator):
    """Cursor over one delimited text stream; tokens are (byte offset, row)."""

    def __init__(self, decoder: CsvDecoder, handle: BinaryIO, origin: Optional[int]):
        self._decoder = decoder
        self._handle = handle
        self._origin = origin
        self._seekable = origin is not None
        self._offset = origin
        self._row = 0
        self._file_size: Optional[int] = None
        self._size_known = False

    def _lines(self) -> Iterator[str]:
        while True:
            line = self._handle.readline()
            if not line:
                return
            yield self._decoder.decode_line(line)

    def next_row(self, slice: Optional[Sequence[int]] = None) -> Optional[Row]:
        if self._seekable:
            self._handle.seek(self._offset)
        try:
            row = self._decoder.read_row(self._lines())
        except csv.Error as e:
            log_and_raise(
                self._decoder._log,
                DecoderError(f"row {self._row + 1}: malformed delimited text: {e}"),
            )
        if row is None:
            return None
        if self._seekable:
            self._offset = self._handle.tell()
        self._row += 1
        return take_slice(row, slice)

    def position(self) -> str:
        return f"row {self._row}"

    def progress(self) -> Optional[float]:
        if not self._seekable:
            return None
        if not self._size_known:
            current = self._handle.tell()
            self._file_size = self._handle.seek(0, 2)
            self._handle.seek(current)
            self._size_known = True
        if not self._file_size:
            return None
        return self._offset / self._file_size

    def tell(self) -> Any:
        if not self._seekable:
            return None
        return (self._offset, self._row)

    def seek(self, token: Any = None) -> None:
        if not self._seekable:
            log_and_raise(self._decoder._log, IteratorUsageError("Can't seek on source file handle"))
        if token is None:
            self._offset, self._row = self._origin, 0
        else:
            self._offset, self._row = token
