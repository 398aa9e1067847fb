"""TableReader: locate a table in a file and iterate its records.

Example:
    reader = TableReader(
        input="addresses.xlsx",
        fields=["address", "city", "state", {"name": "zip", "header": "zip code"}],
    )
    for record in reader.iterator():
        ...
"""
import os
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

from pydantic import ValidationError
import structlog

from tablereader.config import get_settings
from tablereader.decoders import create_decoder_instance, get_decoder
from tablereader.decoders.base_decoder import Decoder
from tablereader.decoders.csv_decoder import is_seekable
from tablereader.decoders.format_detector import detect_input_format as _detect_format
from tablereader.errors.exceptions import (
    ConfigurationError,
    IteratorUsageError,
    TableReaderError,
)
from tablereader.models.field_spec import FieldSpec
from tablereader.models.reader_config import ReaderConfig
from tablereader.models.table_location import ColumnMapping, FieldMap, TableLocation
from tablereader.services.diagnostics import build_log_sink, log_and_raise
from tablereader.services.record_assembler import RecordIterator
from tablereader.services.table_locator import TableLocator, combine_depth

logger = structlog.get_logger(__name__)

_UNSET = object()


class TableReader:
    """Find the header of a table among noise and read the records below it.

    Args:
        input: File path, binary file handle, or a list of rows (or of
               datasets of rows) already in memory
        fields: Field names, field dicts, or FieldSpec instances
        decoder: None to detect the format; a tag such as "csv"; a
                 (tag, options) pair; a dict with the tag under "CLASS" and
                 options beside it; or a Decoder instance
        record_class: "dict" (default), "list", or a callable receiving the
                      name-keyed record
        filters: Callable or list of callables applied to each record
        static_field_order: Require fields in exactly the declared order
        header_row_at: Row number, inclusive (start, end) window of rows
                       scanned for the header, or None for no header row
        on_unknown_columns: 'use', 'next', 'die', or callable
                            (header, unclaimed_indices) -> tag
        on_blank_row: 'next', 'last', 'die', 'use', or callable
                      (first_position, last_position) -> tag
        on_validation_fail: 'next', 'use', 'die', or callable
                            (failures, values, context) -> tag
        log: Diagnostics destination; see build_log_sink

    Raises:
        ConfigurationError: If any option is invalid
    """

    def __init__(
        self,
        input: Any = None,
        fields: Any = None,
        decoder: Any = None,
        record_class: Any = "dict",
        filters: Any = None,
        static_field_order: bool = False,
        header_row_at: Any = _UNSET,
        on_unknown_columns: Any = None,
        on_blank_row: Any = None,
        on_validation_fail: Any = None,
        log: Any = None,
    ):
        self._log = build_log_sink(log)
        settings = get_settings()
        if header_row_at is _UNSET:
            header_row_at = (settings.header_row_start, settings.header_row_end)

        try:
            self.config = ReaderConfig(
                fields=fields,
                record_class=record_class,
                filters=filters,
                static_field_order=static_field_order,
                header_row_at=header_row_at,
                on_unknown_columns=on_unknown_columns or settings.on_unknown_columns,
                on_blank_row=on_blank_row or settings.on_blank_row,
                on_validation_fail=on_validation_fail or settings.on_validation_fail,
            )
        except ValidationError as e:
            log_and_raise(self._log, ConfigurationError(f"Invalid TableReader options: {e}"))
        except ConfigurationError as e:
            log_and_raise(self._log, e)

        self.input = input
        self.file_name = self._input_name(input)
        self._decoder_option = decoder
        self._decoder: Optional[Decoder] = None
        self._file_handle: Optional[BinaryIO] = None
        self._owns_handle = False
        self._location: Optional[TableLocation] = None
        self._located_source: Any = None

        self.log = logger.bind(component="TableReader", input=self.file_name)

    @staticmethod
    def _input_name(input: Any) -> str:
        if isinstance(input, (str, os.PathLike)):
            return os.fspath(input)
        name = getattr(input, "name", None)
        return name if isinstance(name, str) else ""

    # Configuration accessors

    @property
    def fields(self) -> List[FieldSpec]:
        return list(self.config.fields)

    def field_by_name(self, name: str) -> FieldSpec:
        """Return the first declared field with this name.

        Raises:
            ConfigurationError: If no field has this name
        """
        try:
            return self.config.field_by_name(name)
        except ConfigurationError as e:
            log_and_raise(self._log, e)

    @property
    def header_row_combine(self) -> int:
        """Number of physical rows joined when matching header text."""
        return combine_depth(self.config.fields)

    # Input handling

    def _get_file_handle(self) -> BinaryIO:
        if self._file_handle is None:
            if self.input is None:
                log_and_raise(self._log, ConfigurationError("No input given"))
            if isinstance(self.input, (str, os.PathLike)):
                try:
                    self._file_handle = open(self.input, "rb")
                except OSError as e:
                    log_and_raise(self._log, ConfigurationError(f"Can't open {self.file_name!r}: {e}"))
                self._owns_handle = True
            elif callable(getattr(self.input, "read", None)):
                self._file_handle = self.input
            else:
                log_and_raise(
                    self._log,
                    ConfigurationError(f"Input must be a path, a binary file handle or a list of rows, not {self.input!r}"),
                )
        return self._file_handle

    def _peek_head(self) -> Tuple[bytes, bool]:
        """Read the leading bytes of the input without consuming them."""
        handle = self._get_file_handle()
        size = get_settings().probe_bytes
        if is_seekable(handle):
            pos = handle.tell()
            head = handle.read(size)
            handle.seek(pos)
            return head, True
        peek = getattr(handle, "peek", None)
        if callable(peek):
            return peek(size)[:size], True
        return b"", False

    def close(self) -> None:
        """Close the input file if this reader opened it."""
        if self._owns_handle and self._file_handle is not None:
            self._file_handle.close()
        self._file_handle = None
        self._owns_handle = False

    def __enter__(self) -> "TableReader":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # Decoder selection

    def detect_input_format(
        self, filename: Optional[str] = None, head: Optional[bytes] = None
    ) -> Tuple[str, Dict[str, Any]]:
        """Guess the decoder for the input.

        Args:
            filename: Name to take the suffix from; defaults to the input's
            head: Leading bytes to probe; defaults to peeking at the input

        Returns:
            Tuple of (decoder tag, decoder options)

        Raises:
            FormatDetectionError: If the format can't be determined
        """
        if isinstance(self.input, (list, tuple)):
            return "memory", {}
        readable = True
        if head is None:
            head, readable = self._peek_head()
        return _detect_format(
            filename if filename is not None else self.file_name,
            head,
            log=self._log,
            head_readable=readable,
        )

    def _decoder_spec(self) -> Tuple[str, Dict[str, Any]]:
        option = self._decoder_option
        if option is None:
            return self.detect_input_format()
        if isinstance(option, str):
            return option, {}
        if isinstance(option, dict) and "CLASS" in option:
            options = dict(option)
            return options.pop("CLASS"), options
        if isinstance(option, (list, tuple)) and len(option) in (1, 2) and isinstance(option[0], str):
            return option[0], dict(option[1]) if len(option) == 2 else {}
        log_and_raise(self._log, ConfigurationError(f"Can't create decoder from {option!r}"))

    @property
    def decoder(self) -> Decoder:
        """Decoder for the input, created on first access."""
        if self._decoder is not None:
            return self._decoder
        if isinstance(self._decoder_option, Decoder):
            self._decoder = self._decoder_option
            return self._decoder

        tag, options = self._decoder_spec()
        decoder_class = get_decoder(tag)
        kwargs: Dict[str, Any] = {"file_name": self.file_name, "log": self._log}
        if decoder_class is not None and decoder_class.needs_file_handle:
            kwargs["file_handle"] = self._get_file_handle()
        elif decoder_class is not None and "data" not in options:
            kwargs["data"] = self.input
        kwargs.update(options)

        try:
            self._decoder = create_decoder_instance(tag, **kwargs)
        except TableReaderError as e:
            log_and_raise(self._log, e)
        self.log.info("decoder_selected", decoder=self._decoder.get_decoder_name())
        return self._decoder

    # Table location

    def _locator(self) -> TableLocator:
        return TableLocator(
            fields=self.config.fields,
            header_row_at=self.config.header_row_at,
            static_field_order=self.config.static_field_order,
            on_unknown_columns=self.config.on_unknown_columns,
            log=self._log,
        )

    def _locate(self, fail_hard: bool) -> bool:
        if self._location is not None:
            return True
        source = self.decoder.iterator()
        location = self._locator().locate(source, fail_hard=fail_hard)
        if location is None:
            return False
        self._location = location
        self._located_source = source
        return True

    def find_table(self) -> bool:
        """Search for the header; return whether it was found.

        The outcome of a successful search is cached until clear_table().
        Unknown columns under the 'die' policy still raise.
        """
        return self._locate(fail_hard=False)

    @property
    def table_location(self) -> TableLocation:
        """Location of the table, searching for it if needed.

        Raises:
            TableNotFoundError: If no header matched
        """
        self._locate(fail_hard=True)
        return self._location

    @property
    def col_map(self) -> ColumnMapping:
        return self.table_location.col_map

    @property
    def field_map(self) -> FieldMap:
        return self.table_location.field_map

    def clear_table(self) -> None:
        """Discard the cached table location so the next access searches again."""
        self._location = None
        self._located_source = None

    # Records

    def iterator(self) -> RecordIterator:
        """Return a new record iterator over the located table.

        The first iterator continues from the cursor that found the header.
        Later ones open a fresh cursor and seek it to the first data row,
        so each iterator advances independently.

        Raises:
            TableNotFoundError: If no header matched
            IteratorUsageError: If the input can't provide another cursor
        """
        location = self.table_location
        if self._located_source is not None:
            source, self._located_source = self._located_source, None
        else:
            if location.data_start is None:
                log_and_raise(
                    self._log,
                    IteratorUsageError("Can't create another iterator: the input can't seek back to the table"),
                )
            source = self.decoder.iterator()
            source.seek(location.data_start)

        return RecordIterator(
            location=location,
            source=source,
            fields=self.config.fields,
            filters=self.config.filters,
            record_class=self.config.record_class,
            on_blank_row=self.config.on_blank_row,
            on_validation_fail=self.config.on_validation_fail,
            log=self._log,
        )
