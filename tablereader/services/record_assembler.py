"""Turn the rows below a located header into sanitized records.

Each row goes through a fixed pipeline: fetch only the located columns,
trim, substitute blanks, handle runs of blank rows, validate, gather array
fields, run filters, and construct the record.
"""
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

import structlog

from tablereader.errors.exceptions import BlankRowError, ConfigurationError, RecordValidationError
from tablereader.models.field_spec import FieldSpec
from tablereader.models.policy import BlankRowAction, Policy, ValidationFailAction
from tablereader.models.reader_config import RECORD_DICT, RECORD_LIST, ValidationFailure
from tablereader.models.table_location import TableLocation
from tablereader.services.diagnostics import LogSink, build_log_sink, log_and_raise

logger = structlog.get_logger(__name__)

# (field name, is array, positions within the fetched row)
_Entry = Tuple[str, bool, List[int]]


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value)


class RecordIterator:
    """Iterator of records from one table, backed by its own SourceIterator.

    Args:
        location: Result of the header search
        source: SourceIterator positioned at the first data row
        fields: Declared fields, in declaration order
        filters: Callables applied to each name-keyed record
        record_class: RECORD_DICT, RECORD_LIST, or a callable receiving the dict
        on_blank_row: Policy for runs of blank rows
        on_validation_fail: Policy for rows failing a type check
        log: Diagnostics sink
    """

    def __init__(
        self,
        location: TableLocation,
        source: Any,
        fields: Sequence[FieldSpec],
        filters: Sequence[Callable[..., Any]] = (),
        record_class: Any = RECORD_DICT,
        on_blank_row: Optional[Policy] = None,
        on_validation_fail: Optional[Policy] = None,
        log: Optional[LogSink] = None,
    ):
        self.location = location
        self._source = source
        self._fields = list(fields)
        self._filters = list(filters)
        self._record_class = record_class
        self._on_blank_row = on_blank_row or Policy.build("on_blank_row", BlankRowAction, "next")
        self._on_validation_fail = on_validation_fail or Policy.build(
            "on_validation_fail", ValidationFailAction, "die"
        )
        self._log = build_log_sink(log)

        self._slice: List[int] = []
        self._slot_specs: List[FieldSpec] = []
        self._entries: List[_Entry] = []
        self._build_layout()

        self._eof = False
        self._pending: Deque[Tuple[List[Any], str]] = deque()
        self._blank_first: Optional[str] = None
        self._blank_last: Optional[str] = None
        self._blank_rows: List[Tuple[List[Any], str]] = []
        # Blank rows are kept only while a 'use' outcome is possible
        self._buffer_blanks = self._on_blank_row.is_custom or (
            self._on_blank_row.action is BlankRowAction.USE
        )

        self.log = logger.bind(component="RecordIterator")

    def _build_layout(self) -> None:
        """Decide which columns to fetch and where each field's values land."""
        field_map = self.location.field_map
        col_map = self.location.col_map
        seen = set()
        for spec in self._fields:
            if spec.name in seen or spec.name not in field_map:
                continue
            seen.add(spec.name)
            columns = field_map[spec.name]
            is_array = isinstance(columns, tuple)
            positions = []
            for col in (columns if is_array else (columns,)):
                positions.append(len(self._slice))
                self._slice.append(col)
                self._slot_specs.append(col_map[col])
            self._entries.append((spec.name, is_array, positions))

    # Record pipeline

    def next_record(self) -> Any:
        """Return the next record, or None once the table is exhausted."""
        while True:
            if self._pending:
                values, context = self._pending.popleft()
                if not self._validate(values, context):
                    continue
                return self._construct(values)

            if self._eof:
                return None

            row = self._source.next_row(self._slice)
            if row is None:
                self._eof = True
                if self._blank_first is not None:
                    self._end_blank_run()
                continue

            values, n_blank = self._clean(row)
            context = f"{self._source.position()}: "
            if values and n_blank == len(values):
                if self._blank_first is None:
                    self._blank_first = self._source.position()
                self._blank_last = self._source.position()
                if self._buffer_blanks:
                    self._blank_rows.append((values, context))
                continue

            if self._blank_first is not None and not self._end_blank_run():
                return None
            self._pending.append((values, context))

    def _clean(self, row: Sequence[Any]) -> Tuple[List[Any], int]:
        values: List[Any] = []
        n_blank = 0
        for idx, spec in enumerate(self._slot_specs):
            value = row[idx] if idx < len(row) else None
            value = spec.trim_value(value)
            if is_blank(value):
                n_blank += 1
                value = spec.blank
            values.append(value)
        return values, n_blank

    def _resolve(self, policy: Policy, *context: Any) -> Any:
        try:
            return policy.resolve(*context)
        except ConfigurationError as e:
            log_and_raise(self._log, e)

    def _end_blank_run(self) -> bool:
        """Apply the blank-row policy to the pending run; False ends iteration."""
        first, last = self._blank_first, self._blank_last
        buffered = self._blank_rows
        self._blank_first = self._blank_last = None
        self._blank_rows = []

        action = self._resolve(self._on_blank_row, first, last)
        if action is BlankRowAction.NEXT:
            self._log("warn", f"Skipping blank rows from {first} until {last}")
            return True
        if action is BlankRowAction.LAST:
            self._log("warn", f"Ending at blank rows starting at {first}")
            self._eof = True
            return False
        if action is BlankRowAction.DIE:
            log_and_raise(self._log, BlankRowError(f"Encountered blank rows at {first}..{last}"))
        self.log.debug("blank_rows_used", first=first, last=last, count=len(buffered))
        self._pending.extend(buffered)
        return True

    def _validate(self, values: List[Any], context: str) -> bool:
        """Run type checks; return False if the record should be dropped."""
        failures: List[ValidationFailure] = []
        for idx, spec in enumerate(self._slot_specs):
            message = spec.check_value(values[idx])
            if message is not None:
                failures.append(ValidationFailure(field=spec, value_index=idx, message=message))
        if not failures:
            return True

        action = self._resolve(self._on_validation_fail, failures, values, context)
        errors = ", ".join(f"{f.field.name}: {f.message}" for f in failures)
        if action is ValidationFailAction.NEXT:
            if errors:
                self._log("warn", f"{context}Skipped for data errors: {errors}")
            return False
        if action is ValidationFailAction.USE:
            if errors:
                self._log("warn", f"{context}Possible data errors: {errors}")
            return True
        log_and_raise(
            self._log,
            RecordValidationError(f"{context}Invalid record: {errors}", failures=failures),
        )

    def _construct(self, values: List[Any]) -> Any:
        record: Dict[str, Any] = {}
        for name, is_array, positions in self._entries:
            if is_array:
                record[name] = [values[p] for p in positions]
            else:
                record[name] = values[positions[0]]

        for fn in self._filters:
            result = fn(record)
            if result is not None:
                record = result

        if self._record_class == RECORD_DICT:
            return record
        if self._record_class == RECORD_LIST:
            out = []
            named = set()
            for spec in self._fields:
                out.append(record.get(spec.name) if spec.name not in named else None)
                named.add(spec.name)
            return out
        return self._record_class(record)

    # Iteration protocol

    def __iter__(self):
        return self

    def __next__(self) -> Any:
        record = self.next_record()
        if record is None:
            raise StopIteration
        return record

    def all(self) -> List[Any]:
        """Return all remaining records."""
        return list(self)

    # Cursor delegation

    def position(self) -> str:
        return self._source.position()

    def progress(self) -> Optional[float]:
        return self._source.progress()

    def tell(self) -> Any:
        return self._source.tell()

    def seek(self, token: Any = None) -> None:
        """Move the underlying source, discarding any pending rows.

        None rewinds to the first data row below the header.
        """
        if token is None:
            token = self.location.data_start
        self._source.seek(token)
        self._eof = False
        self._pending.clear()
        self._blank_first = self._blank_last = None
        self._blank_rows = []

    def next_dataset(self) -> bool:
        self._log("warn", "Searching for subsequent table headers is not supported yet")
        return False
