"""Header search: find the row(s) naming the declared fields and map columns to them.

The locator scans a bounded window of rows in each dataset of a source,
testing every candidate row (or group of rows, for headers spanning several
physical rows) against the field matchers. Rejected candidates are reported
through the diagnostics sink so a human can tell why a file didn't load.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog

from tablereader.errors.exceptions import (
    ConfigurationError,
    TableNotFoundError,
    TableReaderError,
    UnknownColumnsError,
)
from tablereader.models.field_spec import ROW_SEPARATOR, FieldSpec
from tablereader.models.policy import Policy, UnknownColumnsAction
from tablereader.models.table_location import TableLocation, build_field_map
from tablereader.services.diagnostics import LogSink, build_log_sink, log_and_raise

logger = structlog.get_logger(__name__)


class _SearchAborted(Exception):
    """Raised internally when a fatal condition ends the search."""

    def __init__(self, error: TableReaderError):
        super().__init__(error.message)
        self.error = error


def combine_depth(fields: Sequence[FieldSpec]) -> int:
    """Number of physical rows joined into one logical header row."""
    return 1 + max((f.row_separator_count for f in fields), default=0)


def _cell(row: Sequence[Any], idx: int) -> str:
    if idx >= len(row) or row[idx] is None:
        return ""
    return str(row[idx])


def join_rows(rows: Sequence[Sequence[Any]]) -> List[str]:
    """Join the cells of each column with the row separator.

    The width of the last row decides the column count.
    """
    if len(rows) == 1:
        return [_cell(rows[0], c) for c in range(len(rows[0]))]
    return [
        ROW_SEPARATOR.join(_cell(r, c) for r in rows)
        for c in range(len(rows[-1]))
    ]


class TableLocator:
    """Find the header of a table and build its ColumnMapping.

    Args:
        fields: Declared fields, in declaration order
        header_row_at: Inclusive 1-indexed (start, end) row window, or None
                       when the table has no header row
        static_field_order: Require field[i] to match column[i]
        on_unknown_columns: Policy for columns no field claimed
        log: Diagnostics sink
    """

    def __init__(
        self,
        fields: Sequence[FieldSpec],
        header_row_at: Optional[Tuple[int, int]] = (1, 10),
        static_field_order: bool = False,
        on_unknown_columns: Optional[Policy] = None,
        log: Optional[LogSink] = None,
    ):
        self.fields = list(fields)
        self.header_row_at = header_row_at
        self.static_field_order = static_field_order
        self.on_unknown_columns = on_unknown_columns or Policy.build(
            "on_unknown_columns", UnknownColumnsAction, "use"
        )
        self._log = build_log_sink(log)
        self.combine_depth = combine_depth(self.fields)

        # Required fields first so non-matching rows fail fast
        free = [f for f in self.fields if not f.follows]
        self.free_fields = sorted(free, key=lambda f: not f.required)
        self.dependent_fields = [f for f in self.fields if f.follows]
        self._declared = {id(f): i for i, f in enumerate(self.fields)}

        self.log = logger.bind(component="TableLocator")

    def locate(self, source: Any, fail_hard: bool = False) -> Optional[TableLocation]:
        """Search the source for a header, moving through its datasets.

        On success the source is left positioned at the first data row.

        Args:
            source: SourceIterator positioned at the start of a dataset
            fail_hard: Raise instead of returning None when no header is found

        Returns:
            TableLocation, or None if no candidate row matched

        Raises:
            TableNotFoundError: If nothing matched and fail_hard is set
            UnknownColumnsError: If the unknown-column policy says 'die'
            ConfigurationError: If static_field_order is off with no header
        """
        if self.header_row_at is None:
            return self._headerless_location(source)

        dataset_index = 0
        try:
            while True:
                location = self._find_in_dataset(source, dataset_index)
                if location is not None:
                    self.log.info(
                        "table_located",
                        dataset=dataset_index,
                        header_row=location.header_row,
                        position=location.header_position,
                        fields=sorted(location.field_map.keys()),
                    )
                    return location
                if not source.next_dataset():
                    break
                dataset_index += 1
        except _SearchAborted as aborted:
            log_and_raise(self._log, aborted.error)

        error = TableNotFoundError("Can't locate valid header")
        self.log.info("table_not_found", datasets_searched=dataset_index + 1)
        if fail_hard:
            log_and_raise(self._log, error)
        self._log("error", error.message)
        return None

    def _headerless_location(self, source: Any) -> TableLocation:
        if not self.static_field_order:
            log_and_raise(
                self._log,
                ConfigurationError("You must enable 'static_field_order' if there is no header row"),
            )
        col_map = tuple(self.fields)
        return TableLocation(
            dataset_index=0,
            header_row=None,
            header_position=source.position(),
            col_map=col_map,
            field_map=build_field_map(col_map),
            data_start=source.tell(),
        )

    def _find_in_dataset(self, source: Any, dataset_index: int) -> Optional[TableLocation]:
        start, end = self.header_row_at
        rows: List[Sequence[Any]] = []
        row_num = 0

        # Rows before the window still count toward a multi-row header
        while row_num < start - 1:
            row = source.next_row()
            if row is None:
                break
            row_num += 1
            rows.append(row)

        while row_num < end:
            row = source.next_row()
            if row is None:
                break
            row_num += 1
            rows.append(row)
            del rows[:-self.combine_depth]

            header = join_rows(rows)
            context = f"{source.position()}: "
            if self.static_field_order:
                col_map = self._match_static(header, context)
            else:
                col_map = self._match_dynamic(header, context)

            if col_map is not None:
                return TableLocation(
                    dataset_index=dataset_index,
                    header_row=row_num,
                    header_position=source.position(),
                    col_map=col_map,
                    field_map=build_field_map(col_map),
                    data_start=source.tell(),
                    unclaimed_columns=tuple(i for i, f in enumerate(col_map) if f is None),
                )

        self._log("warn", "No row in dataset matched full header requirements")
        return None

    def _match_static(self, header: List[str], context: str) -> Optional[Tuple[Optional[FieldSpec], ...]]:
        for idx, spec in enumerate(self.fields):
            if idx >= len(header) or not spec.matches(header[idx]):
                self._log("debug", f"{context}Missing field {spec.name}")
                return None
        return tuple(self.fields) + (None,) * (len(header) - len(self.fields))

    def _match_dynamic(self, header: List[str], context: str) -> Optional[Tuple[Optional[FieldSpec], ...]]:
        col_map: Dict[int, FieldSpec] = {}
        columns = range(len(header))

        for spec in self.free_fields:
            found = [i for i in columns if spec.matches(header[i])]
            if len(found) > 1 and not spec.array:
                self._log("warn", f"{context}Field {spec.name} matches more than one column")
                return None
            if not found and spec.required:
                self._log("debug", f"{context}No match for required field {spec.name}")
                return None

            for i in found:
                owner = col_map.get(i)
                if owner is None:
                    col_map[i] = spec
                elif spec.matches_blank or owner.matches_blank:
                    # Fields absorbing unlabeled columns yield in declaration order
                    if self._declared[id(spec)] < self._declared[id(owner)]:
                        col_map[i] = spec
                else:
                    self._log("warn", f"{context}Field {spec.name} and {owner.name} both match")
                    return None

        if not col_map:
            self._log("debug", f"{context}No fields matched")
            return None

        held = {id(spec) for spec in col_map.values()}
        for spec in self.free_fields:
            if spec.required and id(spec) not in held:
                self._log("debug", f"{context}No match for required field {spec.name}")
                return None

        if self.dependent_fields and not self._match_dependents(header, col_map, context):
            return None

        unclaimed = [i for i in columns if i not in col_map]
        if unclaimed and not self._accept_unknown_columns(header, unclaimed, context):
            return None

        return tuple(col_map.get(i) for i in columns)

    def _match_dependents(self, header: List[str], col_map: Dict[int, FieldSpec], context: str) -> bool:
        """Claim columns for fields that must follow another field.

        Columns are scanned left to right. A claimed column makes its field
        the anchor; a dependent claiming the next column joins the anchors,
        so dependents can chain. An unclaimed, unmatched column clears them.
        """
        following: Dict[str, FieldSpec] = {}
        found: Dict[int, int] = {}

        for i in range(len(header)):
            owner = col_map.get(i)
            if owner is not None:
                following = {owner.name: owner}
                continue

            matches = [
                spec for spec in self.dependent_fields
                if any(name in following for name in spec.follows) and spec.matches(header[i])
            ]
            if len(matches) == 1:
                spec = matches[0]
                if id(spec) in found and not spec.array:
                    self._log("warn", f"{context}Field {spec.name} matches multiple columns")
                    return False
                col_map[i] = spec
                found[id(spec)] = i
                following[spec.name] = spec
            elif len(matches) > 1:
                self._log(
                    "warn",
                    f"{context}Field {matches[0].name} and {matches[1].name} both match column {i + 1}",
                )
                return False
            else:
                following = {}

        for spec in self.dependent_fields:
            if spec.required and id(spec) not in found:
                self._log("debug", f"{context}No match for required field {spec.name}")
        return True

    def _accept_unknown_columns(self, header: List[str], unclaimed: List[int], context: str) -> bool:
        unknown_list = ", ".join(header[i] for i in unclaimed)
        try:
            action = self.on_unknown_columns.resolve(list(header), list(unclaimed))
        except ConfigurationError as e:
            raise _SearchAborted(e) from e

        if action is UnknownColumnsAction.USE:
            self._log("warn", f"{context}Ignoring unknown columns: {unknown_list}")
            return True
        if action is UnknownColumnsAction.NEXT:
            self._log("warn", f"{context}Would match except for unknown columns: {unknown_list}")
            return False
        raise _SearchAborted(
            UnknownColumnsError(f"{context}Header row includes unknown columns: {unknown_list}")
        )
