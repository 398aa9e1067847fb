"""Abstract decoder and row-iterator interfaces for pluggable table formats."""
from abc import ABC, abstractmethod
from typing import Any, BinaryIO, List, Optional, Sequence

from tablereader.errors.exceptions import IteratorUsageError
from tablereader.services.diagnostics import LogSink, build_log_sink, log_and_raise

Row = List[Any]


def take_slice(row: Sequence[Any], indices: Optional[Sequence[int]]) -> Row:
    """Return the requested positions of a row; missing cells become None."""
    if indices is None:
        return list(row)
    width = len(row)
    return [row[i] if i < width else None for i in indices]


class SourceIterator(ABC):
    """One dataset-aware cursor over the rows of a tabular source.

    Implementations are format adapters. The table locator and record
    assembler only rely on this interface:

    - next_row(): Next row as a list of cell values, or None at the end
    - position(): Human-readable location, for diagnostics only
    - progress(): Completion estimate in [0, 1], or None if unmeasurable
    - tell() / seek(): Opaque resumable cursor; tell() is None if unseekable
    - next_dataset(): Move to the next sheet/table, if the format has several
    """

    @abstractmethod
    def next_row(self, slice: Optional[Sequence[int]] = None) -> Optional[Row]:
        """Return the next row, or None once the dataset is exhausted.

        Args:
            slice: Column indices to return, in order. Decoders may skip
                   work for columns outside the slice.
        """
        pass

    @abstractmethod
    def position(self) -> str:
        """Describe the current location, e.g. "row 12"."""
        pass

    def progress(self) -> Optional[float]:
        """Estimate how much of the source has been read."""
        return None

    @abstractmethod
    def tell(self) -> Any:
        """Return a token for seek(), or None if seeking is unsupported."""
        pass

    @abstractmethod
    def seek(self, token: Any = None) -> None:
        """Restore a cursor captured by tell(); None rewinds to dataset start.

        Raises:
            IteratorUsageError: If the source cannot seek
        """
        pass

    def next_dataset(self) -> bool:
        """Advance to the next dataset. Single-dataset sources return False."""
        return False

    def __iter__(self):
        return self

    def __next__(self) -> Row:
        row = self.next_row()
        if row is None:
            raise StopIteration
        return row


class GridSourceIterator(SourceIterator):
    """Cursor over datasets already held in memory as lists of rows.

    Any number of these may share the same datasets; each keeps its own
    (dataset, row) cursor.
    """

    def __init__(
        self,
        datasets: Sequence[Sequence[Sequence[Any]]],
        names: Optional[Sequence[str]] = None,
        log: Optional[LogSink] = None,
    ):
        self._datasets = datasets
        self._names = list(names) if names is not None else None
        self._log = build_log_sink(log)
        self._dataset_idx = 0
        self._row = 0
        self._total_rows = sum(len(d) for d in datasets)

    def _current(self) -> Sequence[Sequence[Any]]:
        if self._dataset_idx < len(self._datasets):
            return self._datasets[self._dataset_idx]
        return ()

    def next_row(self, slice: Optional[Sequence[int]] = None) -> Optional[Row]:
        table = self._current()
        if self._row >= len(table):
            return None
        row = table[self._row]
        self._row += 1
        return take_slice(row, slice)

    def dataset_label(self) -> str:
        if self._names is None:
            return ""
        if self._dataset_idx < len(self._names):
            return self._names[self._dataset_idx]
        return f"dataset {self._dataset_idx + 1}"

    def position(self) -> str:
        label = self.dataset_label()
        return f"{label} row {self._row}" if label else f"row {self._row}"

    def progress(self) -> Optional[float]:
        if not self._total_rows:
            return 0.0
        done = sum(len(d) for d in self._datasets[:self._dataset_idx]) + self._row
        return done / self._total_rows

    def tell(self) -> Any:
        return (self._dataset_idx, self._row)

    def seek(self, token: Any = None) -> None:
        if token is None:
            self._row = 0
            return
        try:
            dataset_idx, row = token
        except (TypeError, ValueError):
            log_and_raise(self._log, IteratorUsageError(f"Invalid seek position {token!r}"))
        if not 0 <= dataset_idx < max(len(self._datasets), 1) or row < 0:
            log_and_raise(self._log, IteratorUsageError(f"Seek position {token!r} is out of range"))
        self._dataset_idx = dataset_idx
        self._row = row

    def next_dataset(self) -> bool:
        if self._dataset_idx + 1 >= len(self._datasets):
            return False
        self._dataset_idx += 1
        self._row = 0
        return True


class Decoder(ABC):
    """Abstract base class for all table format decoders.

    A decoder's job is to produce SourceIterators over one input. Formats
    with several tables (worksheets, <table> elements) expose each as a
    dataset reachable through SourceIterator.next_dataset().

    Implementations must provide:
    - iterator(): Return a new cursor starting at the first dataset
    - get_decoder_name(): Return unique decoder identifier
    """

    # Decoders reading in-memory data set this to False; TableReader then
    # passes its input as the `data` option instead of opening it.
    needs_file_handle = True

    def __init__(
        self,
        file_name: str = "",
        file_handle: Optional[BinaryIO] = None,
        log: Optional[LogSink] = None,
    ):
        self.file_name = file_name
        self.file_handle = file_handle
        self._log = build_log_sink(log)

    @abstractmethod
    def iterator(self) -> SourceIterator:
        """Return a cursor over the decoded rows.

        Raises:
            IteratorUsageError: If the medium can't support another cursor
        """
        pass

    @abstractmethod
    def get_decoder_name(self) -> str:
        """Return decoder identifier (e.g., "csv", "xlsx", "html")."""
        pass

    def _require_handle(self) -> BinaryIO:
        if self.file_handle is None:
            log_and_raise(
                self._log,
                IteratorUsageError(f"Decoder '{self.get_decoder_name()}' has no input file handle"),
            )
        return self.file_handle
