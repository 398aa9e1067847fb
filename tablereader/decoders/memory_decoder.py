"""Decoder over rows already held in memory."""
from typing import Any, BinaryIO, List, Optional, Sequence

from tablereader.decoders.base_decoder import Decoder, GridSourceIterator, Row, SourceIterator
from tablereader.services.diagnostics import LogSink


def _is_row(value: Any) -> bool:
    return isinstance(value, (list, tuple))


class MemoryDecoder(Decoder):
    """Decoder for a list of rows, or a list of datasets each a list of rows.

    Useful for data that was already parsed by something else, and in tests.
    Cells are passed through untouched.
    """

    needs_file_handle = False

    def __init__(
        self,
        file_name: str = "",
        file_handle: Optional[BinaryIO] = None,
        log: Optional[LogSink] = None,
        data: Sequence[Any] = (),
        names: Optional[Sequence[str]] = None,
    ):
        super().__init__(file_name=file_name, file_handle=file_handle, log=log)
        if not isinstance(data, (list, tuple)):
            raise TypeError(f"data must be a list of rows or a list of datasets, not {type(data).__name__}")
        self.datasets = self._normalize(data)
        if names is not None and len(names) != len(self.datasets):
            raise ValueError(f"Got {len(names)} dataset names for {len(self.datasets)} datasets")
        self.names = list(names) if names is not None else None

    @staticmethod
    def _normalize(data: Sequence[Any]) -> List[List[Row]]:
        # A list of rows is one dataset; a list of lists of rows is several
        if data and all(_is_row(rows) and rows and all(_is_row(r) for r in rows) for rows in data):
            return [[list(r) for r in rows] for rows in data]
        return [[list(r) for r in data]]

    def get_decoder_name(self) -> str:
        """Return decoder identifier."""
        return "memory"

    def iterator(self) -> SourceIterator:
        return GridSourceIterator(self.datasets, names=self.names, log=self._log)
