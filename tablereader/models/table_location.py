"""Result of a successful header search."""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from tablereader.models.field_spec import FieldSpec

ColumnMapping = Tuple[Optional[FieldSpec], ...]
FieldMap = Mapping[str, Union[int, Tuple[int, ...]]]


def build_field_map(col_map: Sequence[Optional[FieldSpec]]) -> FieldMap:
    """Map each located field name to its column index.

    Array fields map to the tuple of their columns, left to right. When two
    fields share a name, the later column wins, as it would for record keys.
    """
    fmap = {}
    for idx, spec in enumerate(col_map):
        if spec is None:
            continue
        if spec.array:
            current = fmap.get(spec.name)
            fmap[spec.name] = (current if isinstance(current, tuple) else ()) + (idx,)
        else:
            fmap[spec.name] = idx
    return MappingProxyType(fmap)


@dataclass(frozen=True)
class TableLocation:
    """Where a table was found and how its columns map to fields."""
    dataset_index: int
    header_row: Optional[int]
    header_position: str
    col_map: ColumnMapping
    field_map: FieldMap
    data_start: Any = None
    unclaimed_columns: Tuple[int, ...] = ()

    @property
    def has_header(self) -> bool:
        return self.header_row is not None
