"""Data models for field specs, policies, table locations and reader options."""
from tablereader.models.field_spec import FieldSpec, ROW_SEPARATOR
from tablereader.models.policy import (
    Policy,
    UnknownColumnsAction,
    BlankRowAction,
    ValidationFailAction,
)
from tablereader.models.table_location import (
    TableLocation,
    ColumnMapping,
    FieldMap,
    build_field_map,
)
from tablereader.models.reader_config import (
    ReaderConfig,
    ValidationFailure,
    RECORD_DICT,
    RECORD_LIST,
)

__all__ = [
    "FieldSpec",
    "ROW_SEPARATOR",
    "Policy",
    "UnknownColumnsAction",
    "BlankRowAction",
    "ValidationFailAction",
    "TableLocation",
    "ColumnMapping",
    "FieldMap",
    "build_field_map",
    "ReaderConfig",
    "ValidationFailure",
    "RECORD_DICT",
    "RECORD_LIST",
]
