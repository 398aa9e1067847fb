"""Locate the header of an irregular table and read validated records from it."""
from tablereader.errors import (
    TableReaderError,
    ConfigurationError,
    FormatDetectionError,
    DecoderError,
    TableNotFoundError,
    UnknownColumnsError,
    BlankRowError,
    RecordValidationError,
    IteratorUsageError,
)
from tablereader.config import Settings, get_settings, configure_logging
from tablereader.models import (
    FieldSpec,
    Policy,
    UnknownColumnsAction,
    BlankRowAction,
    ValidationFailAction,
    TableLocation,
    ValidationFailure,
)
from tablereader.services import TableLocator, RecordIterator, build_log_sink
from tablereader.decoders import (
    Decoder,
    SourceIterator,
    GridSourceIterator,
    register_decoder,
    list_registered_decoders,
)
from tablereader.reader import TableReader

__version__ = "0.1.0"

__all__ = [
    "TableReader",
    "FieldSpec",
    "Policy",
    "UnknownColumnsAction",
    "BlankRowAction",
    "ValidationFailAction",
    "TableLocation",
    "ValidationFailure",
    "TableLocator",
    "RecordIterator",
    "build_log_sink",
    "Decoder",
    "SourceIterator",
    "GridSourceIterator",
    "register_decoder",
    "list_registered_decoders",
    "Settings",
    "get_settings",
    "configure_logging",
    "TableReaderError",
    "ConfigurationError",
    "FormatDetectionError",
    "DecoderError",
    "TableNotFoundError",
    "UnknownColumnsError",
    "BlankRowError",
    "RecordValidationError",
    "IteratorUsageError",
]
