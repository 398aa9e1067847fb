"""Error handling module."""
from tablereader.errors.exceptions import (
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

__all__ = [
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
