"""Custom exception hierarchy for table reading errors."""


class TableReaderError(Exception):
    """Base exception for all table reading errors."""
    
    def __init__(self, message: str, *args, **kwargs):
        """Initialize error with message."""
        self.message = message
        super().__init__(message, *args, **kwargs)


class ConfigurationError(TableReaderError):
    """Raised when fields, policies or decoder options are invalid."""
    pass


class FormatDetectionError(TableReaderError):
    """Raised when no decoder can be determined for the input."""
    pass


class DecoderError(TableReaderError):
    """Raised when the underlying format library cannot read the input."""
    pass


class TableNotFoundError(TableReaderError):
    """Raised when no header row matched and the caller asked for a hard failure."""
    pass


class UnknownColumnsError(TableNotFoundError):
    """Raised when a header has unclaimed columns under the 'die' policy."""
    pass


class BlankRowError(TableReaderError):
    """Raised when blank rows are found under the 'die' policy."""
    pass


class RecordValidationError(TableReaderError):
    """Raised when a record fails validation under the 'die' policy."""
    
    def __init__(self, message: str, failures=None):
        self.failures = list(failures or [])
        super().__init__(message)


class IteratorUsageError(TableReaderError):
    """Raised when a source cannot provide the requested cursor operation."""
    pass
