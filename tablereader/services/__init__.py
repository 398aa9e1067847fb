"""Table location, record assembly and diagnostics services.

Available Services:
    - diagnostics: `(level, message)` sinks for anomaly reporting
    - table_locator: Header search and column-to-field mapping
    - record_assembler: Per-row trim/blank/validate/filter/construct pipeline
"""
from tablereader.services.diagnostics import build_log_sink, log_and_raise
from tablereader.services.table_locator import TableLocator, combine_depth
from tablereader.services.record_assembler import RecordIterator

__all__: list[str] = [
    "build_log_sink",
    "log_and_raise",
    "TableLocator",
    "combine_depth",
    "RecordIterator",
]
