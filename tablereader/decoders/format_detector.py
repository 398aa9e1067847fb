"""Choose a decoder for an input from its leading bytes and file name."""
import re
from pathlib import PurePath
from typing import Any, Dict, Optional, Tuple

import structlog

from tablereader.decoders.decoder_registry import resolve_decoder_tag
from tablereader.errors.exceptions import FormatDetectionError
from tablereader.services.diagnostics import LogSink, build_log_sink, log_and_raise

logger = structlog.get_logger(__name__)

_XLSX_MAGIC = re.compile(rb"^PK(\x03\x04|\x05\x06|\x07\x08)")
_XLS_MAGIC = re.compile(rb"^\xD0\xCF\x11\xE0")
_LEADING_CSV_CELL = re.compile(rb"^[\"']?[\w ]+[\"']?,")
_LEADING_TSV_CELL = re.compile(rb"^[\"']?[\w ]+[\"']?\t")


def file_suffix(filename: Optional[str]) -> str:
    """Lower-cased suffix without the dot, or "" if there is none."""
    if not filename:
        return ""
    return PurePath(str(filename)).suffix.lstrip(".").lower()


def detect_input_format(
    filename: Optional[str],
    head: Optional[bytes],
    log: Optional[LogSink] = None,
    head_readable: bool = True,
) -> Tuple[str, Dict[str, Any]]:
    """Pick a decoder tag for an input.

    Checks, in order: workbook magic bytes (so a workbook misnamed .csv is
    still read as a workbook), then the file name suffix, then a probe
    comparing delimiter counts against line count in the head.

    Args:
        filename: Name of the input, if known
        head: Leading bytes of the input, if readable
        log: Diagnostics sink
        head_readable: False if the input could not be peeked at

    Returns:
        Tuple of (decoder tag, decoder options). An unrecognized suffix is
        returned as-is; creating its decoder fails later.

    Raises:
        FormatDetectionError: If neither the suffix nor the content
                              identify a format
    """
    log = build_log_sink(log)
    head = head or b""

    if _XLSX_MAGIC.match(head):
        return "xlsx", {}
    if _XLS_MAGIC.match(head):
        return "xls", {}

    # Trust the suffix over the probe; TSV containing commas looks a lot like CSV
    suffix = file_suffix(filename)
    if suffix:
        return resolve_decoder_tag(suffix), {}

    log("debug", "Probing file format because no filename suffix")
    if not head:
        reason = "unseekable file handle" if not head_readable else "no content"
        log_and_raise(
            log,
            FormatDetectionError(f"Can't probe format. No filename suffix, and {reason}"),
        )

    probably_csv = probably_tsv = 0
    if _LEADING_CSV_CELL.match(head):
        probably_csv += 1
    if _LEADING_TSV_CELL.match(head):
        probably_tsv += 1
    comma_count = head.count(b",")
    tab_count = head.count(b"\t")
    eol_count = head.count(b"\n")
    if comma_count > eol_count and comma_count > tab_count:
        probably_csv += 1
    if tab_count > eol_count and tab_count > comma_count:
        probably_tsv += 1

    logger.debug(
        "format_probe",
        commas=comma_count,
        tabs=tab_count,
        lines=eol_count,
        csv_score=probably_csv,
        tsv_score=probably_tsv,
    )
    if probably_csv and probably_csv > probably_tsv:
        return "csv", {}
    if probably_tsv and probably_tsv > probably_csv:
        return "tsv", {}

    log_and_raise(log, FormatDetectionError("Can't determine file format"))
