"""Decoders adapting concrete table formats to the SourceIterator contract."""
from tablereader.decoders.base_decoder import Decoder, GridSourceIterator, SourceIterator
from tablereader.decoders.decoder_registry import (
    register_decoder,
    get_decoder,
    resolve_decoder_tag,
    create_decoder_instance,
    list_registered_decoders,
)
from tablereader.decoders.csv_decoder import CsvDecoder, IdiotCsvDecoder, TsvDecoder
from tablereader.decoders.spreadsheet_decoder import XlsxDecoder, XlsDecoder
from tablereader.decoders.html_decoder import HtmlDecoder
from tablereader.decoders.memory_decoder import MemoryDecoder
from tablereader.decoders.format_detector import detect_input_format

# Register decoders
register_decoder("csv", CsvDecoder)
register_decoder("tsv", TsvDecoder, aliases=("tab",))
register_decoder("idiotcsv", IdiotCsvDecoder)
register_decoder("xlsx", XlsxDecoder, aliases=("xlsm",))
register_decoder("xls", XlsDecoder)
register_decoder("html", HtmlDecoder, aliases=("htm",))
register_decoder("memory", MemoryDecoder)

__all__ = [
    "Decoder",
    "SourceIterator",
    "GridSourceIterator",
    "register_decoder",
    "get_decoder",
    "resolve_decoder_tag",
    "create_decoder_instance",
    "list_registered_decoders",
    "detect_input_format",
    "CsvDecoder",
    "TsvDecoder",
    "IdiotCsvDecoder",
    "XlsxDecoder",
    "XlsDecoder",
    "HtmlDecoder",
    "MemoryDecoder",
]
