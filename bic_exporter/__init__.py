"""
BIC Directory Exporter

Extracts the records of the ISO 9362 BIC directory PDF into a fixed
10-column table, as Python lists or as CSV.

    >>> import bic_exporter
    >>> records = bic_exporter.extract_table_from_path("ISOBIC.pdf")
    >>> bic_exporter.convert_to_csv("ISOBIC.pdf", "ISOBIC.csv")
"""

__version__ = "0.1.2"

from bic_exporter.engine.config import EngineConfig, PageRange, TableLayoutOptions, TableRegion, TextExtractionOptions
from bic_exporter.extractors.table_extractor import (
    convert_to_csv,
    extract_table_from_binary,
    extract_table_from_path,
    headers,
)
from bic_exporter.utils.csv_export import parse_csv, records_as_dicts, to_csv
from bic_exporter.utils.fault_barrier import guarded_call, run_isolated
from bic_exporter.utils.validation import (
    BicExporterError,
    ContentStreamError,
    CsvWriteError,
    ExtractionFault,
    LayoutCalibrationError,
    PdfLoadError,
    PdfOpenError,
    PdfValidationError,
    ProcessingTimeoutError,
    RecordArityError,
    RecordIntegrityError,
)

__all__ = [
    'headers',
    'extract_table_from_path',
    'extract_table_from_binary',
    'convert_to_csv',
    'to_csv',
    'parse_csv',
    'records_as_dicts',
    'guarded_call',
    'run_isolated',
    'EngineConfig',
    'PageRange',
    'TableLayoutOptions',
    'TableRegion',
    'TextExtractionOptions',
    'BicExporterError',
    'PdfValidationError',
    'PdfOpenError',
    'PdfLoadError',
    'ContentStreamError',
    'LayoutCalibrationError',
    'RecordIntegrityError',
    'RecordArityError',
    'CsvWriteError',
    'ExtractionFault',
    'ProcessingTimeoutError',
]
