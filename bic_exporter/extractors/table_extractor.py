"""
BIC Directory Table Extractor

Public extraction operations. Each call opens the document, runs the
PDFEngine + TextProcessor + TableProcessor pipeline, and closes everything
before returning; nothing is cached between calls.
"""

import logging
import os
from typing import List, Optional, Union

from bic_exporter.constants.bic_columns import HEADERS
from bic_exporter.engine.config import EngineConfig
from bic_exporter.engine.pdf_engine import PDFEngine
from bic_exporter.processors.record_assembly import Record
from bic_exporter.utils.csv_export import write_csv
from bic_exporter.utils.fault_barrier import guarded_call
from bic_exporter.utils.validation import ResourceManager

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def headers() -> List[str]:
    """The 10 column names, in output order"""
    return list(HEADERS)


def _extract(engine: PDFEngine) -> List[Record]:
    config = engine.config
    with engine, ResourceManager(f"table extraction from {engine.source_label}"):
        return engine.table_processor.extract_records(
            pages=config.pages,
            strict_mode=config.strict_mode,
            page_workers=config.page_workers,
        )


@guarded_call
def extract_table_from_path(source: PathLike, config: Optional[EngineConfig] = None) -> List[Record]:
    """
    Extract every directory record from a PDF file.

    Args:
        source: Path to the directory PDF
        config: Engine configuration (defaults skip the cover page)

    Returns:
        Records in document order, each a list of 10 strings

    Raises:
        PdfOpenError: "Failed to open PDF file"
        BicExporterError: Any other extraction failure
    """
    return _extract(PDFEngine.from_path(source, config))


@guarded_call
def extract_table_from_binary(data: bytes, config: Optional[EngineConfig] = None) -> List[Record]:
    """
    Extract every directory record from PDF bytes held in memory.

    Raises:
        PdfLoadError: "Failed to load PDF from bytes"
        BicExporterError: Any other extraction failure
    """
    return _extract(PDFEngine.from_bytes(data, config))


@guarded_call
def convert_to_csv(
    source: PathLike,
    destination: PathLike,
    config: Optional[EngineConfig] = None,
) -> int:
    """
    Extract a directory PDF into a CSV file with a header row.

    The destination is only created once extraction has succeeded.

    Returns:
        Number of records written

    Raises:
        PdfOpenError: "Failed to open PDF file"
        CsvWriteError: "Failed to create output CSV file"
    """
    records = extract_table_from_path(source, config)
    return write_csv(destination, HEADERS, records)
