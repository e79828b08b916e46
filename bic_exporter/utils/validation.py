"""
PDF Input Validation, Error Types and Resource Management Utilities
Validation of untrusted PDF input, the exporter's error taxonomy, and
resource monitoring for extraction calls.
"""

import os
import time
import psutil
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)

# Validation constants
VALIDATION_CONSTANTS = {
    'PDF_SIGNATURE': b'%PDF',
    'MAX_FILE_SIZE_MB': 200,
    'MAX_PROCESSING_TIME_SECONDS': 300,  # 5 minutes
    'SUPPORTED_PDF_VERSIONS': ['1.0', '1.1', '1.2', '1.3', '1.4', '1.5', '1.6', '1.7', '2.0'],
}

# Stable error messages
MSG_OPEN_FAILED = "Failed to open PDF file"
MSG_LOAD_FAILED = "Failed to load PDF from bytes"
MSG_CSV_CREATE_FAILED = "Failed to create output CSV file"


class BicExporterError(Exception):
    """Base class for every error raised by the exporter"""
    pass


class PdfValidationError(BicExporterError):
    """The input is not a usable PDF document"""
    pass


class PdfOpenError(PdfValidationError):
    """
    Path-based load failure.

    ``kind`` is ``"io"`` when the file is missing or unreadable and
    ``"structure"`` when it was read but is not a parseable PDF.
    """

    def __init__(self, kind: str = "io", detail: Optional[str] = None):
        super().__init__(MSG_OPEN_FAILED)
        self.kind = kind
        self.detail = detail

    def __reduce__(self):
        return (self.__class__, (self.kind, self.detail))


class PdfLoadError(PdfValidationError):
    """Byte-buffer load failure (always a structural problem)"""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(MSG_LOAD_FAILED)
        self.kind = "structure"
        self.detail = detail

    def __reduce__(self):
        return (self.__class__, (self.detail,))


class ContentStreamError(PdfValidationError):
    """A page content stream could not be read or parsed"""
    pass


class LayoutCalibrationError(BicExporterError):
    """The column template could not be calibrated from the document"""
    pass


class RecordIntegrityError(BicExporterError):
    """A table row cannot be reconciled into 10 well-formed fields"""

    def __init__(self, message: str, column: Optional[int] = None, value: Optional[str] = None):
        super().__init__(message)
        self.column = column
        self.value = value

    def __reduce__(self):
        return (self.__class__, (str(self), self.column, self.value))


class RecordArityError(BicExporterError):
    """An assembled record does not have the fixed number of fields"""
    pass


class CsvWriteError(BicExporterError):
    """The CSV destination could not be written"""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(MSG_CSV_CREATE_FAILED)
        self.detail = detail

    def __reduce__(self):
        return (self.__class__, (self.detail,))


class ExtractionFault(BicExporterError):
    """Unexpected internal fault converted at the call boundary"""
    pass


class ProcessingTimeoutError(BicExporterError):
    """Custom exception for processing timeouts"""
    pass


def validate_pdf_signature(header: bytes) -> Tuple[bool, Optional[str]]:
    """
    Validate PDF signature (magic bytes) and version

    Args:
        header: Leading bytes of the document (at least 8 for the version check)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(header) < 4:
        return False, "File too small to be a valid PDF"

    if not header.startswith(VALIDATION_CONSTANTS['PDF_SIGNATURE']):
        return False, f"Invalid PDF signature. Expected {VALIDATION_CONSTANTS['PDF_SIGNATURE']}, got {header[:4]}"

    if len(header) >= 8:
        try:
            version_str = header[5:8].decode('ascii')
            if version_str not in VALIDATION_CONSTANTS['SUPPORTED_PDF_VERSIONS']:
                logger.warning(f"Unsupported PDF version: {version_str}")
                # Continue processing - many PDFs work even with unsupported versions
        except UnicodeDecodeError:
            logger.warning("Could not decode PDF version")

    return True, None


def validate_file_size(file_path: str, max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate file size limits

    Args:
        file_path: Path to the file
        max_size_mb: Maximum file size in MB (uses default if None)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']

    try:
        size_mb = os.path.getsize(file_path) / (1024 * 1024)
    except OSError as e:
        return False, f"Error checking file size: {str(e)}"

    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"

    logger.debug(f"File size validation passed: {size_mb:.1f}MB")
    return True, None


def validate_file_content(content: bytes, max_size_mb: Optional[int] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate in-memory PDF content before parsing

    Args:
        content: Raw file content bytes
        max_size_mb: Maximum file size in MB

    Returns:
        Tuple of (is_valid, error_message)
    """
    if max_size_mb is None:
        max_size_mb = VALIDATION_CONSTANTS['MAX_FILE_SIZE_MB']

    size_mb = len(content) / (1024 * 1024)
    if size_mb > max_size_mb:
        return False, f"File too large: {size_mb:.1f}MB (max: {max_size_mb}MB)"

    return validate_pdf_signature(content[:8])


class ResourceManager:
    """
    Context manager tracking wall time and memory of one extraction call
    """

    def __init__(self, label: str = "extraction"):
        self.label = label
        self.start_time = None
        self.start_memory = None

    def __enter__(self):
        self.start_time = time.time()
        self.start_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        logger.debug(f"ResourceManager: Starting {self.label} with {self.start_memory:.1f}MB memory")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        processing_time = time.time() - self.start_time
        current_memory = psutil.Process().memory_info().rss / (1024 * 1024)
        memory_delta = current_memory - self.start_memory

        outcome = "failed" if exc_type is not None else "completed"
        logger.info(f"ResourceManager: {self.label} {outcome} in {processing_time:.2f}s, "
                    f"memory usage: {memory_delta:+.1f}MB")
        return False


__all__ = [
    'validate_pdf_signature',
    'validate_file_size',
    'validate_file_content',
    'ResourceManager',
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
    'VALIDATION_CONSTANTS',
    'MSG_OPEN_FAILED',
    'MSG_LOAD_FAILED',
    'MSG_CSV_CREATE_FAILED',
]
