"""
PDF Processing Engine - Document Loader

The PDFEngine owns one opened PDF for the duration of an extraction. It
validates untrusted input, opens it with pikepdf from a path or from an
in-memory buffer, exposes page access to its processors, and closes every
handle on exit. No state survives the context manager.

Usage:
    >>> from bic_exporter.engine.pdf_engine import PDFEngine
    >>>
    >>> with PDFEngine.from_path('ISOBIC.pdf') as engine:
    ...     print(f"Document has {engine.get_page_count()} pages")
"""

import io
import logging
import os
from pathlib import Path
from typing import Optional, Any, Dict, List, Tuple, Union

import pikepdf

from bic_exporter.constants.pdf_keys import KEY_RESOURCES, KEY_MEDIABOX
from bic_exporter.engine.config import EngineConfig
from bic_exporter.engine.base_processor import ProcessorRegistry
from bic_exporter.utils.validation import (
    BicExporterError,
    ContentStreamError,
    PdfLoadError,
    PdfOpenError,
    validate_file_content,
    validate_file_size,
    validate_pdf_signature,
)

logger = logging.getLogger(__name__)

KEY_PARENT = "/Parent"
KEY_CONTENTS = "/Contents"
DEFAULT_MEDIABOX = (0.0, 0.0, 612.0, 792.0)


class PDFEngine:
    """
    Opened PDF document with its processors.

    Construct with :meth:`from_path` or :meth:`from_bytes` and use as a
    context manager; the document is opened on ``__enter__``.

    Example:
        >>> with PDFEngine.from_bytes(data) as engine:
        ...     content = engine.text_processor.extract_page(1)
    """

    def __init__(
        self,
        file_path: Optional[Union[str, os.PathLike]] = None,
        data: Optional[bytes] = None,
        config: Optional[EngineConfig] = None,
    ):
        """
        Args:
            file_path: Path to a PDF file
            data: Complete PDF document bytes (exclusive with file_path)
            config: Engine configuration (uses defaults if None)

        Raises:
            ValueError: If neither or both sources are given
            BicExporterError: If configuration is invalid
        """
        if (file_path is None) == (data is None):
            raise ValueError("Exactly one of file_path or data is required")

        self.file_path = os.fspath(file_path) if file_path is not None else None
        self._data = data
        self.config = config or EngineConfig.default()

        if not self.config.validate():
            raise BicExporterError("Invalid engine configuration")

        self._pikepdf_doc: Optional[pikepdf.Pdf] = None
        self._is_open = False
        self._processors = ProcessorRegistry()

        self._page_count: Optional[int] = None
        self._file_size_mb: Optional[float] = None

        logger.debug(f"PDFEngine initialized for: {self.source_label}")

    @classmethod
    def from_path(cls, file_path: Union[str, os.PathLike], config: Optional[EngineConfig] = None) -> 'PDFEngine':
        return cls(file_path=file_path, config=config)

    @classmethod
    def from_bytes(cls, data: bytes, config: Optional[EngineConfig] = None) -> 'PDFEngine':
        return cls(data=bytes(data), config=config)

    @property
    def source_label(self) -> str:
        if self.file_path is not None:
            return Path(self.file_path).name
        return f"<{len(self._data)} bytes>"

    def __enter__(self) -> 'PDFEngine':
        """
        Open the document and initialize processors.

        Raises:
            PdfOpenError: Path variant failed (``kind`` is "io" or "structure")
            PdfLoadError: Byte variant failed
        """
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logger.debug("Closing PDF engine")
        self.close()
        return False

    def open(self) -> 'PDFEngine':
        if self._is_open:
            return self

        try:
            if self.file_path is not None:
                self._pikepdf_doc = self._open_path()
            else:
                self._pikepdf_doc = self._open_bytes()

            self._page_count = len(self._pikepdf_doc.pages)
            self._is_open = True
            self._initialize_processors()
        except BaseException:
            self._cleanup_resources()
            raise

        logger.info(
            f"PDF opened successfully: {self.source_label}, {self._page_count} pages, "
            f"{self._file_size_mb:.2f} MB"
        )
        return self

    def close(self) -> None:
        self._cleanup_resources()

    def _open_path(self) -> pikepdf.Pdf:
        logger.info(f"Opening PDF: {self.file_path}")

        if not os.path.isfile(self.file_path):
            logger.error(f"PDF file not found: {self.file_path}")
            raise PdfOpenError(kind="io", detail=f"No such file: {self.file_path}")

        try:
            self._file_size_mb = os.path.getsize(self.file_path) / (1024 * 1024)
            with open(self.file_path, 'rb') as fp:
                header = fp.read(8)
        except OSError as e:
            logger.error(f"Cannot read PDF file {self.file_path}: {e}")
            raise PdfOpenError(kind="io", detail=str(e)) from e

        if self.config.validate_on_open:
            for is_valid, message in (
                validate_file_size(self.file_path, self.config.max_file_size_mb),
                validate_pdf_signature(header),
            ):
                if not is_valid:
                    logger.error(f"PDF validation failed: {message}")
                    raise PdfOpenError(kind="structure", detail=message)

        try:
            return pikepdf.open(self.file_path)
        except pikepdf.PasswordError as e:
            logger.error(f"PDF is encrypted: {e}")
            raise PdfOpenError(kind="structure", detail=str(e)) from e
        except pikepdf.PdfError as e:
            logger.error(f"Failed to parse PDF: {e}")
            raise PdfOpenError(kind="structure", detail=str(e)) from e
        except OSError as e:
            logger.error(f"Failed to read PDF: {e}")
            raise PdfOpenError(kind="io", detail=str(e)) from e

    def _open_bytes(self) -> pikepdf.Pdf:
        self._file_size_mb = len(self._data) / (1024 * 1024)
        logger.info(f"Loading PDF from {len(self._data)} bytes")

        if self.config.validate_on_open:
            is_valid, message = validate_file_content(self._data, self.config.max_file_size_mb)
            if not is_valid:
                logger.error(f"PDF validation failed: {message}")
                raise PdfLoadError(detail=message)

        try:
            return pikepdf.open(io.BytesIO(self._data))
        except (pikepdf.PdfError, OSError, ValueError) as e:
            logger.error(f"Failed to parse PDF bytes: {e}")
            raise PdfLoadError(detail=str(e)) from e

    def _initialize_processors(self) -> None:
        from bic_exporter.engine.text_processor import TextProcessor
        from bic_exporter.engine.table_processor import TableProcessor

        self._processors.register('text', TextProcessor(self, self.config.text_options))
        self._processors.register('table', TableProcessor(self, self.config.layout_options))
        self._processors.initialize_all()

    def _cleanup_resources(self) -> None:
        """
        Clean up processors and the document handle.

        This method is idempotent and safe to call multiple times.
        """
        self._processors.cleanup_all()

        if self._pikepdf_doc is not None:
            try:
                self._pikepdf_doc.close()
            except Exception as e:
                logger.warning(f"Error closing pikepdf document: {e}")
            finally:
                self._pikepdf_doc = None

        self._is_open = False

    # Public API - Document Information

    def _require_open(self) -> None:
        if not self._is_open:
            raise RuntimeError("Engine not opened - use within context manager")

    def _require_page(self, page_index: int) -> None:
        self._require_open()
        if page_index < 0 or page_index >= self._page_count:
            raise IndexError(f"Page index {page_index} out of bounds (0-{self._page_count-1})")

    def get_page_count(self) -> int:
        self._require_open()
        return self._page_count

    def get_page(self, page_index: int) -> pikepdf.Page:
        self._require_page(page_index)
        return self._pikepdf_doc.pages[page_index]

    def _inherited(self, page_index: int, key: str) -> Any:
        """Look up a page attribute, following /Parent for inheritable keys"""
        node = self.get_page(page_index).obj
        depth = 0
        while node is not None and depth < 64:
            value = node.get(key)
            if value is not None:
                return value
            node = node.get(KEY_PARENT)
            depth += 1
        return None

    def get_page_bounds(self, page_index: int) -> Tuple[float, float]:
        """
        Vertical extent of the page's MediaBox.

        Returns:
            (bottom, top) in PDF points
        """
        mediabox = self._inherited(page_index, KEY_MEDIABOX)
        if mediabox is None or len(mediabox) != 4:
            mediabox = DEFAULT_MEDIABOX
        y_values = (float(mediabox[1]), float(mediabox[3]))
        return min(y_values), max(y_values)

    def get_page_resources(self, page_index: int) -> Optional[pikepdf.Dictionary]:
        return self._inherited(page_index, KEY_RESOURCES)

    def parse_page_operations(self, page_index: int) -> List[Any]:
        """
        Parse a page content stream into pikepdf content stream instructions.

        Raises:
            ContentStreamError: If the content stream cannot be parsed
        """
        page = self.get_page(page_index)
        if page.obj.get(KEY_CONTENTS) is None:
            return []
        try:
            return list(pikepdf.parse_content_stream(page))
        except (pikepdf.PdfError, ValueError, TypeError) as e:
            logger.error(f"Failed to parse operations on page {page_index}: {e}")
            raise ContentStreamError(f"Failed to parse operations on page {page_index}") from e

    # Public API - Processor Access

    @property
    def text_processor(self):
        processor = self._processors.get('text')
        if processor is None:
            raise RuntimeError("TextProcessor not yet initialized")
        return processor

    @property
    def table_processor(self):
        processor = self._processors.get('table')
        if processor is None:
            raise RuntimeError("TableProcessor not yet initialized")
        return processor

    # Status and Debugging

    @property
    def is_open(self) -> bool:
        return self._is_open

    def get_status(self) -> Dict[str, Any]:
        return {
            'is_open': self._is_open,
            'source': self.source_label,
            'page_count': self._page_count,
            'file_size_mb': self._file_size_mb,
            'processors': self._processors.processor_names,
            'config': self.config.to_dict()
        }

    def __repr__(self) -> str:
        status = "open" if self._is_open else "closed"
        pages = f"{self._page_count} pages" if self._page_count else "unknown pages"
        return f"PDFEngine({self.source_label}, {status}, {pages})"


def load_from_path(file_path: Union[str, os.PathLike], config: Optional[EngineConfig] = None) -> PDFEngine:
    """
    Open a PDF file. The caller owns the returned engine and must close it.

    Raises:
        PdfOpenError: "Failed to open PDF file"
    """
    return PDFEngine.from_path(file_path, config).open()


def load_from_bytes(data: bytes, config: Optional[EngineConfig] = None) -> PDFEngine:
    """
    Open a PDF held in memory. The caller owns the returned engine and must close it.

    Raises:
        PdfLoadError: "Failed to load PDF from bytes"
    """
    return PDFEngine.from_bytes(data, config).open()
