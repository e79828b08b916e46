"""
Base processor class and registry.

Processors are the per-stage workers owned by a PDFEngine: the glyph
extractor and the table processor. Each one is created against an open
engine, initialized by it, and cleaned up when the engine closes.
"""

from abc import ABC
from typing import Dict, List, Optional, TYPE_CHECKING
import logging

if TYPE_CHECKING:
    from bic_exporter.engine.pdf_engine import PDFEngine

logger = logging.getLogger(__name__)


class BaseProcessor(ABC):
    """
    Abstract base class for engine processors.

    Subclasses override initialize() and cleanup() to manage per-document
    state; both must be safe to call more than once.
    """

    def __init__(self, engine: 'PDFEngine'):
        self.engine = engine
        self._initialized = False
        logger.debug(f"{self.__class__.__name__} created with engine reference")

    def initialize(self) -> None:
        """Prepare per-document state. Called by the engine before first use."""
        if self._initialized:
            logger.warning(f"{self.__class__.__name__} already initialized")
            return

        self._initialized = True
        logger.debug(f"{self.__class__.__name__} initialized")

    def cleanup(self) -> None:
        """Release per-document state (idempotent)."""
        if not self._initialized:
            return

        self._initialized = False
        logger.debug(f"{self.__class__.__name__} cleaned up")

    def validate_state(self) -> bool:
        """
        Check that the processor can run.

        Returns:
            True if processor is ready, False otherwise
        """
        if not self._initialized:
            logger.error(f"{self.__class__.__name__} not initialized")
            return False

        if self.engine is None:
            logger.error(f"{self.__class__.__name__} has no engine reference")
            return False

        return True

    def __repr__(self) -> str:
        status = "initialized" if self._initialized else "not initialized"
        return f"{self.__class__.__name__}({status})"


class ProcessorRegistry:
    """
    Named processors attached to one engine, initialized in registration
    order and cleaned up in reverse.
    """

    def __init__(self):
        self._processors: Dict[str, BaseProcessor] = {}
        self._initialization_order: List[str] = []

    def register(self, name: str, processor: BaseProcessor) -> None:
        if name in self._processors:
            logger.warning(f"Processor '{name}' already registered, replacing")

        self._processors[name] = processor
        if name not in self._initialization_order:
            self._initialization_order.append(name)

        logger.debug(f"Registered processor: {name}")

    def get(self, name: str) -> Optional[BaseProcessor]:
        return self._processors.get(name)

    def initialize_all(self) -> None:
        for name in self._initialization_order:
            processor = self._processors.get(name)
            if processor:
                try:
                    processor.initialize()
                except Exception as e:
                    logger.error(f"Failed to initialize processor '{name}': {e}")
                    raise

    def cleanup_all(self) -> None:
        for name in reversed(self._initialization_order):
            processor = self._processors.get(name)
            if processor:
                try:
                    processor.cleanup()
                except Exception as e:
                    # Continue cleanup despite errors
                    logger.warning(f"Error cleaning up processor '{name}': {e}")

    @property
    def processor_names(self) -> List[str]:
        return list(self._processors.keys())

    def __repr__(self) -> str:
        return f"ProcessorRegistry({len(self._processors)} processors: {self.processor_names})"
