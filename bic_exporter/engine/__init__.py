"""
PDF Processing Engine

Core engine module for the extraction pipeline.
Contains the PDFEngine document loader and its processors.
"""

from bic_exporter.engine.pdf_engine import PDFEngine, load_from_bytes, load_from_path
from bic_exporter.engine.config import (
    EngineConfig,
    PageRange,
    ProcessorOptions,
    TableLayoutOptions,
    TableRegion,
    TextExtractionOptions,
)
from bic_exporter.engine.base_processor import BaseProcessor, ProcessorRegistry
from bic_exporter.engine.text_processor import TextProcessor
from bic_exporter.engine.table_processor import TableProcessor

__all__ = [
    'PDFEngine',
    'load_from_path',
    'load_from_bytes',
    'EngineConfig',
    'PageRange',
    'ProcessorOptions',
    'TableLayoutOptions',
    'TableRegion',
    'TextExtractionOptions',
    'BaseProcessor',
    'ProcessorRegistry',
    'TextProcessor',
    'TableProcessor',
]
