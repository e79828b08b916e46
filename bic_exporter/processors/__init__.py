"""
PDF Processing Components

Stateful state tracking and the table layout stages:

- GraphicsStateTracker: CTM and text state tracking for glyph extraction
- Row clustering: fragments to horizontal row bands
- Column segmentation: bands to cells and provisional records
- Field normalization: canonical 10-field records
- Record assembly: document-order record sequence

These differ from utils/ which contains pure, stateless helpers.
"""

from bic_exporter.processors.pdf_graphics import GraphicsStateTracker
from bic_exporter.processors.row_clustering import RowBand, cluster_rows
from bic_exporter.processors.column_segmentation import ColumnTemplate, detect_column_boundaries, segment_page
from bic_exporter.processors.field_normalizer import normalize_record
from bic_exporter.processors.record_assembly import assemble_records

__all__ = [
    'GraphicsStateTracker',
    'RowBand',
    'cluster_rows',
    'ColumnTemplate',
    'detect_column_boundaries',
    'segment_page',
    'normalize_record',
    'assemble_records',
]
