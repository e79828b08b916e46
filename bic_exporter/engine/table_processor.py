"""Table Processor for PDFEngine

Runs the layout stages over a document: row clustering, column
segmentation, field normalization and record assembly. Glyph extraction is
delegated to the engine's TextProcessor and always runs serially; the pure
per-page layout stages may run on a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from bic_exporter.engine.base_processor import BaseProcessor
from bic_exporter.engine.config import PageRange, TableLayoutOptions
from bic_exporter.models.bic_types import PageContent
from bic_exporter.processors.column_segmentation import ColumnTemplate, segment_page
from bic_exporter.processors.field_normalizer import normalize_record
from bic_exporter.processors.record_assembly import Record, assemble_records
from bic_exporter.processors.row_clustering import cluster_rows
from bic_exporter.utils.validation import RecordIntegrityError

logger = logging.getLogger(__name__)


@dataclass
class PageLayoutResult:
    """Records of one page plus the rows rejected by normalization"""
    page_index: int
    records: List[Record]
    skipped: int = 0


class TableProcessor(BaseProcessor):
    """
    Layout-to-table stage runner.

    The column template is calibrated once, on the first page of the range
    that has content, and then realigned per page within the configured
    drift tolerance.
    """

    def __init__(self, engine: 'PDFEngine', options: Optional[TableLayoutOptions] = None):
        super().__init__(engine)
        self.options = options or TableLayoutOptions()
        self.template: Optional[ColumnTemplate] = None
        self.skipped_records = 0
        self.pages_processed = 0

    def initialize(self) -> None:
        self._initialized = True

    def cleanup(self) -> None:
        self.template = None
        self._initialized = False

    def extract_records(
        self,
        pages: Optional[PageRange] = None,
        strict_mode: bool = False,
        page_workers: int = 1,
    ) -> List[Record]:
        """
        Extract the table of a document.

        Args:
            pages: 1-based page range; defaults to every page after the cover
            strict_mode: Abort on the first malformed record instead of skipping it
            page_workers: Threads for the per-page layout stages

        Returns:
            Records in page order, each exactly 10 fields

        Raises:
            ContentStreamError: A page content stream is unreadable
            LayoutCalibrationError: Column boundaries cannot be detected
            RecordIntegrityError: Malformed record in strict mode
            RecordArityError: A record does not have 10 fields
        """
        if not self.validate_state():
            raise RuntimeError("TableProcessor used outside an open engine")

        pages = pages or PageRange(start=2)
        page_indices = [n - 1 for n in pages.to_page_numbers(self.engine.get_page_count())]
        logger.info(f"Extracting table from {len(page_indices)} pages ({pages!r})")

        jobs = self._prepare_pages(page_indices)

        if page_workers > 1 and len(jobs) > 1:
            with ThreadPoolExecutor(max_workers=page_workers) as executor:
                results = list(executor.map(lambda job: self._layout_page(*job, strict_mode), jobs))
        else:
            results = [self._layout_page(*job, strict_mode) for job in jobs]

        self.skipped_records = sum(r.skipped for r in results)
        self.pages_processed = len(results)
        if self.skipped_records:
            logger.warning(f"Skipped {self.skipped_records} malformed records")

        records = assemble_records((r.page_index, r.records) for r in results)
        logger.info(f"Extracted {len(records)} records from {self.pages_processed} pages")
        return records

    def _prepare_pages(
        self, page_indices: List[int]
    ) -> List[Tuple[PageContent, ColumnTemplate, Tuple[float, float]]]:
        """Serial glyph extraction and per-page template resolution"""
        text_processor = self.engine.text_processor
        jobs = []
        for page_index in page_indices:
            content = text_processor.extract_page(page_index)
            if not content.fragments and not content.rules:
                logger.debug(f"Page {page_index + 1}: no content")
                continue

            if self.template is None:
                self.template = ColumnTemplate.calibrate(content.rules, self.options)
                page_template = self.template
            else:
                page_template = self.template.realign(content.rules, self.options)

            jobs.append((content, page_template, self.engine.get_page_bounds(page_index)))
        return jobs

    def _layout_page(
        self,
        content: PageContent,
        template: ColumnTemplate,
        page_bounds: Tuple[float, float],
        strict_mode: bool,
    ) -> PageLayoutResult:
        bands = cluster_rows(
            content.fragments,
            tolerance=self.options.row_tolerance,
            region=self.options.region,
            page_bounds=page_bounds,
            rules=content.rules,
        )
        raw_records = segment_page(bands, template, self.options, content.page_index)

        records: List[Record] = []
        skipped = 0
        for raw in raw_records:
            try:
                records.append(normalize_record(raw, self.options))
            except RecordIntegrityError as e:
                if strict_mode:
                    logger.error(f"Page {content.page_index + 1}: {e}")
                    raise
                skipped += 1
                logger.warning(f"Page {content.page_index + 1}: skipping record {raw[:3]}: {e}")

        logger.debug(
            f"Page {content.page_index + 1}: {len(bands)} rows, {len(records)} records"
        )
        return PageLayoutResult(page_index=content.page_index, records=records, skipped=skipped)

    def layout_summary(self) -> Dict[str, object]:
        return {
            'template': self.template.boundaries[:-1] if self.template else None,
            'pages_processed': self.pages_processed,
            'skipped_records': self.skipped_records,
        }
