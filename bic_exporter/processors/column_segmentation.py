"""Column segmentation

Maps the fragments of each row band onto the fixed table columns using
x ranges calibrated from the vertical rules the directory draws between
columns, then folds wrapped rows into the record they continue.
"""

import logging
import math
import re
from bisect import bisect_right
from typing import Iterable, List, Optional, Sequence

from bic_exporter.engine.config import TableLayoutOptions
from bic_exporter.models.bic_types import TextFragment, VerticalRule
from bic_exporter.processors.row_clustering import RowBand
from bic_exporter.utils.validation import LayoutCalibrationError

logger = logging.getLogger(__name__)

END_MARKER = math.inf

# A row opens a record when its first cell starts with a date
RECORD_START_PATTERN = re.compile(
    r'^\s*(?:\d{4}-\d{2}-\d{2}|\d{4}/\d{2}/\d{2}|\d{2}/\d{2}/\d{4}|\d{2}\.\d{2}\.\d{4})'
)
_WHITESPACE = re.compile(r'\s+')


def collapse_whitespace(value: str) -> str:
    return _WHITESPACE.sub(' ', value).strip()


def detect_column_boundaries(
    rules: Iterable[VerticalRule],
    options: Optional[TableLayoutOptions] = None,
) -> List[float]:
    """
    Derive column boundaries from a page's vertical rules.

    Rule x positions are sorted and deduplicated (a position within
    ``line_dedup_tolerance`` of the last kept one is dropped), the end
    marker +inf is appended, and the first ``column_count + 1`` are kept.

    Raises:
        LayoutCalibrationError: Fewer boundaries than required
    """
    options = options or TableLayoutOptions()
    required = options.required_boundaries

    if options.column_boundaries is not None:
        configured = [float(b) for b in options.column_boundaries]
        if len(configured) < required:
            configured.append(END_MARKER)
        return configured[:required]

    positions = sorted(rule.x for rule in rules)
    boundaries: List[float] = []
    for x in positions:
        if boundaries and abs(x - boundaries[-1]) < options.line_dedup_tolerance:
            continue
        boundaries.append(x)

    if boundaries:
        boundaries.append(END_MARKER)

    if len(boundaries) < required:
        raise LayoutCalibrationError(
            f"Failed to detect column boundaries from PDF. Expected at least {required} "
            f"vertical lines, found {len(boundaries)}. This PDF may have a different "
            f"format than the standard ISO BIC directory."
        )

    return boundaries[:required]


class ColumnTemplate:
    """
    Horizontal ranges of the table columns.

    Column ``i`` covers ``[b[i] - drift, b[i+1] - drift)``: text is allowed
    to start slightly left of its separator.
    """

    def __init__(self, boundaries: Sequence[float], boundary_drift: float = 1.0):
        if len(boundaries) < 2:
            raise ValueError("A column template needs at least two boundaries")
        self.boundaries = [float(b) for b in boundaries]
        self.boundary_drift = boundary_drift
        self._starts = [b - boundary_drift for b in self.boundaries]

    @classmethod
    def calibrate(cls, rules: Iterable[VerticalRule], options: TableLayoutOptions) -> 'ColumnTemplate':
        boundaries = detect_column_boundaries(rules, options)
        logger.info(f"Calibrated column template: {[round(b, 1) for b in boundaries[:-1]]}")
        return cls(boundaries, options.boundary_drift)

    @property
    def column_count(self) -> int:
        return len(self.boundaries) - 1

    def column_for(self, x: float) -> Optional[int]:
        """Column index for a fragment starting at ``x``, or None left of the table"""
        index = bisect_right(self._starts, x) - 1
        if index < 0 or index >= self.column_count:
            return None
        return index

    def realign(self, rules: Iterable[VerticalRule], options: TableLayoutOptions) -> 'ColumnTemplate':
        """
        Template for a later page: the page's own boundaries when every one
        lies within ``max_boundary_drift`` of this template, otherwise self.
        """
        if options.column_boundaries is not None:
            return self
        rules = list(rules)
        if not rules:
            return self
        try:
            candidate = detect_column_boundaries(rules, options)
        except LayoutCalibrationError:
            logger.debug("Page rules incomplete, keeping calibrated template")
            return self

        if len(candidate) != len(self.boundaries):
            return self
        for new, old in zip(candidate[:-1], self.boundaries[:-1]):
            if abs(new - old) > options.max_boundary_drift:
                logger.debug(f"Page boundary {new:.1f} drifted from {old:.1f}, keeping calibrated template")
                return self
        return ColumnTemplate(candidate, self.boundary_drift)

    def __repr__(self) -> str:
        return f"ColumnTemplate({[round(b, 1) for b in self.boundaries[:-1]]}, drift={self.boundary_drift})"


def join_fragments(fragments: Sequence[TextFragment], join_tolerance: float = 0.25) -> str:
    """
    Concatenate the fragments of one cell in x order.

    A fragment starting where the previous one ended (within
    ``join_tolerance``) continues the same word; anything else is
    separated by a single space.
    """
    ordered = sorted(fragments, key=lambda f: f.x)
    pieces: List[str] = []
    previous: Optional[TextFragment] = None
    for fragment in ordered:
        if previous is not None and abs(fragment.x - previous.x_end) > join_tolerance:
            pieces.append(' ')
        pieces.append(fragment.content)
        previous = fragment
    return collapse_whitespace(''.join(pieces))


def segment_row(band: RowBand, template: ColumnTemplate, join_tolerance: float = 0.25) -> List[str]:
    """Split one band into ``template.column_count`` cells ("" for empty columns)"""
    cells: List[List[TextFragment]] = [[] for _ in range(template.column_count)]
    for fragment in band.fragments:
        column = template.column_for(fragment.x)
        if column is None:
            logger.debug(f"Fragment {fragment.content!r} at x={fragment.x:.1f} is left of the table")
            continue
        cells[column].append(fragment)
    return [join_fragments(cell, join_tolerance) for cell in cells]


def is_header_row(cells: Sequence[str], markers: Sequence[str]) -> bool:
    """True for repeated column headings and directory boilerplate"""
    combined = ' '.join(cells).lower()
    if 'record' in combined and 'creation' in combined:
        return True
    return any(marker in combined for marker in markers)


def is_record_start(cells: Sequence[str]) -> bool:
    return bool(cells) and bool(RECORD_START_PATTERN.match(cells[0]))


def merge_continuation(record: List[str], cells: Sequence[str]) -> None:
    """Append a wrapped row to the record it continues, column by column"""
    for index, cell in enumerate(cells):
        if index < len(record) and cell:
            record[index] = f"{record[index]} {cell}" if record[index] else cell


def segment_page(
    bands: Sequence[RowBand],
    template: ColumnTemplate,
    options: Optional[TableLayoutOptions] = None,
    page_index: int = 0,
) -> List[List[str]]:
    """
    Turn the bands of one page into provisional records.

    Empty rows and header rows are skipped. A row whose first cell starts
    with a date opens a record; every other row continues the open one.
    Continuations before the first record of the page are dropped, so
    records never span pages.
    """
    options = options or TableLayoutOptions()
    records: List[List[str]] = []
    current: Optional[List[str]] = None
    orphans = 0

    for band in bands:
        cells = segment_row(band, template, options.join_tolerance)
        if not any(cells):
            continue
        if is_header_row(cells, options.header_markers):
            continue

        if is_record_start(cells):
            if current is not None:
                records.append(current)
            current = list(cells)
        elif current is not None:
            merge_continuation(current, cells)
        else:
            orphans += 1

    if current is not None:
        records.append(current)

    if orphans:
        logger.debug(f"Page {page_index + 1}: dropped {orphans} rows before the first record")
    return records
