"""
Field Normalization Module

Turns a provisional record (raw cell strings from column segmentation) into
a canonical 10-field record: dates in ISO-8601, whitespace collapsed, and
optional columns present as empty strings.
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence

from bic_exporter.constants.bic_columns import COLUMN_COUNT, COL_BIC, DATE_COLUMNS, HEADERS
from bic_exporter.engine.config import TableLayoutOptions
from bic_exporter.processors.column_segmentation import collapse_whitespace
from bic_exporter.utils.validation import RecordIntegrityError

logger = logging.getLogger(__name__)

BIC_PATTERN = re.compile(r'^[A-Z0-9]{8}$')
ISO_DATE_FORMAT = "%Y-%m-%d"


def normalize_date(value: str, date_formats: Sequence[str], column: Optional[int] = None) -> str:
    """
    Parse a date cell into ``YYYY-MM-DD``.

    The first format that parses wins; trailing text after a valid date is
    not accepted.

    Raises:
        RecordIntegrityError: No format yields a real calendar date
    """
    cleaned = collapse_whitespace(value)
    for date_format in date_formats:
        try:
            return datetime.strptime(cleaned, date_format).strftime(ISO_DATE_FORMAT)
        except ValueError:
            continue

    label = HEADERS[column] if column is not None and column < len(HEADERS) else "date"
    raise RecordIntegrityError(f"Invalid {label}: {cleaned!r}", column=column, value=cleaned)


def normalize_record(raw: Sequence[str], options: Optional[TableLayoutOptions] = None) -> List[str]:
    """
    Canonicalize one provisional record.

    Args:
        raw: Cells in column order; missing trailing cells count as empty
        options: Date formats and BIC validation switch

    Returns:
        Exactly ``COLUMN_COUNT`` strings in fixed order

    Raises:
        RecordIntegrityError: Unparseable date, malformed BIC, or more cells
            than columns
    """
    options = options or TableLayoutOptions()

    if len(raw) > COLUMN_COUNT:
        raise RecordIntegrityError(f"Record has {len(raw)} cells, expected {COLUMN_COUNT}")

    fields = [collapse_whitespace(value or "") for value in raw]
    fields.extend([""] * (COLUMN_COUNT - len(fields)))

    for column in DATE_COLUMNS:
        fields[column] = normalize_date(fields[column], options.date_formats, column)

    if options.validate_bic and not BIC_PATTERN.match(fields[COL_BIC]):
        raise RecordIntegrityError(
            f"Invalid BIC: {fields[COL_BIC]!r}", column=COL_BIC, value=fields[COL_BIC]
        )

    return fields
