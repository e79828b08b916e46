"""Record assembly

Concatenates per-page records into the document's final record sequence.
"""

import logging
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union

from bic_exporter.constants.bic_columns import COLUMN_COUNT
from bic_exporter.utils.validation import RecordArityError

logger = logging.getLogger(__name__)

Record = List[str]
PageRecords = Union[Mapping[int, Sequence[Record]], Iterable[Tuple[int, Sequence[Record]]]]


def assemble_records(page_records: PageRecords) -> List[Record]:
    """
    Merge page records in ascending page index, keeping in-page order.

    Records are never merged across pages.

    Args:
        page_records: ``{page_index: records}`` or ``(page_index, records)`` pairs

    Raises:
        RecordArityError: A record does not have exactly ``COLUMN_COUNT`` fields
    """
    items = page_records.items() if isinstance(page_records, Mapping) else page_records
    by_page: Dict[int, Sequence[Record]] = {}
    for page_index, records in items:
        if page_index in by_page:
            raise ValueError(f"Records for page {page_index} supplied twice")
        by_page[page_index] = records

    assembled: List[Record] = []
    for page_index in sorted(by_page):
        for position, record in enumerate(by_page[page_index]):
            if len(record) != COLUMN_COUNT:
                raise RecordArityError(
                    f"Record {position} on page {page_index + 1} has {len(record)} fields, "
                    f"expected {COLUMN_COUNT}"
                )
            assembled.append(list(record))

    logger.debug(f"Assembled {len(assembled)} records from {len(by_page)} pages")
    return assembled
