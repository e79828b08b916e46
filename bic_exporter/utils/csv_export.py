"""
CSV serialization of extracted records

Minimal quoting (only fields holding the delimiter, a quote or a line
break are quoted), "\\n" record terminator, header line first.
"""

import csv
import io
import logging
import os
from typing import Dict, List, Sequence, Tuple, Union

from bic_exporter.models.bic_types import BicRecord
from bic_exporter.utils.validation import CsvWriteError

logger = logging.getLogger(__name__)

LINE_TERMINATOR = "\n"


def _write_rows(stream, headers: Sequence[str], records: Sequence[Sequence[str]]) -> None:
    writer = csv.writer(stream, lineterminator=LINE_TERMINATOR, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(headers)
    writer.writerows(records)


def to_csv(headers: Sequence[str], records: Sequence[Sequence[str]]) -> str:
    """Render headers and records as CSV text"""
    buffer = io.StringIO()
    _write_rows(buffer, headers, records)
    return buffer.getvalue()


def write_csv(
    path: Union[str, os.PathLike],
    headers: Sequence[str],
    records: Sequence[Sequence[str]],
) -> int:
    """
    Write records to a UTF-8 CSV file, replacing any existing file.

    Returns:
        Number of records written (header excluded)

    Raises:
        CsvWriteError: "Failed to create output CSV file"
    """
    try:
        with open(path, 'w', newline='', encoding='utf-8') as fp:
            _write_rows(fp, headers, records)
    except OSError as e:
        logger.error(f"Cannot write CSV to {path}: {e}")
        raise CsvWriteError(detail=str(e)) from e

    logger.info(f"Wrote {len(records)} records to {path}")
    return len(records)


def parse_csv(text: str) -> Tuple[List[str], List[List[str]]]:
    """
    Read CSV text produced by :func:`to_csv`.

    Returns:
        (header row, records)
    """
    rows = list(csv.reader(io.StringIO(text, newline='')))
    if not rows:
        return [], []
    return rows[0], rows[1:]


def records_as_dicts(records: Sequence[Sequence[str]]) -> List[Dict[str, str]]:
    """Keyed view of records (snake_case field names)"""
    return [BicRecord.from_fields(list(record)).model_dump() for record in records]
