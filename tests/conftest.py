"""
Shared fixtures: a pikepdf-based builder for synthetic BIC directory PDFs.

The generated documents mirror the published directory: a cover page, then
landscape table pages with one vertical rule at the left edge of every
column, a repeated heading row, records whose long cells wrap onto
continuation rows, and title/footer furniture.
"""

import io
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import pikepdf
import pytest
from pikepdf import Dictionary, Name

from bic_exporter.constants.bic_columns import HEADERS

FIXTURES_DIR = Path(__file__).parent / "fixtures"
REFERENCE_PDF = FIXTURES_DIR / "ISOBIC-mini.pdf"

PAGE_WIDTH = 842
PAGE_HEIGHT = 595
COLUMN_X = (20.0, 70.0, 120.0, 175.0, 210.0, 330.0, 460.0, 590.0, 680.0, 770.0)
TABLE_TOP = 560.0
TABLE_BOTTOM = 40.0
TITLE_Y = 575.0
HEADER_Y = 545.0
FIRST_ROW_Y = 525.0
ROW_STEP = 14.0
WRAP_STEP = 9.0
FONT_SIZE = 7
CELL_PADDING = 2.0

Cell = Union[str, Sequence[str]]
RawRecord = Sequence[Cell]

# Records as laid out on the page; list cells wrap onto continuation rows
SAMPLE_RECORDS: List[RawRecord] = [
    [
        "1997-03-01", "2024-06-06", "AAAARSBG", "XXX", "YETTEL BANK AD",
        ["88 OMLADINSKIH BRIGADA", "BEOGRAD 11070 SERBIA"],
        ["88 OMLADINSKIH BRIGADA", "BEOGRAD 11070 BEOGRAD", "SERBIA"],
        "", "", "FIIN",
    ],
    [
        "2001-09-15", "2023-11-30", "AABAFI22", "XXX", "BANK OF ALAND PLC",
        "NYGATAN 2 MARIEHAMN 22100 FINLAND",
        ["NYGATAN 2", "MARIEHAMN 22100 FINLAND"],
        "", "", "FIIN",
    ],
    [
        "2010-01-04", "2024-02-19", "AACCGB21", "XXX",
        ["ACCESS BANK UK LIMITED", "(THE)"],
        "4 PRINCES WAY LONDON EC2R 8AD UNITED KINGDOM",
        "4 PRINCES WAY LONDON EC2R 8AD UNITED KINGDOM",
        "", "", "FIIN",
    ],
    [
        "2015-06-22", "2024-05-01", "AACSDE33", "JJJ", "SPARKASSE AACHEN",
        "FRIEDRICH-WILHELM-PLATZ 1-4 AACHEN 52062 GERMANY",
        "FRIEDRICH-WILHELM-PLATZ 1-4 AACHEN 52062 GERMANY",
        "BRANCH EUPEN", ["KIRCHSTRASSE 1", "AACHEN 52062"], "FIIN",
    ],
    [
        "2018-12-10", "2024-03-14", "AADJDEF1", "XXX", "ABN AMRO CLEARING",
        "FRANKFURTER STRASSE 8 FRANKFURT 60311 GERMANY",
        "FRANKFURTER STRASSE 8 FRANKFURT 60311 GERMANY",
        "", "", "NFIN",
    ],
]


def flatten(record: RawRecord) -> List[str]:
    """Expected extraction result for a laid-out record"""
    return [" ".join(cell) if not isinstance(cell, str) else cell for cell in record]


def _lines(cell: Cell) -> List[str]:
    if isinstance(cell, str):
        return [cell] if cell else []
    return list(cell)


def pdf_string(text: str) -> str:
    return "(" + text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)") + ")"


def text_op(x: float, y: float, text: str, font: str = "/F1", size: float = FONT_SIZE) -> str:
    return f"BT {font} {size} Tf 1 0 0 1 {x:.2f} {y:.2f} Tm {pdf_string(text)} Tj ET\n"


def rule_op(x: float, y0: float = TABLE_BOTTOM, y1: float = TABLE_TOP) -> str:
    return f"{x:.2f} {y0:.2f} m {x:.2f} {y1:.2f} l S\n"


class DirectoryPage:
    """Content of one synthetic table page"""

    def __init__(
        self,
        records: Sequence[RawRecord] = (),
        header: bool = True,
        furniture: bool = True,
        rules: bool = True,
        drift: float = 0.0,
        column_x: Sequence[float] = COLUMN_X,
        leading_rows: Sequence[RawRecord] = (),
        extra: str = "",
    ):
        self.records = list(records)
        self.header = header
        self.furniture = furniture
        self.rules = rules
        self.column_x = [x + drift for x in column_x]
        self.leading_rows = list(leading_rows)
        self.extra = extra

    def _row_ops(self, cells: Sequence[Cell], y: float) -> Tuple[str, float]:
        ops = []
        depth = 1
        for column, cell in enumerate(cells):
            lines = _lines(cell)
            depth = max(depth, len(lines))
            for line_no, line in enumerate(lines):
                ops.append(text_op(self.column_x[column] + CELL_PADDING, y - line_no * WRAP_STEP, line))
        return "".join(ops), y - (depth - 1) * WRAP_STEP - ROW_STEP

    def content(self) -> bytes:
        ops = []
        if self.rules:
            ops.append("0.5 w\n")
            ops.extend(rule_op(x) for x in self.column_x)
            ops.append(f"{self.column_x[0]:.2f} {TABLE_TOP:.2f} m {PAGE_WIDTH - 12:.2f} {TABLE_TOP:.2f} l S\n")
        if self.furniture:
            ops.append(text_op(self.column_x[0], TITLE_Y, "ISO 9362 BIC Directory"))
            ops.append(text_op(self.column_x[4], 20, "Registration Authority - SWIFT"))
        if self.header:
            for column, name in enumerate(HEADERS):
                ops.append(text_op(self.column_x[column] + CELL_PADDING, HEADER_Y, name))

        y = FIRST_ROW_Y
        for row in self.leading_rows + self.records:
            row_ops, y = self._row_ops(row, y)
            ops.append(row_ops)

        ops.append(self.extra)
        return "".join(ops).encode("cp1252")


class DirectoryPdfBuilder:
    """Assembles a directory PDF from DirectoryPage objects"""

    def __init__(self, cover: bool = True):
        self.pdf = pikepdf.Pdf.new()
        self.font = self.pdf.make_indirect(Dictionary(
            Type=Name.Font,
            Subtype=Name.Type1,
            BaseFont=Name.Helvetica,
            Encoding=Name.WinAnsiEncoding,
        ))
        self.xobjects = Dictionary()
        if cover:
            self.add_raw_page(
                text_op(300, 400, "ISO 9362 BIC Directory", size=24)
                + text_op(300, 360, "Edition June 2024", size=12)
            )

    def resources(self) -> Dictionary:
        resources = Dictionary(Font=Dictionary(F1=self.font))
        if len(self.xobjects) > 0:
            resources.XObject = self.xobjects
        return resources

    def add_form(self, name: str, content: str, matrix: Optional[Sequence[float]] = None) -> pikepdf.Stream:
        form = self.pdf.make_stream(content.encode("cp1252"))
        form.Type = Name.XObject
        form.Subtype = Name.Form
        form.BBox = [0, 0, PAGE_WIDTH, PAGE_HEIGHT]
        if matrix is not None:
            form.Matrix = list(matrix)
        self.xobjects[f"/{name}"] = form
        return form

    def add_raw_page(self, content: Union[str, bytes]) -> pikepdf.Page:
        if isinstance(content, str):
            content = content.encode("cp1252")
        page = self.pdf.add_blank_page(page_size=(PAGE_WIDTH, PAGE_HEIGHT))
        page.obj.Contents = self.pdf.make_stream(content)
        page.obj.Resources = self.resources()
        return page

    def add_page(self, page: DirectoryPage) -> pikepdf.Page:
        return self.add_raw_page(page.content())

    def add_corrupt_page(self) -> pikepdf.Page:
        """Page whose Flate-compressed contents are not zlib data"""
        page = self.add_raw_page(b"")
        page.obj.Contents.write(b"this is not zlib data", filter=Name.FlateDecode)
        return page

    def to_bytes(self, **save_options) -> bytes:
        buffer = io.BytesIO()
        self.pdf.save(buffer, **save_options)
        return buffer.getvalue()


def build_directory_pdf(*pages: DirectoryPage, cover: bool = True) -> bytes:
    builder = DirectoryPdfBuilder(cover=cover)
    for page in pages:
        builder.add_page(page)
    return builder.to_bytes()


@pytest.fixture
def directory_pdf_bytes() -> bytes:
    """Cover page plus two table pages holding SAMPLE_RECORDS"""
    return build_directory_pdf(
        DirectoryPage(SAMPLE_RECORDS[:3]),
        DirectoryPage(SAMPLE_RECORDS[3:]),
    )


@pytest.fixture
def directory_pdf_path(tmp_path, directory_pdf_bytes) -> Path:
    path = tmp_path / "ISOBIC.pdf"
    path.write_bytes(directory_pdf_bytes)
    return path


@pytest.fixture
def expected_records() -> List[List[str]]:
    return [flatten(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def reference_pdf() -> Path:
    if not REFERENCE_PDF.is_file():
        pytest.skip("reference directory fixture not available")
    return REFERENCE_PDF
