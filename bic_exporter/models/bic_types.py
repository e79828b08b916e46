"""
Pydantic models for BIC directory extraction
Positioned page content produced by the glyph extractor and the keyed
record view returned by the HTTP API.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List

from bic_exporter.constants.bic_columns import FIELD_KEYS, HEADERS


class BoundingBox(BaseModel):
    """Axis-aligned box in PDF user space (origin bottom-left, y up)"""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float


class TextFragment(BoundingBox):
    """
    Text shown by one text-showing operator.

    ``x``/``y`` are the start point on the baseline after applying the text
    matrix and CTM; ``width`` is the advance of the whole run and ``height``
    the effective font size.
    """
    content: str
    page_index: int = 0

    @property
    def x_end(self) -> float:
        """Right edge of the run"""
        return self.x + self.width


class VerticalRule(BaseModel):
    """Vertical line segment drawn on a page (table column separator candidate)"""
    model_config = ConfigDict(frozen=True)

    x: float
    y0: float
    y1: float


class PageContent(BaseModel):
    """Everything the layout stages need from one page"""
    model_config = ConfigDict(frozen=True)

    page_index: int
    fragments: List[TextFragment] = Field(default_factory=list)
    rules: List[VerticalRule] = Field(default_factory=list)


class BicRecord(BaseModel):
    """Keyed view of one directory record"""
    record_creation_date: str
    last_update_date: str
    bic: str
    branch_code: str
    full_legal_name: str
    registered_address: str
    operational_address: str
    branch_description: str = ""
    branch_address: str = ""
    institution_type: str

    @classmethod
    def from_fields(cls, fields: List[str]) -> 'BicRecord':
        """Build from an ordered 10-field record"""
        return cls(**dict(zip(FIELD_KEYS, fields)))

    def to_fields(self) -> List[str]:
        """Ordered 10-field representation"""
        return [getattr(self, key) for key in FIELD_KEYS]


class ExtractionResponse(BaseModel):
    """Response model for the table extraction endpoint"""
    headers: List[str] = Field(default_factory=lambda: list(HEADERS), description="Constant column headers")
    count: int = Field(..., description="Number of extracted records")
    records: List[List[str]] = Field(..., description="Ordered 10-field records")


class ErrorResponse(BaseModel):
    """Error body returned by the HTTP API"""
    detail: str
