"""Row clustering

Groups the positioned text fragments of a page into horizontal row bands.
PDF y grows upward, so bands come out top to bottom in descending y.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from bic_exporter.engine.config import TableRegion
from bic_exporter.models.bic_types import TextFragment, VerticalRule

logger = logging.getLogger(__name__)

DEFAULT_ROW_TOLERANCE = 3.0


@dataclass
class RowBand:
    """
    Fragments inferred to sit on one visual row.

    ``reference_y`` is the baseline of the band's topmost fragment; every
    member lies within the clustering tolerance below it.
    """
    reference_y: float
    fragments: List[TextFragment] = field(default_factory=list)

    @property
    def bottom_y(self) -> float:
        return min(f.y for f in self.fragments) if self.fragments else self.reference_y

    @property
    def text(self) -> str:
        return " ".join(f.content for f in self.fragments)

    def __len__(self) -> int:
        return len(self.fragments)


def rule_span(rules: Iterable[VerticalRule], tolerance: float = 0.0) -> Optional[Tuple[float, float]]:
    """Vertical extent (low_y, high_y) covered by a page's rules, or None without rules"""
    rules = list(rules)
    if not rules:
        return None
    return min(r.y0 for r in rules) - tolerance, max(r.y1 for r in rules) + tolerance


def filter_region(
    fragments: Iterable[TextFragment],
    region: Optional[TableRegion],
    page_bounds: Optional[Tuple[float, float]] = None,
    rules: Sequence[VerticalRule] = (),
) -> List[TextFragment]:
    """
    Drop page furniture outside the table body.

    Args:
        fragments: Page fragments
        region: Table body definition; None keeps everything
        page_bounds: (bottom, top) of the page MediaBox; needed for margins
        rules: Vertical rules of the page; with ``region.use_rules`` the
            window is clipped to their vertical extent
    """
    fragments = list(fragments)
    if region is None:
        return fragments

    if page_bounds is not None:
        low, high = region.bounds(*page_bounds)
    else:
        low = region.bottom if region.bottom is not None else float('-inf')
        high = region.top if region.top is not None else float('inf')

    span = rule_span(rules, region.rule_tolerance) if region.use_rules else None
    if span is not None:
        low, high = max(low, span[0]), min(high, span[1])

    kept = [f for f in fragments if low <= f.y <= high]
    if len(kept) != len(fragments):
        logger.debug(f"Region filter dropped {len(fragments) - len(kept)} fragments outside y [{low:.1f}, {high:.1f}]")
    return kept


def cluster_rows(
    fragments: Iterable[TextFragment],
    tolerance: float = DEFAULT_ROW_TOLERANCE,
    region: Optional[TableRegion] = None,
    page_bounds: Optional[Tuple[float, float]] = None,
    rules: Sequence[VerticalRule] = (),
) -> List[RowBand]:
    """
    Group fragments into row bands by vertical proximity.

    Fragments are swept in descending y (ties broken by ascending x, then
    content order). A fragment joins the open band while
    ``band.reference_y - y <= tolerance``; otherwise it opens a new band.
    Because the reference is the band's first fragment, bands are disjoint
    along y and a slow baseline drift cannot chain rows together.

    Args:
        fragments: Fragments of one page
        tolerance: Maximum baseline distance within a band, in points
        region: Optional table body region; fragments outside are excluded
        page_bounds: (bottom, top) of the page, used to resolve region margins
        rules: Vertical rules of the page, used to locate the table body

    Returns:
        Bands ordered top to bottom, fragments in each ordered left to right
    """
    kept = filter_region(fragments, region, page_bounds, rules)
    if not kept:
        return []

    order = sorted(range(len(kept)), key=lambda i: (-kept[i].y, kept[i].x, i))

    bands: List[RowBand] = []
    band_members: List[List[int]] = []
    for index in order:
        fragment = kept[index]
        if bands and bands[-1].reference_y - fragment.y <= tolerance:
            band_members[-1].append(index)
        else:
            bands.append(RowBand(reference_y=fragment.y))
            band_members.append([index])

    for band, members in zip(bands, band_members):
        members.sort(key=lambda i: (kept[i].x, i))
        band.fragments = [kept[i] for i in members]

    return bands
