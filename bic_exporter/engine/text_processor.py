"""Text Processor for PDFEngine

Glyph extraction: walks a page's content stream in order and produces
positioned text fragments plus the vertical rules the page draws. Form
XObjects are followed recursively with their own matrix and resources.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterator, List, Optional, Set, Tuple, Union

import pikepdf

from bic_exporter.constants.pdf_keys import (
    KEY_FONT, KEY_XOBJECT, KEY_SUBTYPE, KEY_MATRIX, KEY_RESOURCES, VAL_FORM,
)
from bic_exporter.constants.pdf_operators import (
    OP_DO_XOBJECT, OP_LINETO, OP_MOVETO, OP_RECTANGLE,
    OP_SHOW_TEXT, OP_SHOW_TEXT_ARRAY, OP_NEXT_LINE_SHOW_TEXT,
    OP_SET_SPACING_SHOW_TEXT, TEXT_SHOWING_OPS,
)
from bic_exporter.engine.base_processor import BaseProcessor
from bic_exporter.engine.config import TextExtractionOptions
from bic_exporter.models.bic_types import PageContent, TextFragment, VerticalRule
from bic_exporter.processors.pdf_graphics import GraphicsStateTracker, normalize_operator
from bic_exporter.utils.font_mapping import FontInfo
from bic_exporter.utils.validation import ContentStreamError

logger = logging.getLogger(__name__)

PageItem = Union[TextFragment, VerticalRule]
_NUMBER_TYPES = (int, float, Decimal)


class TextProcessor(BaseProcessor):
    """
    Glyph extractor for PDFEngine.

    Fragments are reported in content-stream order with their baseline
    start point in page space; nothing is reordered here.
    """

    def __init__(self, engine: 'PDFEngine', options: Optional[TextExtractionOptions] = None):
        super().__init__(engine)
        self.options = options or TextExtractionOptions()
        self._font_cache: Dict[Tuple[int, int], FontInfo] = {}
        self._skipped_fragments = 0

    def initialize(self) -> None:
        self._initialized = True

    def cleanup(self) -> None:
        self._font_cache.clear()
        self._initialized = False

    def iter_page_fragments(self, page_index: int) -> Iterator[TextFragment]:
        """
        Lazily yield the text fragments of one page.

        Args:
            page_index: 0-based page index

        Raises:
            ContentStreamError: If the page content stream cannot be parsed
        """
        for item in self._walk_page(page_index):
            if isinstance(item, TextFragment):
                yield item

    def extract_page(self, page_index: int) -> PageContent:
        """
        Extract fragments and vertical rules of one page.

        Args:
            page_index: 0-based page index

        Returns:
            PageContent for the page
        """
        fragments: List[TextFragment] = []
        rules: List[VerticalRule] = []
        self._skipped_fragments = 0
        for item in self._walk_page(page_index):
            if isinstance(item, TextFragment):
                fragments.append(item)
            else:
                rules.append(item)

        logger.debug(
            f"Page {page_index + 1}: {len(fragments)} fragments, {len(rules)} vertical rules"
            + (f", {self._skipped_fragments} undecodable fragments skipped" if self._skipped_fragments else "")
        )
        return PageContent(page_index=page_index, fragments=fragments, rules=rules)

    def _walk_page(self, page_index: int) -> Iterator[PageItem]:
        if not self.validate_state():
            raise RuntimeError("TextProcessor used outside an open engine")

        operations = self.engine.parse_page_operations(page_index)
        resources = self.engine.get_page_resources(page_index)
        tracker = GraphicsStateTracker(default_line_height=self.options.default_line_height)
        yield from self._walk(operations, resources, tracker, page_index, depth=0, active_forms=set())

    def _walk(
        self,
        operations,
        resources,
        tracker: GraphicsStateTracker,
        page_index: int,
        depth: int,
        active_forms: Set[Tuple[int, int]],
    ) -> Iterator[PageItem]:
        fonts: Dict[str, FontInfo] = {}
        current_point: Optional[Tuple[float, float]] = None

        for operator in operations:
            op_name = normalize_operator(operator)
            tracker._update_graphics_state(operator)
            operands = operator.operands

            try:
                if op_name in TEXT_SHOWING_OPS:
                    font = self._font_for(tracker.font_resource_name, resources, fonts)
                    fragment = self._show_text(op_name, operands, font, tracker, page_index)
                    if fragment is not None:
                        yield fragment

                elif op_name == OP_MOVETO and len(operands) == 2:
                    current_point = tracker.user_to_page(float(operands[0]), float(operands[1]))

                elif op_name == OP_LINETO and len(operands) == 2:
                    end_point = tracker.user_to_page(float(operands[0]), float(operands[1]))
                    if current_point is not None:
                        rule = self._vertical_rule(current_point, end_point)
                        if rule is not None:
                            yield rule
                    current_point = end_point

                elif op_name == OP_RECTANGLE and len(operands) == 4:
                    x, y, w, h = [float(v) for v in operands]
                    current_point = tracker.user_to_page(x, y)
                    if self.options.detect_rect_rules:
                        rule = self._rect_rule(tracker, x, y, w, h)
                        if rule is not None:
                            yield rule

                elif op_name == OP_DO_XOBJECT and len(operands) == 1:
                    yield from self._walk_form(operands[0], resources, tracker, page_index, depth, active_forms)

            except (ValueError, TypeError, IndexError) as e:
                logger.debug(f"Page {page_index + 1}: skipping malformed {op_name!r} operator: {e}")

    def _walk_form(self, name, resources, tracker, page_index, depth, active_forms) -> Iterator[PageItem]:
        xobjects = resources.get(KEY_XOBJECT) if resources is not None else None
        xobj = xobjects.get(str(name)) if xobjects is not None else None
        if not isinstance(xobj, pikepdf.Stream) or str(xobj.get(KEY_SUBTYPE, "")) != VAL_FORM:
            return

        if depth >= self.options.max_form_depth:
            logger.debug(f"Page {page_index + 1}: form {name} exceeds nesting depth {self.options.max_form_depth}")
            return
        form_id = xobj.objgen
        if form_id != (0, 0) and form_id in active_forms:
            logger.debug(f"Page {page_index + 1}: recursive form {name} ignored")
            return

        try:
            form_operations = list(pikepdf.parse_content_stream(xobj))
        except (pikepdf.PdfError, ValueError, TypeError) as e:
            logger.error(f"Failed to parse form {name} on page {page_index}: {e}")
            raise ContentStreamError(f"Failed to parse operations on page {page_index}") from e

        form_resources = xobj.get(KEY_RESOURCES)
        if form_resources is None:
            form_resources = resources

        tracker.save_state()
        matrix = xobj.get(KEY_MATRIX)
        if matrix is not None and len(matrix) == 6:
            tracker.update_ctm(*[float(v) for v in matrix])
        try:
            yield from self._walk(
                form_operations, form_resources, tracker, page_index,
                depth + 1, active_forms | {form_id},
            )
        finally:
            tracker.restore_state()

    def _font_for(self, font_name, resources, fonts: Dict[str, FontInfo]) -> FontInfo:
        """Resolve the current font resource, parsing each font once per document"""
        key = str(font_name) if font_name is not None else ""
        if key in fonts:
            return fonts[key]

        font_obj = None
        font_dict = resources.get(KEY_FONT) if resources is not None else None
        if font_dict is not None and key:
            font_obj = font_dict.get(key)

        if font_obj is None:
            if key:
                logger.debug(f"Font resource {key} not found, using default metrics")
            info = FontInfo()
        elif font_obj.objgen != (0, 0):
            info = self._font_cache.get(font_obj.objgen)
            if info is None:
                info = FontInfo.from_font_dict(font_obj)
                self._font_cache[font_obj.objgen] = info
        else:
            info = FontInfo.from_font_dict(font_obj)

        fonts[key] = info
        return info

    def _show_text(
        self,
        op_name: bytes,
        operands,
        font: FontInfo,
        tracker: GraphicsStateTracker,
        page_index: int,
    ) -> Optional[TextFragment]:
        if op_name == OP_SHOW_TEXT_ARRAY:
            items = list(operands[0]) if operands else []
        elif op_name in (OP_SHOW_TEXT, OP_NEXT_LINE_SHOW_TEXT):
            items = list(operands[:1])
        elif op_name == OP_SET_SPACING_SHOW_TEXT:
            items = list(operands[2:3])
        else:
            return None

        start_x, start_y = tracker.text_origin()
        height = tracker.rendered_font_size()
        scale = tracker.horizontal_scaling / 100.0

        parts = []
        decodable = True
        for item in items:
            if isinstance(item, pikepdf.String):
                raw = bytes(item)
                text = font.decode(raw)
                if text is None:
                    decodable = False
                else:
                    parts.append(text)
                tracker.advance_text(font.string_advance(
                    raw,
                    tracker.font_size,
                    tracker.character_spacing,
                    tracker.word_spacing,
                    tracker.horizontal_scaling,
                ))
            elif isinstance(item, _NUMBER_TYPES):
                adjustment = float(item)
                if adjustment < self.options.tj_space_threshold:
                    parts.append(" ")
                tracker.advance_text(-adjustment / 1000.0 * tracker.font_size * scale)

        if not decodable:
            self._skipped_fragments += 1
            logger.debug(f"Page {page_index + 1}: undecodable text at ({start_x:.1f}, {start_y:.1f}) skipped")
            return None

        content = "".join(parts)
        if not content.strip():
            return None

        end_x, _ = tracker.text_origin()
        return TextFragment(
            content=content,
            x=start_x,
            y=start_y,
            width=max(0.0, end_x - start_x),
            height=height,
            page_index=page_index,
        )

    def _vertical_rule(self, start: Tuple[float, float], end: Tuple[float, float]) -> Optional[VerticalRule]:
        if abs(start[0] - end[0]) >= self.options.vertical_line_tolerance:
            return None
        y0, y1 = sorted((start[1], end[1]))
        if y1 - y0 < self.options.min_rule_height:
            return None
        return VerticalRule(x=start[0], y0=y0, y1=y1)

    def _rect_rule(self, tracker: GraphicsStateTracker, x: float, y: float, w: float, h: float) -> Optional[VerticalRule]:
        x0, y0 = tracker.user_to_page(x, y)
        x1, y1 = tracker.user_to_page(x + w, y + h)
        if abs(x1 - x0) > self.options.max_rect_rule_width:
            return None
        low, high = sorted((y0, y1))
        if high - low < self.options.min_rule_height or high - low <= abs(x1 - x0):
            return None
        return VerticalRule(x=(x0 + x1) / 2.0, y0=low, y1=high)
