"""Tests for glyph extraction: fragments and vertical rules"""

import pytest

from bic_exporter.engine.config import EngineConfig, TextExtractionOptions
from bic_exporter.engine.pdf_engine import PDFEngine

from conftest import DirectoryPdfBuilder, text_op


def extract(content: str, config: EngineConfig = None, forms=()):
    builder = DirectoryPdfBuilder(cover=False)
    for name, form_content, matrix in forms:
        builder.add_form(name, form_content, matrix)
    builder.add_raw_page(content)
    with PDFEngine.from_bytes(builder.to_bytes(), config) as engine:
        return engine.text_processor.extract_page(0)


class TestTextFragments:

    def test_simple_show_text(self):
        page = extract(text_op(100, 200, "BIC"))
        assert len(page.fragments) == 1
        fragment = page.fragments[0]
        assert fragment.content == "BIC"
        assert fragment.x == pytest.approx(100.0)
        assert fragment.y == pytest.approx(200.0)
        assert fragment.height == pytest.approx(7.0)
        # Helvetica B + I + C = 667 + 278 + 722
        assert fragment.width == pytest.approx(1.667 * 7)
        assert fragment.page_index == 0

    def test_fragments_keep_stream_order(self):
        page = extract(text_op(300, 100, "second") + text_op(50, 500, "first"))
        assert [f.content for f in page.fragments] == ["second", "first"]

    def test_tj_array_spacing(self):
        page = extract("BT /F1 7 Tf 1 0 0 1 50 300 Tm [(YET) -20 (TEL) -250 (BANK)] TJ ET\n")
        assert page.fragments[0].content == "YETTEL BANK"

    def test_tj_adjustment_advances_position(self):
        page = extract(
            "BT /F1 10 Tf 1 0 0 1 50 300 Tm [(A) -1000] TJ (B) Tj ET\n"
        )
        first, second = page.fragments
        # A is 6.67 wide at 10pt, the adjustment adds another 10
        assert second.x == pytest.approx(50 + 6.67 + 10.0)
        assert first.width == pytest.approx(16.67)

    def test_ctm_applied(self):
        page = extract("q 2 0 0 2 10 10 cm " + text_op(50, 100, "X") + "Q\n")
        fragment = page.fragments[0]
        assert (fragment.x, fragment.y) == (pytest.approx(110.0), pytest.approx(210.0))
        assert fragment.height == pytest.approx(14.0)

    def test_ctm_restored_after_q(self):
        page = extract("q 2 0 0 2 0 0 cm Q " + text_op(50, 100, "Y"))
        assert page.fragments[0].x == pytest.approx(50.0)

    def test_line_movement_operators(self):
        page = extract(
            "BT /F1 7 Tf 10 TL 1 0 0 1 50 300 Tm (A) Tj T* (B) Tj 0 -20 Td (C) Tj ET\n"
        )
        positions = [(round(f.x, 2), round(f.y, 2)) for f in page.fragments]
        assert positions == [(50.0, 300.0), (50.0, 290.0), (50.0, 270.0)]

    def test_next_line_show_text(self):
        page = extract("BT /F1 7 Tf 1 0 0 1 50 300 Tm 12 TL (A) Tj (B) ' ET\n")
        assert [round(f.y, 2) for f in page.fragments] == [300.0, 288.0]

    def test_default_line_height_without_leading(self):
        page = extract("BT /F1 7 Tf 1 0 0 1 50 300 Tm (A) Tj T* (B) Tj ET\n")
        assert page.fragments[1].y == pytest.approx(288.0)

    def test_whitespace_only_fragments_skipped(self):
        page = extract(text_op(50, 300, "   ") + text_op(60, 300, "BANK"))
        assert [f.content for f in page.fragments] == ["BANK"]

    def test_unknown_font_uses_default_decoding(self):
        page = extract("BT /F9 7 Tf 1 0 0 1 50 300 Tm (SERBIA) Tj ET\n")
        assert page.fragments[0].content == "SERBIA"

    def test_undecodable_fragment_skipped_rest_of_page_kept(self):
        # \201 is unassigned in WinAnsiEncoding
        page = extract(
            "BT /F1 7 Tf 1 0 0 1 50 300 Tm (A\\201) Tj ET\n"
            + text_op(50, 280, "YETTEL BANK AD")
        )
        assert [f.content for f in page.fragments] == ["YETTEL BANK AD"]
        assert page.fragments[0].y == pytest.approx(280.0)

    def test_iter_page_fragments(self):
        builder = DirectoryPdfBuilder(cover=False)
        builder.add_raw_page(text_op(50, 300, "A") + "100 50 m 100 500 l S\n" + text_op(50, 280, "B"))
        with PDFEngine.from_bytes(builder.to_bytes()) as engine:
            fragments = list(engine.text_processor.iter_page_fragments(0))
        assert [f.content for f in fragments] == ["A", "B"]


class TestVerticalRules:

    def test_line_segments(self):
        page = extract(
            "100 50 m 100 500 l S\n"
            "50 50 m 300 50 l S\n"
            "200 500 m 200.5 50 l S\n"
            "300 50 m 302 500 l S\n"
        )
        assert [(r.x, r.y0, r.y1) for r in page.rules] == [(100.0, 50.0, 500.0), (200.0, 50.0, 500.0)]

    def test_polyline_segments(self):
        page = extract("100 50 m 100 500 l 400 500 l 400 50 l S\n")
        assert [r.x for r in page.rules] == [100.0, 400.0]

    def test_rules_follow_ctm(self):
        page = extract("q 1 0 0 1 25 0 cm 100 50 m 100 500 l S Q\n")
        assert page.rules[0].x == pytest.approx(125.0)

    def test_rectangles_ignored_by_default(self):
        page = extract("400 50 0.5 450 re f\n")
        assert page.rules == []

    def test_thin_rectangles_as_rules(self):
        config = EngineConfig(text_options=TextExtractionOptions(detect_rect_rules=True))
        page = extract("400 50 0.5 450 re f\n10 10 200 0.5 re f\n", config)
        assert len(page.rules) == 1
        assert page.rules[0].x == pytest.approx(400.25)
        assert (page.rules[0].y0, page.rules[0].y1) == (pytest.approx(50.0), pytest.approx(500.0))


class TestFormXObjects:

    def test_form_matrix_applied(self):
        page = extract(
            "q /Fm1 Do Q\n",
            forms=[("Fm1", text_op(5, 5, "InForm"), [1, 0, 0, 1, 100, 200])],
        )
        fragment = page.fragments[0]
        assert fragment.content == "InForm"
        assert (fragment.x, fragment.y) == (pytest.approx(105.0), pytest.approx(205.0))

    def test_self_referencing_form(self):
        page = extract(
            "/Fm1 Do\n",
            forms=[("Fm1", text_op(5, 5, "Loop") + "/Fm1 Do\n", None)],
        )
        assert [f.content for f in page.fragments] == ["Loop"]

    def test_form_rules_collected(self):
        page = extract(
            "/Fm1 Do\n",
            forms=[("Fm1", "10 0 m 10 100 l S\n", [1, 0, 0, 1, 50, 0])],
        )
        assert page.rules[0].x == pytest.approx(60.0)
