"""Tests for font decoding and glyph metrics"""

import pikepdf
import pytest
from pikepdf import Array, Dictionary, Name

from bic_exporter.utils.font_mapping import DEFAULT_GLYPH_WIDTH, FontInfo, normalize_font_name

TO_UNICODE_CMAP = b"""/CIDInit /ProcSet findresource begin
12 dict begin
begincmap
/CMapName /Test-UCS def
/CMapType 2 def
1 begincodespacerange
<0000> <FFFF>
endcodespacerange
2 beginbfchar
<0001> <0041>
<0002> <0042>
endbfchar
endcmap
CMapName currentdict /CMap defineresource pop
end
end
"""


@pytest.fixture
def type0_font():
    pdf = pikepdf.Pdf.new()
    cid_font = Dictionary(
        Type=Name.Font,
        Subtype=Name.CIDFontType2,
        BaseFont=Name("/ABCDEF+NotoSans"),
        DW=900,
        W=Array([1, Array([600, 700]), 10, 20, 450]),
    )
    font = Dictionary(
        Type=Name.Font,
        Subtype=Name.Type0,
        BaseFont=Name("/ABCDEF+NotoSans"),
        Encoding=Name("/Identity-H"),
        DescendantFonts=Array([cid_font]),
        ToUnicode=pdf.make_stream(TO_UNICODE_CMAP),
    )
    yield FontInfo.from_font_dict(font)
    pdf.close()


class TestFontName:

    @pytest.mark.parametrize("raw,expected", [
        ("/ABCDEF+Helvetica-Bold", "Helvetica-Bold"),
        ("/Helvetica", "Helvetica"),
        ("Arial", "Arial"),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_font_name(raw) == expected


class TestSimpleFonts:

    def test_winansi_decoding(self):
        font = FontInfo(encoding="/WinAnsiEncoding")
        assert font.decode(b"BANK \x80") == "BANK €"

    def test_winansi_undefined_byte_is_undecodable(self):
        assert FontInfo(encoding="/WinAnsiEncoding").decode(b"A\x81") is None

    def test_latin1_fallback(self):
        assert FontInfo().decode(b"M\xfcnchen") == "München"

    def test_differences_override_base_encoding(self):
        font = FontInfo(differences={65: "Eacute"})
        assert font.decode(b"AB") == "ÉB"

    def test_utf16_string(self):
        assert FontInfo().decode(b"\xfe\xff\x00B\x00I\x00C") == "BIC"

    def test_widths_array(self):
        font = FontInfo(first_char=65, widths=[600.0, 700.0])
        assert font.glyph_width(65) == 600.0
        assert font.glyph_width(66) == 700.0
        assert font.glyph_width(67) == DEFAULT_GLYPH_WIDTH

    def test_missing_width_from_descriptor(self):
        font = FontInfo(first_char=65, widths=[600.0], missing_width=250.0)
        assert font.glyph_width(90) == 250.0

    def test_standard_font_metrics(self):
        font = FontInfo(base_font="/Helvetica")
        assert font.glyph_width(ord("A"), "A") == 667.0
        assert font.glyph_width(ord(" "), " ") == 278.0

    def test_string_advance_with_spacing(self):
        font = FontInfo(first_char=32, widths=[250.0] + [500.0] * 94)
        # two spaces at 10pt: glyph 2.5 + char spacing 1 + word spacing 2 each
        assert font.string_advance(b"  ", 10.0, char_spacing=1.0, word_spacing=2.0) == pytest.approx(11.0)

    def test_string_advance_horizontal_scaling(self):
        font = FontInfo(first_char=65, widths=[1000.0])
        assert font.string_advance(b"AA", 10.0, horizontal_scaling=50.0) == pytest.approx(10.0)

    def test_from_font_dict(self):
        font = FontInfo.from_font_dict(Dictionary(
            Type=Name.Font,
            Subtype=Name.TrueType,
            BaseFont=Name("/XYZABC+Arial"),
            FirstChar=65,
            Widths=Array([722, 667]),
            Encoding=Dictionary(BaseEncoding=Name.WinAnsiEncoding, Differences=Array([66, Name.ccedilla])),
        ))
        assert font.base_font == "Arial"
        assert font.glyph_width(66) == 667.0
        assert font.decode(b"AB") == "Aç"

    def test_from_empty_dict(self):
        font = FontInfo.from_font_dict(None)
        assert font.decode(b"AAAARSBG") == "AAAARSBG"


class TestCompositeFonts:

    def test_two_byte_codes(self, type0_font):
        assert type0_font.is_composite
        assert type0_font.codes(b"\x00\x01\x00\x02") == [1, 2]

    def test_to_unicode_decoding(self, type0_font):
        assert type0_font.decode(b"\x00\x01\x00\x02\x00\x01") == "ABA"

    def test_unmapped_code_is_undecodable(self, type0_font):
        assert type0_font.decode(b"\x00\x01\x00\x09") is None

    def test_cid_widths(self, type0_font):
        assert type0_font.glyph_width(1) == 600.0
        assert type0_font.glyph_width(2) == 700.0
        assert type0_font.glyph_width(15) == 450.0
        assert type0_font.glyph_width(99) == 900.0

    def test_composite_without_cmap_is_undecodable(self):
        font = FontInfo(is_composite=True)
        assert font.decode(b"\x00\x41") is None
        assert font.glyph_width(65) == 1000.0
