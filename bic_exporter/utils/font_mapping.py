"""
Font mapping utilities for glyph extraction
Decodes PDF string operands to Unicode and measures their advance width
"""

import logging
import re
from functools import lru_cache
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pikepdf
from pdfminer.cmapdb import CMapParser, FileUnicodeMap
from pdfminer.encodingdb import name2unicode
from pdfminer.fontmetrics import FONT_METRICS

from bic_exporter.constants.pdf_keys import (
    KEY_BASE_FONT, KEY_ENCODING, KEY_TO_UNICODE, KEY_FIRST_CHAR, KEY_WIDTHS,
    KEY_FONT_DESCRIPTOR, KEY_MISSING_WIDTH, KEY_DESCENDANT_FONTS,
    KEY_CID_WIDTHS, KEY_CID_DEFAULT_WIDTH, KEY_SUBTYPE, VAL_TYPE0, VAL_WIN_ANSI,
)

logger = logging.getLogger(__name__)

UTF16_BOM = b'\xfe\xff'
DEFAULT_GLYPH_WIDTH = 500.0  # Thousandths of an em
DEFAULT_CID_WIDTH = 1000.0
KEY_BASE_ENCODING = "/BaseEncoding"
KEY_DIFFERENCES = "/Differences"


@lru_cache(maxsize=128)
def normalize_font_name(font_name: str) -> str:
    """
    Strip the leading slash and the subset tag from a /BaseFont name
    ("/ABCDEF+Helvetica-Bold" -> "Helvetica-Bold")
    """
    if not font_name:
        return ""
    base_name = font_name.lstrip('/')
    return re.sub(r'^[A-Z]{6}\+', '', base_name)


def _parse_cid_widths(w_array) -> Tuple[Dict[int, float], List[Tuple[int, int, float]]]:
    """
    Parse a CIDFont /W array into explicit widths and ranges.

    Both forms are accepted: ``c [w1 w2 ...]`` and ``c_first c_last w``.
    """
    explicit: Dict[int, float] = {}
    ranges: List[Tuple[int, int, float]] = []
    items = list(w_array)
    i = 0
    while i + 1 < len(items):
        start = int(items[i])
        following = items[i + 1]
        if isinstance(following, pikepdf.Array):
            for offset, width in enumerate(following):
                explicit[start + offset] = float(width)
            i += 2
        elif i + 2 < len(items):
            ranges.append((start, int(following), float(items[i + 2])))
            i += 3
        else:
            break
    return explicit, ranges


class FontInfo:
    """
    What the glyph extractor needs to know about one font resource:
    how to turn string bytes into text and how far they advance.
    """

    def __init__(
        self,
        base_font: str = "",
        is_composite: bool = False,
        unicode_map: Optional[FileUnicodeMap] = None,
        encoding: str = "",
        differences: Optional[Dict[int, str]] = None,
        first_char: int = 0,
        widths: Optional[List[float]] = None,
        missing_width: float = 0.0,
        cid_widths: Optional[Dict[int, float]] = None,
        cid_width_ranges: Optional[List[Tuple[int, int, float]]] = None,
        default_width: float = DEFAULT_CID_WIDTH,
    ):
        self.base_font = normalize_font_name(base_font)
        self.is_composite = is_composite
        self.unicode_map = unicode_map
        self.encoding = encoding
        self.differences = differences or {}
        self.first_char = first_char
        self.widths = widths or []
        self.missing_width = missing_width
        self.cid_widths = cid_widths or {}
        self.cid_width_ranges = cid_width_ranges or []
        self.default_width = default_width
        self._standard_metrics = FONT_METRICS.get(self.base_font, (None, {}))[1]

    @classmethod
    def from_font_dict(cls, font_obj) -> 'FontInfo':
        """Read a pikepdf font dictionary; missing entries fall back to defaults"""
        if font_obj is None:
            return cls()

        base_font = str(font_obj.get(KEY_BASE_FONT, ""))
        is_composite = str(font_obj.get(KEY_SUBTYPE, "")) == VAL_TYPE0

        unicode_map = None
        to_unicode = font_obj.get(KEY_TO_UNICODE)
        if isinstance(to_unicode, pikepdf.Stream):
            try:
                unicode_map = FileUnicodeMap()
                CMapParser(unicode_map, BytesIO(to_unicode.read_bytes())).run()
            except Exception as e:
                logger.debug(f"Unreadable ToUnicode CMap for {base_font}: {e}")
                unicode_map = None

        encoding = ""
        differences: Dict[int, str] = {}
        encoding_obj = font_obj.get(KEY_ENCODING)
        if isinstance(encoding_obj, pikepdf.Name):
            encoding = str(encoding_obj)
        elif isinstance(encoding_obj, pikepdf.Dictionary):
            encoding = str(encoding_obj.get(KEY_BASE_ENCODING, ""))
            differences = cls._read_differences(encoding_obj.get(KEY_DIFFERENCES))

        if is_composite:
            return cls._composite_from_dict(font_obj, base_font, unicode_map, encoding)

        widths = [float(w) for w in font_obj.get(KEY_WIDTHS, [])]
        missing_width = 0.0
        descriptor = font_obj.get(KEY_FONT_DESCRIPTOR)
        if isinstance(descriptor, pikepdf.Dictionary):
            missing_width = float(descriptor.get(KEY_MISSING_WIDTH, 0))

        return cls(
            base_font=base_font,
            unicode_map=unicode_map,
            encoding=encoding,
            differences=differences,
            first_char=int(font_obj.get(KEY_FIRST_CHAR, 0)),
            widths=widths,
            missing_width=missing_width,
        )

    @classmethod
    def _composite_from_dict(cls, font_obj, base_font, unicode_map, encoding) -> 'FontInfo':
        cid_widths: Dict[int, float] = {}
        cid_ranges: List[Tuple[int, int, float]] = []
        default_width = DEFAULT_CID_WIDTH
        descendants = font_obj.get(KEY_DESCENDANT_FONTS)
        if isinstance(descendants, pikepdf.Array) and len(descendants) > 0:
            cid_font = descendants[0]
            default_width = float(cid_font.get(KEY_CID_DEFAULT_WIDTH, DEFAULT_CID_WIDTH))
            w_array = cid_font.get(KEY_CID_WIDTHS)
            if isinstance(w_array, pikepdf.Array):
                cid_widths, cid_ranges = _parse_cid_widths(w_array)
        return cls(
            base_font=base_font,
            is_composite=True,
            unicode_map=unicode_map,
            encoding=encoding,
            cid_widths=cid_widths,
            cid_width_ranges=cid_ranges,
            default_width=default_width,
        )

    @staticmethod
    def _read_differences(differences_obj) -> Dict[int, str]:
        differences: Dict[int, str] = {}
        if not isinstance(differences_obj, pikepdf.Array):
            return differences
        code = 0
        for item in differences_obj:
            if isinstance(item, pikepdf.Name):
                differences[code] = str(item).lstrip('/')
                code += 1
            else:
                code = int(item)
        return differences

    def codes(self, raw: bytes) -> List[int]:
        """Split string bytes into character codes (two bytes each for Type0)"""
        if not self.is_composite:
            return list(raw)
        return [
            (raw[i] << 8) | raw[i + 1]
            for i in range(0, len(raw) - 1, 2)
        ]

    def decode(self, raw: bytes) -> Optional[str]:
        """
        Decode string bytes to text.

        Returns:
            The text, or None when the bytes cannot be decoded with what the
            font provides
        """
        if self.unicode_map is not None:
            chars = []
            for code in self.codes(raw):
                try:
                    chars.append(self.unicode_map.get_unichr(code))
                except KeyError:
                    if self.is_composite:
                        return None
                    chars.append(self._decode_simple(bytes([code])) or "")
            return "".join(chars)

        if raw.startswith(UTF16_BOM):
            try:
                return raw[2:].decode('utf-16-be')
            except UnicodeDecodeError:
                return None

        if self.is_composite:
            return None

        return self._decode_simple(raw)

    def _decode_simple(self, raw: bytes) -> Optional[str]:
        if self.differences:
            chars = []
            for code in raw:
                glyph_name = self.differences.get(code)
                if glyph_name is not None:
                    try:
                        chars.append(name2unicode(glyph_name))
                        continue
                    except KeyError:
                        pass
                chars.append(self._decode_base(bytes([code])) or "")
            return "".join(chars)
        return self._decode_base(raw)

    def _decode_base(self, raw: bytes) -> Optional[str]:
        if self.encoding == VAL_WIN_ANSI:
            try:
                return raw.decode('cp1252')
            except UnicodeDecodeError:
                return None
        return raw.decode('latin-1')

    def glyph_width(self, code: int, char: str = "") -> float:
        """Advance of one character code in thousandths of an em"""
        if self.is_composite:
            if code in self.cid_widths:
                return self.cid_widths[code]
            for first, last, width in self.cid_width_ranges:
                if first <= code <= last:
                    return width
            return self.default_width

        index = code - self.first_char
        if self.widths and 0 <= index < len(self.widths):
            return self.widths[index]
        if self.missing_width:
            return self.missing_width
        if char and char in self._standard_metrics:
            return float(self._standard_metrics[char])
        return DEFAULT_GLYPH_WIDTH

    def string_advance(
        self,
        raw: bytes,
        font_size: float,
        char_spacing: float = 0.0,
        word_spacing: float = 0.0,
        horizontal_scaling: float = 100.0,
    ) -> float:
        """
        Horizontal displacement in text space for showing ``raw``.

        Word spacing applies to single-byte code 32 only.
        """
        codes = self.codes(raw)
        latin = raw.decode('latin-1') if not self.is_composite else ""
        total = 0.0
        for position, code in enumerate(codes):
            char = latin[position] if latin else ""
            glyph = self.glyph_width(code, char) / 1000.0 * font_size
            spacing = char_spacing
            if code == 32 and not self.is_composite:
                spacing += word_spacing
            total += glyph + spacing
        return total * horizontal_scaling / 100.0


__all__ = ['FontInfo', 'normalize_font_name', 'DEFAULT_GLYPH_WIDTH']
