"""
PDF Dictionary Keys and Name Constants
"""

# Resource Dictionary Keys
KEY_RESOURCES = "/Resources"
KEY_XOBJECT = "/XObject"
KEY_FONT = "/Font"

# Object Types and Subtypes
KEY_SUBTYPE = "/Subtype"
VAL_FORM = "/Form"
VAL_TYPE0 = "/Type0"

# Form Properties
KEY_MATRIX = "/Matrix"
KEY_MEDIABOX = "/MediaBox"

# Font Dictionary Keys
KEY_BASE_FONT = "/BaseFont"
KEY_ENCODING = "/Encoding"
KEY_TO_UNICODE = "/ToUnicode"
KEY_FIRST_CHAR = "/FirstChar"
KEY_WIDTHS = "/Widths"
KEY_FONT_DESCRIPTOR = "/FontDescriptor"
KEY_MISSING_WIDTH = "/MissingWidth"
KEY_DESCENDANT_FONTS = "/DescendantFonts"
KEY_CID_WIDTHS = "/W"             # CIDFont glyph widths array
KEY_CID_DEFAULT_WIDTH = "/DW"     # CIDFont default glyph width

# Encodings
VAL_WIN_ANSI = "/WinAnsiEncoding"
