"""
PDF Operator Constants

Content stream operators understood by the glyph extractor.
Organized by functional category according to PDF specification.

Reference: PDF 32000-1:2008 specification, Appendix A
"""

# ==============================================================================
# Graphics State Operators (PDF spec 8.4.4)
# ==============================================================================
OP_SAVE_STATE = b'q'                 # Save graphics state
OP_RESTORE_STATE = b'Q'              # Restore graphics state
OP_CTM = b'cm'                       # Modify current transformation matrix

# ==============================================================================
# Text State Operators (PDF spec 9.3)
# ==============================================================================
OP_BEGIN_TEXT = b'BT'            # Begin text object
OP_END_TEXT = b'ET'              # End text object
OP_SET_FONT = b'Tf'              # Set text font and size
OP_SET_CHAR_SPACING = b'Tc'      # Set character spacing
OP_SET_WORD_SPACING = b'Tw'      # Set word spacing
OP_SET_HORIZ_SCALING = b'Tz'     # Set horizontal text scaling
OP_SET_LEADING = b'TL'           # Set text leading
OP_SET_TEXT_RISE = b'Ts'         # Set text rise

# ==============================================================================
# Text Positioning Operators (PDF spec 9.4.2)
# ==============================================================================
OP_MOVE_TEXT = b'Td'              # Move text position
OP_MOVE_TEXT_SET_LEADING = b'TD'  # Move text position and set leading
OP_SET_TEXT_MATRIX = b'Tm'        # Set text matrix and text line matrix
OP_NEXT_LINE = b'T*'              # Move to start of next text line

# ==============================================================================
# Text Showing Operators (PDF spec 9.4.3)
# ==============================================================================
OP_SHOW_TEXT = b'Tj'              # Show a text string
OP_SHOW_TEXT_ARRAY = b'TJ'        # Show text strings with positioning
OP_NEXT_LINE_SHOW_TEXT = b"'"     # Move to next line and show text
OP_SET_SPACING_SHOW_TEXT = b'"'   # Set spacing, move to next line, show text

TEXT_SHOWING_OPS = {OP_SHOW_TEXT, OP_SHOW_TEXT_ARRAY, OP_NEXT_LINE_SHOW_TEXT, OP_SET_SPACING_SHOW_TEXT}

# ==============================================================================
# XObject Operators (PDF spec 8.8)
# ==============================================================================
OP_DO_XOBJECT = b'Do'     # Invoke named XObject (image, form, etc.)

# ==============================================================================
# Path Construction Operators (PDF spec 8.5.2)
# ==============================================================================
OP_MOVETO = b'm'          # Begin new subpath (moveto)
OP_LINETO = b'l'          # Append straight line segment (lineto)
OP_RECTANGLE = b're'      # Append rectangle
