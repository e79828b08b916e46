import logging
from typing import Optional, Tuple
import numpy as np
from pikepdf import Name

from bic_exporter.constants.pdf_operators import (
    OP_SAVE_STATE, OP_RESTORE_STATE, OP_CTM,
    OP_BEGIN_TEXT, OP_END_TEXT,
    OP_MOVE_TEXT, OP_MOVE_TEXT_SET_LEADING, OP_SET_TEXT_MATRIX, OP_NEXT_LINE,
    OP_SET_FONT, OP_SET_CHAR_SPACING, OP_SET_WORD_SPACING,
    OP_SET_HORIZ_SCALING, OP_SET_LEADING, OP_SET_TEXT_RISE,
    OP_NEXT_LINE_SHOW_TEXT, OP_SET_SPACING_SHOW_TEXT,
)
from bic_exporter.utils.pdf_transforms import (
    matrix_from_operands, translation_matrix, transform_point, effective_font_size,
)

logger = logging.getLogger(__name__)

DEFAULT_LINE_HEIGHT = 12.0


def normalize_operator(operator) -> bytes:
    op_name = operator.operator
    if isinstance(op_name, str):
        return op_name.encode('latin-1')
    elif isinstance(op_name, bytes):
        return op_name
    else:
        try:
            return str(op_name).encode('latin-1')
        except UnicodeEncodeError:
            return b''


class GraphicsStateTracker:
    """
    Tracks the parts of the PDF graphics and text state that position glyphs.

    Matrices are 3x3 numpy arrays in column-vector form; a PDF
    ``[a b c d e f]`` maps to ``[[a, c, e], [b, d, f], [0, 0, 1]]`` and a
    concatenation ``M cm`` becomes ``ctm = ctm @ M``.
    """

    def __init__(self, default_line_height: float = DEFAULT_LINE_HEIGHT):
        self.default_line_height = default_line_height
        self.ctm = np.identity(3, dtype=float)
        self.state_stack = []
        self.text_matrix = np.identity(3, dtype=float)
        self.text_line_matrix = np.identity(3, dtype=float)
        self.font_size = 12.0
        self.font_resource_name: Optional[Name] = None
        self.character_spacing = 0.0
        self.word_spacing = 0.0
        self.horizontal_scaling = 100.0
        self.leading = 0.0
        self.text_rise = 0.0
        self.in_text_object = False

    def save_state(self):
        state = {
            'ctm': self.ctm.copy(),
            'font_size': self.font_size,
            'font_resource_name': self.font_resource_name,
            'leading': self.leading,
            'character_spacing': self.character_spacing,
            'word_spacing': self.word_spacing,
            'horizontal_scaling': self.horizontal_scaling,
            'text_rise': self.text_rise,
        }
        self.state_stack.append(state)

    def restore_state(self):
        if self.state_stack:
            state = self.state_stack.pop()
            self.ctm = state['ctm']
            self.font_size = state['font_size']
            self.font_resource_name = state['font_resource_name']
            self.leading = state['leading']
            self.character_spacing = state['character_spacing']
            self.word_spacing = state['word_spacing']
            self.horizontal_scaling = state['horizontal_scaling']
            self.text_rise = state['text_rise']
        else:
            logger.debug("Unbalanced Q operator ignored")

    def update_ctm(self, a: float, b: float, c: float, d: float, e: float, f: float):
        self.ctm = np.dot(self.ctm, matrix_from_operands((a, b, c, d, e, f)))

    def _move_line(self, tx: float, ty: float):
        self.text_line_matrix = np.dot(self.text_line_matrix, translation_matrix(tx, ty))
        self.text_matrix = self.text_line_matrix.copy()

    def next_line(self):
        """T* - a leading of zero falls back to the default line height"""
        leading = self.leading if self.leading else self.default_line_height
        self._move_line(0.0, -leading)

    def advance_text(self, tx: float):
        """Move the text matrix right by ``tx`` unscaled text space units"""
        self.text_matrix = np.dot(self.text_matrix, translation_matrix(tx, 0.0))

    def rendering_matrix(self) -> np.ndarray:
        return np.dot(self.ctm, self.text_matrix)

    def text_origin(self) -> Tuple[float, float]:
        """Page-space position of the current glyph origin (baseline-left)"""
        return transform_point(self.rendering_matrix(), 0.0, self.text_rise)

    def rendered_font_size(self) -> float:
        return effective_font_size(self.rendering_matrix(), self.font_size)

    def user_to_page(self, x: float, y: float) -> Tuple[float, float]:
        """Map a user-space point (path coordinates) through the CTM"""
        return transform_point(self.ctm, x, y)

    def _update_graphics_state(self, operator) -> None:
        op_name_bytes = normalize_operator(operator)
        operands = operator.operands

        try:
            if op_name_bytes == OP_SAVE_STATE:
                self.save_state()
            elif op_name_bytes == OP_RESTORE_STATE:
                self.restore_state()
            elif op_name_bytes == OP_CTM and len(operands) == 6:
                self.update_ctm(*[float(op) for op in operands])
            elif op_name_bytes == OP_BEGIN_TEXT:
                self.in_text_object = True
                self.text_matrix = np.identity(3, dtype=float)
                self.text_line_matrix = np.identity(3, dtype=float)
            elif op_name_bytes == OP_END_TEXT:
                self.in_text_object = False
            elif op_name_bytes == OP_MOVE_TEXT and len(operands) == 2:
                self._move_line(float(operands[0]), float(operands[1]))
            elif op_name_bytes == OP_MOVE_TEXT_SET_LEADING and len(operands) == 2:
                tx, ty = float(operands[0]), float(operands[1])
                self.leading = -ty
                self._move_line(tx, ty)
            elif op_name_bytes == OP_SET_TEXT_MATRIX and len(operands) == 6:
                self.text_matrix = matrix_from_operands(operands)
                self.text_line_matrix = self.text_matrix.copy()
            elif op_name_bytes == OP_NEXT_LINE:
                self.next_line()
            elif op_name_bytes == OP_NEXT_LINE_SHOW_TEXT:
                self.next_line()
            elif op_name_bytes == OP_SET_SPACING_SHOW_TEXT and len(operands) == 3:
                self.word_spacing = float(operands[0])
                self.character_spacing = float(operands[1])
                self.next_line()
            elif op_name_bytes == OP_SET_FONT and len(operands) >= 2:
                self.font_resource_name = operands[0]
                self.font_size = float(operands[1])
            elif op_name_bytes == OP_SET_CHAR_SPACING and len(operands) >= 1:
                self.character_spacing = float(operands[0])
            elif op_name_bytes == OP_SET_WORD_SPACING and len(operands) >= 1:
                self.word_spacing = float(operands[0])
            elif op_name_bytes == OP_SET_HORIZ_SCALING and len(operands) >= 1:
                self.horizontal_scaling = float(operands[0])
            elif op_name_bytes == OP_SET_LEADING and len(operands) >= 1:
                self.leading = float(operands[0])
            elif op_name_bytes == OP_SET_TEXT_RISE and len(operands) >= 1:
                self.text_rise = float(operands[0])

        except (ValueError, IndexError, TypeError) as e:
            logger.warning(f"Error updating graphics state for operator {op_name_bytes}: {e}")
