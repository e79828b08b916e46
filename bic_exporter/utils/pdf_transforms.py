"""PDF transformation utilities for graphics operations."""

from typing import Sequence, Tuple

import numpy as np

MATRIX_EPSILON = 1e-9


def matrix_from_operands(values: Sequence[float]) -> np.ndarray:
    """Build the 3x3 column-vector matrix for a PDF ``[a b c d e f]`` array"""
    a, b, c, d, e, f = [float(v) for v in values]
    return np.array([[a, c, e], [b, d, f], [0, 0, 1]], dtype=float)


def translation_matrix(tx: float, ty: float) -> np.ndarray:
    return np.array([[1, 0, tx], [0, 1, ty], [0, 0, 1]], dtype=float)


def transform_point(matrix: np.ndarray, x: float, y: float) -> Tuple[float, float]:
    """Map a point through a 3x3 matrix"""
    point = np.dot(matrix, np.array([x, y, 1.0], dtype=float))
    return float(point[0]), float(point[1])


def effective_font_size(matrix: np.ndarray, font_size: float) -> float:
    """Rendered glyph height of ``font_size`` under ``matrix`` (vertical scale)"""
    scale_y = float(np.sqrt(matrix[0, 1] ** 2 + matrix[1, 1] ** 2))
    if scale_y < MATRIX_EPSILON:
        return abs(font_size)
    return abs(font_size) * scale_y
