"""
行高测量包：文本按字符宽度断行，以及单元格高度估算。
"""

from height_measure.line_breaker import break_lines, count_lines
from height_measure.cell_height import (
    CellStyle,
    FontMetrics,
    HeightSettings,
    estimate_cell_height,
    native_width_to_chars,
    usable_width_in_chars,
)

__all__ = [
    'break_lines',
    'count_lines',
    'CellStyle',
    'FontMetrics',
    'HeightSettings',
    'estimate_cell_height',
    'native_width_to_chars',
    'usable_width_in_chars',
]
