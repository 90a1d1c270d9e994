"""
行高适配包：按单元格内容拉伸工作表行高，支持合并区域。
"""

from row_fit.sheet_access import (
    CellAccessor,
    ColumnWidthRegistry,
    FontRegistry,
    MergedRegion,
    MissingEntityError,
    RowAccessor,
    RowFitError,
    SheetAccessor,
    merge_cell,
)
from row_fit.row_height import RowHeightFitter, resolve_row_height, stretch_row_to_content
from row_fit.openpyxl_sheet import OpenpyxlSheet

__all__ = [
    'CellAccessor',
    'ColumnWidthRegistry',
    'FontRegistry',
    'MergedRegion',
    'MissingEntityError',
    'RowAccessor',
    'RowFitError',
    'SheetAccessor',
    'merge_cell',
    'RowHeightFitter',
    'resolve_row_height',
    'stretch_row_to_content',
    'OpenpyxlSheet',
]
