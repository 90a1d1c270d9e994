#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
row_height.py
行高适配器：
1. resolve_row_height  计算一行不裁剪任何单元格所需的最小行高
2. stretch_row_to_content  按计算结果拉高行，支持两种合并区域策略：
   - proportional=True   按比例拉高合并区域涉及的所有行
   - proportional=False  差额全部加到当前行
"""

import logging
import time
from typing import Iterable, List, Optional, Tuple

from height_measure.cell_height import (
    HeightSettings,
    DEFAULT_SETTINGS,
    estimate_cell_height,
    native_width_to_chars,
)
from .sheet_access import (
    CellAccessor,
    MergedRegion,
    MissingEntityError,
    RowAccessor,
    SheetAccessor,
)

logger = logging.getLogger(__name__)

# 高度比较容差（pt），避免浮点误差导致重复拉伸
_HEIGHT_EPSILON = 1e-6


class RowHeightFitter:
    """单个工作表的行高适配器"""

    def __init__(self, sheet: SheetAccessor, settings: Optional[HeightSettings] = None):
        self.sheet = sheet
        self.settings = settings or DEFAULT_SETTINGS
        self.performance_stats = {
            'resolve': {'count': 0, 'total_time': 0},
            'stretch': {'count': 0, 'total_time': 0},
        }

    # ---- 单元格 ----
    def cell_width_in_chars(self, cell: CellAccessor,
                            region: Optional[MergedRegion] = None) -> float:
        """单元格有效列宽（字符）；合并区域取所跨各列之和"""
        columns = region.columns() if region is not None else [cell.column_index]
        widths = self.sheet.column_widths
        total = 0.0
        for column_index in columns:
            total += native_width_to_chars(widths.get_column_width(column_index), self.settings)
        return total

    def calculate_cell_height(self, cell: CellAccessor,
                              region: Optional[MergedRegion] = None) -> float:
        """单元格单独需要的高度（合并区域按区域总宽计算，不扣减其他行）"""
        style = cell.style()
        fonts = self.sheet.fonts
        return estimate_cell_height(
            cell.displayed_text(),
            style,
            fonts.get_font(style.font_ref),
            fonts.default_font(),
            self.cell_width_in_chars(cell, region),
            self.settings,
        )

    def _other_rows_height(self, region: MergedRegion, row_index: int) -> float:
        return sum(
            self.sheet.row_height_or_default(r)
            for r in region.rows() if r != row_index
        )

    # ---- 行高计算 ----
    def resolve_row_height(self, row: RowAccessor, ignore_merges: bool = False,
                           merged_regions: Optional[List[MergedRegion]] = None) -> float:
        """
        计算行所需高度，不低于当前行高。

        Args:
            row: 目标行
            ignore_merges: True 时所有单元格按单列宽度独立计算
            merged_regions: 与该行相交的合并区域；None 时从工作表查询

        Returns:
            float: 所需行高（pt）
        """
        start_time = time.perf_counter()

        if merged_regions is None and not ignore_merges:
            merged_regions = self.sheet.merged_regions_for_row(row.index)

        result = row.height
        for cell in row.cells():
            region = None
            if not ignore_merges:
                region = next(
                    (r for r in merged_regions if r.contains(row.index, cell.column_index)),
                    None,
                )

            cell_height = self.calculate_cell_height(cell, region)
            if region is not None:
                # 其余行已分得的高度不必由本行承担
                cell_height -= self._other_rows_height(region, row.index)

            if result < cell_height:
                result = cell_height

        elapsed = time.perf_counter() - start_time
        self.performance_stats['resolve']['count'] += 1
        self.performance_stats['resolve']['total_time'] += elapsed
        return result

    # ---- 行高拉伸 ----
    def stretch_row_to_content(self, row: RowAccessor, proportional: bool = True) -> None:
        """把行高拉到能容纳最高的单元格；只增不减，重复调用结果不变"""
        start_time = time.perf_counter()
        try:
            self._stretch(row, proportional)
        finally:
            elapsed = time.perf_counter() - start_time
            self.performance_stats['stretch']['count'] += 1
            self.performance_stats['stretch']['total_time'] += elapsed

    def _stretch(self, row: RowAccessor, proportional: bool) -> None:
        merged_regions = self.sheet.merged_regions_for_row(row.index)

        if not merged_regions:
            self._raise_row(row, self.resolve_row_height(row, ignore_merges=True))
            return

        affected_regions = [r for r in merged_regions if r.first_row == row.index]

        # 非合并单元格（或不以本行开头的区域内的单元格）独立计算
        plain_height = row.height
        anchored: List[Tuple[CellAccessor, MergedRegion]] = []
        for cell in row.cells():
            region = next((r for r in affected_regions if r.contains_column(cell.column_index)), None)
            if region is None:
                plain_height = max(plain_height, self.calculate_cell_height(cell))
            elif region.first_column == cell.column_index:
                anchored.append((cell, region))

        winner: Optional[MergedRegion] = None
        winner_height = 0.0
        winner_rows: List[RowAccessor] = []
        winner_sum = 0.0
        for cell, region in anchored:
            cell_height = self.calculate_cell_height(cell, region)
            region_rows = [self.sheet.row(r) for r in region.rows()]
            height_sum = sum(r.height for r in region_rows)
            if cell_height - height_sum > _HEIGHT_EPSILON and (winner is None or cell_height > winner_height):
                winner = region
                winner_height = cell_height
                winner_rows = region_rows
                winner_sum = height_sum

        if winner is None:
            self._raise_row(row, plain_height)
        elif not proportional or winner_sum <= 0:
            self._raise_row(row, max(row.height + winner_height - winner_sum, plain_height))
        else:
            multiplier = winner_height / winner_sum
            if multiplier > 1:
                for region_row in winner_rows:
                    region_row.height = region_row.height * multiplier
                logger.debug(
                    f"合并区域 {winner} 行高按比例放大 {multiplier:.3f} 倍, 总高 {winner_sum:.2f} -> {winner_height:.2f}pt"
                )
            self._raise_row(row, plain_height)

    def _raise_row(self, row: RowAccessor, height: float) -> None:
        if row.height < height:
            logger.debug(f"第{row.index + 1}行行高 {row.height:.2f} -> {height:.2f}pt")
            row.height = height

    def stretch_rows(self, row_indices: Optional[Iterable[int]] = None,
                     proportional: bool = True) -> int:
        """
        按行号升序逐行拉伸（合并区域的按比例调整依赖顺序执行）。

        Args:
            row_indices: 行号集合；None 表示所有已存在的行

        Returns:
            int: 处理的行数
        """
        if row_indices is None:
            row_indices = self.sheet.row_indices()
        count = 0
        for row_index in sorted(set(row_indices)):
            if row_index < 0:
                raise MissingEntityError(f"行号无效: {row_index}")
            self.stretch_row_to_content(self.sheet.row(row_index), proportional)
            count += 1
        return count

    # ---- 统计 ----
    def get_performance_stats(self) -> dict:
        """获取性能统计"""
        stats = {}
        for operation, data in self.performance_stats.items():
            if data['count'] > 0:
                avg_time = data['total_time'] / data['count']
                stats[operation] = {
                    'count': data['count'],
                    'total_time': data['total_time'],
                    'avg_time': avg_time,
                }
            else:
                stats[operation] = {'count': 0, 'total_time': 0, 'avg_time': 0}
        return stats

    def reset_stats(self):
        """重置性能统计"""
        for operation in self.performance_stats:
            self.performance_stats[operation]['count'] = 0
            self.performance_stats[operation]['total_time'] = 0


def resolve_row_height(sheet: SheetAccessor, row_index: int, ignore_merges: bool = False,
                       settings: Optional[HeightSettings] = None) -> float:
    """计算指定行所需高度的便捷函数"""
    row = sheet.get_row(row_index)
    if row is None:
        raise MissingEntityError(f"行不存在: {row_index}")
    return RowHeightFitter(sheet, settings).resolve_row_height(row, ignore_merges)


def stretch_row_to_content(sheet: SheetAccessor, row_index: int, proportional: bool = True,
                           settings: Optional[HeightSettings] = None) -> float:
    """拉伸指定行的便捷函数，返回拉伸后的行高"""
    row = sheet.get_row(row_index)
    if row is None:
        raise MissingEntityError(f"行不存在: {row_index}")
    RowHeightFitter(sheet, settings).stretch_row_to_content(row, proportional)
    return row.height
