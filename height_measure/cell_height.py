# -*- coding: utf-8 -*-
"""
cell_height.py
--------------
单元格行高估算：不测量真实字形，只按字符宽度近似换行后求高度。
最终高度 = 字号 × 行数 × 行高系数 + 默认字号 × 垂直边距系数（单位：pt）。
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from .line_breaker import break_lines

# ------------------------ 常量 ------------------------ #
WIDTH_UNIT_MULTIPLIER = 256             # 列宽存储单位：1/256 字符宽
TEXT_LINE_HEIGHT_MULTIPLIER = 1.4       # 每行高度 = 字号 × 1.4
CELL_VERTICAL_MARGIN_MULTIPLIER = 0.2   # 上下边距 = 默认字号 × 0.2
WIDTH_SAFETY_FACTOR = 0.9               # 字形不会刚好铺满列宽
BOLD_WIDTH_INFLATION = 0.1              # 粗体约宽 10%
ITALIC_WIDTH_INFLATION = 0.05           # 斜体约宽 5%
MIN_WRAP_WIDTH_CHARS = 1.0


# ------------------------ 公共类型 ------------------------ #
@dataclass(frozen=True)
class FontMetrics:
    size_in_points: float
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class CellStyle:
    wrap_enabled: bool = False
    indentation_chars: float = 0.0
    font_ref: Any = None


@dataclass(frozen=True)
class HeightSettings:
    """行高估算的可调参数，默认值即模块常量"""

    line_height_multiplier: float = TEXT_LINE_HEIGHT_MULTIPLIER
    vertical_margin_multiplier: float = CELL_VERTICAL_MARGIN_MULTIPLIER
    width_safety_factor: float = WIDTH_SAFETY_FACTOR
    bold_width_inflation: float = BOLD_WIDTH_INFLATION
    italic_width_inflation: float = ITALIC_WIDTH_INFLATION
    width_unit_multiplier: float = WIDTH_UNIT_MULTIPLIER

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "HeightSettings":
        """从配置字典构建，忽略未知键"""
        if not values:
            return cls()
        known = {f.name for f in fields(cls)}
        kwargs = {k: float(v) for k, v in values.items() if k in known}
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_SETTINGS = HeightSettings()


# ------------------------ 计算函数 ------------------------ #
def native_width_to_chars(width_units: float,
                          settings: Optional[HeightSettings] = None) -> float:
    """列宽存储单位 -> 字符数"""
    settings = settings or DEFAULT_SETTINGS
    return width_units / settings.width_unit_multiplier


def style_inflation(font: FontMetrics, settings: Optional[HeightSettings] = None) -> float:
    settings = settings or DEFAULT_SETTINGS
    factor = 1.0
    if font.bold:
        factor += settings.bold_width_inflation
    if font.italic:
        factor += settings.italic_width_inflation
    return factor


def _check_font(font: FontMetrics, label: str) -> None:
    if font.size_in_points is None or font.size_in_points <= 0:
        raise ValueError(f"{label}字号必须大于0: {font.size_in_points}")


def usable_width_in_chars(width_in_chars: float,
                          style: CellStyle,
                          font: FontMetrics,
                          default_font: FontMetrics,
                          settings: Optional[HeightSettings] = None) -> float:
    """
    把列宽（按默认字体计的字符数）换算为当前字体下可用于换行的字符数。
    字号越大每单位宽度能放的字符越少；再扣掉安全余量、缩进和粗斜体膨胀。
    """
    settings = settings or DEFAULT_SETTINGS
    _check_font(font, "单元格")
    _check_font(default_font, "默认")

    scale = default_font.size_in_points / font.size_in_points
    width = width_in_chars * scale * settings.width_safety_factor
    width -= style.indentation_chars or 0.0
    width /= style_inflation(font, settings)
    return max(width, MIN_WRAP_WIDTH_CHARS)


def estimate_cell_height(text: str,
                         style: CellStyle,
                         font: FontMetrics,
                         default_font: FontMetrics,
                         width_in_chars: float,
                         settings: Optional[HeightSettings] = None) -> float:
    """
    估算单元格在给定有效列宽下显示全部文本所需的高度（pt）。

    参数
    ----
    text : str
        显示文本
    style : CellStyle
        换行开关、缩进
    font : FontMetrics
        单元格字体
    default_font : FontMetrics
        工作簿默认字体（列宽以它的字符宽度为单位）
    width_in_chars : float
        有效列宽（合并区域为各列之和）
    settings : HeightSettings | None
        留 None 使用模块常量
    """
    settings = settings or DEFAULT_SETTINGS
    width = usable_width_in_chars(width_in_chars, style, font, default_font, settings)
    lines = break_lines(text or "", style.wrap_enabled, width)

    text_height = font.size_in_points * len(lines) * settings.line_height_multiplier
    margin_height = default_font.size_in_points * settings.vertical_margin_multiplier
    return text_height + margin_height
