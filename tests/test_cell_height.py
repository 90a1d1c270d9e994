"""
单元格行高估算单元测试
测试height_measure/cell_height.py的宽度换算与高度计算
"""

import pytest

from height_measure.cell_height import (
    CellStyle,
    FontMetrics,
    HeightSettings,
    estimate_cell_height,
    native_width_to_chars,
    usable_width_in_chars,
    TEXT_LINE_HEIGHT_MULTIPLIER,
    CELL_VERTICAL_MARGIN_MULTIPLIER,
)

DEFAULT_FONT = FontMetrics(size_in_points=11)
WRAP = CellStyle(wrap_enabled=True)
# 去掉安全余量，便于精确断言
EXACT = HeightSettings(width_safety_factor=1.0)


class TestUsableWidth:
    """可用宽度换算"""

    def test_safety_margin_applied(self):
        width = usable_width_in_chars(10, WRAP, DEFAULT_FONT, DEFAULT_FONT)
        assert width == pytest.approx(9.0)

    def test_larger_font_fits_fewer_chars(self):
        big = FontMetrics(size_in_points=22)
        assert usable_width_in_chars(10, WRAP, big, DEFAULT_FONT, EXACT) == pytest.approx(5.0)

    def test_bold_and_italic_inflation_is_additive(self):
        bold = FontMetrics(11, bold=True)
        italic = FontMetrics(11, italic=True)
        both = FontMetrics(11, bold=True, italic=True)
        assert usable_width_in_chars(10, WRAP, bold, DEFAULT_FONT, EXACT) == pytest.approx(10 / 1.1)
        assert usable_width_in_chars(10, WRAP, italic, DEFAULT_FONT, EXACT) == pytest.approx(10 / 1.05)
        assert usable_width_in_chars(10, WRAP, both, DEFAULT_FONT, EXACT) == pytest.approx(10 / 1.15)

    def test_indentation_reduces_width(self):
        style = CellStyle(wrap_enabled=True, indentation_chars=3)
        assert usable_width_in_chars(10, style, DEFAULT_FONT, DEFAULT_FONT, EXACT) == pytest.approx(7.0)

    def test_width_clamped_to_one_char(self):
        """缩进超过列宽时仍保持至少1字符"""
        style = CellStyle(wrap_enabled=True, indentation_chars=50)
        assert usable_width_in_chars(10, style, DEFAULT_FONT, DEFAULT_FONT) == 1.0
        assert usable_width_in_chars(0, WRAP, DEFAULT_FONT, DEFAULT_FONT) == 1.0

    def test_non_positive_font_size_rejected(self):
        with pytest.raises(ValueError):
            usable_width_in_chars(10, WRAP, FontMetrics(0), DEFAULT_FONT)
        with pytest.raises(ValueError):
            usable_width_in_chars(10, WRAP, DEFAULT_FONT, FontMetrics(-1))

    def test_native_width_conversion(self):
        assert native_width_to_chars(2560) == 10.0
        assert native_width_to_chars(100, HeightSettings(width_unit_multiplier=10)) == 10.0


class TestEstimateCellHeight:
    """高度计算"""

    def test_empty_text_is_one_line_plus_margin(self):
        height = estimate_cell_height("", WRAP, DEFAULT_FONT, DEFAULT_FONT, 10)
        expected = 11 * TEXT_LINE_HEIGHT_MULTIPLIER + 11 * CELL_VERTICAL_MARGIN_MULTIPLIER
        assert height == pytest.approx(expected)
        assert height == pytest.approx(17.6)

    def test_two_lines(self):
        height = estimate_cell_height("Hello world", WRAP, DEFAULT_FONT, DEFAULT_FONT, 5, EXACT)
        assert height == pytest.approx(11 * 2 * 1.4 + 11 * 0.2)

    def test_wrap_disabled_counts_explicit_lines_only(self):
        style = CellStyle(wrap_enabled=False)
        height = estimate_cell_height("a very long line of text\nsecond", style, DEFAULT_FONT, DEFAULT_FONT, 3)
        assert height == pytest.approx(11 * 2 * 1.4 + 11 * 0.2)

    def test_margin_uses_default_font(self):
        """边距按默认字体计算，行高按单元格字体计算"""
        big = FontMetrics(size_in_points=20)
        height = estimate_cell_height("x", WRAP, big, DEFAULT_FONT, 10)
        assert height == pytest.approx(20 * 1.4 + 11 * 0.2)

    def test_custom_settings(self):
        settings = HeightSettings(line_height_multiplier=1.0, vertical_margin_multiplier=0.0)
        assert estimate_cell_height("x", WRAP, DEFAULT_FONT, DEFAULT_FONT, 10, settings) == pytest.approx(11.0)

    def test_none_text_treated_as_empty(self):
        assert estimate_cell_height(None, WRAP, DEFAULT_FONT, DEFAULT_FONT, 10) == pytest.approx(17.6)

    def test_narrower_column_never_lowers_height(self):
        """列宽越小，所需高度越大（或相同）"""
        text = "This is a long text that needs several lines to be displayed"
        heights = [
            estimate_cell_height(text, WRAP, DEFAULT_FONT, DEFAULT_FONT, width)
            for width in (50, 30, 20, 10, 5)
        ]
        assert heights == sorted(heights)

    def test_longer_text_never_lowers_height(self):
        texts = ["word " * n for n in range(1, 30)]
        heights = [estimate_cell_height(t, WRAP, DEFAULT_FONT, DEFAULT_FONT, 12) for t in texts]
        assert heights == sorted(heights)


class TestHeightSettings:
    """参数对象"""

    def test_from_dict_ignores_unknown_keys(self):
        settings = HeightSettings.from_dict({"line_height_multiplier": 1.2, "unknown": 3})
        assert settings.line_height_multiplier == 1.2
        assert settings.vertical_margin_multiplier == CELL_VERTICAL_MARGIN_MULTIPLIER

    def test_from_empty_dict_is_default(self):
        assert HeightSettings.from_dict(None) == HeightSettings()

    def test_round_trip_dict(self):
        settings = HeightSettings(width_safety_factor=0.8)
        assert HeightSettings.from_dict(settings.to_dict()) == settings
