"""
断行模块单元测试
测试height_measure/line_breaker.py的换行、硬切分与边界情况
"""

import pytest

from height_measure.line_breaker import break_lines, count_lines


class TestBreakLinesScenarios:
    """典型场景"""

    def test_two_words_split_at_space(self):
        """Hello world 在5字符宽度下拆成两行"""
        assert break_lines("Hello world", True, 5) == ["Hello", "world"]

    def test_long_word_hard_split(self):
        """无空白的长单词按宽度硬切，余数单独成行"""
        lines = break_lines("Supercalifragilistic", True, 6)
        assert lines == ["Superc", "alifra", "gilist", "ic"]
        assert "".join(lines) == "Supercalifragilistic"

    def test_empty_text_is_one_empty_line(self):
        """空文本返回一个空行"""
        assert break_lines("", True, 5) == [""]
        assert break_lines("", False, 5) == [""]

    def test_words_packed_greedily(self):
        """能放下的单词合并到同一行"""
        assert break_lines("Hello world foo bar", True, 9) == ["Hello", "world foo", "bar"]

    def test_short_segment_returned_unchanged(self):
        """段长小于宽度时原样返回（保留空白）"""
        assert break_lines("  ab ", True, 10) == ["  ab "]


class TestExplicitLineBreaks:
    """显式换行符"""

    def test_wrap_disabled_keeps_lines_verbatim(self):
        """不换行时每段原样成为一行"""
        text = "first line is quite long\nsecond\n"
        lines = break_lines(text, False, 3)
        assert lines == ["first line is quite long", "second", ""]
        assert len(lines) == text.count("\n") + 1

    def test_all_break_styles(self):
        """\\r\\n、\\r、\\n 都视为换行"""
        assert break_lines("a\r\nb\rc\nd", False, 10) == ["a", "b", "c", "d"]

    def test_segments_wrapped_independently(self):
        """各段独立换行，顺序不变"""
        assert break_lines("ab\ncdefgh ij", True, 5) == ["ab", "cdefg", "h ij"]

    def test_blank_segments_preserved(self):
        """连续换行产生空行"""
        assert break_lines("a\n\nb", True, 5) == ["a", "", "b"]


class TestHardSplit:
    """超长片段硬切分"""

    def test_buffer_flushed_before_long_word(self):
        """长单词前已累积的内容先输出"""
        lines = break_lines("hi Supercalifragilistic", True, 6)
        assert lines == ["hi", "Superc", "alifra", "gilist", "ic"]

    def test_exact_multiple_has_no_remainder(self):
        """长度正好是宽度整数倍时没有余数行"""
        assert break_lines("abcdefghijkl", True, 6) == ["abcdef", "ghijkl"]

    def test_fractional_width_uses_floor_for_chunks(self):
        """小数宽度按向下取整切块"""
        assert break_lines("abcdefghijklmn", True, 5.5) == ["abcde", "fghij", "klmn"]

    def test_remainder_joins_following_words(self):
        """余数进入新缓冲区，可与后续单词同行"""
        assert break_lines("abcdefgh ij", True, 5) == ["abcde", "fgh", "ij"]

    def test_cjk_run_split_by_width(self):
        """中文字符属于单词字符，连续中文按宽度切分"""
        lines = break_lines("这是一个很长的文本内容", True, 4)
        assert lines == ["这是一个", "很长的文", "本内容"]


class TestLineLengthProperties:
    """行长度性质"""

    @pytest.mark.parametrize("width", [1, 2, 3, 5, 8, 13])
    def test_lines_never_exceed_width(self, width):
        """开启换行时每行长度不超过宽度"""
        text = "The quick, brown fox; jumps_over the lazy-dog! 12345 and  more\ttext."
        for line in break_lines(text, True, width):
            assert len(line) <= width

    def test_punctuation_is_single_unit(self):
        """标点逐个作为独立片段"""
        lines = break_lines("a,b,c,d,e,f", True, 3)
        assert all(len(line) <= 3 for line in lines)
        assert "".join(lines) == "a,b,c,d,e,f"

    def test_never_empty(self):
        """任何输入都至少返回一行"""
        for text in ["", " ", "      ", "\n", "x"]:
            assert len(break_lines(text, True, 3)) >= 1

    def test_whitespace_only_segment_is_blank_line(self):
        """纯空白段输出一个空行"""
        assert break_lines("      ", True, 3) == [""]

    def test_count_lines(self):
        assert count_lines("Hello world", True, 5) == 2
        assert count_lines("Hello world", False, 5) == 1


class TestInvalidWidth:
    """非法宽度"""

    @pytest.mark.parametrize("width", [0, -1, -0.5, float("nan"), float("inf")])
    def test_non_positive_or_non_finite_width_rejected(self, width):
        with pytest.raises(ValueError):
            break_lines("text", True, width)

    def test_rejected_even_without_wrapping(self):
        with pytest.raises(ValueError):
            break_lines("text", False, 0)

    def test_non_numeric_width_rejected(self):
        with pytest.raises(ValueError):
            break_lines("text", True, "5")

    def test_width_below_one_still_terminates(self):
        """宽度小于1时按1字符切分"""
        assert break_lines("abc", True, 0.5) == ["a", "b", "c"]
