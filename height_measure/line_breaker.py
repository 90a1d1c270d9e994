# -*- coding: utf-8 -*-
"""
line_breaker.py
---------------
按字符宽度预算把单元格文本拆成显示行（不依赖任何字体光栅化）。
核心逻辑：
1. 先按显式换行符（\\r\\n、\\r、\\n）切段，各段独立处理、顺序不变。
2. 不换行时每段原样成为一行；段长小于宽度时也原样返回。
3. 否则把段切成三类片段：单词（字母/数字/下划线）、空白、单个标点符号，
   贪心装入缓冲区，超宽即输出一行（去首尾空白）。
4. 单个片段本身超宽时按 floor(宽度) 硬切，游标逐块前进，余数放入新缓冲区。
"""

from __future__ import annotations

import math
import re
from typing import List

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


# ------------------------ 工具函数 ------------------------ #
def _is_word_char(ch: str) -> bool:
    return ch.isalpha() or ch.isdigit() or ch == "_"


def _tokenize(segment: str) -> List[str]:
    """把一段文本切成单词、空白、单字符符号三类片段"""
    runs: List[str] = []
    i, n = 0, len(segment)
    while i < n:
        ch = segment[i]
        j = i + 1
        if _is_word_char(ch):
            while j < n and _is_word_char(segment[j]):
                j += 1
        elif ch.isspace():
            while j < n and segment[j].isspace():
                j += 1
        runs.append(segment[i:j])
        i = j
    return runs


def _wrap_segment(segment: str, width_in_chars: float, chunk: int) -> List[str]:
    lines: List[str] = []
    buffer = ""

    def flush() -> None:
        nonlocal buffer
        line = buffer.strip()
        if line:
            lines.append(line)
        buffer = ""

    for run in _tokenize(segment):
        if run.isspace():
            # 空白只跟随缓冲区，不触发换行；输出时被 strip 掉
            buffer += run
        elif len(run) > width_in_chars:
            flush()
            cursor = 0
            while len(run) - cursor >= chunk:
                lines.append(run[cursor:cursor + chunk])
                cursor += chunk
            buffer = run[cursor:]
        elif len(buffer) + len(run) > width_in_chars:
            flush()
            buffer = run
        else:
            buffer += run

    flush()
    return lines


# ------------------------ 主外部接口 ------------------------ #
def break_lines(text: str, wrap_enabled: bool, width_in_chars: float) -> List[str]:
    """
    计算文本在给定字符宽度下的显示行。

    参数
    ----
    text : str
        单元格已格式化的显示文本，可含换行符
    wrap_enabled : bool
        单元格是否开启自动换行
    width_in_chars : float
        可用宽度（字符数），必须 > 0

    返回
    ----
    list[str]，至少包含一行（空文本返回 [""]）
    """
    if isinstance(width_in_chars, bool) or not isinstance(width_in_chars, (int, float)):
        raise ValueError(f"宽度必须是数字: {width_in_chars!r}")
    if not math.isfinite(width_in_chars) or width_in_chars <= 0:
        raise ValueError(f"宽度必须是大于0的有限数: {width_in_chars}")

    if not text:
        return [""]

    segments = _LINE_BREAK.split(text)
    if not wrap_enabled:
        return segments

    chunk = max(1, math.floor(width_in_chars))
    result: List[str] = []
    for segment in segments:
        if len(segment) < width_in_chars:
            result.append(segment)
        else:
            # 纯空白段仍占一行
            result.extend(_wrap_segment(segment, width_in_chars, chunk) or [""])
    return result


def count_lines(text: str, wrap_enabled: bool, width_in_chars: float) -> int:
    """返回 break_lines 的行数"""
    return len(break_lines(text, wrap_enabled, width_in_chars))
