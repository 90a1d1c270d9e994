"""
openpyxl 工作表适配器
把 openpyxl 的 Worksheet 包装为行高引擎使用的 SheetAccessor。
openpyxl 行列号从 1 开始，对外统一转换为从 0 开始。
"""

import calendar
import datetime
import logging
import math
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterator, List, Optional

from openpyxl.cell.cell import MergedCell
from openpyxl.styles.fonts import DEFAULT_FONT
from openpyxl.styles.numbers import is_date_format
from openpyxl.utils.cell import get_column_letter
from openpyxl.utils.datetime import from_excel

from height_measure.cell_height import CellStyle, FontMetrics, WIDTH_UNIT_MULTIPLIER
from .sheet_access import (
    CellAccessor,
    ColumnWidthRegistry,
    FontRegistry,
    MergedRegion,
    MissingEntityError,
    RowAccessor,
    SheetAccessor,
)

logger = logging.getLogger(__name__)

DEFAULT_COLUMN_WIDTH = 8.43     # Excel 默认列宽（字符）
DEFAULT_ROW_HEIGHT = 15.0       # Excel 默认行高（磅）
INDENT_CHARS_PER_LEVEL = 3.0    # 每级缩进约 3 个字符宽


# ------------------------ 数字格式 ------------------------ #
# 引号文本、反斜杠转义、_x 占位、*x 填充
_FORMAT_LITERAL = re.compile(r'"([^"]*)"|\\(.)|_.|\*.')
_FORMAT_BRACKET = re.compile(r"\[[^\]]*\]")
_NUMBER_CORE = re.compile(r"[#0?,]*[#0?](?:\.[#0?]*)?|\.[#0?]+")
_SCIENTIFIC = re.compile(r"[#0?,]*(?:\.([#0?]*))?[eE][+-][#0]+")
_DATE_TOKEN = re.compile(
    r'"[^"]*"|\\.|\[[^\]]*\]|AM/PM|A/P|yyyy|yy|mmmmm|mmmm|mmm|mm|m|dddd|ddd|dd|d|hh|h|ss|s|.',
    re.IGNORECASE,
)


def _literal_text(fragment: str) -> str:
    def replace(match):
        if match.group(1) is not None:
            return match.group(1)
        if match.group(2) is not None:
            return match.group(2)
        return " " if match.group(0).startswith("_") else ""

    return _FORMAT_LITERAL.sub(replace, fragment)


def _format_general(value) -> str:
    """常规格式：整数原样，小数最多 11 位有效数字"""
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return format(value, ".11G")
    return str(value)


def _pick_section(number_format: str, value) -> tuple:
    """按正/负/零选取格式段；返回 (格式段, 是否需要补负号)"""
    sections = number_format.split(";")
    if value < 0 and len(sections) > 1 and sections[1]:
        return sections[1], False
    if value == 0 and len(sections) > 2 and sections[2]:
        return sections[2], False
    return sections[0], value < 0


def _format_number(value, number_format: str) -> str:
    section, needs_sign = _pick_section(number_format, value)
    section = _FORMAT_BRACKET.sub("", section)
    if section.strip().lower() in ("", "general", "@"):
        return ("-" if needs_sign else "") + _format_general(abs(value))

    # 屏蔽字面文本后再定位数字占位符
    masked = _FORMAT_LITERAL.sub(lambda m: "\x00" * len(m.group(0)), section)

    scientific = _SCIENTIFIC.search(masked)
    if scientific:
        decimals = len(scientific.group(1) or "")
        text = f"{abs(float(value)):.{decimals}E}"
        start, end = scientific.span()
    else:
        core = _NUMBER_CORE.search(masked)
        if core is None:
            return _format_general(value)
        start, end = core.span()
        int_part, _, frac = core.group().partition(".")
        scale_commas = len(int_part) - len(int_part.rstrip(","))
        int_part = int_part.rstrip(",")
        thousands = "," in int_part

        number = abs(Decimal(str(value)))
        number *= Decimal(100) ** masked.count("%")
        number /= Decimal(1000) ** scale_commas

        max_decimals = len(frac)
        min_decimals = frac.count("0")
        number = number.quantize(Decimal(1).scaleb(-max_decimals), rounding=ROUND_HALF_UP)
        text = format(number, f"{',' if thousands else ''}.{max_decimals}f")
        if max_decimals > min_decimals:
            whole, _, digits = text.partition(".")
            digits = digits.rstrip("0").ljust(min_decimals, "0")
            text = whole + ("." + digits if digits else "")
        if not thousands:
            whole, dot, digits = text.partition(".")
            text = whole.zfill(int_part.count("0")) + dot + digits
        if number == 0:
            needs_sign = False

    return ("-" if needs_sign else "") + _literal_text(section[:start]) + text + _literal_text(section[end:])


def _format_datetime(value, number_format: str) -> str:
    if isinstance(value, datetime.time):
        value = datetime.datetime.combine(datetime.date(1900, 1, 1), value)
    elif not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time())

    tokens = _DATE_TOKEN.findall(number_format.split(";")[0])
    codes = [t.lower() for t in tokens]
    code_positions = [i for i, t in enumerate(codes) if t[0] in "ydmhs" or t in ("am/pm", "a/p")]
    twelve_hour = any(t in ("am/pm", "a/p") for t in codes)

    def is_minute(index: int) -> bool:
        # m/mm 紧跟小时或紧邻秒时表示分钟
        pos = code_positions.index(index)
        before = codes[code_positions[pos - 1]] if pos > 0 else ""
        after = codes[code_positions[pos + 1]] if pos + 1 < len(code_positions) else ""
        return before in ("h", "hh") or after in ("s", "ss")

    hour = (value.hour % 12 or 12) if twelve_hour else value.hour
    parts = []
    for index, (token, code) in enumerate(zip(tokens, codes)):
        if code == "yyyy":
            parts.append(f"{value.year:04d}")
        elif code == "yy":
            parts.append(f"{value.year % 100:02d}")
        elif code in ("m", "mm") and is_minute(index):
            parts.append(f"{value.minute:02d}" if code == "mm" else str(value.minute))
        elif code == "m":
            parts.append(str(value.month))
        elif code == "mm":
            parts.append(f"{value.month:02d}")
        elif code == "mmm":
            parts.append(calendar.month_abbr[value.month])
        elif code == "mmmm":
            parts.append(calendar.month_name[value.month])
        elif code == "mmmmm":
            parts.append(calendar.month_name[value.month][0])
        elif code == "d":
            parts.append(str(value.day))
        elif code == "dd":
            parts.append(f"{value.day:02d}")
        elif code == "ddd":
            parts.append(calendar.day_abbr[value.weekday()])
        elif code == "dddd":
            parts.append(calendar.day_name[value.weekday()])
        elif code == "h":
            parts.append(str(hour))
        elif code == "hh":
            parts.append(f"{hour:02d}")
        elif code == "s":
            parts.append(str(value.second))
        elif code == "ss":
            parts.append(f"{value.second:02d}")
        elif code == "am/pm":
            parts.append("AM" if value.hour < 12 else "PM")
        elif code == "a/p":
            parts.append("A" if value.hour < 12 else "P")
        elif token.startswith("["):
            continue
        else:
            parts.append(_literal_text(token))
    return "".join(parts)


def _format_iso(value) -> str:
    if isinstance(value, datetime.datetime):
        if value.time() == datetime.time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    return value.isoformat()


def format_cell_value(value: Any, number_format: Optional[str] = "General") -> str:
    """
    按单元格数字格式把值渲染为显示文本。

    支持常规格式、定点小数、千分位、百分比、科学计数和日期时间格式；
    日期时间值配常规格式时输出 ISO 文本。
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    number_format = number_format or "General"
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        if is_date_format(number_format):
            return _format_datetime(value, number_format)
        return _format_iso(value)
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)
    if isinstance(value, (int, float)):
        if is_date_format(number_format):
            return _format_datetime(from_excel(value), number_format)
        return _format_number(value, number_format)
    return str(value)


def _check_index(index: int, kind: str) -> None:
    if index < 0:
        raise MissingEntityError(f"{kind}号无效: {index}")


class OpenpyxlCell(CellAccessor):
    """openpyxl 单元格视图"""

    def __init__(self, sheet: "OpenpyxlSheet", cell):
        self._sheet = sheet
        self.cell = cell

    @property
    def row_index(self) -> int:
        return self.cell.row - 1

    @property
    def column_index(self) -> int:
        return self.cell.column - 1

    def displayed_text(self) -> str:
        return format_cell_value(
            self._sheet.display_value(self.cell.row, self.cell.column),
            self.cell.number_format,
        )

    def style(self) -> CellStyle:
        alignment = self.cell.alignment
        return CellStyle(
            wrap_enabled=bool(alignment.wrap_text),
            indentation_chars=float(alignment.indent or 0) * INDENT_CHARS_PER_LEVEL,
            font_ref=self.cell.font,
        )


class OpenpyxlRow(RowAccessor):
    """openpyxl 行视图，行高读写 row_dimensions"""

    def __init__(self, sheet: "OpenpyxlSheet", index: int):
        _check_index(index, "行")
        self._sheet = sheet
        self._index = index

    @property
    def index(self) -> int:
        return self._index

    @property
    def height(self) -> float:
        dim = self._sheet.worksheet.row_dimensions.get(self._index + 1)
        if dim is None or dim.height is None:
            return self._sheet.default_row_height()
        return float(dim.height)

    @height.setter
    def height(self, value: float) -> None:
        self._sheet.worksheet.row_dimensions[self._index + 1].height = value

    @staticmethod
    def _is_present(cell) -> bool:
        # 合并区域内被覆盖的单元格不参与计算
        return not isinstance(cell, MergedCell) and cell.value is not None

    def cells(self) -> Iterator[CellAccessor]:
        ws = self._sheet.worksheet
        row_number = self._index + 1
        if row_number > ws.max_row:
            return
        for row in ws.iter_rows(min_row=row_number, max_row=row_number):
            for cell in row:
                if self._is_present(cell):
                    yield OpenpyxlCell(self._sheet, cell)

    def get_cell(self, column_index: int) -> Optional[CellAccessor]:
        _check_index(column_index, "列")
        ws = self._sheet.worksheet
        if self._index + 1 > ws.max_row or column_index + 1 > ws.max_column:
            return None
        cell = ws.cell(row=self._index + 1, column=column_index + 1)
        return OpenpyxlCell(self._sheet, cell) if self._is_present(cell) else None

    def create_cell(self, column_index: int) -> CellAccessor:
        _check_index(column_index, "列")
        cell = self._sheet.worksheet.cell(row=self._index + 1, column=column_index + 1)
        return OpenpyxlCell(self._sheet, cell)


class OpenpyxlSheet(SheetAccessor, FontRegistry, ColumnWidthRegistry):
    """
    openpyxl 工作表适配器

    Args:
        worksheet: 要调整行高的工作表
        value_worksheet: 以 data_only=True 加载的同一工作表，用于读取公式的缓存结果；
            None 时直接读取 worksheet 的值
    """

    def __init__(self, worksheet, value_worksheet=None):
        self.worksheet = worksheet
        self.value_worksheet = value_worksheet

    # ---- 注册表 ----
    @property
    def fonts(self) -> FontRegistry:
        return self

    @property
    def column_widths(self) -> ColumnWidthRegistry:
        return self

    def display_value(self, row_number: int, column_number: int) -> Any:
        source = self.value_worksheet if self.value_worksheet is not None else self.worksheet
        return source.cell(row=row_number, column=column_number).value

    # ---- 字体 ----
    def _workbook_default_font(self):
        fonts = getattr(self.worksheet.parent, "_fonts", None)
        return fonts[0] if fonts else DEFAULT_FONT

    def default_font(self) -> FontMetrics:
        font = self._workbook_default_font()
        if font.sz is None:
            raise MissingEntityError("工作簿默认字体未设置字号")
        return FontMetrics(size_in_points=float(font.sz), bold=bool(font.b), italic=bool(font.i))

    def get_font(self, font_ref: Any) -> FontMetrics:
        if font_ref is None:
            raise MissingEntityError("单元格未引用字体")
        # 未设置字号的字体沿用默认字体字号
        size = font_ref.sz if font_ref.sz is not None else self.default_font().size_in_points
        return FontMetrics(size_in_points=float(size), bold=bool(font_ref.b), italic=bool(font_ref.i))

    # ---- 列宽 ----
    def _default_column_width(self) -> float:
        width = self.worksheet.sheet_format.defaultColWidth
        return float(width) if width else DEFAULT_COLUMN_WIDTH

    def get_column_width(self, column_index: int) -> float:
        _check_index(column_index, "列")
        column_number = column_index + 1
        dims = self.worksheet.column_dimensions
        dim = dims.get(get_column_letter(column_number))
        if dim is None:
            # 读取的文件中相邻同宽列会合并为一个 min..max 条目
            dim = next(
                (d for d in dims.values() if d.min and d.max and d.min <= column_number <= d.max),
                None,
            )
        width = dim.width if dim is not None and dim.width is not None else self._default_column_width()
        return float(width) * WIDTH_UNIT_MULTIPLIER

    def set_column_width(self, column_index: int, width_in_chars: float) -> None:
        _check_index(column_index, "列")
        self.worksheet.column_dimensions[get_column_letter(column_index + 1)].width = width_in_chars

    # ---- 行 ----
    def get_row(self, row_index: int) -> Optional[RowAccessor]:
        _check_index(row_index, "行")
        row_number = row_index + 1
        if row_number in self.worksheet.row_dimensions or row_number <= self.worksheet.max_row:
            return OpenpyxlRow(self, row_index)
        return None

    def create_row(self, row_index: int) -> RowAccessor:
        row = OpenpyxlRow(self, row_index)
        dim = self.worksheet.row_dimensions[row_index + 1]
        if dim.height is None:
            dim.height = self.default_row_height()
        return row

    def row_indices(self) -> List[int]:
        numbers = set(self.worksheet.row_dimensions.keys())
        numbers.update(range(1, self.worksheet.max_row + 1))
        return sorted(n - 1 for n in numbers if n >= 1)

    def default_row_height(self) -> float:
        height = self.worksheet.sheet_format.defaultRowHeight
        return float(height) if height else DEFAULT_ROW_HEIGHT

    # ---- 合并区域 ----
    def merged_regions(self) -> List[MergedRegion]:
        return [
            MergedRegion(rng.min_row - 1, rng.max_row - 1, rng.min_col - 1, rng.max_col - 1)
            for rng in self.worksheet.merged_cells.ranges
        ]

    def add_merged_region(self, region: MergedRegion) -> None:
        self.worksheet.merge_cells(
            start_row=region.first_row + 1,
            start_column=region.first_column + 1,
            end_row=region.last_row + 1,
            end_column=region.last_column + 1,
        )
