import os
import copy
import logging
from io import BytesIO
from typing import Dict, Iterable, List, Optional

import openpyxl
import pandas as pd

from height_measure.cell_height import HeightSettings
from .openpyxl_sheet import OpenpyxlSheet
from .row_height import RowHeightFitter

# --- 通用工具函数 ---


def load_data(excel_path):
    """
    加载Excel数据为DataFrame，失败返回None。
    """
    if not os.path.exists(excel_path):
        logging.error(f"文件路径不存在: {excel_path}")
        return None

    try:
        return pd.read_excel(excel_path)
    except Exception as e:
        logging.error(f"加载数据时出错: {e}")
        return None


def prepare_template(template_path):
    """
    以内存流方式加载模板文件。
    """
    try:
        with open(template_path, "rb") as file:
            stream = BytesIO(file.read())
        stream.seek(0)
        return stream
    except FileNotFoundError:
        logging.error(f"模板文件不存在: {template_path}")
        return None
    except OSError as e:
        logging.error(f"加载模板时出错: {e}")
        return None


def get_row_styles(sheet, row_num: int) -> List[dict]:
    """复制模板行每一列的样式"""
    styles = []
    for col_idx in range(1, sheet.max_column + 1):
        tc = sheet.cell(row=row_num, column=col_idx)
        styles.append(
            {
                "font": copy.copy(tc.font),
                "border": copy.copy(tc.border),
                "fill": copy.copy(tc.fill),
                "alignment": copy.copy(tc.alignment),
                "number_format": tc.number_format,
                "protection": copy.copy(tc.protection),
            }
        )
    return styles


def apply_row_styles(sheet, row_num: int, styles: List[dict]) -> None:
    for col_idx_m1, style_to_apply in enumerate(styles):
        cell = sheet.cell(row=row_num, column=col_idx_m1 + 1)
        cell.font = copy.copy(style_to_apply["font"])
        cell.border = copy.copy(style_to_apply["border"])
        cell.fill = copy.copy(style_to_apply["fill"])
        cell.alignment = copy.copy(style_to_apply["alignment"])
        cell.number_format = style_to_apply["number_format"]
        cell.protection = copy.copy(style_to_apply["protection"])


def _clean_value(value):
    # 确保值不是NaN，并对字符串进行strip操作
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, str):
        return value.strip()
    return value


def fill_rows(
    sheet,
    data: pd.DataFrame,
    column_mapping: Dict[int, str],
    start_row: int,
    row_styles: Optional[List[dict]] = None,
    wrap_columns: Iterable[int] = (),
) -> List[int]:
    """
    把DataFrame逐行写入工作表。

    Args:
        sheet: openpyxl工作表
        data: 数据
        column_mapping: 目标列号(从1开始) -> 数据列名
        start_row: 第一条数据写入的行号(从1开始)
        row_styles: 每行套用的模板样式
        wrap_columns: 需要开启自动换行的列号

    Returns:
        List[int]: 写入的行号
    """
    wrap_columns = set(wrap_columns)
    written = []
    current_row = start_row
    for _, row_data in data.iterrows():
        if row_styles:
            apply_row_styles(sheet, current_row, row_styles)

        for dest_col, src_col in column_mapping.items():
            cell = sheet.cell(row=current_row, column=dest_col, value=_clean_value(row_data.get(src_col, "")))
            if dest_col in wrap_columns:
                alignment = copy.copy(cell.alignment)
                alignment.wrap_text = True
                cell.alignment = alignment

        written.append(current_row)
        current_row += 1
    return written


def _save_workbook(workbook, save_path: str) -> None:
    os.makedirs(os.path.dirname(os.path.abspath(save_path)), exist_ok=True)
    try:
        workbook.save(save_path)
    except PermissionError as e:
        logging.warning(f"权限错误: 无法保存 {save_path}。请确保文件未被打开。")
        raise RuntimeError(f"保存文件失败: {save_path}") from e
    except OSError as e:
        logging.error(f"保存文件时出错 {save_path}: {e}")
        raise RuntimeError(f"保存文件失败: {save_path}") from e


# --- 主要逻辑 ---


def generate_report(
    data: pd.DataFrame,
    template_stream,
    output_path: str,
    column_mapping: Dict[int, str],
    title_row_num: int = 1,
    wrap_columns: Iterable[int] = (),
    proportional: bool = True,
    settings: Optional[HeightSettings] = None,
) -> int:
    """
    用模板生成报表：标题行之后逐行填充数据，并按内容自适应行高。

    Returns:
        int: 写入的数据行数
    """
    if not template_stream:
        raise ValueError("模板流无效，无法生成报表。")

    template_stream.seek(0)  # 每次使用时重置流指针
    workbook = openpyxl.load_workbook(template_stream)
    try:
        sheet = workbook.worksheets[0]

        # 标题行之后的第一行作为数据行样式模板
        row_styles = get_row_styles(sheet, title_row_num + 1)
        written = fill_rows(
            sheet, data, column_mapping, title_row_num + 1,
            row_styles=row_styles, wrap_columns=wrap_columns,
        )

        fitter = RowHeightFitter(OpenpyxlSheet(sheet), settings)
        fitter.stretch_rows([r - 1 for r in written], proportional)

        _save_workbook(workbook, output_path)
        logging.info(f"报表已保存: {os.path.basename(output_path)}, 共 {len(written)} 行数据")
        return len(written)
    finally:
        workbook.close()


def autofit_workbook(
    input_path: str,
    output_path: Optional[str] = None,
    sheet_name: Optional[str] = None,
    first_row: Optional[int] = None,
    last_row: Optional[int] = None,
    proportional: bool = True,
    settings: Optional[HeightSettings] = None,
) -> int:
    """
    对已有工作簿按内容拉伸行高。

    Args:
        input_path: 输入xlsx
        output_path: 输出路径；None 时覆盖输入文件
        sheet_name: 工作表名；None 时使用活动工作表
        first_row / last_row: Excel行号范围(从1开始，含两端)；None 表示不限
        proportional: 合并区域是否按比例拉伸

    Returns:
        int: 处理的行数
    """
    if not os.path.exists(input_path):
        raise FileNotFoundError(f"文件路径不存在: {input_path}")

    workbook = openpyxl.load_workbook(input_path)
    # 公式单元格显示的是缓存结果
    values_workbook = openpyxl.load_workbook(input_path, data_only=True)
    try:
        if sheet_name is not None and sheet_name not in workbook.sheetnames:
            raise ValueError(f"工作表不存在: {sheet_name}")
        sheet = workbook[sheet_name] if sheet_name else workbook.active
        value_sheet = values_workbook[sheet.title]

        adapter = OpenpyxlSheet(sheet, value_sheet)
        row_indices = [
            r for r in adapter.row_indices()
            if (first_row is None or r + 1 >= first_row) and (last_row is None or r + 1 <= last_row)
        ]
        fitter = RowHeightFitter(adapter, settings)
        count = fitter.stretch_rows(row_indices, proportional)

        save_path = output_path or input_path
        _save_workbook(workbook, save_path)
        logging.info(f"行高自适应完成: {sheet.title}, 处理 {count} 行, 已保存 {os.path.basename(save_path)}")
        return count
    finally:
        workbook.close()
        values_workbook.close()
