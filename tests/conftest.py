"""
测试配置和公共工具模块
为所有测试提供统一的配置、工具函数和基础类
"""

import os
import sys
import tempfile
import shutil
import pytest
import logging
from pathlib import Path
from typing import Dict
import pandas as pd

# 添加项目根目录到Python路径
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# 测试配置
TEST_CONFIG = {
    'temp_dir_prefix': 'rowfit_test_',
    'log_level': logging.WARNING,  # 测试时减少日志噪音
}

# 默认字体 Calibri 11：单行高度 = 11 × 1.4 + 11 × 0.2
ONE_LINE_HEIGHT = 11 * 1.4 + 11 * 0.2


class TestEnvironment:
    """测试环境管理器"""

    def __init__(self):
        self.temp_dir = None
        self.temp_files = []
        self.original_log_level = None

    def setup(self):
        """设置测试环境"""
        self.temp_dir = tempfile.mkdtemp(prefix=TEST_CONFIG['temp_dir_prefix'])

        self.original_log_level = logging.getLogger().level
        logging.getLogger().setLevel(TEST_CONFIG['log_level'])

        return self

    def cleanup(self):
        """清理测试环境"""
        if self.temp_dir and os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir, ignore_errors=True)

        if self.original_log_level is not None:
            logging.getLogger().setLevel(self.original_log_level)

    def path(self, filename: str) -> str:
        return os.path.join(self.temp_dir, filename)

    def create_temp_file(self, content: str = '', suffix: str = '.txt') -> str:
        """创建临时文件"""
        fd, path = tempfile.mkstemp(suffix=suffix, dir=self.temp_dir)
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(content)
        self.temp_files.append(path)
        return path

    def create_test_excel(self, data: Dict[str, list], filename: str = 'test.xlsx') -> str:
        """创建测试用的Excel文件"""
        filepath = self.path(filename)
        pd.DataFrame(data).to_excel(filepath, index=False)
        self.temp_files.append(filepath)
        return filepath


def long_text(words: int, word: str = "word") -> str:
    """由若干个单词组成、以空格分隔的文本"""
    return " ".join([word] * words)


def create_mock_report_data(num_records: int = 6) -> pd.DataFrame:
    """创建模拟报表数据，偶数行备注较长"""
    return pd.DataFrame({
        '编号': [f'R-{i:04d}' for i in range(1, num_records + 1)],
        '名称': [f'item {i}' for i in range(1, num_records + 1)],
        '备注': [long_text(30, 'note') if i % 2 == 0 else 'ok' for i in range(1, num_records + 1)],
    })


def create_mock_template() -> bytes:
    """创建模拟Excel模板：第1行标题，第2行数据样式"""
    import io
    import openpyxl
    from openpyxl.styles import Font, Border, Side

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "报表模板"

    thin = Side(style='thin')
    headers = ['编号', '名称', '备注']
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=1, column=col)
        cell.value = header
        cell.font = Font(name='Calibri', size=11, bold=True)
        cell.border = Border(left=thin, right=thin, top=thin, bottom=thin)

    for col in range(1, len(headers) + 1):
        cell = ws.cell(row=2, column=col)
        cell.font = Font(name='Calibri', size=11)
        cell.border = Border(left=thin, right=thin, top=thin, bottom=thin)

    ws.column_dimensions['A'].width = 12
    ws.column_dimensions['B'].width = 20
    ws.column_dimensions['C'].width = 10

    stream = io.BytesIO()
    wb.save(stream)
    stream.seek(0)
    return stream.getvalue()


def make_worksheet(column_widths: Dict[str, float] = None):
    """新建工作簿并设置列宽，返回 (workbook, worksheet)"""
    import openpyxl

    wb = openpyxl.Workbook()
    ws = wb.active
    for letter, width in (column_widths or {'A': 10, 'B': 10, 'C': 10}).items():
        ws.column_dimensions[letter].width = width
    return wb, ws


def set_text(ws, address: str, text: str, wrap: bool = True, **font_kwargs):
    """写入文本并设置换行与字体"""
    from openpyxl.styles import Alignment, Font

    cell = ws[address]
    cell.value = text
    cell.alignment = Alignment(wrap_text=wrap)
    if font_kwargs:
        cell.font = Font(name='Calibri', size=font_kwargs.pop('size', 11), **font_kwargs)
    return cell


@pytest.fixture
def test_env():
    """测试环境fixture"""
    env = TestEnvironment()
    env.setup()
    try:
        yield env
    finally:
        env.cleanup()


@pytest.fixture
def mock_report_data():
    """模拟报表数据fixture"""
    return create_mock_report_data()


@pytest.fixture
def mock_template_bytes():
    """模拟模板字节数据fixture"""
    return create_mock_template()


@pytest.fixture
def worksheet():
    """A/B/C 三列各宽10字符的空工作表"""
    wb, ws = make_worksheet()
    yield ws
    wb.close()
