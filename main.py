import argparse
import logging
import os
import sys
from datetime import datetime

# 添加当前目录到Python路径（支持直接运行）
current_dir = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, current_dir)

from row_fit.config_manager import ConfigManager, get_config_manager
from row_fit.generator import autofit_workbook, generate_report, load_data, prepare_template


def setup_logging(verbose: bool = False, log_dir: str = "logs") -> str:
    """配置日志：文件记录完整日志，控制台输出简要信息"""
    if not os.path.exists(log_dir):
        os.makedirs(log_dir)

    log_filename = os.path.join(log_dir, f"rowfit_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")

    file_handler = logging.FileHandler(log_filename, encoding='utf-8')
    file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s", "%H:%M:%S"))
    file_handler.setLevel(logging.DEBUG)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(message)s",
        datefmt="%H:%M:%S",
        handlers=[console_handler, file_handler],
    )
    return log_filename


def parse_mapping(items):
    """解析 "列号=数据列名" 形式的列映射"""
    mapping = {}
    for item in items or []:
        if "=" not in item:
            raise ValueError(f"列映射格式应为 列号=列名: {item}")
        col, name = item.split("=", 1)
        mapping[int(col)] = name.strip()
    return mapping


def default_output_path(data_path: str, output_folder: str):
    """输出目录下以数据文件名命名的报表路径；未配置目录时返回 None"""
    if not output_folder:
        return None
    stem = os.path.splitext(os.path.basename(data_path))[0]
    return os.path.join(output_folder, f"{stem}_report.xlsx")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="按单元格内容自动调整Excel行高")
    parser.add_argument("--config", help="配置文件路径（JSON）")
    parser.add_argument("-v", "--verbose", action="store_true", help="控制台输出调试日志")

    merge_group = parser.add_mutually_exclusive_group()
    merge_group.add_argument("--proportional", dest="proportional", action="store_true", default=None,
                             help="合并区域按比例拉伸所有行")
    merge_group.add_argument("--absorb", dest="proportional", action="store_false", default=None,
                             help="合并区域差额只加到首行")

    subparsers = parser.add_subparsers(dest="command", required=True)

    autofit = subparsers.add_parser("autofit", help="调整已有工作簿的行高")
    autofit.add_argument("input", help="输入xlsx文件")
    autofit.add_argument("-o", "--output", help="输出文件；默认覆盖输入")
    autofit.add_argument("--sheet", help="工作表名；默认活动工作表")
    autofit.add_argument("--first-row", type=int, help="起始行号（从1开始）")
    autofit.add_argument("--last-row", type=int, help="结束行号（含）")

    generate = subparsers.add_parser("generate", help="用模板和数据生成报表")
    generate.add_argument("data", help="数据xlsx文件")
    generate.add_argument("-t", "--template", help="模板xlsx；默认取配置 paths.template_path")
    generate.add_argument("-o", "--output", help="输出文件；默认写入配置 paths.output_folder")
    generate.add_argument("-m", "--map", action="append", metavar="COL=NAME", help="列映射，可重复")
    generate.add_argument("-w", "--wrap", type=int, action="append", default=[], help="自动换行的列号，可重复")
    generate.add_argument("--title-rows", type=int, help="模板标题行数")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    log_filename = setup_logging(args.verbose)
    logging.debug(f"日志文件: {log_filename}")

    if args.config and not os.path.isfile(args.config):
        logging.error(f"配置文件不存在: {os.path.abspath(args.config)}")
        return 1
    config = ConfigManager(args.config) if args.config else get_config_manager()
    settings = config.get_height_settings()
    proportional = config.get_proportional() if args.proportional is None else args.proportional

    try:
        if args.command == "autofit":
            autofit_workbook(
                args.input,
                args.output,
                sheet_name=args.sheet,
                first_row=args.first_row,
                last_row=args.last_row,
                proportional=proportional,
                settings=settings,
            )
        else:
            data = load_data(args.data)
            if data is None:
                return 1
            template_path = args.template or config.get("paths.template_path")
            template_stream = prepare_template(template_path) if template_path else None
            if template_stream is None:
                logging.error("未指定可用的模板文件")
                return 1
            output_path = args.output or default_output_path(args.data, config.get_output_folder())
            if output_path is None:
                logging.error("未指定输出文件，且配置中没有 paths.output_folder")
                return 1
            mapping = parse_mapping(args.map)
            if not mapping:
                mapping = {i + 1: name for i, name in enumerate(data.columns)}
            title_rows = args.title_rows if args.title_rows is not None else config.get_title_row_num()
            generate_report(
                data,
                template_stream,
                output_path,
                mapping,
                title_row_num=title_rows,
                wrap_columns=args.wrap,
                proportional=proportional,
                settings=settings,
            )
    except (OSError, ValueError, RuntimeError) as e:
        logging.error(f"处理失败: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
