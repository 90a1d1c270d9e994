"""
配置管理器模块
提供行高适配参数与报表生成选项的持久化存储和加载功能
"""

import json
import logging
import os
from typing import Dict, Any, Optional

from height_measure.cell_height import HeightSettings


DEFAULT_CONFIG_FILE = "rowfit_config.json"


class ConfigManager:
    """应用程序配置管理器"""

    def __init__(self, config_file: Optional[str] = None):
        """
        初始化配置管理器

        Args:
            config_file: 配置文件路径，相对路径按当前工作目录解析；
                None 时使用程序目录下的 rowfit_config.json
        """
        if config_file is None:
            config_file = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), DEFAULT_CONFIG_FILE)
        self.config_file = os.path.abspath(config_file)
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """从文件加载配置"""
        if os.path.exists(self.config_file):
            try:
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)

                # 验证配置文件结构
                if self._validate_config_structure(config_data):
                    return config_data
                else:
                    logging.warning(f"配置文件结构无效，使用默认配置: {self.config_file}")
                    return self._get_default_config()

            except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
                logging.error(f"加载配置文件失败: {e}")

        # 返回默认配置
        return self._get_default_config()

    def _validate_config_structure(self, config: Dict[str, Any]) -> bool:
        """
        验证配置文件结构的完整性

        Args:
            config: 要验证的配置字典

        Returns:
            bool: 配置是否有效
        """
        if not isinstance(config, dict):
            return False

        # 定义必需的配置字段和类型
        required_schema = {
            "paths": dict,
            "height": dict,
            "stretch": dict,
            "report": dict,
        }

        for key, expected_type in required_schema.items():
            if key not in config:
                logging.warning(f"缺少必需的配置字段: {key}")
                return False

            if not isinstance(config[key], expected_type):
                logging.warning(
                    f"配置字段类型错误: {key}, 期望 {expected_type.__name__}, 实际 {type(config[key]).__name__}"
                )
                return False

        if not self._validate_paths_config(config["paths"]):
            return False

        if not self._validate_height_config(config["height"]):
            return False

        if not isinstance(config["stretch"].get("proportional"), bool):
            logging.warning(f"无效的stretch.proportional值: {config['stretch'].get('proportional')}")
            return False

        title_row_num = config["report"].get("title_row_num")
        if isinstance(title_row_num, bool) or not isinstance(title_row_num, int) or title_row_num < 0:
            logging.warning(f"无效的report.title_row_num值: {title_row_num}")
            return False

        return True

    def _validate_paths_config(self, paths: Dict[str, str]) -> bool:
        """验证路径配置"""
        for key in ("template_path", "output_folder"):
            if key not in paths:
                logging.warning(f"缺少路径配置: {key}")
                return False
            if not isinstance(paths[key], str):
                logging.warning(f"路径值类型错误: {key}")
                return False
        return True

    def _validate_height_config(self, height: Dict[str, Any]) -> bool:
        """验证行高参数：必须是正数（膨胀系数可为0）"""
        defaults = HeightSettings().to_dict()
        for key, value in height.items():
            if key not in defaults:
                logging.warning(f"未知的行高参数: {key}")
                return False
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                logging.warning(f"行高参数类型错误: {key}")
                return False
            minimum_ok = value >= 0 if key.endswith("_inflation") else value > 0
            if not minimum_ok:
                logging.warning(f"行高参数超出范围: {key} = {value}")
                return False
        return True

    def _get_default_config(self) -> Dict[str, Any]:
        """获取默认配置"""
        return {
            "paths": {
                "template_path": "",
                "output_folder": ""
            },
            "height": HeightSettings().to_dict(),
            "stretch": {
                "proportional": True
            },
            "report": {
                "title_row_num": 1
            }
        }

    def save_config(self) -> bool:
        """保存配置到文件"""
        try:
            # 确保目录存在
            os.makedirs(os.path.dirname(self.config_file), exist_ok=True)

            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self.config, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            logging.error(f"保存配置文件失败: {e}")
            return False

    def get(self, key: str, default: Any = None) -> Any:
        """获取配置项"""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any) -> None:
        """设置配置项"""
        keys = key.split('.')
        config = self.config

        # 创建嵌套字典结构
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def get_paths(self) -> Dict[str, str]:
        """获取所有路径配置"""
        return self.get("paths", {})

    def set_path(self, path_key: str, path_value: str) -> None:
        """设置路径配置"""
        self.set(f"paths.{path_key}", path_value)

    def get_output_folder(self) -> str:
        """获取报表默认输出目录；空串表示未设置"""
        return self.get("paths.output_folder", "")

    def get_height_settings(self) -> HeightSettings:
        """获取行高估算参数"""
        return HeightSettings.from_dict(self.get("height", {}))

    def set_height_setting(self, name: str, value: float) -> None:
        """设置单个行高参数"""
        if name not in HeightSettings().to_dict():
            raise ValueError(f"未知的行高参数: {name}")
        self.set(f"height.{name}", value)

    def get_proportional(self) -> bool:
        """获取合并区域的拉伸策略"""
        return self.get("stretch.proportional", True)

    def set_proportional(self, proportional: bool) -> None:
        """设置合并区域的拉伸策略"""
        self.set("stretch.proportional", bool(proportional))

    def get_title_row_num(self) -> int:
        """获取报表模板标题行数"""
        return self.get("report.title_row_num", 1)

    def set_title_row_num(self, title_row_num: int) -> None:
        """设置报表模板标题行数"""
        self.set("report.title_row_num", title_row_num)


# 全局配置管理器实例
_config_manager = None


def get_config_manager() -> ConfigManager:
    """获取全局配置管理器实例"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager
