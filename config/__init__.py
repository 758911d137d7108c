# -*- coding: utf-8 -*-
"""
配置模块

功能：
- 加载 YAML 配置并应用环境变量覆盖
- 验证配置
"""

from .loader import ExporterConfig, ListenConfig, ServerQueryConfig, load_exporter_config
from .validator import validate_config
