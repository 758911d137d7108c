# -*- coding: utf-8 -*-
"""
Prometheus Collector 模块

功能：
- 实现 Prometheus 自定义 Collector（describe / collect）
- 将 ServerQuery 数据映射为指标
- 暴露 Exporter 自身的刷新失败计数
"""

from .exporter_metrics import ExporterMetrics
from .naming import fqdn, NAMESPACE
from .serverinfo import ServerInfoCollector, ServerInfoMetric, online, server_info_metrics
