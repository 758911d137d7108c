# -*- coding: utf-8 -*-
"""
Exporter 自身指标模块

功能：
- 按 collector 统计数据模型刷新失败次数
- 以自定义 Collector 的方式注册到 CollectorRegistry
"""

from prometheus_client import Counter

from collector.naming import fqdn

EXPORTER_SUBSYSTEM = 'exporter'


class ExporterMetrics:
    """
    Exporter 内部指标

    计数器本身线程安全，可在并发抓取时使用
    """

    def __init__(self):
        # 不注册到默认 registry，由 ExporterMetrics 自己作为 collector 注册
        self.refresh_errors = Counter(
            fqdn(EXPORTER_SUBSYSTEM, 'data_model_refresh_errors_total'),
            'Errors encountered while updating the internal server model',
            ['collector'],
            registry=None
        )

    def init(self, collector: str):
        """
        初始化指定 collector 的序列，保证从未出错时也输出 0

        Args:
            collector: collector 名称，如 "serverinfo"
        """
        self.refresh_errors.labels(collector=collector)

    def record_refresh_error(self, collector: str):
        """指定 collector 的刷新失败次数 +1"""
        self.refresh_errors.labels(collector=collector).inc()

    def describe(self):
        return self.refresh_errors.describe()

    def collect(self):
        return self.refresh_errors.collect()
