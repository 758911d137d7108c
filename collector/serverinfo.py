# -*- coding: utf-8 -*-
"""
Server Info Collector 模块

功能：
- 声明虚拟服务器级别的指标（声明式指标表）
- 每次抓取时刷新虚拟服务器视图
- 每个虚拟服务器、每个指标输出一个样本
- 刷新失败时记录内部错误计数，不影响其他 collector
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List

from prometheus_client.core import Metric

from collector.exporter_metrics import ExporterMetrics
from collector.naming import fqdn
from serverquery import Executor, ServerQueryError, VirtualServer, VirtualServerView

logger = logging.getLogger(__name__)

SERVER_INFO_SUBSYSTEM = 'serverinfo'
VIRTUAL_SERVER_LABEL = 'virtualserver'

GAUGE = 'gauge'
COUNTER = 'counter'


def online(status: str) -> float:
    """状态为 "online" 时返回 1.0，其他任何值返回 0.0"""
    if status == 'online':
        return 1.0
    return 0.0


@dataclass(frozen=True)
class ServerInfoMetric:
    """单个指标的声明（标签固定为 virtualserver）"""
    name: str
    help: str
    kind: str
    value: Callable[[VirtualServer], float]

    def family(self) -> Metric:
        """
        创建空的指标族

        counter 的族名去掉 _total 后缀，样本名保持声明的全名
        """
        family_name = self.name
        if self.kind == COUNTER and family_name.endswith('_total'):
            family_name = family_name[:-len('_total')]
        return Metric(family_name, self.help, self.kind)


def _field(attr: str) -> Callable[[VirtualServer], float]:
    def extract(vs: VirtualServer) -> float:
        return float(getattr(vs, attr))
    return extract


def _metric(name: str, help_text: str, kind: str, value: Callable[[VirtualServer], float]) -> ServerInfoMetric:
    return ServerInfoMetric(fqdn(SERVER_INFO_SUBSYSTEM, name), help_text, kind, value)


def server_info_metrics() -> List[ServerInfoMetric]:
    """返回所有 server info 指标的声明"""
    return [
        _metric('clients_online', 'number of currently online clients', GAUGE, _field('clients_online')),
        _metric('query_clients_online', 'number of currently online query clients', GAUGE, _field('query_clients_online')),
        _metric('online', 'is the virtual server online', GAUGE, lambda vs: online(vs.status)),
        _metric('max_clients', 'maximal number of allowed clients', GAUGE, _field('max_clients')),
        _metric('uptime', 'uptime of the virtual server', COUNTER, _field('uptime')),
        _metric('channels_online', 'number of online channels', GAUGE, _field('channels_online')),
        _metric('download_bandwidth_bytes_max', 'maximal bandwidth available for downloads', GAUGE,
                _field('max_download_total_bandwidth')),
        _metric('upload_bandwidth_bytes_max', 'maximal bandwidth available for uploads', GAUGE,
                _field('max_upload_total_bandwidth')),
        _metric('client_connections', 'currently established client connections', GAUGE, _field('client_connections')),
        _metric('query_client_connections', 'currently established query client connections', GAUGE,
                _field('query_client_connections')),

        _metric('file_transfer_bytes_sent_total', 'total sent bytes for file transfers', COUNTER,
                _field('file_transfer_bytes_sent_total')),
        _metric('file_transfer_bytes_received_total', 'total received bytes for file transfers', COUNTER,
                _field('file_transfer_bytes_received_total')),
        _metric('control_bytes_sent_total', 'total sent bytes for control traffic', COUNTER,
                _field('control_bytes_sent_total')),
        _metric('control_bytes_received_total', 'total received bytes for control traffic', COUNTER,
                _field('control_bytes_received_total')),
        _metric('speech_bytes_sent_total', 'total sent bytes for speech traffic', COUNTER,
                _field('speech_bytes_sent_total')),
        _metric('speech_bytes_received_total', 'total received bytes for speech traffic', COUNTER,
                _field('speech_bytes_received_total')),
        _metric('keepalive_bytes_sent_total', 'total send bytes for keepalive traffic', COUNTER,
                _field('keepalive_bytes_sent_total')),
        _metric('keepalive_bytes_received_total', 'total received bytes for keepalive traffic', COUNTER,
                _field('keepalive_bytes_received_total')),
        _metric('bytes_send_total', 'total send bytes', COUNTER, _field('bytes_sent_total')),
        _metric('bytes_received_total', 'total received bytes', COUNTER, _field('bytes_received_total')),

        _metric('control_packet_loss', 'packet loss in control traffic', COUNTER, _field('control_packet_loss')),
        _metric('speech_packet_loss', 'packet loss in speech traffic', COUNTER, _field('speech_packet_loss')),
        _metric('keepalive_packet_loss', 'packet loss in keepalive traffic', COUNTER, _field('keepalive_packet_loss')),
        # 沿用 control 丢包率，而不是 virtualserver_total_packetloss_total
        _metric('total_packet_loss', 'packet loss in total traffic', COUNTER, _field('control_packet_loss')),

        _metric('ping', 'average ping of all connected clients', COUNTER, _field('ping')),
    ]


class ServerInfoCollector:
    """
    虚拟服务器信息收集器

    功能：
    - describe(): 预先声明所有指标族
    - collect(): 刷新视图并输出样本
    """

    def __init__(self, executor: Executor, internal_metrics: ExporterMetrics):
        """
        初始化收集器

        Args:
            executor: ServerQuery 命令执行器
            internal_metrics: Exporter 内部指标（记录刷新失败）
        """
        self.executor = executor
        self.internal_metrics = internal_metrics
        self.metrics = server_info_metrics()
        # 同一时刻只允许一个刷新周期（use / serverinfo 不能交错）
        self._lock = threading.Lock()

        self.internal_metrics.init(SERVER_INFO_SUBSYSTEM)

    def describe(self) -> Iterator[Metric]:
        for metric in self.metrics:
            yield metric.family()

    def collect(self) -> Iterator[Metric]:
        servers = self._refresh()
        if servers is None:
            return

        for metric in self.metrics:
            family = metric.family()
            for vs in servers:
                family.add_sample(metric.name, {VIRTUAL_SERVER_LABEL: vs.name}, metric.value(vs))
            yield family

    def _refresh(self):
        """刷新视图，失败时返回 None"""
        with self._lock:
            view = VirtualServerView(self.executor)
            try:
                view.refresh()
            except ServerQueryError as e:
                self.internal_metrics.record_refresh_error(SERVER_INFO_SUBSYSTEM)
                logger.error(f"failed to refresh server info view: {e}")
                return None
            return view.all()
