# -*- coding: utf-8 -*-
"""
虚拟服务器视图模块

功能：
- 定义虚拟服务器快照数据结构（VirtualServer）
- 通过 Executor 刷新所有虚拟服务器的统计信息
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

from serverquery.client import Executor, ServerQueryError

logger = logging.getLogger(__name__)


@dataclass
class VirtualServer:
    """单个虚拟服务器的统计快照"""
    id: int
    name: str
    status: str
    port: int = 0

    clients_online: int = 0
    query_clients_online: int = 0
    max_clients: int = 0
    uptime: int = 0                          # 秒
    channels_online: int = 0
    max_download_total_bandwidth: int = 0    # 字节/秒
    max_upload_total_bandwidth: int = 0      # 字节/秒
    client_connections: int = 0
    query_client_connections: int = 0

    file_transfer_bytes_sent_total: int = 0
    file_transfer_bytes_received_total: int = 0
    control_bytes_sent_total: int = 0
    control_bytes_received_total: int = 0
    speech_bytes_sent_total: int = 0
    speech_bytes_received_total: int = 0
    keepalive_bytes_sent_total: int = 0
    keepalive_bytes_received_total: int = 0
    bytes_sent_total: int = 0
    bytes_received_total: int = 0

    control_packet_loss: float = 0.0
    speech_packet_loss: float = 0.0
    keepalive_packet_loss: float = 0.0
    total_packet_loss: float = 0.0
    ping: float = 0.0                        # 毫秒

    @classmethod
    def from_record(cls, record: Dict[str, str]) -> 'VirtualServer':
        """
        从 serverinfo（或 serverlist）响应记录构造快照

        Args:
            record: serverinfo / serverlist 返回的 {key: value} 字典

        Returns:
            VirtualServer 对象

        Raises:
            ServerQueryError: 数值字段无法解析
        """
        kwargs = {
            'id': _parse(record, 'virtualserver_id', int),
            'name': record.get('virtualserver_name', ''),
            'status': record.get('virtualserver_status', ''),
            'port': _parse(record, 'virtualserver_port', int),
        }
        for attr, (key, convert) in _FIELDS.items():
            kwargs[attr] = _parse(record, key, convert)
        return cls(**kwargs)


# 快照字段 -> (serverinfo 字段, 类型)
_FIELDS = {
    'clients_online': ('virtualserver_clientsonline', int),
    'query_clients_online': ('virtualserver_queryclientsonline', int),
    'max_clients': ('virtualserver_maxclients', int),
    'uptime': ('virtualserver_uptime', int),
    'channels_online': ('virtualserver_channelsonline', int),
    'max_download_total_bandwidth': ('virtualserver_max_download_total_bandwidth', int),
    'max_upload_total_bandwidth': ('virtualserver_max_upload_total_bandwidth', int),
    'client_connections': ('virtualserver_client_connections', int),
    'query_client_connections': ('virtualserver_query_client_connections', int),
    'file_transfer_bytes_sent_total': ('connection_filetransfer_bytes_sent_total', int),
    'file_transfer_bytes_received_total': ('connection_filetransfer_bytes_received_total', int),
    'control_bytes_sent_total': ('connection_bytes_sent_control', int),
    'control_bytes_received_total': ('connection_bytes_received_control', int),
    'speech_bytes_sent_total': ('connection_bytes_sent_speech', int),
    'speech_bytes_received_total': ('connection_bytes_received_speech', int),
    'keepalive_bytes_sent_total': ('connection_bytes_sent_keepalive', int),
    'keepalive_bytes_received_total': ('connection_bytes_received_keepalive', int),
    'bytes_sent_total': ('connection_bytes_sent_total', int),
    'bytes_received_total': ('connection_bytes_received_total', int),
    'control_packet_loss': ('virtualserver_total_packetloss_control', float),
    'speech_packet_loss': ('virtualserver_total_packetloss_speech', float),
    'keepalive_packet_loss': ('virtualserver_total_packetloss_keepalive', float),
    'total_packet_loss': ('virtualserver_total_packetloss_total', float),
    'ping': ('virtualserver_total_ping', float),
}


def _parse(record: Dict[str, str], key: str, convert: Callable):
    value = record.get(key, '')
    if value is None or value == '':
        return convert(0)
    try:
        return convert(value)
    except ValueError as e:
        raise ServerQueryError(f"字段 {key} 的值无效: {value!r}") from e


class VirtualServerView:
    """
    虚拟服务器视图

    功能：
    - refresh(): 通过 serverlist / use / serverinfo 拉取所有虚拟服务器
    - all(): 返回最近一次成功刷新的快照列表
    """

    def __init__(self, executor: Executor):
        self.executor = executor
        self._servers: List[VirtualServer] = []

    def refresh(self):
        """
        刷新所有虚拟服务器的统计信息

        在线的虚拟服务器通过 use / serverinfo 获取完整统计；
        未运行的虚拟服务器无法 use（error 1033），直接使用 serverlist 中的记录。
        任一步骤失败则抛出 ServerQueryError，已有的快照保持不变

        Raises:
            ServerQueryError: 查询失败或响应格式错误
        """
        servers = []
        for entry in self.executor.execute('serverlist'):
            sid = _parse(entry, 'virtualserver_id', int)
            if entry.get('virtualserver_status') != 'online':
                servers.append(VirtualServer.from_record(entry))
                continue

            self.executor.execute('use', sid=sid)

            records = self.executor.execute('serverinfo')
            if not records:
                raise ServerQueryError(f"虚拟服务器 {sid} 的 serverinfo 响应为空")

            record = dict(records[0])
            # serverinfo 不一定返回 id，以 serverlist 为准
            record.setdefault('virtualserver_id', str(sid))
            servers.append(VirtualServer.from_record(record))

        self._servers = servers
        logger.debug(f"虚拟服务器刷新完成: {len(servers)} 个")

    def all(self) -> List[VirtualServer]:
        return list(self._servers)
