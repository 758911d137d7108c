# -*- coding: utf-8 -*-
"""
TS3 ServerQuery 模块

功能：
- Executor 接口与统一的异常类型
- 基于 py-ts3 的客户端（Executor 实现）
- 虚拟服务器视图
"""

from .client import Executor, QueryClient, QueryConnectionError, QueryError, ServerQueryError
from .virtualserver import VirtualServer, VirtualServerView

__all__ = [
    'Executor',
    'QueryClient',
    'QueryConnectionError',
    'QueryError',
    'ServerQueryError',
    'VirtualServer',
    'VirtualServerView',
]
