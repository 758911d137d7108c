# -*- coding: utf-8 -*-
"""
指标命名模块
"""

NAMESPACE = 'ts3'


def fqdn(subsystem: str, name: str) -> str:
    """
    生成指标全名：<namespace>_<subsystem>_<name>

    Args:
        subsystem: 子系统，如 "serverinfo"
        name: 指标名称，如 "clients_online"

    Returns:
        指标全名，如 "ts3_serverinfo_clients_online"
    """
    return f"{NAMESPACE}_{subsystem}_{name}"
