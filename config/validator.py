# -*- coding: utf-8 -*-
"""
配置验证模块

功能：
- 验证配置的完整性和正确性
- 验证字段格式和取值范围
"""

from typing import Tuple

from config.loader import ExporterConfig

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def validate_config(config: ExporterConfig) -> Tuple[bool, str]:
    """
    验证配置对象

    Args:
        config: ExporterConfig 对象

    Returns:
        (is_valid, error_message) 元组，验证通过时 error_message 为空字符串
    """
    sq = config.serverquery

    if not sq.host.strip():
        return False, "serverquery.host 不能为空"

    if not 1 <= sq.port <= 65535:
        return False, f"serverquery.port 超出范围 (1-65535): {sq.port}"

    if sq.password and not sq.username.strip():
        return False, "设置了 serverquery.password 时 serverquery.username 不能为空"

    if sq.timeout <= 0:
        return False, f"serverquery.timeout 必须是正数: {sq.timeout}"

    if not 1 <= config.listen.port <= 65535:
        return False, f"listen.port 超出范围 (1-65535): {config.listen.port}"

    if config.log_level not in VALID_LOG_LEVELS:
        return False, f"log_level 必须是以下值之一: {', '.join(VALID_LOG_LEVELS)}"

    return True, ""
