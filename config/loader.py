# -*- coding: utf-8 -*-
"""
Exporter 配置加载模块

功能：
- 从 YAML 文件加载配置
- 定义清晰的数据结构（ExporterConfig / ServerQueryConfig / ListenConfig）
- 支持环境变量覆盖（密码等敏感信息优先从环境变量读取）
- 读取失败时给出明确错误
"""

import yaml
import os
from typing import Optional
from dataclasses import dataclass, field


DEFAULT_CONFIG_PATH = 'config/exporter.yaml'


@dataclass
class ServerQueryConfig:
    """ServerQuery 连接配置"""
    host: str = 'localhost'
    port: int = 10011
    username: str = 'serveradmin'
    password: str = ''
    timeout: float = 10.0           # socket 超时（秒）


@dataclass
class ListenConfig:
    """HTTP 监听配置"""
    host: str = '0.0.0.0'
    port: int = 9189


@dataclass
class ExporterConfig:
    """配置的根数据结构"""
    serverquery: ServerQueryConfig = field(default_factory=ServerQueryConfig)
    listen: ListenConfig = field(default_factory=ListenConfig)
    log_level: str = 'INFO'


def load_exporter_config(config_path: Optional[str] = None, required: bool = False) -> ExporterConfig:
    """
    加载 Exporter 配置

    文件不存在且 required=False 时使用默认值，最后应用环境变量覆盖

    Args:
        config_path: 配置文件路径（默认 config/exporter.yaml）
        required: 文件是否必须存在

    Returns:
        ExporterConfig 对象

    Raises:
        FileNotFoundError: 文件不存在（required=True）或 password_file 不存在
        yaml.YAMLError: YAML 解析错误
        ValueError: 配置格式错误
    """
    config_path = config_path or DEFAULT_CONFIG_PATH

    data = {}
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except IOError as e:
            raise IOError(f"无法读取配置文件 {config_path}: {e}")

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"YAML 解析失败: {e}")

        if not isinstance(data, dict):
            raise ValueError("配置格式错误: 根节点必须是字典类型")
    elif required:
        raise FileNotFoundError(f"配置文件不存在: {config_path}")

    config = ExporterConfig(
        serverquery=_parse_serverquery(data.get('serverquery') or {}),
        listen=_parse_listen(data.get('listen') or {}),
        log_level=str(data.get('log_level', 'INFO')).upper()
    )

    _apply_env_overrides(config)
    return config


def _parse_serverquery(section: dict) -> ServerQueryConfig:
    """
    解析 serverquery 配置段

    Raises:
        ValueError: 字段值无效
        FileNotFoundError: password_file 不存在
    """
    if not isinstance(section, dict):
        raise ValueError("配置格式错误: 'serverquery' 必须是字典类型")

    defaults = ServerQueryConfig()
    password = section.get('password', defaults.password)

    # password_file 优先于明文 password
    password_file = section.get('password_file')
    if password_file:
        password = _read_password_file(password_file)

    try:
        return ServerQueryConfig(
            host=str(section.get('host', defaults.host)),
            port=int(section.get('port', defaults.port)),
            username=str(section.get('username', defaults.username)),
            password=str(password or ''),
            timeout=float(section.get('timeout', defaults.timeout))
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"配置格式错误: 'serverquery': {e}")


def _parse_listen(section: dict) -> ListenConfig:
    if not isinstance(section, dict):
        raise ValueError("配置格式错误: 'listen' 必须是字典类型")

    defaults = ListenConfig()
    try:
        return ListenConfig(
            host=str(section.get('host', defaults.host)),
            port=int(section.get('port', defaults.port))
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"配置格式错误: 'listen': {e}")


def _read_password_file(path: str) -> str:
    if not os.path.exists(path):
        raise FileNotFoundError(f"密码文件不存在: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return f.read().strip()


def _apply_env_overrides(config: ExporterConfig):
    """
    应用环境变量覆盖

    支持的环境变量：
    - SERVERQUERY_HOST / SERVERQUERY_PORT / SERVERQUERY_USER / SERVERQUERY_PASSWORD
    - LISTEN_PORT
    - LOG_LEVEL
    """
    sq = config.serverquery
    sq.host = os.getenv('SERVERQUERY_HOST', sq.host)
    sq.username = os.getenv('SERVERQUERY_USER', sq.username)
    sq.password = os.getenv('SERVERQUERY_PASSWORD', sq.password)

    try:
        sq.port = int(os.getenv('SERVERQUERY_PORT', str(sq.port)))
        config.listen.port = int(os.getenv('LISTEN_PORT', str(config.listen.port)))
    except ValueError as e:
        raise ValueError(f"环境变量端口格式错误: {e}")

    config.log_level = os.getenv('LOG_LEVEL', config.log_level).upper()
