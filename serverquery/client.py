# -*- coding: utf-8 -*-
"""
ServerQuery 客户端模块

功能：
- 定义 Executor 接口（采集逻辑只依赖接口）
- 基于 py-ts3 的 QueryClient 实现：连接、登录、执行命令
- 统一的异常类型
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ts3.common import TS3Error
from ts3.query import TS3QueryError, TS3ServerConnection, TS3TimeoutError

logger = logging.getLogger(__name__)


class ServerQueryError(Exception):
    """ServerQuery 相关错误的基类"""


class QueryConnectionError(ServerQueryError):
    """连接失败、连接中断或超时"""


class QueryError(ServerQueryError):
    """服务端返回非 0 的 error id"""

    def __init__(self, error_id: int, message: str):
        super().__init__(f"error id={error_id} msg={message}")
        self.error_id = error_id
        self.message = message


class Executor(ABC):
    """
    命令执行接口

    功能：
    - 执行一条 ServerQuery 命令并返回解析后的记录
    - 失败时抛出 ServerQueryError
    """

    @abstractmethod
    def execute(self, command: str, **params) -> List[Dict[str, str]]:
        """
        执行命令

        Args:
            command: 命令名，如 "serverinfo"
            **params: 命令参数，如 sid=1

        Returns:
            记录列表
        """
        pass


class QueryClient(Executor):
    """
    TS3 ServerQuery 客户端（基于 py-ts3）

    功能：
    - 首次执行命令时建立连接并登录
    - 复用的连接失效时（如被服务端空闲踢出）重新连接并重发一次
    - 所有命令串行执行（线程安全）
    """

    def __init__(self, host: str = 'localhost', port: int = 10011,
                 username: str = 'serveradmin', password: str = '',
                 timeout: float = 10.0):
        """
        初始化 ServerQuery 客户端

        Args:
            host: ServerQuery 主机
            port: ServerQuery 端口（默认 10011）
            username: 登录用户名
            password: 登录密码（为空则不登录）
            timeout: 连接超时时间（秒）
        """
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout = timeout

        self._conn: Optional[TS3ServerConnection] = None
        self._lock = threading.RLock()

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def execute(self, command: str, **params) -> List[Dict[str, str]]:
        with self._lock:
            reused = self._conn is not None
            if not reused:
                self._connect()
            try:
                return self._execute(command, **params)
            except QueryConnectionError as e:
                if not reused:
                    raise
                logger.warning(f"ServerQuery 连接已失效，重新连接后重试: {e}")

            self._connect()
            return self._execute(command, **params)

    def close(self):
        """关闭连接（py-ts3 会尽量发送 quit）"""
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except (TS3Error, OSError, EOFError) as e:
                logger.debug(f"关闭 ServerQuery 连接失败: {e}")
            self._conn = None

    def _connect(self):
        logger.info(f"连接 ServerQuery: {self.address}")
        conn = TS3ServerConnection()
        try:
            conn.open(self.host, self.port, timeout=self.timeout)
        except (TS3Error, OSError, EOFError) as e:
            raise QueryConnectionError(f"无法连接 ServerQuery {self.address}: {e}") from e
        self._conn = conn

        if self.password:
            try:
                self._execute(
                    'login',
                    client_login_name=self.username,
                    client_login_password=self.password
                )
            except QueryError:
                self._disconnect()
                raise
            logger.info(f"ServerQuery 登录成功: user={self.username}")

    def _execute(self, command: str, **params) -> List[Dict[str, str]]:
        logger.debug(f"执行命令: {command}")
        try:
            resp = self._conn.exec_(command, **params)
        except TS3QueryError as e:
            error = e.resp.error
            raise QueryError(_error_id(error), error.get('msg', '')) from e
        except TS3TimeoutError as e:
            self._disconnect()
            raise QueryConnectionError(f"ServerQuery 响应超时 {self.address}: {command}") from e
        except (TS3Error, OSError, EOFError) as e:
            self._disconnect()
            raise QueryConnectionError(f"ServerQuery 通信失败 {self.address}: {e}") from e
        return resp.parsed

    def _disconnect(self):
        if self._conn is None:
            return
        try:
            self._conn.close()
        except (TS3Error, OSError, EOFError):
            pass
        self._conn = None


def _error_id(error: Dict[str, str]) -> int:
    try:
        return int(error.get('id', '-1'))
    except ValueError:
        return -1
