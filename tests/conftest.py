# -*- coding: utf-8 -*-
"""
测试公共组件：假的 Executor 和假的 ServerQuery TCP 服务
"""

import socket
import socketserver
import threading
import time

import pytest
from ts3.escape import escape, unescape

from serverquery import Executor, QueryError

# serverlist 只返回的字段（其余统计需要 use + serverinfo）
SERVERLIST_FIELDS = [
    'virtualserver_id',
    'virtualserver_port',
    'virtualserver_status',
    'virtualserver_clientsonline',
    'virtualserver_queryclientsonline',
    'virtualserver_maxclients',
    'virtualserver_uptime',
    'virtualserver_name',
]


def server_record(sid: int, name: str, status: str = 'online', **fields) -> dict:
    """构造一条 serverinfo 记录（只填写关心的字段）"""
    record = {
        'virtualserver_id': str(sid),
        'virtualserver_name': name,
        'virtualserver_status': status,
        'virtualserver_port': str(9986 + sid),
    }
    for key, value in fields.items():
        record[key] = str(value)
    return record


def serverlist_entry(record: dict) -> dict:
    """从 serverinfo 记录中截取 serverlist 会返回的字段"""
    return {key: record[key] for key in SERVERLIST_FIELDS if key in record}


class FakeExecutor(Executor):
    """
    按虚拟服务器返回固定 serverinfo 的 Executor

    - error 不为 None 时，所有命令都抛出该异常
    - delay 大于 0 时，每条命令执行前等待（用于并发测试）
    - use 未运行的虚拟服务器时返回 error 1033，与真实服务端一致
    """

    def __init__(self, servers=None, error=None, delay=0.0):
        self.servers = servers or []
        self.error = error
        self.delay = delay
        self.commands = []
        self._current = None

    def execute(self, command, **params):
        self.commands.append(' '.join([command] + [f"{k}={v}" for k, v in params.items()]))
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error

        if command == 'serverlist':
            return [serverlist_entry(s) for s in self.servers]
        if command == 'use':
            sid = str(params['sid'])
            matches = [s for s in self.servers if s['virtualserver_id'] == sid]
            if matches and matches[0]['virtualserver_status'] != 'online':
                raise QueryError(1033, 'server is not running')
            self._current = sid
            return []
        if command == 'serverinfo':
            return [s for s in self.servers if s['virtualserver_id'] == self._current]
        raise AssertionError(f"unexpected command: {command}")


@pytest.fixture
def fake_executor():
    return FakeExecutor(servers=[
        server_record(1, 'ts3-main', virtualserver_clientsonline=12, virtualserver_maxclients=32,
                      virtualserver_uptime=86400),
        server_record(2, 'ts3 backup', status='offline'),
    ])


class _FakeServerQueryHandler(socketserver.StreamRequestHandler):
    """模拟 TS3 ServerQuery：支持 login / serverlist / use / serverinfo / quit"""

    def handle(self):
        fake = self.server
        if fake.close_immediately:
            return
        fake.sessions.append(self.request)
        self._send('TS3')
        self._send('Welcome to the TeamSpeak 3 ServerQuery interface.')

        current_sid = None
        while True:
            try:
                raw = self.rfile.readline()
            except OSError:
                break
            if not raw:
                break
            command = raw.decode('utf-8').strip()
            if not command:
                continue
            fake.commands.append(command)
            name, _, args = command.partition(' ')
            params = parse_params(args)

            if name == 'quit':
                self._ok()
                break
            elif name == 'login':
                if params.get('client_login_password') == fake.password:
                    self._ok()
                else:
                    self._error(520, 'invalid loginname or password')
            elif name == 'serverlist':
                self._send('|'.join(_format(serverlist_entry(s)) for s in fake.servers))
                self._ok()
            elif name == 'use':
                matches = [s for s in fake.servers if s['virtualserver_id'] == params.get('sid')]
                if not matches:
                    self._error(1024, 'invalid serverID')
                elif matches[0]['virtualserver_status'] != 'online':
                    self._error(1033, 'server is not running')
                else:
                    current_sid = params.get('sid')
                    self._ok()
            elif name == 'serverinfo':
                matches = [s for s in fake.servers if s['virtualserver_id'] == current_sid]
                if not matches:
                    self._error(1024, 'invalid serverID')
                else:
                    self._send(_format(matches[0]))
                    self._ok()
            else:
                self._error(256, 'command not found')

    def _send(self, line):
        self.wfile.write(line.encode('utf-8') + b'\n\r')

    def _ok(self):
        self._send('error id=0 msg=ok')

    def _error(self, error_id, msg):
        self._send(f"error id={error_id} msg={escape(msg)}")


def parse_params(args):
    """解析命令参数（key=value，值按 ServerQuery 规则反转义）"""
    params = {}
    for item in args.split():
        key, _, value = item.partition('=')
        params[key] = unescape(value)
    return params


def _format(record):
    return ' '.join(f"{key}={escape(value)}" for key, value in record.items())


class FakeServerQuery(socketserver.ThreadingTCPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, servers, password='secret'):
        super().__init__(('127.0.0.1', 0), _FakeServerQueryHandler)
        self.servers = servers
        self.password = password
        self.close_immediately = False
        self.commands = []
        self.sessions = []

    @property
    def port(self):
        return self.server_address[1]

    def kick_all(self):
        """关闭所有已建立的会话（模拟服务端踢出空闲的 query 客户端）"""
        for sock in self.sessions:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        self.sessions = []


@pytest.fixture
def fake_serverquery():
    server = FakeServerQuery(servers=[
        server_record(1, 'ts3-main', virtualserver_clientsonline=12, virtualserver_maxclients=32,
                      virtualserver_uptime=86400, virtualserver_total_ping=23.5),
        server_record(2, 'Second Server', status='offline', virtualserver_maxclients=16),
    ])
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
