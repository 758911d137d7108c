# -*- coding: utf-8 -*-
"""
ServerQuery 客户端测试

在随机端口上启动假的 ServerQuery 服务，客户端直接连接该服务
"""

import socket

import pytest

from conftest import parse_params
from serverquery import QueryClient, QueryConnectionError, QueryError


def _free_port() -> int:
    sock = socket.socket()
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def _client(fake_serverquery, password='secret'):
    return QueryClient(host='127.0.0.1', port=fake_serverquery.port,
                       username='serveradmin', password=password, timeout=5)


def _logins(fake_serverquery):
    return [c for c in fake_serverquery.commands if c.startswith('login')]


def test_execute_logs_in_and_returns_records(fake_serverquery):
    client = _client(fake_serverquery)
    try:
        records = client.execute('serverlist')
    finally:
        client.close()

    assert [r['virtualserver_name'] for r in records] == ['ts3-main', 'Second Server']
    assert [r['virtualserver_status'] for r in records] == ['online', 'offline']

    login = fake_serverquery.commands[0]
    assert login.startswith('login ')
    assert parse_params(login.partition(' ')[2]) == {
        'client_login_name': 'serveradmin',
        'client_login_password': 'secret',
    }
    assert fake_serverquery.commands[1] == 'serverlist'


def test_no_login_without_password(fake_serverquery):
    client = _client(fake_serverquery, password='')
    try:
        client.execute('serverlist')
    finally:
        client.close()

    assert _logins(fake_serverquery) == []


def test_error_status_raises_query_error(fake_serverquery):
    client = _client(fake_serverquery)
    try:
        with pytest.raises(QueryError) as excinfo:
            client.execute('serverinfo')
        # 命令出错后连接仍可继续使用
        assert len(client.execute('serverlist')) == 2
    finally:
        client.close()

    assert excinfo.value.error_id == 1024
    assert excinfo.value.message == 'invalid serverID'
    assert len(_logins(fake_serverquery)) == 1


def test_use_stopped_server_raises_1033(fake_serverquery):
    client = _client(fake_serverquery)
    try:
        client.execute('use', sid=1)
        with pytest.raises(QueryError) as excinfo:
            client.execute('use', sid=2)
    finally:
        client.close()

    assert excinfo.value.error_id == 1033


def test_wrong_password_raises_query_error(fake_serverquery):
    client = _client(fake_serverquery, password='wrong')
    with pytest.raises(QueryError) as excinfo:
        client.execute('serverlist')
    assert excinfo.value.error_id == 520
    client.close()


def test_connection_refused_raises_connection_error():
    client = QueryClient(host='127.0.0.1', port=_free_port(), timeout=2)
    with pytest.raises(QueryConnectionError):
        client.execute('serverlist')


def test_new_connection_closed_by_server_is_not_retried(fake_serverquery):
    fake_serverquery.close_immediately = True
    client = _client(fake_serverquery)

    with pytest.raises(QueryConnectionError):
        client.execute('serverlist')
    assert fake_serverquery.commands == []


def test_reconnects_when_idle_session_was_kicked(fake_serverquery):
    client = _client(fake_serverquery)
    try:
        assert len(client.execute('serverlist')) == 2
        fake_serverquery.kick_all()
        records = client.execute('serverlist')
    finally:
        client.close()

    assert len(records) == 2
    assert len(_logins(fake_serverquery)) == 2


def test_recovers_after_server_becomes_reachable(fake_serverquery):
    client = _client(fake_serverquery)
    fake_serverquery.close_immediately = True
    with pytest.raises(QueryConnectionError):
        client.execute('serverlist')

    fake_serverquery.close_immediately = False
    try:
        assert len(client.execute('serverlist')) == 2
    finally:
        client.close()


def test_address_property():
    client = QueryClient(host='ts.example.com', port=10022)
    assert client.address == 'ts.example.com:10022'
