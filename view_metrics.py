#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
查看采集到的 TS3 指标

功能：
1. 从 metrics 端点获取所有指标
2. 按虚拟服务器分组统计
3. 显示 Exporter 自身的刷新失败计数
"""

import os
import re
import sys
import urllib.request
from collections import defaultdict
from typing import Dict, Optional

METRICS_URL = os.getenv('EXPORTER_METRICS_URL', 'http://localhost:9189/metrics')

_SAMPLE_RE = re.compile(
    r'^(?P<name>[a-zA-Z_:][a-zA-Z0-9_:]*)'
    r'(\{(?P<labels>(?:[^}"]|"(?:[^"\\]|\\.)*")*)\})?\s+(?P<value>\S+)'
)
_LABEL_RE = re.compile(r'(\w+)="((?:[^"\\]|\\.)*)"')
_LABEL_ESCAPE_RE = re.compile(r'\\(.)')


def _unescape_label_value(value: str) -> str:
    """还原标签值中的转义（\\\\、\\"、\\n）"""
    return _LABEL_ESCAPE_RE.sub(lambda m: '\n' if m.group(1) == 'n' else m.group(1), value)


def fetch_metrics(url: str = METRICS_URL) -> Optional[str]:
    """从 metrics 端点获取指标"""
    try:
        response = urllib.request.urlopen(url, timeout=10)
        return response.read().decode('utf-8')
    except Exception as e:
        print(f"❌ 无法连接到 exporter: {e}")
        print("   请确保 exporter 正在运行: python3 main.py")
        return None


def extract_sample(metric_line: str) -> Optional[dict]:
    """
    解析一行样本

    格式: metric_name{label1="value1",label2="value2"} value

    Returns:
        {'name': ..., 'labels': {...}, 'value': float}，无法解析时返回 None
    """
    match = _SAMPLE_RE.match(metric_line)
    if not match:
        return None

    labels = {}
    if match.group('labels'):
        for key, value in _LABEL_RE.findall(match.group('labels')):
            labels[key] = _unescape_label_value(value)

    try:
        value = float(match.group('value'))
    except ValueError:
        return None

    return {'name': match.group('name'), 'labels': labels, 'value': value}


def parse_metrics(metrics_text: str) -> dict:
    """
    解析 metrics 文本

    Returns:
        {
            'servers': {virtualserver: {metric_short_name: value}},
            'refresh_errors': {collector: value}
        }
    """
    servers: Dict[str, Dict[str, float]] = defaultdict(dict)
    refresh_errors: Dict[str, float] = {}

    for line in metrics_text.split('\n'):
        if line.startswith('#') or not line.strip():
            continue

        sample = extract_sample(line)
        if sample is None:
            continue

        name = sample['name']
        if name.startswith('ts3_serverinfo_') and 'virtualserver' in sample['labels']:
            short_name = name[len('ts3_serverinfo_'):]
            servers[sample['labels']['virtualserver']][short_name] = sample['value']
        elif name == 'ts3_exporter_data_model_refresh_errors_total':
            refresh_errors[sample['labels'].get('collector', '')] = sample['value']

    return {'servers': dict(servers), 'refresh_errors': refresh_errors}


def view_summary():
    """查看汇总信息"""
    print("=" * 60)
    print("TS3 指标汇总")
    print("=" * 60)

    metrics_text = fetch_metrics()
    if not metrics_text:
        return

    metrics = parse_metrics(metrics_text)
    servers = metrics['servers']

    print(f"\n虚拟服务器数: {len(servers)}")
    for name, values in sorted(servers.items()):
        status = '在线' if values.get('online') == 1.0 else '离线'
        print(f"\n  {name} ({status})")
        print(f"    - 客户端: {int(values.get('clients_online', 0))} / {int(values.get('max_clients', 0))}")
        print(f"    - 频道数: {int(values.get('channels_online', 0))}")
        print(f"    - 运行时间: {int(values.get('uptime', 0))} 秒")
        print(f"    - 平均 Ping: {values.get('ping', 0):.2f} ms")

    print(f"\n刷新失败次数:")
    for collector, value in sorted(metrics['refresh_errors'].items()):
        print(f"  - {collector}: {int(value)}")


def view_server(server_name: str):
    """查看某个虚拟服务器的全部指标"""
    print("=" * 60)
    print(f"虚拟服务器 {server_name} 的指标")
    print("=" * 60)

    metrics_text = fetch_metrics()
    if not metrics_text:
        return

    values = parse_metrics(metrics_text)['servers'].get(server_name)
    if not values:
        print(f"\n未找到虚拟服务器: {server_name}")
        return

    for short_name, value in sorted(values.items()):
        print(f"  {short_name}: {value}")


def main():
    """主函数"""
    if len(sys.argv) > 1:
        command = sys.argv[1]

        if command == 'summary':
            view_summary()
        elif command == 'server' and len(sys.argv) > 2:
            view_server(sys.argv[2])
        else:
            print("用法:")
            print("  python3 view_metrics.py summary              # 查看汇总")
            print("  python3 view_metrics.py server <名称>        # 查看某个虚拟服务器")
    else:
        # 默认显示汇总
        view_summary()


if __name__ == '__main__':
    main()
