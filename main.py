#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
TS3 Exporter 主程序入口

功能：
- 启动 Flask HTTP 服务器
- 暴露 /metrics 端点供 Prometheus 抓取
- 暴露 /health 健康检查端点
"""

from flask import Flask, jsonify
from prometheus_client import CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
import logging
import sys
import os
from typing import Optional

# 导入配置加载模块
from config.loader import load_exporter_config, ExporterConfig
from config.validator import validate_config

# 导入 ServerQuery 客户端
from serverquery import Executor, QueryClient

# 导入收集器
from collector import ExporterMetrics, ServerInfoCollector

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# 设置特定模块的日志级别
logging.getLogger('werkzeug').setLevel(logging.WARNING)  # 减少 Flask 日志


def build_registry(executor: Executor, exporter_metrics: Optional[ExporterMetrics] = None) -> CollectorRegistry:
    """
    创建并注册所有收集器

    Args:
        executor: ServerQuery 命令执行器
        exporter_metrics: Exporter 内部指标（可选，默认新建）

    Returns:
        注册了所有 collector 的 CollectorRegistry
    """
    exporter_metrics = exporter_metrics or ExporterMetrics()

    registry = CollectorRegistry()
    # 按注册顺序采集：先刷新数据，本次抓取的失败计数才会出现在同一次输出中
    registry.register(ServerInfoCollector(executor, exporter_metrics))
    registry.register(exporter_metrics)
    return registry


def create_app(registry: CollectorRegistry, serverquery_address: str = '') -> Flask:
    """
    创建 Flask 应用

    Args:
        registry: 指标 registry
        serverquery_address: ServerQuery 地址（用于健康检查展示）

    Returns:
        Flask 应用
    """
    app = Flask(__name__)

    @app.route('/metrics')
    def metrics():
        """
        Prometheus metrics 端点

        每次请求都会触发各 collector 刷新数据
        """
        metrics_data = generate_latest(registry)
        return metrics_data, 200, {'Content-Type': CONTENT_TYPE_LATEST}

    @app.route('/health')
    def health():
        """健康检查端点"""
        return jsonify({
            'status': 'healthy',
            'serverquery': serverquery_address
        }), 200

    return app


def main():
    """主函数"""
    # Phase 1: 加载配置
    config_path = os.getenv('TS3_EXPORTER_CONFIG')
    try:
        logger.info(f"正在加载配置: {config_path or '默认路径'}")
        config: ExporterConfig = load_exporter_config(config_path, required=bool(config_path))
    except FileNotFoundError as e:
        logger.error(f"配置文件不存在: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"加载配置失败: {e}")
        sys.exit(1)

    is_valid, error_message = validate_config(config)
    if not is_valid:
        logger.error(f"配置无效: {error_message}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)

    sq = config.serverquery
    logger.info("=" * 60)
    logger.info("配置加载成功")
    logger.info(f"  - ServerQuery: {sq.host}:{sq.port} (user: {sq.username}, timeout: {sq.timeout}s)")
    logger.info(f"  - 监听地址: {config.listen.host}:{config.listen.port}")
    logger.info(f"  - 日志级别: {config.log_level}")
    logger.info("=" * 60)

    if not sq.password:
        logger.warning("未配置 ServerQuery 密码，将以未登录状态查询（serverlist 等命令可能失败）")

    # Phase 2: 初始化采集组件
    executor = QueryClient(
        host=sq.host,
        port=sq.port,
        username=sq.username,
        password=sq.password,
        timeout=sq.timeout
    )
    registry = build_registry(executor)
    app = create_app(registry, serverquery_address=executor.address)

    # Phase 3: 启动 HTTP 服务器
    logger.info(f"Starting HTTP server on {config.listen.host}:{config.listen.port}")
    print(f"\n{'=' * 60}")
    print("Exporter 已启动")
    print(f"访问 http://localhost:{config.listen.port}/metrics 查看指标")
    print(f"访问 http://localhost:{config.listen.port}/health 查看健康状态")
    print(f"{'=' * 60}\n")
    try:
        app.run(host=config.listen.host, port=config.listen.port, debug=False)
    finally:
        executor.close()


if __name__ == '__main__':
    main()
