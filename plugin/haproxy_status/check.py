"""
执行一次 HAProxy 状态检查 (Run One HAProxy Status Check)

流程：抓取 → 解析/过滤 → 评估，抓取与解析失败统一转换为 UNKNOWN 结论。
"""
import logging
from typing import Optional

import httpx

from haproxy_status.config import CheckConfig
from haproxy_status.evaluator import Status, Verdict, evaluate
from haproxy_status.exceptions import HAProxyCheckError
from haproxy_status.fetcher import fetch_stats
from haproxy_status.parser import (
    backend_rows,
    compile_service_pattern,
    ensure_ok,
    parse_stats,
    select_services,
    server_rows,
)

logger = logging.getLogger(__name__)


def run_check(config: CheckConfig, client: Optional[httpx.Client] = None) -> Verdict:
    """执行单次检查，返回唯一结论。

    Args:
        config: 已校验的检查配置。
        client: 可选的 httpx 客户端（测试时注入 MockTransport）。
    """
    try:
        pattern = compile_service_pattern(config.service, config.exact_match)
        response = ensure_ok(fetch_stats(config, client=client), config)
        records = parse_stats(response.body)
    except HAProxyCheckError as e:
        logger.warning(f"Check failed: {e.message}" + (f" ({e.detail})" if e.detail else ""))
        return Verdict(Status.UNKNOWN, e.message)

    selected = select_services(records, pattern)
    verdict = evaluate(server_rows(selected), backend_rows(selected), config)
    logger.debug(f"Verdict: {verdict.status.name}")
    return verdict
