"""
统计页面抓取模块。

通过 HTTP(S) GET 请求 HAProxy 统计页面的 CSV 导出（;csv;norefresh），
只请求一次，不做重试。
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from haproxy_status.config import CheckConfig
from haproxy_status.exceptions import TransportError

logger = logging.getLogger(__name__)

CSV_SUFFIX = ";csv;norefresh"


@dataclass(frozen=True)
class StatsResponse:
    status_code: int
    body: str


def stats_url(config: CheckConfig) -> str:
    """拼接 CSV 统计页面地址。"""
    scheme = "https" if config.use_ssl else "http"
    return f"{scheme}://{config.hostname}:{config.port}{config.stats_path}{CSV_SUFFIX}"


def fetch_stats(config: CheckConfig, client: Optional[httpx.Client] = None) -> StatsResponse:
    """抓取 HAProxy CSV 统计数据。

    配置了 username 时附带 HTTP Basic 认证（password 可为空）。

    Args:
        config: 检查配置。
        client: 可选的 httpx 客户端；未提供时临时创建并在请求后关闭。

    Returns:
        包含状态码和响应正文的 StatsResponse。

    Raises:
        TransportError: 连接、DNS、TLS 失败或超时。
    """
    url = stats_url(config)
    auth = None
    if config.username is not None:
        auth = httpx.BasicAuth(config.username, config.password or "")

    logger.debug(f"Fetching stats from {url}")
    try:
        if client is not None:
            resp = client.get(url, auth=auth)
        else:
            kwargs = {}
            if config.timeout is not None:
                kwargs["timeout"] = config.timeout
            with httpx.Client(**kwargs) as own_client:
                resp = own_client.get(url, auth=auth)
    except httpx.TransportError as e:
        raise TransportError(
            f"Failed to connect to {config.hostname}:{config.port}: {e}",
            detail=type(e).__name__,
        )

    logger.debug(f"Stats response: HTTP {resp.status_code}, {len(resp.text)} bytes")
    return StatsResponse(status_code=resp.status_code, body=resp.text)
