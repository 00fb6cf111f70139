"""
检查异常模块 (Check Exception Module)

定义检查流程中可能出现的异常。所有异常最终都会被转换为 UNKNOWN 结论，
不会导致进程异常退出。

Defines the errors raised while fetching and parsing HAProxy stats. Every one
of them resolves to an UNKNOWN verdict instead of crashing the process.
"""
from typing import Optional


class HAProxyCheckError(Exception):
    """检查异常基类 (Base Check Error)"""

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)


class ConfigError(HAProxyCheckError):
    """配置缺失或非法 (Missing or Invalid Configuration)"""


class TransportError(HAProxyCheckError):
    """无法连接统计页面：连接、DNS、TLS 或超时 (Stats Endpoint Unreachable)"""


class FetchError(HAProxyCheckError):
    """统计页面返回非 200 状态码 (Non-200 Stats Response)"""

    def __init__(self, message: str, status_code: int, detail: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, detail)


class ParseError(HAProxyCheckError):
    """CSV 内容无法解析 (Malformed Stats CSV)"""
