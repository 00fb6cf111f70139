"""
测试基础配置

提供 HAProxy CSV 统计数据构造器、检查配置和 httpx MockTransport 客户端等通用 fixture。
所有测试不依赖真实的 HAProxy 实例。
"""
from typing import Callable, List, Tuple

import httpx
import pytest

from haproxy_status.config import CheckConfig

# 精简版 HAProxy 1.x/2.x ';csv' 表头，末尾带逗号与真实输出一致
STATS_HEADER = "# pxname,svname,qcur,qmax,scur,smax,slim,stot,status,weight,check_status,"


def stats_line(px, sv, status="UP", scur=0, smax=0, slim="", check_status=""):
    return f"{px},{sv},0,0,{scur},{smax},{slim},10,{status},1,{check_status},"


def make_csv(*lines: str) -> str:
    return "\n".join((STATS_HEADER,) + lines) + "\n"


@pytest.fixture
def config() -> CheckConfig:
    return CheckConfig(hostname="lb.example.com", service="svc")


@pytest.fixture
def mock_client() -> Callable[..., Tuple[httpx.Client, List[httpx.Request]]]:
    """构造使用 MockTransport 的 httpx 客户端，并记录收到的请求。"""
    clients = []

    def _factory(body: str = "", status_code: int = 200, exc: Exception = None):
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if exc is not None:
                raise exc
            return httpx.Response(status_code, text=body)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client, requests

    yield _factory
    for c in clients:
        c.close()
