"""
统计数据解析与过滤模块。

解析 HAProxy CSV 导出为 ServiceRecord 列表，并按服务名筛选：
1. 表头（首个非空行）确定列号映射，每次抓取只构建一次
2. 按 proxy 名称正则匹配目标服务，排除 MAINT 状态的记录
3. 区分逐服务器记录与 FRONTEND/BACKEND 汇总记录
"""
import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from haproxy_status.config import CheckConfig
from haproxy_status.exceptions import ConfigError, FetchError, ParseError
from haproxy_status.fetcher import StatsResponse

logger = logging.getLogger(__name__)

HEADER_KEY_RE = re.compile(r"[\w()\-?]+")

AGGREGATE_NAMES = {"FRONTEND", "BACKEND"}

# 表头列名 -> ServiceRecord 字段
COLUMN_FIELDS = {
    "pxname": "proxy_name",
    "svname": "server_name",
    "status": "status",
    "check_status": "check_status",
    "scur": "current_sessions",
    "slim": "session_limit",
    "smax": "max_sessions_seen",
}
REQUIRED_COLUMNS = ("pxname", "svname", "status")
INT_COLUMNS = {"scur", "slim", "smax"}


@dataclass(frozen=True)
class ServiceRecord:
    """统计数据中的一行（server、FRONTEND 或 BACKEND）。"""
    proxy_name: str
    server_name: str
    status: str
    check_status: str = ""
    current_sessions: int = 0
    session_limit: int = 0  # 0 表示不限制
    max_sessions_seen: int = 0

    @property
    def is_aggregate(self) -> bool:
        return self.server_name in AGGREGATE_NAMES

    @property
    def is_backend(self) -> bool:
        return self.server_name == "BACKEND"

    @property
    def in_maintenance(self) -> bool:
        return self.status.startswith("MAINT")

    @property
    def label(self) -> str:
        return f"{self.proxy_name}/{self.server_name}"


def ensure_ok(response: StatsResponse, config: CheckConfig) -> StatsResponse:
    """非 200 响应视为抓取失败。"""
    if response.status_code != 200:
        raise FetchError(
            f"Failed to fetch from {config.endpoint}: {response.status_code}",
            status_code=response.status_code,
        )
    return response


def header_key(cell: Optional[str]) -> Optional[str]:
    """从表头单元格提取列名，如 '# pxname' -> 'pxname'。"""
    if not cell:
        return None
    m = HEADER_KEY_RE.search(cell)
    return m.group(0) if m else None


def _column_map(header: List[str]) -> Dict[str, int]:
    columns: Dict[str, int] = {}
    for idx, cell in enumerate(header):
        key = header_key(cell)
        if key in COLUMN_FIELDS and key not in columns:
            columns[key] = idx
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise ParseError(f"Stats header is missing required columns: {', '.join(missing)}")
    return columns


def _to_int(column: str, value: str, line_num: int) -> int:
    value = value.strip()
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        raise ParseError(f"Invalid {column} value {value!r} on stats line {line_num}")


def parse_stats(body: str) -> List[ServiceRecord]:
    """解析 CSV 正文。

    Args:
        body: HAProxy ';csv' 导出的响应正文。

    Returns:
        每个数据行对应一个 ServiceRecord。

    Raises:
        ParseError: 正文为空、CSV 格式错误、缺少必需列或会话计数非整数。
    """
    try:
        rows = [row for row in csv.reader(io.StringIO(body)) if any(c.strip() for c in row)]
    except csv.Error as e:
        raise ParseError(f"Malformed stats CSV: {e}")

    if not rows:
        raise ParseError("Stats response contained no CSV data")

    columns = _column_map(rows[0])
    records = []
    for line_num, row in enumerate(rows[1:], start=2):
        values = {}
        for column, idx in columns.items():
            raw = row[idx] if idx < len(row) else ""
            if column in INT_COLUMNS:
                values[COLUMN_FIELDS[column]] = _to_int(column, raw, line_num)
            else:
                values[COLUMN_FIELDS[column]] = raw
        records.append(ServiceRecord(**values))

    logger.debug(f"Parsed {len(records)} stats rows")
    return records


def compile_service_pattern(service: str, exact_match: bool = False) -> re.Pattern:
    """编译服务名匹配正则；exact_match 时需完整匹配 proxy 名称。"""
    source = rf"\A(?:{service})\Z" if exact_match else service
    try:
        return re.compile(source)
    except re.error as e:
        raise ConfigError(f"Invalid service pattern /{service}/: {e}")


def select_services(records: Iterable[ServiceRecord], pattern: re.Pattern) -> List[ServiceRecord]:
    """按 proxy 名称筛选目标服务，并排除维护中的记录。"""
    return [r for r in records if pattern.search(r.proxy_name) and not r.in_maintenance]


def server_rows(selected: Iterable[ServiceRecord]) -> List[ServiceRecord]:
    """逐服务器记录（去掉 FRONTEND/BACKEND 汇总行）。"""
    return [r for r in selected if not r.is_aggregate]


def backend_rows(selected: Iterable[ServiceRecord]) -> List[ServiceRecord]:
    return [r for r in selected if r.is_backend]
