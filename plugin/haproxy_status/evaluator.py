"""
健康状态评估模块 (Health Evaluation Module)

对筛选后的服务器记录进行 up/down 分类，计算可用率与会话饱和度，
按固定顺序的规则表得出唯一结论（OK / WARNING / CRITICAL / UNKNOWN）。

Classifies each server row as up or down, computes availability and session
saturation, then walks an ordered rule table; the first matching rule wins.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from haproxy_status.config import CheckConfig
from haproxy_status.parser import ServiceRecord

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    """检查结论，取值即插件退出码 (Verdict; value is the plugin exit code)"""
    OK = 0
    WARNING = 1
    CRITICAL = 2
    UNKNOWN = 3


@dataclass(frozen=True)
class Verdict:
    status: Status
    message: str

    def render(self) -> str:
        return f"{self.status.name}: {self.message}"


def is_up(record: ServiceRecord) -> bool:
    """UP*、OPEN、no check、DRAIN* 视为正常，其余（如 DOWN*）视为故障。"""
    status = record.status
    return (
        status.startswith("UP")
        or status == "OPEN"
        or status == "no check"
        or status.startswith("DRAIN")
    )


def session_percent(record: ServiceRecord) -> Optional[float]:
    """当前会话占上限的百分比；未配置上限（slim=0）时返回 None。"""
    if record.session_limit <= 0:
        return None
    return 100 * record.current_sessions / record.session_limit


def saturated(records: Iterable[ServiceRecord], threshold: float) -> List[ServiceRecord]:
    """会话百分比严格大于阈值的记录。"""
    result = []
    for r in records:
        pct = session_percent(r)
        if pct is not None and pct > threshold:
            result.append(r)
    return result


def percent_up(servers: List[ServiceRecord]) -> int:
    return 100 * sum(1 for s in servers if is_up(s)) // len(servers)


def failed_names(servers: Iterable[ServiceRecord]) -> List[str]:
    names = []
    for s in servers:
        if is_up(s):
            continue
        suffix = f"[{s.check_status}]" if s.check_status else ""
        names.append(f"{s.label}{suffix}")
    return names


def status_message(servers: List[ServiceRecord], service: str) -> str:
    message = f"UP: {percent_up(servers)}% of {len(servers)} /{service}/ services"
    failed = failed_names(servers)
    if failed:
        message += f", DOWN: {', '.join(failed)}"
    return message


def _session_detail(level: str, records: List[ServiceRecord]) -> str:
    items = ", ".join(
        f"{r.current_sessions} of {r.session_limit} {r.proxy_name}.{r.server_name}" for r in records
    )
    return f"; Active sessions {level}: {items}"


def _backend_detail(level: str, records: List[ServiceRecord]) -> str:
    items = ", ".join(
        f"current sessions: {r.current_sessions}, maximum sessions: {r.max_sessions_seen} "
        f"for {r.proxy_name} backend."
        for r in records
    )
    return f"; Active backends {level}: {items}"


def evaluate(servers: List[ServiceRecord], backends: List[ServiceRecord], config: CheckConfig) -> Verdict:
    """根据规则表得出检查结论。

    规则按顺序匹配，先命中者生效：
    1. 服务器数 < min_crit_count → CRITICAL
    2. 可用率 < crit_percent → CRITICAL
    3. 未配置 BACKEND 严重阈值且有服务器会话严重 → CRITICAL
    4. 配置了 BACKEND 严重阈值且有 BACKEND 会话严重 → CRITICAL
    5. 服务器数 < min_warn_count → WARNING
    6. 可用率 < warn_percent → WARNING
    7. 未配置 BACKEND 告警阈值且有服务器会话告警 → WARNING
    8. 配置了 BACKEND 告警阈值且有 BACKEND 会话告警 → CRITICAL（沿用既有行为）
    否则 OK。没有匹配到任何服务器时直接返回 WARNING。

    Args:
        servers: 逐服务器记录（已排除汇总行与 MAINT）。
        backends: 匹配服务的 BACKEND 汇总行。
        config: 阈值配置。
    """
    if not servers:
        return Verdict(Status.WARNING, f"No services matching /{config.service}/")

    count = len(servers)
    pct = percent_up(servers)
    status = status_message(servers, config.service)
    logger.debug(f"{count} servers matched /{config.service}/, {pct}% up")

    critical_sessions = saturated(servers, config.session_crit_percent)
    warning_sessions = saturated(servers, config.session_warn_percent)
    backend_crit = config.backend_session_crit_percent
    backend_warn = config.backend_session_warn_percent
    critical_backends = saturated(backends, backend_crit) if backend_crit is not None else []
    warning_backends = saturated(backends, backend_warn) if backend_warn is not None else []

    if count < config.min_crit_count:
        return Verdict(Status.CRITICAL, status)
    if pct < config.crit_percent:
        return Verdict(Status.CRITICAL, status)
    if critical_sessions and backend_crit is None:
        return Verdict(Status.CRITICAL, status + _session_detail("critical", critical_sessions))
    if backend_crit is not None and critical_backends:
        return Verdict(Status.CRITICAL, status + _backend_detail("critical", critical_backends))
    if count < config.min_warn_count:
        return Verdict(Status.WARNING, status)
    if pct < config.warn_percent:
        return Verdict(Status.WARNING, status)
    if warning_sessions and backend_warn is None:
        return Verdict(Status.WARNING, status + _session_detail("warning", warning_sessions))
    if backend_warn is not None and warning_backends:
        # TODO: confirm whether backend session warnings should report WARNING instead of CRITICAL
        logger.debug("Backend session warning threshold exceeded, reporting CRITICAL")
        return Verdict(Status.CRITICAL, status + _backend_detail("warning", warning_backends))
    return Verdict(Status.OK, status)
