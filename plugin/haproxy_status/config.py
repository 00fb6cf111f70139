"""
检查配置加载模块。

定义检查参数数据类，并支持从 YAML 文件加载配置。
优先级：内置默认值 < YAML 配置文件 < 命令行参数。
密码支持环境变量覆盖（HAPROXY_STATS_PASSWORD，由 CLI 读取）。
"""
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from haproxy_status.exceptions import ConfigError

logger = logging.getLogger(__name__)

INT_FIELDS = {
    "port",
    "warn_percent",
    "crit_percent",
    "session_warn_percent",
    "session_crit_percent",
    "backend_session_warn_percent",
    "backend_session_crit_percent",
    "min_warn_count",
    "min_crit_count",
}
BOOL_FIELDS = {"use_ssl", "exact_match"}
OPTIONAL_INT_FIELDS = {"backend_session_warn_percent", "backend_session_crit_percent"}


@dataclass
class CheckConfig:
    """HAProxy 状态检查配置。"""
    hostname: str = ""
    port: int = 80
    path: str = "/"
    username: Optional[str] = None
    password: Optional[str] = None
    use_ssl: bool = False
    warn_percent: int = 50  # 可用率告警阈值
    crit_percent: int = 25  # 可用率严重阈值
    session_warn_percent: int = 75
    session_crit_percent: int = 90
    backend_session_warn_percent: Optional[int] = None  # 未设置则不检查 BACKEND 会话告警
    backend_session_crit_percent: Optional[int] = None  # 未设置则不检查 BACKEND 会话严重
    min_warn_count: int = 0
    min_crit_count: int = 0
    service: str = ""  # proxy 名称匹配的正则
    exact_match: bool = False
    timeout: Optional[float] = None  # 秒，None 表示使用 HTTP 客户端默认值

    @property
    def stats_path(self) -> str:
        """统计页面路径，保证以单个 '/' 开头。"""
        return "/" + (self.path or "").lstrip("/")

    @property
    def endpoint(self) -> str:
        return f"{self.hostname}:{self.port}{self.stats_path}"

    def validate(self) -> None:
        """校验必填项与取值范围。

        Raises:
            ConfigError: 配置缺失或非法。
        """
        if not self.hostname:
            raise ConfigError("Missing required option: hostname")
        if not self.service:
            raise ConfigError("Missing required option: service")
        for name in sorted(INT_FIELDS - OPTIONAL_INT_FIELDS):
            if getattr(self, name) is None:
                raise ConfigError(f"Option {name} must have a value")
        if not 0 < self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}")
        for name in sorted(INT_FIELDS - {"port"}):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigError(f"Option {name} must not be negative: {value}")
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive: {self.timeout}")


def _coerce(name: str, value: Any) -> Any:
    """把配置文件中的值转换为字段类型。"""
    if value is None:
        return None
    try:
        if name in INT_FIELDS:
            return int(value)
        if name == "timeout":
            return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Option {name} expects a number, got {value!r}")
    if name in BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    return str(value)


def load_config(path: str) -> Dict[str, Any]:
    """从 YAML 文件读取检查配置。

    Args:
        path: 配置文件路径。

    Returns:
        字段名到值的字典，未知字段会被忽略。

    Raises:
        ConfigError: 文件不存在、无法读取或内容不是 YAML 映射。
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(p, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid config file {path}", detail=str(e))
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(CheckConfig)}
    values = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        values[name] = _coerce(name, value)
    return values


def build_config(config_file: Optional[str] = None, **overrides) -> CheckConfig:
    """合并默认值、配置文件与命令行参数，生成已校验的配置。

    overrides 中值为 None 的项视为未指定，不覆盖配置文件。
    """
    values: Dict[str, Any] = {}
    if config_file:
        values.update(load_config(config_file))
    values.update({k: v for k, v in overrides.items() if v is not None})

    cfg = CheckConfig(**values)
    cfg.validate()
    return cfg
