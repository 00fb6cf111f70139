"""
HAProxy 状态检查命令行入口模块。

执行一次检查，向标准输出打印结论（如 "OK: UP: 100% of 2 /web/ services"），
并以监控插件约定的退出码退出：OK=0、WARNING=1、CRITICAL=2、UNKNOWN=3。
"""
import logging
import sys

import click
from click.core import ParameterSource

from haproxy_status import __version__
from haproxy_status.config import CheckConfig, build_config
from haproxy_status.evaluator import Status, Verdict
from haproxy_status.exceptions import HAProxyCheckError

logger = logging.getLogger("haproxy-status")

# 命令行参数名 -> CheckConfig 字段
OPTION_FIELDS = {
    "hostname": "hostname",
    "port": "port",
    "statspath": "path",
    "user": "username",
    "password": "password",
    "use_ssl": "use_ssl",
    "warn_percent": "warn_percent",
    "crit_percent": "crit_percent",
    "session_warn_percent": "session_warn_percent",
    "session_crit_percent": "session_crit_percent",
    "backend_session_warn_percent": "backend_session_warn_percent",
    "backend_session_crit_percent": "backend_session_crit_percent",
    "min_warn_count": "min_warn_count",
    "min_crit_count": "min_crit_count",
    "service": "service",
    "exact_match": "exact_match",
    "timeout": "timeout",
}

_defaults = CheckConfig()


def _emit(verdict: Verdict):
    click.echo(verdict.render())
    sys.exit(verdict.status.value)


@click.command(context_settings={"help_option_names": ["--help"]})
@click.option("--hostname", "-h", help="HAProxy web stats hostname (required)")
@click.option("--port", "-P", type=int, default=_defaults.port, show_default=True, help="HAProxy web stats port")
@click.option("--statspath", "-q", default=_defaults.path, show_default=True, help="HAProxy web stats path")
@click.option("--user", "-u", help="HAProxy web stats username")
@click.option("--pass", "-p", "password", envvar="HAPROXY_STATS_PASSWORD", help="HAProxy web stats password")
@click.option("--use-ssl", is_flag=True, help="Use SSL to connect to HAProxy web stats")
@click.option("--warn-percent", "-w", type=int, default=_defaults.warn_percent, show_default=True,
              help="Warning percent of servers up")
@click.option("--crit-percent", "-c", type=int, default=_defaults.crit_percent, show_default=True,
              help="Critical percent of servers up")
@click.option("--session-warn-percent", "-W", type=int, default=_defaults.session_warn_percent, show_default=True,
              help="Session limit warning percent")
@click.option("--session-crit-percent", "-C", type=int, default=_defaults.session_crit_percent, show_default=True,
              help="Session limit critical percent")
@click.option("--backend-session-warn-percent", "-b", type=int, help="Per backend session limit warning percent")
@click.option("--backend-session-crit-percent", "-B", type=int, help="Per backend session limit critical percent")
@click.option("--min-warn-count", "-M", type=int, default=_defaults.min_warn_count, show_default=True,
              help="Minimum server warning count")
@click.option("--min-crit-count", "-X", type=int, default=_defaults.min_crit_count, show_default=True,
              help="Minimum server critical count")
@click.option("--service", "-s", help="Service name (regex) to check (required)")
@click.option("--exact-match", "-e", is_flag=True, help="Match the service name exactly")
@click.option("--timeout", type=float, help="HTTP timeout in seconds")
@click.option("--config", "config_file", type=click.Path(), help="YAML config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (to stderr)")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config_file, verbose, **options):
    """Check the health of an HAProxy service's backend servers."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    # 只有显式给出的参数才覆盖配置文件
    overrides = {}
    for name, value in options.items():
        source = ctx.get_parameter_source(name)
        if source in (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT):
            overrides[OPTION_FIELDS[name]] = value
        elif not config_file:
            overrides[OPTION_FIELDS[name]] = value

    try:
        cfg = build_config(config_file, **overrides)
    except HAProxyCheckError as e:
        _emit(Verdict(Status.UNKNOWN, e.message))

    from haproxy_status.check import run_check

    try:
        verdict = run_check(cfg)
    except Exception as e:
        logger.exception("Check crashed")
        verdict = Verdict(Status.UNKNOWN, f"Check failed to run: {e}")
    _emit(verdict)


def main():
    """CLI 入口函数。"""
    cli()


if __name__ == "__main__":
    main()
