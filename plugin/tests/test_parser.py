"""统计数据解析与过滤测试。"""
import pytest

from conftest import make_csv, stats_line
from haproxy_status.exceptions import ConfigError, FetchError, ParseError
from haproxy_status.fetcher import StatsResponse
from haproxy_status.parser import (
    ServiceRecord,
    backend_rows,
    compile_service_pattern,
    ensure_ok,
    header_key,
    parse_stats,
    select_services,
    server_rows,
)


class TestHeaderKey:
    def test_strips_comment_prefix(self):
        assert header_key("# pxname") == "pxname"

    def test_plain_column(self):
        assert header_key("check_status") == "check_status"

    def test_keeps_parens_and_dashes(self):
        assert header_key("hrsp_1xx(-)?") == "hrsp_1xx(-)?"

    def test_empty_cell(self):
        assert header_key("") is None
        assert header_key(None) is None

    def test_no_match(self):
        assert header_key("#  ") is None


class TestParseStats:
    def test_parses_rows(self):
        body = make_csv(
            stats_line("web", "FRONTEND", status="OPEN", scur=3, smax=9, slim=100),
            stats_line("web", "srv1", scur=2, smax=5, slim=10, check_status="L7OK"),
        )
        records = parse_stats(body)
        assert len(records) == 2
        assert records[0] == ServiceRecord("web", "FRONTEND", "OPEN", "", 3, 100, 9)
        assert records[1].check_status == "L7OK"
        assert records[1].current_sessions == 2
        assert records[1].session_limit == 10
        assert records[1].max_sessions_seen == 5

    def test_empty_session_limit_is_unlimited(self):
        records = parse_stats(make_csv(stats_line("web", "srv1")))
        assert records[0].session_limit == 0

    def test_skips_blank_lines(self):
        body = "\n" + make_csv(stats_line("web", "srv1"), "", stats_line("web", "srv2")) + "\n\n"
        records = parse_stats(body)
        assert [r.server_name for r in records] == ["srv1", "srv2"]

    def test_short_row_leaves_fields_empty(self):
        body = make_csv("web,srv1,0,0,4,4,10,1,UP")
        record = parse_stats(body)[0]
        assert record.status == "UP"
        assert record.check_status == ""

    def test_missing_required_column(self):
        body = "# pxname,svname,scur\nweb,srv1,0\n"
        with pytest.raises(ParseError, match="status"):
            parse_stats(body)

    def test_empty_body(self):
        with pytest.raises(ParseError):
            parse_stats("\n\n")

    def test_non_integer_sessions(self):
        body = make_csv(stats_line("web", "srv1", scur="lots"))
        with pytest.raises(ParseError, match="scur"):
            parse_stats(body)

    def test_unknown_columns_ignored(self):
        body = "# pxname,svname,foo,status\nweb,srv1,bar,DOWN\n"
        record = parse_stats(body)[0]
        assert record.status == "DOWN"


class TestEnsureOk:
    def test_200_passes(self, config):
        resp = StatsResponse(200, "body")
        assert ensure_ok(resp, config) is resp

    def test_non_200_raises_with_endpoint(self, config):
        config.port = 8080
        config.path = "haproxy"
        with pytest.raises(FetchError) as exc:
            ensure_ok(StatsResponse(500, ""), config)
        assert exc.value.message == "Failed to fetch from lb.example.com:8080/haproxy: 500"
        assert exc.value.status_code == 500


class TestServicePattern:
    def test_substring_match(self):
        pattern = compile_service_pattern("api")
        assert pattern.search("api")
        assert pattern.search("api-internal")

    def test_exact_match(self):
        pattern = compile_service_pattern("api", exact_match=True)
        assert pattern.search("api")
        assert not pattern.search("api-internal")
        assert not pattern.search("my-api")

    def test_exact_match_with_alternation(self):
        pattern = compile_service_pattern("api|web", exact_match=True)
        assert pattern.search("web")
        assert not pattern.search("api2")

    def test_case_sensitive(self):
        assert not compile_service_pattern("API").search("api")

    def test_invalid_regex(self):
        with pytest.raises(ConfigError):
            compile_service_pattern("api(")


class TestSelection:
    def _records(self):
        return parse_stats(make_csv(
            stats_line("api", "FRONTEND", status="OPEN"),
            stats_line("api", "srv1"),
            stats_line("api", "srv2", status="MAINT"),
            stats_line("api", "srv3", status="DOWN"),
            stats_line("api", "BACKEND"),
            stats_line("api-internal", "srv1"),
            stats_line("db", "srv1"),
        ))

    def test_select_excludes_maint_and_other_proxies(self):
        selected = select_services(self._records(), compile_service_pattern("api", exact_match=True))
        assert [r.label for r in selected] == ["api/FRONTEND", "api/srv1", "api/srv3", "api/BACKEND"]

    def test_server_rows_drop_aggregates(self):
        selected = select_services(self._records(), compile_service_pattern("api"))
        assert [r.label for r in server_rows(selected)] == ["api/srv1", "api/srv3", "api-internal/srv1"]

    def test_backend_rows(self):
        selected = select_services(self._records(), compile_service_pattern("api"))
        assert [r.label for r in backend_rows(selected)] == ["api/BACKEND"]

    def test_maint_backend_excluded(self):
        records = parse_stats(make_csv(stats_line("api", "BACKEND", status="MAINT")))
        selected = select_services(records, compile_service_pattern("api"))
        assert backend_rows(selected) == []
