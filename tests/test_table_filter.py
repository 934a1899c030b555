"""Tests for export table selection."""

import pytest

from sqlshuttle.core.table_filter import TableFilter, compile_rule
from sqlshuttle.models.table import MatchKind, TableDescriptor, TableKind
from sqlshuttle.models.transfer import TransferConfig


class TestCompileRule:
    """Test pattern classification."""

    @pytest.mark.parametrize(
        "pattern,expected_text,expected_kind",
        [
            ("cache_%", "cache_", MatchKind.PREFIX),
            ("%_tmp", "_tmp", MatchKind.SUFFIX),
            ("log*2023", "log*2023", MatchKind.WILDCARD),
            ("audit", "audit", MatchKind.PREFIX),
            ("%mid%", "%mid", MatchKind.PREFIX),
        ],
    )
    def test_kinds(self, pattern, expected_text, expected_kind):
        rule = compile_rule(pattern)
        assert rule.pattern == expected_text
        assert rule.match_kind == expected_kind

    def test_empty_pattern(self):
        assert compile_rule("   ") is None


class TestTableFilter:
    """Test include/exclude decisions."""

    def test_include_list(self):
        """Test a non-empty include list selects exactly those tables."""
        f = TableFilter(include_tables=["users", "orders"])
        assert f.is_included("users")
        assert f.is_included("orders")
        assert not f.is_included("products")

    def test_exclude_prefix_and_suffix(self):
        f = TableFilter(exclude_patterns=["cache_%", "%_tmp"])
        assert not f.is_included("cache_sessions")
        assert not f.is_included("sessions_tmp")
        assert f.is_included("sessions")

    def test_wildcard_case_insensitive(self):
        """Test '*' matches any sequence regardless of case."""
        f = TableFilter(exclude_patterns=["log_*_old"])
        assert not f.is_included("log_2023_old")
        assert not f.is_included("LOG_archive_OLD")
        assert f.is_included("log_2023_old_keep")

    def test_wildcard_escapes_regex(self):
        """Test regex metacharacters in a wildcard pattern are literal."""
        f = TableFilter(exclude_patterns=["a.b*"])
        assert not f.is_included("a.bc")
        assert f.is_included("axbc")

    def test_plain_prefix(self):
        f = TableFilter(exclude_patterns=["audit"])
        assert not f.is_included("audit_log")
        assert f.is_included("user_audit")

    def test_prefix_is_case_sensitive(self):
        f = TableFilter(exclude_patterns=["cache_%"])
        assert f.is_included("CACHE_sessions")

    def test_no_patterns_includes_everything(self):
        f = TableFilter(exclude_patterns=["", "  "])
        assert f.rules == []
        assert f.is_included("anything")

    def test_include_overrides_exclude(self):
        """Test exclude patterns are ignored when an include list is set."""
        f = TableFilter(include_tables=["cache_sessions"], exclude_patterns=["cache_%"])
        assert f.is_included("cache_sessions")
        assert not f.is_included("users")

    def test_select_keeps_order(self):
        f = TableFilter(exclude_patterns=["%_tmp"])
        assert f.select(["c", "a_tmp", "b", "a"]) == ["c", "b", "a"]

    def test_select_descriptors(self):
        f = TableFilter(exclude_patterns=["v_%"])
        tables = [
            TableDescriptor(name="users"),
            TableDescriptor(name="v_active", kind=TableKind.VIEW),
        ]
        assert [t.name for t in f.select(tables)] == ["users"]

    def test_from_config(self):
        config = TransferConfig(exclude_patterns="cache_%, %_tmp")
        f = TableFilter.from_config(config)
        assert [r.match_kind for r in f.rules] == [MatchKind.PREFIX, MatchKind.SUFFIX]
