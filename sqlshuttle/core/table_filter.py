"""Table selection rules for export."""

from __future__ import annotations

import re
from typing import Iterable, Optional, TypeVar, Union

from sqlshuttle.models.table import FilterRule, MatchKind, TableDescriptor
from sqlshuttle.models.transfer import TransferConfig

T = TypeVar("T", str, TableDescriptor)


def compile_rule(pattern: str) -> Optional[FilterRule]:
    """Derive a FilterRule from a raw exclude pattern.

    Precedence:
        1. ``abc%`` is a prefix match on ``abc``
        2. ``%abc`` is a suffix match on ``abc``
        3. ``a*c`` is a case-insensitive full match, ``*`` = any sequence
        4. anything else is a prefix match on the literal pattern

    Returns:
        FilterRule, or None for an empty pattern
    """
    pattern = pattern.strip()
    if not pattern:
        return None
    if pattern.endswith("%"):
        return FilterRule(pattern=pattern[:-1], match_kind=MatchKind.PREFIX)
    if pattern.startswith("%"):
        return FilterRule(pattern=pattern[1:], match_kind=MatchKind.SUFFIX)
    if "*" in pattern:
        return FilterRule(pattern=pattern, match_kind=MatchKind.WILDCARD)
    return FilterRule(pattern=pattern, match_kind=MatchKind.PREFIX)


def _wildcard_regex(pattern: str) -> re.Pattern:
    return re.compile(".*".join(re.escape(part) for part in pattern.split("*")), re.IGNORECASE)


class TableFilter:
    """Decide which tables an export includes.

    A non-empty include list is authoritative: exactly those tables are
    included and exclude patterns are ignored. Otherwise a table is excluded
    when any exclude pattern matches it.

    Examples:
        >>> f = TableFilter(exclude_patterns=["cache_%", "%_tmp"])
        >>> f.is_included("cache_sessions"), f.is_included("sessions")
        (False, True)
    """

    def __init__(
        self,
        include_tables: Optional[Iterable[str]] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
    ):
        self.include_tables = frozenset(include_tables or ())
        self.rules: list[FilterRule] = [
            rule for rule in (compile_rule(p) for p in exclude_patterns or ()) if rule is not None
        ]
        self._regexes = {
            rule.pattern: _wildcard_regex(rule.pattern)
            for rule in self.rules
            if rule.match_kind == MatchKind.WILDCARD
        }

    @classmethod
    def from_config(cls, config: TransferConfig) -> TableFilter:
        return cls(config.include_tables, config.exclude_patterns)

    def matches(self, rule: FilterRule, name: str) -> bool:
        """Check one rule against a table name."""
        if rule.match_kind == MatchKind.PREFIX:
            return name.startswith(rule.pattern)
        if rule.match_kind == MatchKind.SUFFIX:
            return name.endswith(rule.pattern)
        return self._regexes[rule.pattern].fullmatch(name) is not None

    def is_included(self, name: str) -> bool:
        if self.include_tables:
            return name in self.include_tables
        return not any(self.matches(rule, name) for rule in self.rules)

    def select(self, tables: Iterable[T]) -> list[T]:
        """Filter names or descriptors, keeping their order."""
        return [t for t in tables if self.is_included(_name_of(t))]


def _name_of(table: Union[str, TableDescriptor]) -> str:
    return table if isinstance(table, str) else table.name
