"""SQL text rendering helpers shared by the exporter and the executor.

Values are rendered as SQL literals for dump output:

- ``None`` -> ``NULL``
- numbers (int, float, Decimal, bool) -> unquoted
- bytes -> hexadecimal literal when hex encoding is on or the bytes are not
  valid UTF-8, otherwise text
- everything else -> quoted, escaped string
"""

from __future__ import annotations

import datetime as dt
import hashlib
import math
from decimal import Decimal
from typing import Any, Callable, Sequence

# Backslash-escape table (MySQL string literal syntax)
_BACKSLASH_ESCAPES = {
    ord("\\"): "\\\\",
    ord("\0"): "\\0",
    ord("'"): "\\'",
    ord('"'): '\\"',
}


def escape_string(value: str, backslash_escapes: bool = True) -> str:
    """Escape text for use inside a single-quoted SQL literal.

    Args:
        value: Raw text
        backslash_escapes: True for MySQL-style escaping (backslash, NUL and
            quote characters are backslash-escaped); False for standard SQL,
            where only the single quote is doubled

    Returns:
        Escaped text without surrounding quotes
    """
    if backslash_escapes:
        return value.translate(_BACKSLASH_ESCAPES)
    return value.replace("'", "''")


def hex_literal(value: bytes) -> str:
    """Render bytes as a X'..' literal (accepted by MySQL and SQLite)."""
    return f"X'{value.hex().upper()}'"


def quote_value(value: Any, hex_binary: bool = False, backslash_escapes: bool = True) -> str:
    """Render a Python value as a SQL literal.

    Args:
        value: Value fetched from the database
        hex_binary: Render bytes-like values as hexadecimal literals (bytes
            that are not valid UTF-8 always are)
        backslash_escapes: Dialect string escaping (see escape_string)

    Returns:
        SQL literal text

    Examples:
        >>> quote_value(None)
        'NULL'
        >>> quote_value(42)
        '42'
        >>> quote_value("O'Brien")
        "'O\\\\'Brien'"
        >>> quote_value(b"\\x00\\xff", hex_binary=True)
        "X'00FF'"
    """
    if value is None:
        return "NULL"

    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "1" if value else "0"

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if math.isfinite(value):
            return repr(value)
        return _quote_text(str(value), backslash_escapes)

    if isinstance(value, Decimal):
        if value.is_finite():
            return str(value)
        return _quote_text(str(value), backslash_escapes)

    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        if hex_binary:
            return hex_literal(raw)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            return hex_literal(raw)
        return _quote_text(text, backslash_escapes)

    if isinstance(value, dt.datetime):
        return _quote_text(value.isoformat(sep=" "), backslash_escapes)

    if isinstance(value, (dt.date, dt.time)):
        return _quote_text(value.isoformat(), backslash_escapes)

    return _quote_text(str(value), backslash_escapes)


def _quote_text(text: str, backslash_escapes: bool) -> str:
    if not backslash_escapes and "\\" in text:
        # No backslash escapes in the dialect, but the statement scanner
        # still reads a backslash inside a literal as an escape.
        return f"CAST({hex_literal(text.encode('utf-8'))} AS TEXT)"
    return f"'{escape_string(text, backslash_escapes)}'"


def render_row(
    row: Sequence[Any],
    hex_binary: bool = False,
    backslash_escapes: bool = True,
) -> str:
    """Render one row as a parenthesized value tuple: ``(1, 'a', NULL)``."""
    return "(" + ", ".join(quote_value(v, hex_binary, backslash_escapes) for v in row) + ")"


def build_insert_statements(
    table: str,
    columns: Sequence[str],
    rows: Sequence[Sequence[Any]],
    extended: bool = True,
    hex_binary: bool = False,
    backslash_escapes: bool = True,
    quote_identifier: Callable[[str], str] = str,
) -> list[str]:
    """Build INSERT statements (terminated with ';') for a window of rows.

    Args:
        table: Table name
        columns: Column names in row order
        rows: Row tuples
        extended: One multi-row INSERT for all rows instead of one per row
        hex_binary: Render bytes as hexadecimal literals
        backslash_escapes: Dialect string escaping
        quote_identifier: Dialect identifier quoting

    Returns:
        List of statements; empty if rows is empty
    """
    if not rows:
        return []

    column_list = ", ".join(quote_identifier(c) for c in columns)
    header = f"INSERT INTO {quote_identifier(table)} ({column_list}) VALUES"
    tuples = [render_row(row, hex_binary, backslash_escapes) for row in rows]

    if extended:
        if len(tuples) == 1:
            return [f"{header} {tuples[0]};"]
        return [header + "\n" + ",\n".join(tuples) + ";"]
    return [f"{header} {values};" for values in tuples]


def statement_fingerprint(sql: str) -> str:
    """Short stable fingerprint of a statement (stored in checkpoints)."""
    return hashlib.sha1(sql.encode("utf-8", errors="replace")).hexdigest()


def strip_leading_comments(sql: str) -> str:
    """Remove comments that precede the first executable token.

    A statement can start with a comment when a dump puts one after the
    previous terminator on the same line (``INSERT ...; -- note``). Line
    comments (``--``, ``#``) run to the end of their line; block comments
    run to ``*/``. MySQL conditional comments (``/*!40101 ... */``) are
    executable and are kept.

    Returns:
        The executable remainder, or "" if the statement is only comments

    Examples:
        >>> strip_leading_comments("# note\\nINSERT INTO t VALUES (2)")
        'INSERT INTO t VALUES (2)'
        >>> strip_leading_comments("-- note")
        ''
    """
    text = sql.lstrip()
    while text:
        if text.startswith("--") or text.startswith("#"):
            end = text.find("\n")
            if end < 0:
                return ""
            text = text[end + 1:].lstrip()
        elif text.startswith("/*") and not text.startswith("/*!"):
            end = text.find("*/", 2)
            if end < 0:
                return ""
            text = text[end + 2:].lstrip()
        else:
            break
    return text


def preview(sql: str, limit: int = 200) -> str:
    """Single-line statement preview for log messages."""
    flat = " ".join(sql.split())
    if len(flat) <= limit:
        return flat
    return flat[:limit] + "..."
