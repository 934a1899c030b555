"""Tests for the statement boundary scanner."""

import gzip

import pytest

from sqlshuttle.core.scanner import StatementScanner
from sqlshuttle.core.source import SQLSource
from sqlshuttle.models.statement import StatementBoundary

SAMPLE = (
    b"-- header comment\n"
    b"CREATE TABLE t (id INT, note TEXT);\n"
    b"# hash comment\n"
    b"INSERT INTO t VALUES (1, 'a;b');\n"
    b"INSERT INTO t VALUES (2, 'it\\'s; fine'); INSERT INTO t VALUES (3, \"dq;\");\n"
    b"INSERT INTO t VALUES (4, 'line1\n-- not a comment\nline3');\n"
    b"INSERT INTO t VALUES (5, 'x') -- trailing;\n"
    b"  -- indented comment\n"
    b"INSERT INTO t VALUES (6, 'back\\\\slash')"
)

EXPECTED_SQL = [
    "CREATE TABLE t (id INT, note TEXT)",
    "INSERT INTO t VALUES (1, 'a;b')",
    "INSERT INTO t VALUES (2, 'it\\'s; fine')",
    'INSERT INTO t VALUES (3, "dq;")',
    "INSERT INTO t VALUES (4, 'line1\n-- not a comment\nline3')",
    "INSERT INTO t VALUES (5, 'x') -- trailing",
    "INSERT INTO t VALUES (6, 'back\\\\slash')",
]


@pytest.fixture
def sample_file(tmp_path):
    """Plain SQL file with comments, quoted semicolons and escapes."""
    path = tmp_path / "sample.sql"
    path.write_bytes(SAMPLE)
    return path


@pytest.fixture
def sample_gzip(tmp_path):
    """Same content, gzip-compressed."""
    path = tmp_path / "sample.sql.gz"
    with gzip.open(path, "wb") as f:
        f.write(SAMPLE)
    return path


def scan(path, start_offset=0, read_size=None):
    with SQLSource.open(path) as source:
        return list(StatementScanner(source, start_offset=start_offset, read_size=read_size))


class TestStatementBoundaries:
    """Test statement splitting rules."""

    def test_statements(self, sample_file):
        """Test statements are split on top-level semicolons only."""
        statements = scan(sample_file)
        assert [s.sql for s in statements] == EXPECTED_SQL

    def test_offsets_follow_terminators(self, sample_file):
        """Test each offset points just past its terminator."""
        statements = scan(sample_file)
        for stmt in statements[:-1]:
            assert SAMPLE[stmt.offset - 1:stmt.offset] == b";"
        assert statements[-1].offset == len(SAMPLE)

    def test_offsets_increase(self, sample_file):
        """Test offsets are strictly increasing."""
        offsets = [s.offset for s in scan(sample_file)]
        assert offsets == sorted(set(offsets))

    def test_semicolon_in_literal(self, tmp_path):
        """Test a quoted semicolon never splits a statement."""
        path = tmp_path / "one.sql"
        path.write_bytes(b"INSERT INTO t VALUES ('a;b');")
        statements = scan(path)
        assert statements == [StatementBoundary(sql="INSERT INTO t VALUES ('a;b')", offset=29)]

    def test_other_quote_inside_literal(self, tmp_path):
        """Test a double quote inside a single-quoted literal is plain text."""
        path = tmp_path / "quotes.sql"
        path.write_bytes(b"SELECT 'say \"hi;\" now'; SELECT \"it's;\";")
        assert [s.sql for s in scan(path)] == ["SELECT 'say \"hi;\" now'", "SELECT \"it's;\""]

    def test_doubled_quote(self, tmp_path):
        """Test quote doubling (standard SQL escaping) keeps the literal balanced."""
        path = tmp_path / "doubled.sql"
        path.write_bytes(b"INSERT INTO t VALUES ('O''Brien; Jr');\nSELECT 1;")
        assert [s.sql for s in scan(path)] == ["INSERT INTO t VALUES ('O''Brien; Jr')", "SELECT 1"]

    def test_backslash_outside_literal(self, tmp_path):
        """Test a backslash outside a literal does not escape the terminator."""
        path = tmp_path / "bs.sql"
        path.write_bytes(b"SELECT 1 \\;SELECT 2;")
        assert [s.sql for s in scan(path)] == ["SELECT 1 \\", "SELECT 2"]

    def test_empty_statements_skipped(self, tmp_path):
        """Test stray terminators do not produce statements."""
        path = tmp_path / "empty.sql"
        path.write_bytes(b";;\n  ;\nSELECT 1;;")
        assert [s.sql for s in scan(path)] == ["SELECT 1"]

    def test_comment_only_file(self, tmp_path):
        """Test a file of comments yields nothing."""
        path = tmp_path / "comments.sql"
        path.write_bytes(b"-- one\n# two\n   -- three\n")
        assert scan(path) == []

    def test_comment_line_inside_statement(self, tmp_path):
        """Test a full-line comment between statement lines is dropped."""
        path = tmp_path / "mid.sql"
        path.write_bytes(b"INSERT INTO t VALUES\n-- first row\n(1);\n")
        assert [s.sql for s in scan(path)] == ["INSERT INTO t VALUES\n(1)"]

    def test_comment_with_semicolon(self, tmp_path):
        """Test a semicolon on a comment line is not a terminator."""
        path = tmp_path / "semi.sql"
        path.write_bytes(b"-- DROP TABLE x; oops\nSELECT 1;")
        assert [s.sql for s in scan(path)] == ["SELECT 1"]

    def test_utf8_text(self, tmp_path):
        """Test multi-byte text is decoded intact."""
        path = tmp_path / "utf8.sql"
        path.write_bytes("INSERT INTO t VALUES ('héllo; wörld ✓');".encode("utf-8"))
        assert [s.sql for s in scan(path)] == ["INSERT INTO t VALUES ('héllo; wörld ✓')"]

    def test_invalid_bytes_flagged(self, tmp_path):
        """Test bytes outside the encoding mark the statement instead of being replaced."""
        path = tmp_path / "latin1.sql"
        path.write_bytes(b"INSERT INTO t VALUES ('caf\xe9');\nSELECT 1;")
        bad, good = scan(path)

        assert bad.decode_error is not None
        assert "utf-8" in bad.decode_error
        assert bad.sql == "INSERT INTO t VALUES ('caf\\xe9')"
        assert "\ufffd" not in bad.sql
        assert good == StatementBoundary(sql="SELECT 1", offset=len(path.read_bytes()))

    def test_configured_encoding(self, tmp_path):
        path = tmp_path / "latin1.sql"
        path.write_bytes(b"INSERT INTO t VALUES ('caf\xe9');")
        with SQLSource.open(path) as source:
            (stmt,) = StatementScanner(source, encoding="latin-1")
        assert stmt.sql == "INSERT INTO t VALUES ('caf\u00e9')"
        assert stmt.decode_error is None

    def test_lossless_rejoin(self, tmp_path):
        """Test statements plus terminators reconstruct comment-free input."""
        content = "CREATE TABLE a (x INT);\nINSERT INTO a VALUES (1), (2);\nINSERT INTO a VALUES (';');\n"
        path = tmp_path / "plain.sql"
        path.write_text(content)
        statements = scan(path)
        assert "".join(f"{s.sql};\n" for s in statements) == content


class TestFragmentedReads:
    """Test scanning with line fragments smaller than the lines."""

    @pytest.mark.parametrize("read_size", [5, 7, 16])
    def test_small_reads_match(self, sample_file, read_size):
        """Test fragment size does not change the result."""
        assert scan(sample_file, read_size=read_size) == scan(sample_file)

    def test_long_comment_line(self, tmp_path):
        """Test a comment line longer than one fragment is dropped entirely."""
        path = tmp_path / "long.sql"
        path.write_bytes(b"-- " + b"x;" * 50 + b"\nSELECT 1;")
        assert [s.sql for s in scan(path, read_size=8)] == ["SELECT 1"]


class TestResume:
    """Test resuming from emitted boundaries."""

    def test_resume_from_every_boundary(self, sample_file):
        """Test resuming at each boundary yields the remaining statements."""
        full = scan(sample_file)
        for index, stmt in enumerate(full):
            assert scan(sample_file, start_offset=stmt.offset) == full[index + 1:]

    def test_resume_gzip(self, sample_file, sample_gzip):
        """Test resume over a compressed stream matches the plain stream."""
        full = scan(sample_gzip)
        assert full == scan(sample_file)
        for index, stmt in enumerate(full):
            assert scan(sample_gzip, start_offset=stmt.offset) == full[index + 1:]

    def test_resume_keeps_comment_rule(self, tmp_path):
        """Test a line start after a boundary still drops comment lines."""
        path = tmp_path / "resume.sql"
        path.write_bytes(b"SELECT 1;\n-- c;\nSELECT 2;")
        full = scan(path)
        assert [s.sql for s in full] == ["SELECT 1", "SELECT 2"]
        assert scan(path, start_offset=full[0].offset) == full[1:]

    def test_resume_at_end(self, sample_file):
        """Test resuming at the end of stream yields nothing."""
        assert scan(sample_file, start_offset=len(SAMPLE)) == []

    def test_statements_emitted_counter(self, sample_file):
        """Test the scanner counts what it emitted."""
        with SQLSource.open(sample_file) as source:
            scanner = StatementScanner(source)
            list(scanner)
        assert scanner.statements_emitted == len(EXPECTED_SQL)
