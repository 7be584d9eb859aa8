"""Tests for LaTeX document processing."""

import pytest

from sqlplot.backends import SQLiteDatabase
from sqlplot.directives import EngineContext
from sqlplot.engine import process, process_document
from sqlplot.errors import DirectiveError, QueryError
from sqlplot.textlines import TextLines


@pytest.fixture
def db():
    """Create an in-memory SQLite database with benchmark results."""
    database = SQLiteDatabase()
    database.execute("CREATE TABLE stats (algo TEXT, n INTEGER, time REAL)")
    database.execute(
        "INSERT INTO stats VALUES ('a', 1, 1.5), ('a', 2, 2.5), ('b', 1, 3.0), ('b', 2, 4.0)"
    )
    yield database
    database.close()


def doc(*lines):
    """Join lines into a document."""
    return "".join(line + "\n" for line in lines)


def run(db, text):
    """Process a LaTeX document."""
    return process(text, EngineContext(database=db), "latex")


class TestPlot:
    """Tests for PLOT."""

    QUERY = "% PLOT SELECT n, time FROM stats WHERE algo='a' ORDER BY n"

    def test_insert(self, db):
        """Test that a new addplot line is inserted."""
        assert run(db, doc(self.QUERY)) == doc(
            self.QUERY,
            r"\addplot coordinates { (1,1.5) (2,2.5) };",
        )

    def test_idempotent(self, db):
        """Test that processing twice gives the same document."""
        once = run(db, doc("Text", self.QUERY, "More text"))

        assert run(db, once) == once

    def test_keep_style(self, db):
        """Test that addplot options and trailing text are kept."""
        text = doc(self.QUERY, r"\addplot[red,mark=*] coordinates { (9,9) }; % old")

        assert run(db, text) == doc(
            self.QUERY,
            r"\addplot[red,mark=*] coordinates { (1,1.5) (2,2.5) }; % old",
        )

    def test_indentation(self, db):
        """Test that output is indented like the directive."""
        out = run(db, doc("    " + self.QUERY))

        assert out.splitlines()[1] == r"    \addplot coordinates { (1,1.5) (2,2.5) };"


class TestMultiplot:
    """Tests for MULTIPLOT."""

    SORTED = "% MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats ORDER BY algo, n"

    def test_groups(self, db):
        """Test one addplot and legend per group."""
        assert run(db, doc(self.SORTED)) == doc(
            self.SORTED,
            r"\addplot coordinates { (1,1.5) (2,2.5) };",
            r"\addlegendentry{algo=a};",
            r"\addplot coordinates { (1,3.0) (2,4.0) };",
            r"\addlegendentry{algo=b};",
        )

    def test_unsorted_rows(self, db):
        """Test that groups are formed from consecutive rows only."""
        text = doc("% MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats ORDER BY n, algo")

        out = run(db, text)

        assert out.count(r"\addplot") == 4
        assert out.count(r"\addlegendentry{algo=a};") == 2

    def test_idempotent(self, db):
        """Test that processing twice gives the same document."""
        once = run(db, doc(self.SORTED))

        assert run(db, once) == once

    def test_growth_keeps_styles(self, db):
        """Test that old styles are kept and new groups get the default."""
        db.execute("INSERT INTO stats VALUES ('c', 1, 5.0)")
        text = doc(
            self.SORTED,
            r"\addplot[red] coordinates { (0,0) };",
            r"\addlegendentry{old a};",
            r"\addplot[blue] coordinates { (0,0) };",
            r"\addlegendentry{old b};",
        )

        assert run(db, text) == doc(
            self.SORTED,
            r"\addplot[red] coordinates { (1,1.5) (2,2.5) };",
            r"\addlegendentry{algo=a};",
            r"\addplot[blue] coordinates { (1,3.0) (2,4.0) };",
            r"\addlegendentry{algo=b};",
            r"\addplot coordinates { (1,5.0) };",
            r"\addlegendentry{algo=c};",
        )

    def test_shrink_drops_entries(self, db):
        """Test that surplus old entries are removed."""
        query = "% MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats WHERE algo='a'"
        text = doc(
            query,
            r"\addplot[red] coordinates { (0,0) };",
            r"\addlegendentry{old a};",
            r"\addplot[blue] coordinates { (0,0) };",
            r"\addlegendentry{old b};",
            "Text after.",
        )

        assert run(db, text) == doc(
            query,
            r"\addplot[red] coordinates { (1,1.5) (2,2.5) };",
            r"\addlegendentry{algo=a};",
            "Text after.",
        )

    def test_error_bars(self, db):
        """Test coordinates with error bars."""
        query = (
            "% MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y, 0.1 AS yerr "
            "FROM stats WHERE algo='a' ORDER BY n"
        )

        out = run(db, doc(query))

        assert r"\addplot coordinates { (1,1.5) +- (0,0.1) (2,2.5) +- (0,0.1) };" in out

    def test_ptitle_escaped(self, db):
        """Test that ptitle legends are escaped and title legends are not."""
        ptitle = (
            "% MULTIPLOT(algo|ptitle) SELECT MULTIPLOT, n AS x, time AS y, "
            "'algo_' || algo AS ptitle FROM stats WHERE algo='a'"
        )
        title = ptitle.replace("ptitle", "title")

        assert r"\addlegendentry{algo\_a};" in run(db, doc(ptitle))
        assert r"\addlegendentry{algo_a};" in run(db, doc(title))

    def test_null_rows_skipped(self, db):
        """Test that rows with NULL coordinates are skipped."""
        db.execute("INSERT INTO stats VALUES ('a', 3, NULL)")

        out = run(db, doc(self.SORTED))

        assert r"\addplot coordinates { (1,1.5) (2,2.5) };" in out

    def test_missing_group_list(self, db):
        """Test that the group column list is required."""
        with pytest.raises(DirectiveError, match="requires group column list"):
            run(db, doc("% MULTIPLOT SELECT n AS x, time AS y FROM stats"))

    def test_missing_column(self, db):
        """Test that x and y columns are required."""
        with pytest.raises(DirectiveError, match="no 'y' column"):
            run(db, doc("% MULTIPLOT(algo) SELECT MULTIPLOT, n AS x FROM stats"))


class TestTextTable:
    """Tests for TEXTTABLE."""

    QUERY = "% TEXTTABLE SELECT 5 AS count, 24504.38 AS sum"
    TABLE = (
        "+-------+----------+",
        "| count |      sum |",
        "+-------+----------+",
        "|     5 | 24504.38 |",
        "+-------+----------+",
        "% END TEXTTABLE SELECT 5 AS count, 24504.38 AS sum",
    )

    def test_insert(self, db):
        """Test inserting a table and end marker."""
        assert run(db, doc(self.QUERY)) == doc(self.QUERY, *self.TABLE)

    def test_replace(self, db):
        """Test that an old table up to the end marker is replaced."""
        text = doc(self.QUERY, "+--+", "| old |", "+--+", "% END TEXTTABLE old query", "after")

        assert run(db, text) == doc(self.QUERY, *self.TABLE, "after")

    def test_idempotent(self, db):
        """Test that processing twice gives the same document."""
        once = run(db, doc(self.QUERY))

        assert run(db, once) == once


class TestTabular:
    """Tests for TABULAR and TABTABLE."""

    QUERY = "% TABULAR SELECT algo, n FROM stats WHERE algo='a' ORDER BY n"

    def test_insert(self, db):
        """Test inserting rows and end marker."""
        assert run(db, doc(self.QUERY)) == doc(
            self.QUERY,
            r"a & 1 \\",
            r"a & 2 \\",
            "% END TABULAR SELECT algo, n FROM stats WHERE algo='a' ORDER BY n",
        )

    def test_keep_row_suffix(self, db):
        """Test that text after the row break is kept."""
        text = doc(
            self.QUERY,
            r"old & 0 \\ \hline",
            r"old & 0 \\",
            "% END TABULAR old",
        )

        assert run(db, text) == doc(
            self.QUERY,
            r"a & 1 \\ \hline",
            r"a & 2 \\",
            "% END TABULAR SELECT algo, n FROM stats WHERE algo='a' ORDER BY n",
        )

    def test_alignment(self, db):
        """Test that cells are right-aligned per column."""
        query = "% TABULAR SELECT 'x' AS a, 1000 AS b UNION ALL SELECT 'yyy', 5"

        lines = run(db, doc(query)).splitlines()

        assert lines[1] == r"  x & 1000 \\"
        assert lines[2] == r"yyy &    5 \\"

    def test_reformat(self, db):
        """Test REFORMAT applied to table cells."""
        query = "% TABULAR REFORMAT(col 1=(precision=2)) SELECT algo, time FROM stats WHERE algo='a'"

        lines = run(db, doc(query)).splitlines()

        assert lines[1] == r"a & 1.50 \\"
        assert lines[2] == r"a & 2.50 \\"

    def test_idempotent(self, db):
        """Test that processing twice gives the same document."""
        once = run(db, doc("\\begin{tabular}{ll}", self.QUERY, "\\end{tabular}"))

        assert run(db, once) == once

    def test_tabtable(self, db):
        """Test tab-separated tables."""
        query = "% TABTABLE SELECT algo, n FROM stats WHERE algo='b' ORDER BY n"

        once = run(db, doc(query))

        assert once == doc(
            query,
            "b\t1",
            "b\t2",
            "% END TABTABLE SELECT algo, n FROM stats WHERE algo='b' ORDER BY n",
        )
        assert run(db, once) == once


class TestDefmacro:
    """Tests for DEFMACRO."""

    QUERY = "% DEFMACRO SELECT COUNT(*) AS numRuns, MAX(time) AS max_time FROM stats"

    def test_macros(self, db):
        """Test one macro per column with non-letters removed."""
        assert run(db, doc(self.QUERY)) == doc(
            self.QUERY,
            r"\def\numRuns{4}",
            r"\def\maxtime{4.0}",
        )

    def test_idempotent(self, db):
        """Test that old definitions are replaced."""
        once = run(db, doc(self.QUERY, "text"))

        assert run(db, once) == once

    def test_reformat(self, db):
        """Test REFORMAT applied to macro values."""
        out = run(db, doc("% DEFMACRO REFORMAT(precision=1) SELECT AVG(time) AS avg FROM stats"))

        assert r"\def\avg{2.8}" in out

    def test_one_row_required(self, db):
        """Test that queries must return exactly one row."""
        with pytest.raises(DirectiveError, match="exactly one row"):
            run(db, doc("% DEFMACRO SELECT n FROM stats"))


class TestTransaction:
    """Tests for error handling of a complete document."""

    def test_rollback_on_error(self, db):
        """Test that changes of a failed document are rolled back."""
        text = doc(
            "% SQL INSERT INTO stats VALUES ('z', 9, 9.0)",
            "% PLOT SELECT nope FROM missing",
        )

        with pytest.raises(QueryError):
            run(db, text)

        cursor = db.query("SELECT COUNT(*) FROM stats WHERE algo='z'")
        cursor.step()
        assert cursor.text(0) == "0"

    def test_input_unchanged(self, db):
        """Test that the input buffer is not modified."""
        lines = TextLines.from_text(doc(TestPlot.QUERY))

        result = process_document(lines, EngineContext(database=db), "latex")

        assert len(lines) == 1
        assert len(result.lines) == 2
        assert result.datafile is None
