"""Tests for gnuplot script processing."""

import pytest

from sqlplot.backends import SQLiteDatabase
from sqlplot.directives import EngineContext
from sqlplot.engine import process_document
from sqlplot.gnuplot import datafile_name, maybe_quote
from sqlplot.textlines import TextLines

HEADER = "#" * 80 + "\n"


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


def run(db, text, filename="speed.gp"):
    """Process a gnuplot script, returning the script and the data file contents."""
    ctx = EngineContext(database=db, filename=filename)
    result = process_document(TextLines.from_text(text), ctx)
    return result.lines.text(), result.data


class TestHelpers:
    """Tests for data file naming and macro quoting."""

    def test_datafile_name(self):
        """Test data file names derived from the script name."""
        assert datafile_name("speed.gp") == "speed-data.txt"
        assert datafile_name("plots/fig.plot") == "plots/fig-data.txt"
        assert datafile_name(None) == "stdin-data.txt"

    def test_maybe_quote(self):
        """Test quoting of non-numeric values."""
        assert maybe_quote("1.5") == "1.5"
        assert maybe_quote("-3") == "-3"
        assert maybe_quote("abc") == "'abc'"
        assert maybe_quote("it's") == "'it''s'"


class TestPlot:
    """Tests for PLOT."""

    QUERY = "# PLOT SELECT n, time FROM stats WHERE algo='a' ORDER BY n"

    def test_plot(self, db):
        """Test the data set and the plot statement."""
        script, data = run(db, doc(self.QUERY))

        assert script == doc(
            self.QUERY,
            "plot \\",
            "    'speed-data.txt' index 0 with linespoints",
        )
        assert data == HEADER + (
            "# PLOT SELECT n, time FROM stats WHERE algo='a' ORDER BY n\n"
            "#\n"
            "1\t1.5\n"
            "2\t2.5\n"
            "\n\n"
        )

    def test_keep_style(self, db):
        """Test that the style of an existing entry is kept."""
        text = doc(self.QUERY, "plot \\", "    'old-data.txt' index 7 with lines lw 2", "pause -1")

        script, _ = run(db, text)

        assert script == doc(
            self.QUERY,
            "plot \\",
            "    'speed-data.txt' index 0 with lines lw 2",
            "pause -1",
        )

    def test_indices(self, db):
        """Test that each data set gets the next index."""
        text = doc(self.QUERY, "", self.QUERY)

        script, data = run(db, text)

        assert "    'speed-data.txt' index 1 with linespoints" in script.splitlines()
        assert data.count(HEADER) == 2

    def test_idempotent(self, db):
        """Test that processing twice gives the same script and data."""
        once, data_once = run(db, doc("set key left", self.QUERY, "pause -1"))
        twice, data_twice = run(db, once)

        assert twice == once
        assert data_twice == data_once


class TestMultiplot:
    """Tests for MULTIPLOT."""

    QUERY = "# MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats ORDER BY algo, n"

    def test_multiplot(self, db):
        """Test one data set per group with titles."""
        script, data = run(db, doc(self.QUERY))

        assert script == doc(
            self.QUERY,
            "plot \\",
            "    'speed-data.txt' index 0 title \"algo=a\" with linespoints, \\",
            "    'speed-data.txt' index 1 title \"algo=b\" with linespoints",
        )
        assert data == HEADER + (
            "# MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats ORDER BY algo, n\n"
            "#\n"
            "# index 0 algo=a\n"
            "1\t1.5\n"
            "2\t2.5\n"
            "\n\n"
            "# index 1 algo=b\n"
            "1\t3.0\n"
            "2\t4.0\n"
            "\n\n"
        )

    def test_quoted_legend_idempotent(self, db):
        """Test that quotes in default legends are escaped and survive a second run."""
        db.execute("INSERT INTO stats VALUES ('a\"b', 1, 1.0)")
        query = "# MULTIPLOT(algo) SELECT MULTIPLOT, n AS x, time AS y FROM stats WHERE algo='a\"b'"

        script, _ = run(db, doc(query))

        assert script == doc(
            query,
            "plot \\",
            "    'speed-data.txt' index 0 title \"algo=a\\\"b\" with linespoints",
        )
        assert run(db, script)[0] == script

    @pytest.mark.parametrize("mode", ["title", "ptitle"])
    def test_title_column_escaped_once(self, db, mode):
        """Test that title and ptitle legends are escaped exactly once."""
        query = (
            f"# MULTIPLOT(algo|{mode}) SELECT MULTIPLOT, n AS x, time AS y, "
            f"'say \"' || algo || '\"' AS {mode} FROM stats WHERE algo='a'"
        )

        script, _ = run(db, doc(query))

        assert "    'speed-data.txt' index 0 title \"say \\\"a\\\"\" with linespoints" in script
        assert run(db, script)[0] == script

    def test_keep_styles(self, db):
        """Test that entry styles are paired by position."""
        text = doc(
            self.QUERY,
            "plot \\",
            "    'speed-data.txt' index 0 title \"old\" with lines, \\",
            "    'speed-data.txt' index 1 title \"old\" with points pt 7, \\",
            "    'speed-data.txt' index 2 title \"gone\" with dots",
            "pause -1",
        )

        script, _ = run(db, text)

        assert script == doc(
            self.QUERY,
            "plot \\",
            "    'speed-data.txt' index 0 title \"algo=a\" with lines, \\",
            "    'speed-data.txt' index 1 title \"algo=b\" with points pt 7",
            "pause -1",
        )

    def test_idempotent(self, db):
        """Test that processing twice gives the same script."""
        once, _ = run(db, doc(self.QUERY))
        twice, _ = run(db, once)

        assert twice == once


class TestMacro:
    """Tests for DEFMACRO and MACRO."""

    def test_macros(self, db):
        """Test variable assignments with quoting and identifier cleanup."""
        query = (
            "# MACRO SELECT COUNT(*) AS runs, 'quick''sort' AS name, "
            'MAX(n) AS "2max", MIN(time) AS "min-time" FROM stats'
        )

        script, _ = run(db, doc(query))

        assert script == doc(
            query,
            "runs = 4",
            "name = 'quick''sort'",
            "_2max = 2",
            "min_time = 1.5",
        )

    def test_idempotent(self, db):
        """Test that old assignments are replaced."""
        once, _ = run(db, doc("# DEFMACRO SELECT COUNT(*) AS runs FROM stats", "plot x"))
        twice, _ = run(db, once)

        assert twice == once
        assert once.count("runs = 4") == 1

    def test_latex_only_directive(self, db):
        """Test that table directives are left alone in gnuplot scripts."""
        text = doc("# TABULAR SELECT algo FROM stats")

        script, data = run(db, text)

        assert script == text
        assert data == ""
