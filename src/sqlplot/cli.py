"""Command line interface.

Usage:
    sqlplot paper.tex                      # rewrite paper.tex in place
    sqlplot -o - plot.gp                   # print processed script, write plot-data.txt
    sqlplot -D sqlite:stats.db -R fig3 paper.tex
    sqlplot -C -o expected.tex input.tex   # verify processed output matches expected.tex
    sqlplot import --database sqlite:stats.db stats results.txt
"""

from __future__ import annotations

import argparse
import difflib
import logging
import os
import sys
from pathlib import Path

from sqlplot.backends import DATABASE_ENV, connect
from sqlplot.directives import EngineContext, RangeGate
from sqlplot.engine import PROCESSORS, process_document
from sqlplot.errors import SqlPlotError
from sqlplot.importdata import ImportData, build_parser
from sqlplot.textlines import TextLines

logger = logging.getLogger(__name__)

IMPORT_COMMANDS = ("import", "import-data")


def setup_logging(verbose: bool) -> None:
    """Log to stderr, with debug output if verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s" if verbose else "%(message)s",
        stream=sys.stderr,
    )


def _diff(expected: str, actual: str, name: str) -> str:
    return "".join(
        difflib.unified_diff(
            expected.splitlines(keepends=True),
            actual.splitlines(keepends=True),
            fromfile=name,
            tofile=f"{name} (processed)",
        )
    )


def _check(path: str, actual: str) -> bool:
    """Compare actual against the contents of path, printing a diff on mismatch."""
    try:
        expected = Path(path).read_text()
    except OSError as e:
        raise SqlPlotError(f"Error reading {path}: {e}") from e
    if expected == actual:
        logger.info("Good match to expected output file %s", path)
        return True
    print(f"Mismatch to expected output file {path}:", file=sys.stderr)
    print(_diff(expected, actual, path), file=sys.stderr, end="")
    return False


def import_main(argv: list[str]) -> int:
    """Run IMPORT-DATA from the command line."""
    parser = argparse.ArgumentParser(
        prog="sqlplot import",
        description="Import RESULT key=value lines into a SQL table",
    )
    build_parser(parser)
    parser.add_argument(
        "--database",
        default=None,
        help=f"Database connection string (default: ${DATABASE_ENV} or in-memory SQLite)",
    )
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        with connect(args.database) as db:
            importer = ImportData(db)
            importer.apply_options(args)
            with db.transaction():
                importer.import_files(args.files, args.table)
    except (SqlPlotError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    if argv and argv[0] in IMPORT_COMMANDS:
        return import_main(argv[1:])

    arg_parser = argparse.ArgumentParser(
        prog="sqlplot",
        description="Process SQL directives in LaTeX documents and Gnuplot scripts",
    )
    arg_parser.add_argument("files", nargs="*", help="Files to process in place (default: stdin)")
    arg_parser.add_argument("-v", "--verbose", action="store_true", help="Increase verbosity")
    arg_parser.add_argument(
        "-f", "--filetype",
        choices=sorted(PROCESSORS),
        help="Force input file type",
    )
    arg_parser.add_argument(
        "-o", "--output",
        help="Output all processed files to this file ('-' for stdout)",
    )
    arg_parser.add_argument(
        "-C", "--check",
        action="store_true",
        help="Verify that the -o output file matches the processed data",
    )
    arg_parser.add_argument(
        "-D", "--database",
        default=None,
        help=f"Database connection string (default: ${DATABASE_ENV} or in-memory SQLite)",
    )
    arg_parser.add_argument(
        "-R", "--range",
        action="append",
        default=None,
        help="Process only the named RANGE (may be repeated)",
    )
    arg_parser.add_argument("-W", "--workdir", help="Change working directory at start-up")

    args = arg_parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.check and not args.output:
        print("Error: checking output requires an output filename.", file=sys.stderr)
        return 1

    try:
        if args.workdir:
            os.chdir(args.workdir)
        ctx = EngineContext(database=connect(args.database), verbose=args.verbose)
    except (SqlPlotError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        return _run(args, ctx)
    except (SqlPlotError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        ctx.database.close()


def _run(args: argparse.Namespace, ctx: EngineContext) -> int:
    collected: list[str] = []
    ok = True

    for filename in args.files or [None]:
        ctx.filename = filename
        ctx.gate = RangeGate.from_filter(args.range)

        if filename is None:
            logger.info("Reading text from stdin ...")
            lines = TextLines.from_text(sys.stdin.read())
        else:
            lines = TextLines.from_text(Path(filename).read_text())

        result = process_document(lines, ctx, args.filetype)
        text = result.lines.text()

        if result.datafile is not None and result.data is not None:
            if args.check:
                ok = _check(result.datafile, result.data) and ok
            else:
                Path(result.datafile).write_text(result.data)

        if args.output:
            collected.append(text)
        elif filename is None:
            sys.stdout.write(text)
        else:
            Path(filename).write_text(text)

    output = "".join(collected)
    if args.check:
        ok = _check(args.output, output) and ok
    elif args.output == "-":
        sys.stdout.write(output)
    elif args.output:
        Path(args.output).write_text(output)

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
