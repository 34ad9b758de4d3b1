from __future__ import annotations

import argparse
import logging
from collections.abc import Iterable
from pathlib import Path

from depslim import __version__
from depslim.errors import DepslimError
from depslim.graph import (
    DEFAULT_CONFIGURATION,
    DependencyGraphAdapter,
    GradleReportGraph,
    JsonGraph,
    run_gradle_report,
)
from depslim.models import OptimizationReport
from depslim.optimizer import (
    DEFAULT_BUILD_FILE,
    DEFAULT_EXTENSION,
    DEFAULT_SOURCE_DIR,
    optimize_dependencies,
    write_report,
)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="depslim",
        description=(
            "Exclude transitive modules that the project's sources never import "
            "from the dependency declarations in build.gradle."
        ),
    )
    parser.add_argument("--path", default=".", help="Project root directory")
    parser.add_argument(
        "--source-dir",
        default=DEFAULT_SOURCE_DIR,
        help="Source tree to scan, relative to --path",
    )
    parser.add_argument(
        "--build-file",
        default=DEFAULT_BUILD_FILE,
        help="Dependency declaration file, relative to --path",
    )
    parser.add_argument(
        "--extension",
        default=DEFAULT_EXTENSION,
        help="Suffix of source files to scan",
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--graph", help="JSON file mapping dependencies to sub-modules")
    source.add_argument(
        "--gradle-report",
        help="Saved output of 'gradle dependencies --configuration <conf>'",
    )
    source.add_argument(
        "--gradle",
        action="store_true",
        help="Run Gradle to resolve the configuration (default)",
    )
    parser.add_argument(
        "--configuration",
        default=DEFAULT_CONFIGURATION,
        help="Gradle configuration to resolve with --gradle",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the diff without writing the build file",
    )
    parser.add_argument("--report", help="Write a JSON report to this path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(list(argv) if argv is not None else None)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
    root = Path(args.path).resolve()
    if not root.exists() or not root.is_dir():
        raise SystemExit(f"Path does not exist or is not a directory: {root}")

    try:
        graph = _load_graph(root, args)
        report = optimize_dependencies(
            root,
            graph,
            source_dir=args.source_dir,
            build_file=args.build_file,
            extension=args.extension,
            dry_run=args.dry_run,
        )
    except DepslimError as exc:
        raise SystemExit(str(exc)) from exc

    _print_summary(report, dry_run=args.dry_run)
    if args.report:
        try:
            write_report(Path(args.report), report)
        except DepslimError as exc:
            raise SystemExit(str(exc)) from exc
    return 0


def _load_graph(root: Path, args: argparse.Namespace) -> DependencyGraphAdapter:
    if args.graph:
        return JsonGraph(Path(args.graph))
    if args.gradle_report:
        return GradleReportGraph.from_file(Path(args.gradle_report))
    return run_gradle_report(root, args.configuration)


def _print_summary(report: OptimizationReport, dry_run: bool) -> None:
    if not report.unused_modules:
        print("No unused dependencies detected.")
        return
    for dependency, modules in report.unused_modules.items():
        print(f"{dependency}: excluding {', '.join(modules)}")
    if not report.edits:
        print(f"No matching declarations found in {report.build_file}.")
    elif not report.changed:
        print(f"{report.build_file} already up to date.")
    elif dry_run:
        print(report.diff, end="")
        print(f"Dry-run complete. {report.build_file} was not modified.")
    else:
        print(f"Updated {report.build_file} ({len(report.edits)} declarations).")


if __name__ == "__main__":
    raise SystemExit(main())
