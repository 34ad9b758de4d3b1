from __future__ import annotations

import difflib
import json
import logging
import os
import tempfile
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from depslim.detector import find_unused_modules
from depslim.errors import MissingDeclarationFile, UnreadableDeclarationFile, WriteFailure
from depslim.graph import DependencyGraphAdapter
from depslim.models import Edit, OptimizationReport
from depslim.patcher import patch_declarations
from depslim.scanner import scan_used_symbols

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_DIR = "src/main/java"
DEFAULT_BUILD_FILE = "build.gradle"
DEFAULT_EXTENSION = ".java"


def optimize_dependencies(
    project_root: Path,
    graph: DependencyGraphAdapter,
    source_dir: str = DEFAULT_SOURCE_DIR,
    build_file: str = DEFAULT_BUILD_FILE,
    extension: str = DEFAULT_EXTENSION,
    dry_run: bool = False,
) -> OptimizationReport:
    project_root = Path(project_root).resolve()
    build_path = project_root / build_file
    if not build_path.is_file():
        raise MissingDeclarationFile(build_path)

    used_symbols = scan_used_symbols(project_root / source_dir, extension)
    module_map = graph.module_map() or {}
    logger.info("Dependency modules: %s", module_map)
    if not module_map:
        logger.info("No dependency data available; nothing to analyze")
    elif not used_symbols:
        logger.warning("No imports found under %s; every sub-module will be excluded", source_dir)

    unused_modules = find_unused_modules(used_symbols, module_map)
    try:
        original = build_path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise UnreadableDeclarationFile(build_path, exc) from exc
    updated = original
    edits: list[Edit] = []
    if unused_modules:
        logger.info("Unused dependencies found. Updating %s...", build_file)
        for dependency, modules in unused_modules.items():
            logger.info("Detected unused modules for %s -> %s", dependency, modules)
        result = patch_declarations(_split_lines(original), unused_modules)
        edits = result.edits
        updated = _join_lines(result.lines, trailing_newline=original.endswith("\n"))
    else:
        logger.info("No unused dependencies detected.")

    changed = updated != original
    if changed and not dry_run:
        _write_atomic(build_path, updated)
        logger.info("%s updated successfully", build_file)

    return OptimizationReport(
        project_root=str(project_root),
        build_file=str(build_path),
        generated_at=datetime.now(timezone.utc).isoformat(),
        used_symbols=sorted(used_symbols),
        module_map=module_map,
        unused_modules=unused_modules,
        edits=edits,
        changed=changed,
        diff=_render_diff(build_file, original, updated),
    )


def write_report(path: Path, report: OptimizationReport) -> None:
    path = Path(path)
    try:
        path.write_text(json.dumps(asdict(report), indent=2, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise WriteFailure(path, exc) from exc


def _split_lines(text: str) -> list[str]:
    # Only "\n" separates lines; form feeds and other separators stay in the text.
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return lines


def _join_lines(lines: list[str], trailing_newline: bool) -> str:
    text = "\n".join(lines)
    if trailing_newline and lines:
        text += "\n"
    return text


def _write_atomic(path: Path, content: str) -> None:
    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            newline="",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            tmp_name = handle.name
            handle.write(content)
        if path.exists():
            os.chmod(tmp_name, path.stat().st_mode & 0o7777)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise WriteFailure(path, exc) from exc


def _render_diff(name: str, original: str, updated: str) -> str:
    if original == updated:
        return ""
    diff = difflib.unified_diff(
        _split_lines(original),
        _split_lines(updated),
        fromfile=f"a/{name}",
        tofile=f"b/{name}",
        lineterm="",
    )
    return "\n".join(diff) + "\n"
