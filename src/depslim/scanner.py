from __future__ import annotations

import logging
import os
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# Requires a concrete trailing identifier; wildcard and static imports never match.
IMPORT_PATTERN = re.compile(r"import\s+([A-Za-z0-9_.]+);")


def scan_used_symbols(root: Path, extension: str = ".java") -> set[str]:
    root = Path(root)
    if not root.is_dir():
        logger.info("Source directory %s does not exist; no imports scanned", root)
        return set()

    symbols: set[str] = set()
    scanned = 0
    for path in _collect_sources(root, extension):
        try:
            symbols.update(scan_file(path))
        except OSError as exc:
            logger.warning("Skipping unreadable source file %s: %s", path, exc)
            continue
        scanned += 1
    logger.info("Scanned %d source files, found %d imports", scanned, len(symbols))
    logger.debug("Used imports: %s", sorted(symbols))
    return symbols


def scan_file(path: Path) -> set[str]:
    symbols: set[str] = set()
    with path.open(encoding="utf-8", errors="replace") as handle:
        for line in handle:
            match = IMPORT_PATTERN.search(line)
            if match:
                symbols.add(match.group(1))
    return symbols


def _collect_sources(root: Path, extension: str) -> list[Path]:
    results: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_warn_unreadable_dir):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.suffix == extension:
                results.append(path)
    return results


def _warn_unreadable_dir(exc: OSError) -> None:
    logger.warning("Skipping unreadable source directory %s: %s", exc.filename, exc)
