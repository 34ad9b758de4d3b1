"""Sources for the resolved dependency -> sub-module map.

depslim never resolves dependencies itself; an adapter hands over the
first-level dependencies of a configuration together with the artifact
names of their direct children.
"""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from depslim.errors import GraphFormatError, GraphUnavailable

logger = logging.getLogger(__name__)

DEFAULT_CONFIGURATION = "compileClasspath"

_TREE_NODE = re.compile(r"^(?P<prefix>(?:[| ]    )*)[+\\]--- (?P<node>.+)$")
_SKIPPED_MARKERS = ("(c)", "(n)")


class DependencyGraphAdapter(Protocol):
    def module_map(self) -> dict[str, list[str]]: ...


class StaticGraph:
    def __init__(self, mapping: Mapping[str, Sequence[str]]) -> None:
        self._mapping = {dep: list(modules) for dep, modules in mapping.items()}

    def module_map(self) -> dict[str, list[str]]:
        return {dep: list(modules) for dep, modules in self._mapping.items()}


class JsonGraph:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def module_map(self) -> dict[str, list[str]]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise GraphUnavailable(f"Could not read dependency graph {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise GraphFormatError(f"Invalid JSON in {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise GraphFormatError(f"{self.path}: expected an object of dependency -> modules")
        mapping: dict[str, list[str]] = {}
        for dependency, modules in data.items():
            if not isinstance(modules, list) or not all(isinstance(m, str) for m in modules):
                raise GraphFormatError(
                    f"{self.path}: modules for {dependency!r} must be a list of strings"
                )
            mapping[dependency] = modules
        return mapping


class GradleReportGraph:
    """Parses the tree printed by ``gradle dependencies --configuration <conf>``."""

    def __init__(self, text: str) -> None:
        self.text = text

    @classmethod
    def from_file(cls, path: Path) -> GradleReportGraph:
        try:
            return cls(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise GraphUnavailable(f"Could not read Gradle report {path}: {exc}") from exc

    def module_map(self) -> dict[str, list[str]]:
        mapping: dict[str, list[str]] = {}
        current: str | None = None
        started = False
        for line in self.text.splitlines():
            if not line.strip():
                if started:
                    break
                continue
            match = _TREE_NODE.match(line)
            if not match:
                continue
            started = True
            depth = len(match.group("prefix")) // 5
            coordinate = _parse_node(match.group("node"))
            if depth == 0:
                current = None
                if coordinate is None:
                    continue
                current = f"{coordinate[0]}:{coordinate[1]}"
                mapping.setdefault(current, [])
            elif depth == 1 and current is not None and coordinate is not None:
                module = coordinate[1]
                if module not in mapping[current]:
                    mapping[current].append(module)
        return mapping


def _parse_node(node: str) -> tuple[str, str] | None:
    node = node.strip()
    if node.startswith("project "):
        return None
    if any(node.endswith(marker) for marker in _SKIPPED_MARKERS):
        return None
    node = node.removesuffix("(*)").strip()
    node = node.split(" -> ")[0].strip()
    parts = node.split(":")
    if len(parts) < 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


def run_gradle_report(
    project_root: Path,
    configuration: str = DEFAULT_CONFIGURATION,
) -> GradleReportGraph:
    project_root = Path(project_root)
    wrapper = project_root / ("gradlew.bat" if os.name == "nt" else "gradlew")
    command = [str(wrapper) if wrapper.exists() else "gradle"]
    command.extend(["-q", "dependencies", "--configuration", configuration])
    logger.info("Resolving %s with: %s", configuration, " ".join(command))
    try:
        result = subprocess.run(
            command,
            cwd=project_root,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise GraphUnavailable(f"Could not run {command[0]}: {exc}") from exc
    if result.returncode != 0:
        raise GraphUnavailable(
            f"{command[0]} exited with status {result.returncode}: {result.stderr.strip()}"
        )
    return GradleReportGraph(result.stdout)
