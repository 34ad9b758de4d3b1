from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DeclarationLine:
    kind: str  # "plain", "declaration", "exclude" or "block_close"
    text: str
    dependency: str | None = None


@dataclass(frozen=True)
class Edit:
    dependency: str
    line_number: int
    original: str
    replacement: str
    removed_excludes: list[str] = field(default_factory=list)
    added_excludes: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class PatchResult:
    lines: list[str]
    edits: list[Edit]


@dataclass(frozen=True)
class OptimizationReport:
    project_root: str
    build_file: str
    generated_at: str
    used_symbols: list[str]
    module_map: dict[str, list[str]]
    unused_modules: dict[str, list[str]]
    edits: list[Edit]
    changed: bool
    diff: str
