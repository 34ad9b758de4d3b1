"""Line-oriented patching of ``build.gradle`` dependency declarations.

The declaration file is never parsed as Groovy. Each line is classified as
plain text, a dependency declaration, an ``exclude module:`` directive or a
block close, and only declarations of dependencies with unused modules (and
the exclude directives inside their blocks) are rewritten. Running the patch
twice with the same input produces the same text.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence

from depslim.models import DeclarationLine, Edit, PatchResult

logger = logging.getLogger(__name__)

EXCLUDE_PATTERN = re.compile(r"^exclude\s*\(?\s*module\s*:")
EXCLUDE_INDENT = "    "

_COMMENT_PREFIXES = ("//", "/*", "*")
_TRAILING_COMMENT = re.compile(r"\s+//")
_UNPARENTHESIZED = re.compile(
    r"""^(?P<indent>\s*)(?P<conf>[A-Za-z_]\w*)\s+"""
    r"""(?P<quote>["'])(?P<coord>[^"']+)(?P=quote)(?P<rest>.*)$"""
)
_INDENT = re.compile(r"^\s*")
_QUOTED = re.compile(r"'[^']*'|\"[^\"]*\"")


def dependency_key(dependency: str) -> str:
    return ":".join(dependency.split(":")[:2])


def match_dependency(line: str, keys: Iterable[str]) -> str | None:
    """Return the first key (in sorted order) whose group:artifact appears in ``line``."""
    if line.strip().startswith(_COMMENT_PREFIXES):
        return None
    code, _ = _split_comment(line)
    for key in sorted(keys):
        if _key_pattern(dependency_key(key)).search(code):
            return key
    return None


def classify_lines(lines: Sequence[str], keys: Iterable[str]) -> list[DeclarationLine]:
    keys = sorted(keys)
    classified: list[DeclarationLine] = []
    in_comment = False
    for text in lines:
        if in_comment:
            classified.append(DeclarationLine("plain", text))
            in_comment = "*/" not in text
            continue
        in_comment = _opens_block_comment(text)
        dependency = match_dependency(text, keys)
        stripped = text.strip()
        if dependency is not None:
            classified.append(DeclarationLine("declaration", text, dependency))
        elif EXCLUDE_PATTERN.match(stripped):
            classified.append(DeclarationLine("exclude", text))
        elif stripped.startswith("}"):
            classified.append(DeclarationLine("block_close", text))
        else:
            classified.append(DeclarationLine("plain", text))
    return classified


def patch_declarations(
    lines: Sequence[str],
    unused_modules: Mapping[str, Sequence[str]],
) -> PatchResult:
    classified = classify_lines(lines, unused_modules.keys())
    output: list[str] = []
    edits: list[Edit] = []

    index = 0
    while index < len(classified):
        line = classified[index]
        if line.kind != "declaration" or line.dependency is None:
            output.append(line.text)
            index += 1
            continue

        code, _ = _split_comment(line.text)
        if "{" in code and code.rstrip().endswith("}"):
            logger.warning(
                "Line %d declares %s with an inline block; leaving it unchanged",
                index + 1,
                line.dependency,
            )
            output.append(line.text)
            index += 1
            continue

        logger.info(
            "Found dependency %s at line %d: %s", line.dependency, index + 1, line.text.strip()
        )
        indent = _INDENT.match(line.text).group(0)
        replacement = _normalize_declaration(line.text)
        added = [
            f'{indent}{EXCLUDE_INDENT}exclude module: "{module}"'
            for module in unused_modules[line.dependency]
        ]
        removed: list[str] = []
        body: list[str] = []

        opens_block = code.rstrip().endswith("{")
        cursor = index + 1
        close = _find_block_close(classified, index) if opens_block else None
        if close is not None:
            depth = 1
            for inner in classified[cursor:close]:
                # Only directives of this block; nested blocks keep theirs.
                if inner.kind == "exclude" and depth == 1:
                    removed.append(inner.text)
                else:
                    body.append(inner.text)
                depth += _brace_delta(inner.text)
            closing: str | None = classified[close].text
            cursor = close + 1
        else:
            if opens_block:
                logger.warning(
                    "Block opened at line %d for %s is never closed", index + 1, line.dependency
                )
            while cursor < len(classified) and classified[cursor].kind == "exclude":
                removed.append(classified[cursor].text)
                cursor += 1
            closing = None if opens_block else f"{indent}}}"

        for text in removed:
            logger.info("Removing old exclude: %s", text.strip())
        for text in added:
            logger.info("Adding exclude: %s", text.strip())

        output.append(replacement)
        output.extend(added)
        output.extend(body)
        if closing is not None:
            output.append(closing)
        edits.append(
            Edit(
                dependency=line.dependency,
                line_number=index + 1,
                original=line.text,
                replacement=replacement,
                removed_excludes=[text.strip() for text in removed],
                added_excludes=[text.strip() for text in added],
            )
        )
        index = cursor

    return PatchResult(lines=output, edits=edits)


def _key_pattern(key: str) -> re.Pattern[str]:
    # "com.acme:widgets" must not match "com.acme:widgets-lib".
    return re.compile(rf"(?<![\w.-]){re.escape(key)}(?=$|[:'\"\s),])")


def _opens_block_comment(line: str) -> bool:
    if line.strip().startswith("//"):
        return False
    code = _QUOTED.sub("", _split_comment(line)[0])
    start = code.rfind("/*")
    return start != -1 and "*/" not in code[start + 2 :]


def _split_comment(line: str) -> tuple[str, str]:
    match = _TRAILING_COMMENT.search(line)
    if not match:
        return line, ""
    return line[: match.start()], line[match.start() :]


def _normalize_declaration(line: str) -> str:
    code, comment = _split_comment(line)
    if "(" not in code:
        match = _UNPARENTHESIZED.match(code)
        if match:
            rest = match.group("rest").strip()
            code = f'{match.group("indent")}{match.group("conf")} ("{match.group("coord")}")'
            if rest:
                code = f"{code} {rest}"
    if not code.rstrip().endswith("{"):
        code = code.rstrip() + " {"
    return code + comment


def _brace_delta(text: str) -> int:
    code, _ = _split_comment(text)
    return code.count("{") - code.count("}")


def _find_block_close(classified: Sequence[DeclarationLine], start: int) -> int | None:
    depth = 1
    for position in range(start + 1, len(classified)):
        depth += _brace_delta(classified[position].text)
        if depth <= 0:
            return position
    return None
