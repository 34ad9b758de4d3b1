from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)


def is_module_used(module: str, used_symbols: Iterable[str]) -> bool:
    # Containment, not prefix; case-folded so "widgets-core" matches "com.acme.widgets.Core".
    needle = module.replace("-", ".").lower()
    return any(needle in symbol.lower() for symbol in used_symbols)


def find_unused_modules(
    used_symbols: set[str],
    module_map: Mapping[str, Sequence[str]],
) -> dict[str, list[str]]:
    unused_modules: dict[str, list[str]] = {}
    for dependency, modules in module_map.items():
        unused = [m for m in modules if not is_module_used(m, used_symbols)]
        if unused:
            unused_modules[dependency] = unused
    logger.info("Unused modules: %s", unused_modules)
    return unused_modules
