from __future__ import annotations

from pathlib import Path


class DepslimError(Exception):
    pass


class MissingDeclarationFile(DepslimError):
    def __init__(self, path: Path) -> None:
        super().__init__(f"No build file found at {path}")
        self.path = path


class WriteFailure(DepslimError):
    def __init__(self, path: Path, cause: OSError) -> None:
        super().__init__(f"Could not write {path}: {cause}")
        self.path = path
        self.cause = cause


class GraphUnavailable(DepslimError):
    pass


class GraphFormatError(DepslimError, ValueError):
    pass


class UnreadableDeclarationFile(DepslimError):
    def __init__(self, path: Path, cause: Exception) -> None:
        super().__init__(f"Could not read build file {path}: {cause}")
        self.path = path
        self.cause = cause
