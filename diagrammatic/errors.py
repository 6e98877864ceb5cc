"""Exception hierarchy shared across diagrammatic subsystems."""

from __future__ import annotations

from pathlib import Path


class DiagrammaticError(Exception):
    """Base class for errors raised by diagrammatic."""


class DocumentIOError(DiagrammaticError):
    """A document could not be read or written. Fatal for that document only."""

    def __init__(self, path: str | Path, operation: str, cause: Exception) -> None:
        self.path = str(path)
        self.operation = operation
        super().__init__(f"cannot {operation} {self.path}: {cause}")
        self.__cause__ = cause
