"""Pydantic models and errors for the render subsystem."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from diagrammatic.errors import DiagrammaticError
from diagrammatic.extract.models import DiagramKind


class RenderValidationError(DiagrammaticError, ValueError):
    """A render request names an engine, theme or format outside the allow-list."""


class RenderError(DiagrammaticError):
    """Wraps a renderer failure with the block it happened on."""

    def __init__(
        self, kind: DiagramKind, name: str, cause: Exception, timeout: bool = False
    ) -> None:
        self.kind = kind
        self.name = name
        self.timeout = timeout
        reason = "timed out" if timeout else cause
        super().__init__(f"{kind.value} render of {name!r} failed: {reason}")
        self.__cause__ = cause


class RenderRequest(BaseModel):
    """Everything a renderer needs for one block besides its source."""

    model_config = ConfigDict(frozen=True)

    kind: DiagramKind
    name: str
    option: str
    format: str


class RenderOutcome(BaseModel):
    """Ok (``data`` set) or Err (``error`` set) result of one render."""

    model_config = ConfigDict(frozen=True)

    request: RenderRequest
    data: bytes | None = None
    error: str | None = None
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.data is not None

    @classmethod
    def success(cls, request: RenderRequest, data: bytes) -> RenderOutcome:
        return cls(request=request, data=data)

    @classmethod
    def failure(cls, request: RenderRequest, error: str, timed_out: bool = False) -> RenderOutcome:
        return cls(request=request, error=error, timed_out=timed_out)
