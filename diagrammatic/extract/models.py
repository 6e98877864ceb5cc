"""Pydantic models for extracted diagram blocks."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DiagramKind(str, Enum):
    """Diagram languages the engine knows how to find and render."""

    dot = "dot"
    mermaid = "mermaid"


class EmbedSyntax(str, Enum):
    """Surface syntax of the image reference in an already-rendered record."""

    markdown = "markdown"
    html = "html"
    rst = "rst"
    asciidoc = "asciidoc"


class Span(BaseModel):
    """Half-open ``[start, end)`` offset range into the original document text."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self) -> Span:
        if self.end < self.start:
            raise ValueError(f"span end {self.end} precedes start {self.start}")
        return self

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end

    def overlaps(self, other: Span) -> bool:
        return self.start < other.end and other.start < self.end


class DiagramBlock(BaseModel):
    """A diagram found in fresh (not yet rendered) form."""

    model_config = ConfigDict(frozen=True)

    kind: DiagramKind
    source_code: str
    span: Span
    name: str
    index: int = Field(ge=1, description="1-based discovery order within the document")
    layout_hint: str | None = Field(
        default=None, description="Engine from the fence tag, e.g. ```dot:neato"
    )


class RenderedDiagramRecord(BaseModel):
    """An image reference paired with a recoverable copy of its source."""

    model_config = ConfigDict(frozen=True)

    kind: DiagramKind
    image_path: str
    alt_text: str
    source_code: str
    span: Span
    syntax: EmbedSyntax
    layout_hint: str | None = None

    @property
    def name(self) -> str:
        stem = PurePosixPath(self.image_path).stem
        return stem or self.alt_text or "diagram"


class Extraction(BaseModel):
    """Result of scanning a document for one diagram kind."""

    model_config = ConfigDict(frozen=True)

    fresh: list[DiagramBlock] = Field(default_factory=list)
    rendered: list[RenderedDiagramRecord] = Field(default_factory=list)
