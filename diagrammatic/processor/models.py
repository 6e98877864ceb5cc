"""Pydantic models for document processing results."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from diagrammatic.extract.models import DiagramKind, Extraction

_RESULT_CONFIG = ConfigDict(frozen=True, populate_by_name=True)


class ProcessOptions(BaseModel):
    """Per-run overrides; ``None`` means use the configured default."""

    model_config = ConfigDict(frozen=True)

    kind: DiagramKind
    option: str | None = Field(default=None, description="Layout engine (dot) or theme (mermaid)")
    format: str | None = None
    output_dir: str | None = None
    dry_run: bool = False


class Document(BaseModel):
    """A document read once and analysed for one diagram kind."""

    model_config = ConfigDict(frozen=True)

    path: Path
    text: str
    extraction: Extraction

    @property
    def extension(self) -> str:
        return self.path.suffix.lower()

    @property
    def directory(self) -> Path:
        return self.path.parent


class DiagramResult(BaseModel):
    model_config = _RESULT_CONFIG

    name: str
    path: str
    relative_path: str = Field(alias="relativePath")
    type: Literal["new", "re-render"]
    kind: DiagramKind
    option: str


class BlockError(BaseModel):
    model_config = _RESULT_CONFIG

    name: str
    message: str


class ProcessResult(BaseModel):
    """Outcome for one document; serialise with ``by_alias=True`` for the JSON contract."""

    model_config = _RESULT_CONFIG

    processed: int = 0
    diagrams: list[DiagramResult] = Field(default_factory=list)
    document_path: str = Field(alias="documentPath")
    dry_run: bool = Field(default=False, alias="dryRun")
    planned: list[DiagramResult] = Field(default_factory=list)
    errors: list[BlockError] = Field(default_factory=list)
    error: str | None = Field(default=None, description="Document-level I/O failure")

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
