"""Output layer: per-dialect embedding, offset-safe rewriting and file writes."""

from diagrammatic.output.dialects import (
    SUPPORTED_EXTENSIONS,
    Dialect,
    DialectTemplate,
    dialect_for,
    embed,
    get_template,
)
from diagrammatic.output.rewriter import Replacement, ReplacementPlan, apply, should_write
from diagrammatic.output.writer import AssetWriter, read_document

__all__ = [
    "AssetWriter",
    "Dialect",
    "DialectTemplate",
    "Replacement",
    "ReplacementPlan",
    "SUPPORTED_EXTENSIONS",
    "apply",
    "dialect_for",
    "embed",
    "get_template",
    "read_document",
    "should_write",
]
