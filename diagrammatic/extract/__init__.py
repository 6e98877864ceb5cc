"""Diagram block extraction: fences, rendered records, names and layouts."""

from diagrammatic.extract.layout import DEFAULT_ENGINE, layout_directive, resolve_layout
from diagrammatic.extract.models import (
    DiagramBlock,
    DiagramKind,
    EmbedSyntax,
    Extraction,
    RenderedDiagramRecord,
    Span,
)
from diagrammatic.extract.naming import disambiguate, resolve_name, sanitize
from diagrammatic.extract.scanner import WrapperDepth, extract, scan_fresh, scan_rendered

__all__ = [
    "DEFAULT_ENGINE",
    "DiagramBlock",
    "DiagramKind",
    "EmbedSyntax",
    "Extraction",
    "RenderedDiagramRecord",
    "Span",
    "WrapperDepth",
    "disambiguate",
    "extract",
    "layout_directive",
    "resolve_layout",
    "resolve_name",
    "sanitize",
    "scan_fresh",
    "scan_rendered",
]
