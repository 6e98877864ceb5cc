"""Document orchestration: one read, concurrent renders, at most one write."""

from diagrammatic.processor.models import (
    BlockError,
    DiagramResult,
    Document,
    ProcessOptions,
    ProcessResult,
)
from diagrammatic.processor.processor import (
    DocumentProcessor,
    expand_documents,
    find_missing_assets,
    is_remote,
)

__all__ = [
    "BlockError",
    "DiagramResult",
    "Document",
    "DocumentProcessor",
    "ProcessOptions",
    "ProcessResult",
    "expand_documents",
    "find_missing_assets",
    "is_remote",
]
