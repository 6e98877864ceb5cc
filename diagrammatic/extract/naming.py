"""Stable, filesystem-safe names for diagram blocks.

Names are derived from the diagram source alone so that re-running the engine
over the same document yields the same image paths.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from diagrammatic.extract.models import DiagramBlock, DiagramKind

_GRAPH_NAME_RE = re.compile(
    r'\b(?:di)?graph\s+(?:"(?P<quoted>[^"]+)"|(?P<bare>[A-Za-z_][A-Za-z0-9_]*))\s*\{',
    re.IGNORECASE,
)
_LABEL_RE = re.compile(r'label\s*=\s*"(?P<label>[^"]+)"')
_ACC_TITLE_RE = re.compile(r"^\s*accTitle\s*:\s*(?P<title>.+)$", re.MULTILINE)
_TITLE_RE = re.compile(r"^\s*title(?:\s*:\s*|\s+)(?P<title>\S.*)$", re.MULTILINE | re.IGNORECASE)

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_-]+")

# Graphviz examples conventionally call the root graph "G" (or "g"); it says nothing about the diagram.
PLACEHOLDER_GRAPH_NAME = "g"
MAX_LABEL_LENGTH = 50


def sanitize(value: str, max_length: int | None = None) -> str:
    """Collapse anything outside ``[A-Za-z0-9_-]`` into single dashes and lower-case."""
    name = _UNSAFE_RE.sub("-", value.strip()).strip("-").lower()
    if max_length is not None:
        name = name[:max_length].rstrip("-")
    return name


def positional_name(index: int) -> str:
    return f"diagram-{index}"


def _dot_candidates(source: str) -> Iterable[str]:
    m = _GRAPH_NAME_RE.search(source)
    if m:
        graph_name = m.group("quoted") or m.group("bare")
        if graph_name.lower() != PLACEHOLDER_GRAPH_NAME:
            yield sanitize(graph_name)
    m = _LABEL_RE.search(source)
    if m:
        yield sanitize(m.group("label"), MAX_LABEL_LENGTH)


def _mermaid_candidates(source: str) -> Iterable[str]:
    for pattern in (_ACC_TITLE_RE, _TITLE_RE):
        m = pattern.search(source)
        if m:
            yield sanitize(m.group("title"))


def resolve_name(kind: DiagramKind, source: str, index: int) -> str:
    """Derive a block name; the first non-empty candidate wins, else ``diagram-<index>``."""
    candidates = _dot_candidates(source) if kind is DiagramKind.dot else _mermaid_candidates(source)
    for candidate in candidates:
        if candidate:
            return candidate
    return positional_name(index)


def disambiguate(blocks: Sequence[DiagramBlock], reserved: Iterable[str] = ()) -> list[DiagramBlock]:
    """Give every block a name no earlier block (or reserved name) already holds.

    The first holder keeps its name. Later holders get their discovery index as
    a suffix (``flow-3``), then a counter if that is taken too (``flow-3-2``).
    Comparison is case-insensitive so outputs never collide on case-folding
    filesystems.
    """
    taken = {name.lower() for name in reserved}
    result: list[DiagramBlock] = []
    for block in blocks:
        candidate = block.name
        if candidate.lower() in taken:
            candidate = f"{block.name}-{block.index}"
            counter = 2
            while candidate.lower() in taken:
                candidate = f"{block.name}-{block.index}-{counter}"
                counter += 1
        taken.add(candidate.lower())
        result.append(block if candidate == block.name else block.model_copy(update={"name": candidate}))
    return result
