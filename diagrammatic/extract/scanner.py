"""Scan document text for fresh diagram fences and already-rendered records."""

from __future__ import annotations

import logging
from bisect import bisect_right

from diagrammatic.extract.models import (
    DiagramBlock,
    DiagramKind,
    Extraction,
    RenderedDiagramRecord,
    Span,
)
from diagrammatic.extract.naming import resolve_name
from diagrammatic.extract.patterns import (
    IMAGE_PATTERNS,
    IMAGE_WRAPPER_GAP,
    MARKER_FAMILIES,
    RST_COMMENT_BLOCK,
    WRAPPER_PATTERNS,
    MarkerFamily,
    fresh_fence_pattern,
)

logger = logging.getLogger(__name__)


class WrapperDepth:
    """Nesting depth of source wrappers at any offset of a document.

    Each marker family keeps its own counter, clamped at zero, so a stray
    closing marker (a Mermaid ``-->`` arrow, say) cannot cancel an unrelated
    opener. Events at an offset apply to it, so a wrapper that closes exactly
    where a fence starts does not nest that fence.
    """

    def __init__(self, text: str) -> None:
        self._timelines: list[tuple[list[int], list[int]]] = []
        for family in MARKER_FAMILIES:
            self._timelines.append(self._accumulate(self._family_events(text, family)))
        rst_events: list[tuple[int, int]] = []
        for m in RST_COMMENT_BLOCK.finditer(text):
            rst_events.extend([(m.start(), 1), (m.end(), -1)])
        self._timelines.append(self._accumulate(rst_events))

    @staticmethod
    def _family_events(text: str, family: MarkerFamily) -> list[tuple[int, int]]:
        if family.close is None:
            return [
                (m.start(), 1 if i % 2 == 0 else -1)
                for i, m in enumerate(family.open.finditer(text))
            ]
        events = [(m.start(), 1) for m in family.open.finditer(text)]
        events.extend((m.start(), -1) for m in family.close.finditer(text))
        return sorted(events)

    @staticmethod
    def _accumulate(events: list[tuple[int, int]]) -> tuple[list[int], list[int]]:
        positions: list[int] = []
        depths: list[int] = []
        depth = 0
        for pos, delta in events:
            depth = max(0, depth + delta)
            positions.append(pos)
            depths.append(depth)
        return positions, depths

    def depth_at(self, offset: int) -> int:
        total = 0
        for positions, depths in self._timelines:
            i = bisect_right(positions, offset)
            if i:
                total += depths[i - 1]
        return total

    def is_nested(self, offset: int) -> bool:
        return self.depth_at(offset) > 0


def _dedent(code: str, indent: str) -> str:
    if not indent:
        return code
    lines = []
    for line in code.split("\n"):
        if line.startswith(indent):
            lines.append(line[len(indent):])
        else:
            lines.append(line if line.strip() else "")
    return "\n".join(lines)


def scan_rendered(text: str, kind: DiagramKind) -> list[RenderedDiagramRecord]:
    """Find image references immediately followed by a wrapper holding a ``kind`` fence."""
    wrappers = [w.compile(kind) for w in WRAPPER_PATTERNS]
    records: list[RenderedDiagramRecord] = []
    seen: set[int] = set()

    for image_pattern in IMAGE_PATTERNS:
        for ref in image_pattern.scan(text):
            if ref.start in seen:
                continue
            gap = IMAGE_WRAPPER_GAP.match(text, ref.end)
            if gap is None:
                continue
            for wrapper in wrappers:
                m = wrapper.match(text, gap.end())
                if m is not None:
                    break
            else:
                continue
            seen.add(ref.start)
            hint = m.groupdict().get("hint")
            records.append(
                RenderedDiagramRecord(
                    kind=kind,
                    image_path=ref.path,
                    alt_text=ref.alt,
                    source_code=_dedent(m.group("code"), m.group("findent")).strip(),
                    span=Span(start=ref.start, end=m.end()),
                    syntax=ref.syntax,
                    layout_hint=hint.lower() if hint else None,
                )
            )

    records.sort(key=lambda r: r.span.start)
    # One record per physical occurrence.
    unique: list[RenderedDiagramRecord] = []
    for record in records:
        if unique and unique[-1].span.overlaps(record.span):
            continue
        unique.append(record)
    return unique


def scan_fresh(
    text: str,
    kind: DiagramKind,
    rendered: list[RenderedDiagramRecord] | None = None,
) -> list[DiagramBlock]:
    """Find ``kind`` fences that are not hidden inside a source wrapper."""
    depth = WrapperDepth(text)
    rendered = rendered or []
    blocks: list[DiagramBlock] = []

    for m in fresh_fence_pattern(kind).finditer(text):
        start = m.start("fence")
        if depth.is_nested(start) or any(r.span.contains(start) for r in rendered):
            logger.debug("skipping %s fence at offset %d: inside a source wrapper", kind.value, start)
            continue
        index = len(blocks) + 1
        code = m.group("code").strip()
        hint = m.groupdict().get("hint")
        blocks.append(
            DiagramBlock(
                kind=kind,
                source_code=code,
                span=Span(start=start, end=m.end()),
                name=resolve_name(kind, code, index),
                index=index,
                layout_hint=hint.lower() if hint else None,
            )
        )
    return blocks


def extract(text: str, kind: DiagramKind) -> Extraction:
    """Split a document into fresh blocks and already-rendered records of one kind."""
    rendered = scan_rendered(text, kind)
    fresh = scan_fresh(text, kind, rendered)
    logger.debug(
        "extracted %d fresh and %d rendered %s diagram(s)", len(fresh), len(rendered), kind.value
    )
    return Extraction(fresh=fresh, rendered=rendered)
