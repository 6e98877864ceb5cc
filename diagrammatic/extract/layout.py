"""Layout engine resolution for DOT blocks."""

from __future__ import annotations

import re

from diagrammatic.config.models import LAYOUT_ENGINES

_LAYOUT_DIRECTIVE_RE = re.compile(
    r"(?:\blayout\s*=\s*\"?|//\s*layout:\s*)(?P<engine>\w+)", re.IGNORECASE
)

DEFAULT_ENGINE = "dot"


def layout_directive(source: str) -> str | None:
    """Return the engine named by ``layout=<engine>`` or ``// layout: <engine>``, if supported."""
    m = _LAYOUT_DIRECTIVE_RE.search(source)
    if m is None:
        return None
    engine = m.group("engine").lower()
    return engine if engine in LAYOUT_ENGINES else None


def resolve_layout(
    source: str,
    fence_hint: str | None = None,
    override: str | None = None,
    default: str = DEFAULT_ENGINE,
) -> str:
    """Pick the engine: explicit override, in-code directive, fence hint, then default.

    The fence hint is returned as written even when unknown; the dispatcher
    rejects it for that block alone.
    """
    if override:
        return override
    directive = layout_directive(source)
    if directive:
        return directive
    if fence_hint:
        return fence_hint.lower()
    return default
