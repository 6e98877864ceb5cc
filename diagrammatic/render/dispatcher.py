"""Validate render requests and run them against the matching renderer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence

from diagrammatic.config.models import DOT_FORMATS, LAYOUT_ENGINES, MERMAID_FORMATS, MERMAID_THEMES
from diagrammatic.extract.models import DiagramKind
from diagrammatic.render.base import Renderer
from diagrammatic.render.models import RenderError, RenderOutcome, RenderRequest, RenderValidationError

logger = logging.getLogger(__name__)

_OPTIONS: dict[DiagramKind, tuple[str, tuple[str, ...]]] = {
    DiagramKind.dot: ("layout engine", LAYOUT_ENGINES),
    DiagramKind.mermaid: ("theme", MERMAID_THEMES),
}

_FORMATS: dict[DiagramKind, tuple[str, ...]] = {
    DiagramKind.dot: DOT_FORMATS,
    DiagramKind.mermaid: MERMAID_FORMATS,
}


def validate(request: RenderRequest) -> None:
    """Raise RenderValidationError unless kind, option and format are all allowed."""
    if request.kind not in _OPTIONS:
        raise RenderValidationError(f"Unsupported diagram kind: {request.kind!r}")
    label, allowed = _OPTIONS[request.kind]
    if request.option not in allowed:
        raise RenderValidationError(
            f"Invalid {label}: {request.option!r}. Valid options: {', '.join(allowed)}"
        )
    formats = _FORMATS[request.kind]
    if request.format not in formats:
        raise RenderValidationError(
            f"Invalid format: {request.format!r}. Valid options: {', '.join(formats)}"
        )


class RenderDispatcher:
    """Routes each request to its renderer, one outcome per request.

    Nothing raised by a renderer escapes: validation failures, timeouts and
    collaborator errors all come back as ``Err`` outcomes so that one bad
    block never stops its siblings.
    """

    def __init__(
        self,
        renderers: Mapping[DiagramKind, Renderer],
        timeout: float | None = 60.0,
        max_concurrency: int = 4,
    ) -> None:
        self.renderers = dict(renderers)
        self.timeout = timeout
        self.max_concurrency = max_concurrency

    async def render(self, source: str, request: RenderRequest) -> RenderOutcome:
        try:
            validate(request)
        except RenderValidationError as exc:
            logger.error("%s: %s", request.name, exc)
            return RenderOutcome.failure(request, str(exc))

        renderer = self.renderers.get(request.kind)
        if renderer is None:
            return RenderOutcome.failure(request, f"no renderer configured for {request.kind.value}")

        try:
            data = await asyncio.wait_for(renderer.render(source, request), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.error("%s", RenderError(request.kind, request.name, exc, timeout=True))
            return RenderOutcome.failure(request, f"timed out after {self.timeout}s", timed_out=True)
        except Exception as exc:
            logger.error("%s", RenderError(request.kind, request.name, exc))
            return RenderOutcome.failure(request, str(exc) or type(exc).__name__)
        return RenderOutcome.success(request, data)

    async def render_all(self, jobs: Sequence[tuple[str, RenderRequest]]) -> list[RenderOutcome]:
        """Render ``(source, request)`` pairs concurrently; outcomes keep input order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _bounded(source: str, request: RenderRequest) -> RenderOutcome:
            async with semaphore:
                return await self.render(source, request)

        return list(await asyncio.gather(*(_bounded(s, r) for s, r in jobs)))
