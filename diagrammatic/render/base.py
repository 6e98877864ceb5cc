"""Abstract renderer interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from diagrammatic.render.models import RenderRequest


class Renderer(ABC):
    """Turns diagram source into image bytes through an external tool.

    Adapters raise on failure; the dispatcher is responsible for converting
    exceptions and timeouts into per-block outcomes.
    """

    @abstractmethod
    async def render(self, source: str, request: RenderRequest) -> bytes:
        """Render ``source`` using the option and format in ``request``."""
        ...
