"""Renderer abstraction layer: Graphviz and Mermaid CLI adapters behind one dispatcher."""

from diagrammatic.config.models import DiagrammaticConfig
from diagrammatic.extract.models import DiagramKind
from diagrammatic.render.base import Renderer
from diagrammatic.render.dispatcher import RenderDispatcher, validate
from diagrammatic.render.graphviz_renderer import GraphvizRenderer, dot_command, make_responsive
from diagrammatic.render.mermaid_renderer import MermaidCliRenderer, find_mmdc
from diagrammatic.render.models import (
    RenderError,
    RenderOutcome,
    RenderRequest,
    RenderValidationError,
)


def create_renderers(config: DiagrammaticConfig) -> dict[DiagramKind, Renderer]:
    """Build one renderer per diagram kind from app-level config."""
    return {
        DiagramKind.dot: GraphvizRenderer(responsive_svg=config.dot.responsive_svg),
        DiagramKind.mermaid: MermaidCliRenderer(config.mermaid),
    }


def create_dispatcher(config: DiagrammaticConfig) -> RenderDispatcher:
    return RenderDispatcher(
        create_renderers(config),
        timeout=config.render.timeout,
        max_concurrency=config.render.max_concurrency,
    )


__all__ = [
    "GraphvizRenderer",
    "MermaidCliRenderer",
    "RenderDispatcher",
    "RenderError",
    "RenderOutcome",
    "RenderRequest",
    "RenderValidationError",
    "Renderer",
    "create_dispatcher",
    "create_renderers",
    "dot_command",
    "find_mmdc",
    "make_responsive",
    "validate",
]
