"""Shared test fixtures for diagrammatic."""

import asyncio

import pytest

from diagrammatic.config.models import DiagrammaticConfig
from diagrammatic.extract.models import DiagramKind
from diagrammatic.processor import DocumentProcessor
from diagrammatic.render.base import Renderer
from diagrammatic.render.dispatcher import RenderDispatcher
from diagrammatic.render.models import RenderRequest


class FakeRenderer(Renderer):
    """Returns canned bytes, failing or stalling for selected block names."""

    def __init__(self, fail: set[str] | None = None, slow: set[str] | None = None, delay: float = 5.0):
        self.fail = fail or set()
        self.slow = slow or set()
        self.delay = delay
        self.calls: list[tuple[str, RenderRequest]] = []

    async def render(self, source: str, request: RenderRequest) -> bytes:
        self.calls.append((source, request))
        if request.name in self.slow:
            await asyncio.sleep(self.delay)
        if request.name in self.fail:
            raise RuntimeError(f"syntax error in {request.name}")
        return f"<{request.format}:{request.option}:{request.name}>".encode()


@pytest.fixture
def config():
    return DiagrammaticConfig()


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def dispatcher(fake_renderer):
    return RenderDispatcher(
        {DiagramKind.dot: fake_renderer, DiagramKind.mermaid: fake_renderer},
        timeout=1.0,
    )


@pytest.fixture
def processor(config, dispatcher):
    return DocumentProcessor(config, dispatcher=dispatcher)


@pytest.fixture
def dot_markdown():
    """Three fresh DOT blocks: named by graph id, by label, and positionally."""
    return (
        "# Architecture\n"
        "\n"
        "```dot\n"
        "digraph MyGraph {\n"
        "  a -> b;\n"
        "}\n"
        "```\n"
        "\n"
        "Some prose between diagrams.\n"
        "\n"
        "```graphviz\n"
        "digraph G {\n"
        '  label="Pipeline Overview";\n'
        "  ingest -> transform -> load;\n"
        "}\n"
        "```\n"
        "\n"
        "```dot:neato\n"
        "graph {\n"
        "  x -- y;\n"
        "}\n"
        "```\n"
    )


@pytest.fixture
def mermaid_markdown():
    return (
        "# Flows\n"
        "\n"
        "```mermaid\n"
        "graph LR\n"
        "  accTitle: Login Flow\n"
        "  A --> B\n"
        "```\n"
        "\n"
        "```mermaid\n"
        "sequenceDiagram\n"
        "  Alice->>Bob: hi\n"
        "```\n"
    )
