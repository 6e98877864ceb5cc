"""Graphviz adapter: DOT source to image bytes through the `dot` binary."""

from __future__ import annotations

import asyncio
import logging
import math
import re

import graphviz

from diagrammatic.render.base import Renderer
from diagrammatic.render.models import RenderRequest

logger = logging.getLogger(__name__)

_SVG_TAG_RE = re.compile(r"<svg\b[^>]*>")
_DIMENSION_RE = r'\b{name}="(?P<value>\d+(?:\.\d+)?)(?P<unit>pt|px)?"'
_PT_TO_PX = 1.333


def _add_attr(tag: str, attr: str) -> str:
    end = -2 if tag.endswith("/>") else -1
    return f"{tag[:end].rstrip()} {attr}{tag[end:]}"


def make_responsive(svg: str) -> str:
    """Let an SVG scale down with its container while capping it at natural size.

    Adds a ``viewBox`` when missing (dimensions converted from pt to px), then
    replaces the fixed width/height with ``100%``/``auto`` and a ``max-width``
    style. SVGs without numeric dimensions are returned unchanged.
    """
    tag_match = _SVG_TAG_RE.search(svg)
    if tag_match is None:
        return svg
    tag = tag_match.group(0)
    width_m = re.search(_DIMENSION_RE.format(name="width"), tag)
    height_m = re.search(_DIMENSION_RE.format(name="height"), tag)
    if width_m is None or height_m is None:
        return svg

    width = float(width_m.group("value"))
    height = float(height_m.group("value"))
    if width_m.group("unit") == "pt":
        width = math.ceil(width * _PT_TO_PX)
        height = math.ceil(height * _PT_TO_PX)
    width_s = f"{width:g}"
    height_s = f"{height:g}"

    new_tag = tag
    if "viewBox=" not in new_tag:
        new_tag = _add_attr(new_tag, f'viewBox="0 0 {width_s} {height_s}"')
    new_tag = re.sub(_DIMENSION_RE.format(name="width"), 'width="100%"', new_tag, count=1)
    new_tag = re.sub(_DIMENSION_RE.format(name="height"), 'height="auto"', new_tag, count=1)
    new_tag = _add_attr(new_tag, f'style="max-width: {width_s}px;"')
    return svg[: tag_match.start()] + new_tag + svg[tag_match.end():]


def dot_command(engine: str, fmt: str) -> list[str]:
    """Argument list for the Graphviz ``dot`` binary reading DOT from stdin."""
    if engine not in graphviz.ENGINES:
        raise ValueError(f"unknown Graphviz engine: {engine!r}")
    if fmt not in graphviz.FORMATS:
        raise ValueError(f"unknown Graphviz format: {fmt!r}")
    return [str(graphviz.DOT_BINARY), f"-K{engine}", f"-T{fmt}"]


class GraphvizRenderer(Renderer):
    """Renders DOT by piping it through the Graphviz ``dot`` binary.

    The child process is killed when the render is cancelled, so a layout
    that never finishes cannot outlive its timeout.
    """

    def __init__(self, responsive_svg: bool = True) -> None:
        self.responsive_svg = responsive_svg

    async def _pipe(self, source: str, engine: str, fmt: str) -> bytes:
        cmd = dot_command(engine, fmt)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise graphviz.ExecutableNotFound(cmd) from e
        try:
            stdout, stderr = await process.communicate(source.encode("utf-8"))
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            raise graphviz.CalledProcessError(
                process.returncode, cmd, output=stdout, stderr=stderr.decode("utf-8", errors="replace").strip()
            )
        return stdout

    async def render(self, source: str, request: RenderRequest) -> bytes:
        logger.debug("graphviz: rendering %s with %s to %s", request.name, request.option, request.format)
        data = await self._pipe(source, request.option, request.format)
        if request.format == "svg" and self.responsive_svg:
            data = make_responsive(data.decode("utf-8")).encode("utf-8")
        return data
