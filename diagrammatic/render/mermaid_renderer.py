"""Mermaid adapter: runs the Mermaid CLI (``mmdc``) as a subprocess."""

from __future__ import annotations

import asyncio
import json
import logging
import shlex
import shutil
import tempfile
from pathlib import Path

from diagrammatic.config.models import MermaidSettings
from diagrammatic.render.base import Renderer
from diagrammatic.render.models import RenderRequest

logger = logging.getLogger(__name__)

NPX_FALLBACK = ("npx", "--yes", "@mermaid-js/mermaid-cli")

# Headless Chromium inside containers and CI refuses to start with its sandbox on.
PUPPETEER_CONFIG = {"args": ["--no-sandbox", "--disable-setuid-sandbox", "--disable-dev-shm-usage"]}


def find_mmdc(command: str | None = None) -> list[str]:
    """Resolve the Mermaid CLI: configured command, ``mmdc`` on PATH, then ``npx``."""
    if command:
        return shlex.split(command)
    mmdc = shutil.which("mmdc")
    if mmdc:
        return [mmdc]
    if shutil.which("npx"):
        return list(NPX_FALLBACK)
    raise FileNotFoundError(
        "Mermaid CLI not found: install @mermaid-js/mermaid-cli (mmdc) or Node.js (npx), "
        "or set mermaid.command in the config"
    )


class MermaidCliRenderer(Renderer):
    """Renders Mermaid through ``mmdc`` using temporary input/output files."""

    def __init__(self, settings: MermaidSettings | None = None) -> None:
        self.settings = settings or MermaidSettings()

    def build_command(self, input_path: Path, output_path: Path, config_path: Path, theme: str, fmt: str) -> list[str]:
        s = self.settings
        cmd = find_mmdc(s.command) + [
            "-i", str(input_path),
            "-o", str(output_path),
            "-t", theme,
            "-b", s.background,
            "-w", str(s.width),
            "-H", str(s.height),
            "-p", str(config_path),
        ]
        if fmt == "png":
            cmd += ["-s", str(s.scale)]
        return cmd

    async def render(self, source: str, request: RenderRequest) -> bytes:
        with tempfile.TemporaryDirectory(prefix="diagrammatic-") as tmp:
            workdir = Path(tmp)
            input_path = workdir / "input.mmd"
            output_path = workdir / f"output.{request.format}"
            config_path = workdir / "puppeteer.json"
            input_path.write_text(source, encoding="utf-8")
            config_path.write_text(json.dumps(PUPPETEER_CONFIG), encoding="utf-8")

            cmd = self.build_command(input_path, output_path, config_path, request.option, request.format)
            logger.debug("mermaid: %s", " ".join(cmd))
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            try:
                _, stderr = await process.communicate()
            except asyncio.CancelledError:
                process.kill()
                await process.wait()
                raise

            if process.returncode != 0:
                detail = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
                raise RuntimeError(f"mmdc exited with {process.returncode}: {detail or 'no output'}")
            if not output_path.exists() or output_path.stat().st_size == 0:
                raise RuntimeError("mmdc produced no output file")
            return output_path.read_bytes()
