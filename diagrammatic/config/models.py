from typing import Literal

from pydantic import BaseModel, Field

LAYOUT_ENGINES: tuple[str, ...] = ("dot", "circo", "fdp", "neato", "osage", "patchwork", "twopi")
DOT_FORMATS: tuple[str, ...] = ("svg", "png", "pdf", "jpg")
MERMAID_THEMES: tuple[str, ...] = ("default", "forest", "dark", "neutral")
MERMAID_FORMATS: tuple[str, ...] = ("svg", "png", "pdf")


class DotSettings(BaseModel):
    layout: Literal["dot", "circo", "fdp", "neato", "osage", "patchwork", "twopi"] = "dot"
    format: Literal["svg", "png", "pdf", "jpg"] = "svg"
    responsive_svg: bool = True


class MermaidSettings(BaseModel):
    theme: Literal["default", "forest", "dark", "neutral"] = "default"
    format: Literal["svg", "png", "pdf"] = "png"
    command: str | None = None
    background: str = "white"
    width: int = Field(default=3200, gt=0)
    height: int = Field(default=2400, gt=0)
    scale: int = Field(default=4, gt=0)


class RenderSettings(BaseModel):
    timeout: float = Field(default=60.0, gt=0)
    max_concurrency: int = Field(default=4, gt=0)


class OutputSettings(BaseModel):
    diagram_dir: str = "diagrams"


class DiagrammaticConfig(BaseModel):
    dot: DotSettings = Field(default_factory=DotSettings)
    mermaid: MermaidSettings = Field(default_factory=MermaidSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
