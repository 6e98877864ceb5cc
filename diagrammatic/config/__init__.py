from .loader import load_config
from .models import (
    DOT_FORMATS,
    LAYOUT_ENGINES,
    MERMAID_FORMATS,
    MERMAID_THEMES,
    DiagrammaticConfig,
    DotSettings,
    MermaidSettings,
    OutputSettings,
    RenderSettings,
)

__all__ = [
    "DOT_FORMATS",
    "DiagrammaticConfig",
    "DotSettings",
    "LAYOUT_ENGINES",
    "MERMAID_FORMATS",
    "MERMAID_THEMES",
    "MermaidSettings",
    "OutputSettings",
    "RenderSettings",
    "load_config",
]
