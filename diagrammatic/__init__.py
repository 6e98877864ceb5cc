"""diagrammatic — render DOT and Mermaid blocks in documents, keep the source editable."""

__version__ = "0.3.0"
