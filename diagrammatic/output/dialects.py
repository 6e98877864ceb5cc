"""Per-dialect templates that embed a rendered image plus its recoverable source.

Every template's output is recognised again by the rendered-record scanner, so
a document processed once can be re-rendered later from the text alone.
"""

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import PurePosixPath
from typing import ClassVar

from diagrammatic.extract.models import DiagramKind
from diagrammatic.extract.patterns import CANONICAL_TAG


class Dialect(str, Enum):
    markdown = "markdown"
    html = "html"
    jsx = "jsx"
    rst = "rst"
    asciidoc = "asciidoc"
    default = "default"


_DEFAULT_OPTION: dict[DiagramKind, str] = {
    DiagramKind.dot: "dot",
    DiagramKind.mermaid: "default",
}

_LANGUAGE: dict[DiagramKind, str] = {
    DiagramKind.dot: "DOT",
    DiagramKind.mermaid: "Mermaid",
}

_EDIT_HINT = "(uncomment to edit, then re-render)"


class DialectTemplate(ABC):
    """Embedding rules for one document dialect."""

    dialect: ClassVar[Dialect]
    extensions: ClassVar[tuple[str, ...]] = ()

    def embed(
        self,
        kind: DiagramKind,
        image_path: str,
        alt_text: str,
        source: str,
        option: str | None = None,
    ) -> str:
        """Return the text that replaces a fresh fence."""
        custom = _custom_option(kind, option)
        return self._render(kind, image_path, alt_text, source.strip(), custom)

    @abstractmethod
    def _render(
        self, kind: DiagramKind, image_path: str, alt_text: str, source: str, custom: str | None
    ) -> str:
        ...


def _custom_option(kind: DiagramKind, option: str | None) -> str | None:
    if option and option != _DEFAULT_OPTION[kind]:
        return option
    return None


def _option_label(kind: DiagramKind, custom: str | None) -> str:
    if custom is None:
        return ""
    return f" (layout: {custom})" if kind is DiagramKind.dot else f" (theme: {custom})"


def _fence(kind: DiagramKind, source: str, custom: str | None) -> str:
    tag = CANONICAL_TAG[kind]
    if kind is DiagramKind.dot and custom:
        tag = f"{tag}:{custom}"
    return f"```{tag}\n{source}\n```"


def _image_format(image_path: str) -> str:
    return PurePosixPath(image_path).suffix.lstrip(".").upper() or "SVG"


def _caption(
    kind: DiagramKind, custom: str | None, hint: str = _EDIT_HINT, with_option: bool = False
) -> str:
    show = with_option or kind is DiagramKind.mermaid
    label = _option_label(kind, custom) if show else ""
    suffix = f" {hint}:" if hint else ":"
    return f"Original {_LANGUAGE[kind]} diagram{label}{suffix}"


def _details(kind: DiagramKind, source: str, custom: str | None) -> str:
    return (
        "<details>\n"
        f"<summary>{_LANGUAGE[kind]} Source{_option_label(kind, custom)}</summary>\n"
        "\n"
        f"{_fence(kind, source, custom)}\n"
        "\n"
        "</details>"
    )


def _markdown_alt(alt_text: str) -> str:
    return alt_text.replace("[", "").replace("]", "").replace("\n", " ")


def _markdown_destination(image_path: str) -> str:
    # CommonMark needs <...> around destinations with spaces or parentheses.
    if any(c.isspace() or c in "()" for c in image_path):
        return f"<{image_path}>"
    return image_path


def _rst_uri(image_path: str) -> str:
    return image_path.replace(" ", "\\ ")


# ---------------------------------------------------------------------------
# Dialects
# ---------------------------------------------------------------------------


class MarkdownTemplate(DialectTemplate):
    dialect = Dialect.markdown
    extensions = (".md", ".markdown")
    caption_hint: ClassVar[str] = _EDIT_HINT

    def _image(self, image_path: str, alt_text: str) -> str:
        return f"![{_markdown_alt(alt_text)}]({_markdown_destination(image_path)})"

    def _render(self, kind, image_path, alt_text, source, custom):
        image = self._image(image_path, alt_text)
        if kind is DiagramKind.mermaid:
            return f"{image}\n\n{_details(kind, source, custom)}"
        banner = (
            f"<!-- DOT/Graphviz diagram rendered to {_image_format(image_path)}"
            f"{_option_label(kind, custom)} -->"
        )
        return (
            f"{banner}\n{image}\n\n"
            f"<!--\n{_caption(kind, custom, self.caption_hint)}\n"
            f"{_fence(kind, source, custom)}\n-->"
        )


class DefaultTemplate(MarkdownTemplate):
    """Fallback for unknown extensions: markdown-shaped, terser caption."""

    dialect = Dialect.default
    caption_hint = ""


class HtmlTemplate(MarkdownTemplate):
    dialect = Dialect.html
    extensions = (".html", ".htm")

    def _image(self, image_path: str, alt_text: str) -> str:
        return (
            f'<img src="{html.escape(image_path)}" alt="{html.escape(alt_text)}" '
            'style="max-width: 100%; height: auto;">'
        )


class JsxTemplate(DialectTemplate):
    dialect = Dialect.jsx
    extensions = (".mdx",)

    def _render(self, kind, image_path, alt_text, source, custom):
        image = (
            f'<img src="{html.escape(image_path)}" alt="{html.escape(alt_text)}" '
            "style={{maxWidth: '100%', height: 'auto'}} />"
        )
        if kind is DiagramKind.mermaid:
            return f"{image}\n\n{_details(kind, source, custom)}"
        banner = (
            f"{{/* DOT/Graphviz diagram rendered to {_image_format(image_path)}"
            f"{_option_label(kind, custom)} */}}"
        )
        return (
            f"{banner}\n{image}\n\n"
            f"{{/*\n{_caption(kind, custom)}\n{_fence(kind, source, custom)}\n*/}}"
        )


class RstTemplate(DialectTemplate):
    dialect = Dialect.rst
    extensions = (".rst",)
    indent: ClassVar[str] = "   "

    def _render(self, kind, image_path, alt_text, source, custom):
        alt = alt_text.replace("\n", " ")
        caption = _caption(kind, custom, with_option=True)
        body = "\n".join(
            self.indent + line if line.strip() else ""
            for line in [caption, *_fence(kind, source, custom).split("\n")]
        )
        return (
            f".. image:: {_rst_uri(image_path)}\n"
            f"{self.indent}:alt: {alt}\n"
            f"{self.indent}:width: 100%\n"
            "\n"
            f"..\n{body}"
        )


class AsciiDocTemplate(DialectTemplate):
    dialect = Dialect.asciidoc
    extensions = (".adoc", ".asciidoc")

    def _render(self, kind, image_path, alt_text, source, custom):
        alt = alt_text.replace(",", " ").replace("]", "").replace("\n", " ")
        caption = _caption(kind, custom, with_option=True)
        return (
            f"image::{image_path}[{alt},width=100%]\n"
            "\n"
            f"////\n{caption}\n{_fence(kind, source, custom)}\n////"
        )


_TEMPLATES: dict[Dialect, DialectTemplate] = {
    t.dialect: t
    for t in (
        MarkdownTemplate(),
        HtmlTemplate(),
        JsxTemplate(),
        RstTemplate(),
        AsciiDocTemplate(),
        DefaultTemplate(),
    )
}

SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(
    ext for template in _TEMPLATES.values() for ext in template.extensions
)


def dialect_for(extension: str) -> Dialect:
    """Map a file extension (``.md``, ``MD``...) to its dialect; unknown ones get ``default``."""
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    for template in _TEMPLATES.values():
        if ext in template.extensions:
            return template.dialect
    return Dialect.default


def get_template(dialect: Dialect | str) -> DialectTemplate:
    return _TEMPLATES[Dialect(dialect)]


def embed(
    dialect: Dialect | str,
    kind: DiagramKind,
    image_path: str,
    alt_text: str,
    source: str,
    option: str | None = None,
) -> str:
    """Build the image-plus-source fragment for ``dialect``."""
    return get_template(dialect).embed(kind, image_path, alt_text, source, option)
