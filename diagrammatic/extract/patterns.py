"""Regex building blocks for diagram extraction.

Every pattern here exposes named groups that the scanner relies on:

- fences: ``fence`` (opening backticks through the tag), ``tag``, ``hint``
  (DOT only) and ``code``
- image references: ``path`` (``bracketed`` for markdown ``<...>``
  destinations) and ``alt`` (or ``attrs``/``options`` from which
  the alt text is parsed)
- source wrappers: the embedded fence groups plus nothing else, so any
  annotation text around them never leaks into a capture
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass

from diagrammatic.extract.models import DiagramKind, EmbedSyntax

_FLAGS = re.IGNORECASE | re.MULTILINE | re.DOTALL

FENCE_TAGS: dict[DiagramKind, str] = {
    DiagramKind.dot: r"(?:dot|graphviz|gv)",
    DiagramKind.mermaid: r"mermaid",
}

# Canonical fence tag written back into documents.
CANONICAL_TAG: dict[DiagramKind, str] = {
    DiagramKind.dot: "dot",
    DiagramKind.mermaid: "mermaid",
}


def _hint_group(kind: DiagramKind) -> str:
    return r"(?::(?P<hint>\w+))?" if kind is DiagramKind.dot else ""


def _fence_body(kind: DiagramKind) -> str:
    return (
        r"```(?P<tag>" + FENCE_TAGS[kind] + r")" + _hint_group(kind) + r"[ \t]*\n"
        r"(?P<code>.*?)"
        r"^[ \t]*```[ \t]*$"
    )


def fresh_fence_pattern(kind: DiagramKind) -> re.Pattern[str]:
    """Fenced block opening and closing on its own lines, e.g. ```dot:neato."""
    body = _fence_body(kind).replace("```(?P<tag>", "(?P<fence>```)(?P<tag>", 1)
    return re.compile(r"^[ \t]*" + body, _FLAGS)


# ---------------------------------------------------------------------------
# Image references
# ---------------------------------------------------------------------------

_ATTR_RE = r"""\b{name}\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)')"""


def _html_attr(attrs: str, name: str) -> str | None:
    m = re.search(_ATTR_RE.format(name=name), attrs, re.IGNORECASE)
    if m is None:
        return None
    value = m.group("dq") if m.group("dq") is not None else m.group("sq")
    return html.unescape(value)


@dataclass(frozen=True)
class ImageRef:
    path: str
    alt: str
    start: int
    end: int
    syntax: EmbedSyntax


@dataclass(frozen=True)
class ImagePattern:
    """One surface syntax for an image reference."""

    syntax: EmbedSyntax
    regex: re.Pattern[str]

    def scan(self, text: str) -> list[ImageRef]:
        refs: list[ImageRef] = []
        for m in self.regex.finditer(text):
            parsed = self._parse(m)
            if parsed is None:
                continue
            path, alt = parsed
            refs.append(ImageRef(path=path, alt=alt, start=m.start(), end=m.end(), syntax=self.syntax))
        return refs

    def _parse(self, m: re.Match[str]) -> tuple[str, str] | None:
        groups = m.groupdict()
        if self.syntax is EmbedSyntax.html:
            attrs = groups["attrs"]
            src = _html_attr(attrs, "src")
            if not src:
                return None
            return src, _html_attr(attrs, "alt") or ""
        if self.syntax is EmbedSyntax.rst:
            alt = re.search(r":alt:[ \t]*(?P<alt>[^\n]*)", groups["options"] or "")
            return groups["path"].replace("\\ ", " "), alt.group("alt").strip() if alt else ""
        if self.syntax is EmbedSyntax.asciidoc:
            first = (groups["attrs"] or "").split(",", 1)[0].strip()
            return groups["path"], "" if "=" in first else first
        return groups["bracketed"] or groups["path"], groups["alt"]


IMAGE_PATTERNS: tuple[ImagePattern, ...] = (
    ImagePattern(
        EmbedSyntax.markdown,
        re.compile(
            r"!\[(?P<alt>[^\]\n]*)\]\("
            r"(?:<(?P<bracketed>[^>\n]+)>|(?P<path>[^)\n]*?[^)\s]))"
            r"(?:[ \t]+\"[^\"\n]*\")?\)"
        ),
    ),
    ImagePattern(EmbedSyntax.html, re.compile(r"<img\b(?P<attrs>[^>]*)>", re.IGNORECASE)),
    ImagePattern(
        EmbedSyntax.rst,
        re.compile(
            r"^\.\.[ \t]+image::[ \t]+(?P<path>[^\n]*\S)[ \t]*(?P<options>(?:\n[ \t]+:[\w-]+:[^\n]*)*)",
            re.MULTILINE,
        ),
    ),
    ImagePattern(
        EmbedSyntax.asciidoc,
        re.compile(r"^image::(?P<path>[^\[\n]*[^\[\s])\[(?P<attrs>[^\]\n]*)\]", re.MULTILINE),
    ),
)

# Whitespace between an image reference and its source wrapper: at least one line break.
IMAGE_WRAPPER_GAP = re.compile(r"[ \t]*\n\s*")


# ---------------------------------------------------------------------------
# Source wrappers
# ---------------------------------------------------------------------------

# Optional caption line inside comment wrappers, e.g. "Original DOT diagram ...".
_CAPTION = r"(?:(?![ \t]*```)[^\n]*\n)?"


@dataclass(frozen=True)
class WrapperPattern:
    """A construct that hides the editable source from normal rendering."""

    name: str
    template: str

    def compile(self, kind: DiagramKind) -> re.Pattern[str]:
        fence = r"(?P<findent>[ \t]*)" + _fence_body(kind)
        return re.compile(self.template.replace("{FENCE}", fence), _FLAGS)


WRAPPER_PATTERNS: tuple[WrapperPattern, ...] = (
    WrapperPattern(
        "details",
        r"<details>[ \t]*\n\s*<summary>[^<\n]*</summary>[ \t]*\n\s*{FENCE}\s*</details>",
    ),
    WrapperPattern("html-comment", r"<!--[ \t]*\n" + _CAPTION + r"{FENCE}\s*-->"),
    WrapperPattern("jsx-comment", r"\{/\*[ \t]*\n" + _CAPTION + r"{FENCE}\s*\*/\}"),
    WrapperPattern("rst-comment", r"\.\.[ \t]*\n(?:[ \t]+(?![ \t]|```)[^\n]*\n)?{FENCE}"),
    WrapperPattern("asciidoc-comment", r"////[ \t]*\n" + _CAPTION + r"{FENCE}\s*^////[ \t]*$"),
)


# ---------------------------------------------------------------------------
# Wrapper markers for nesting depth
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerFamily:
    """Open/close markers of one wrapper construct.

    ``close`` is None for toggle markers (AsciiDoc ``////``), where occurrences
    alternate between opening and closing.
    """

    name: str
    open: re.Pattern[str]
    close: re.Pattern[str] | None = None


MARKER_FAMILIES: tuple[MarkerFamily, ...] = (
    MarkerFamily("details", re.compile(r"<details\b[^>]*>", re.I), re.compile(r"</details\s*>", re.I)),
    MarkerFamily("html-comment", re.compile(r"<!--"), re.compile(r"-->")),
    MarkerFamily("jsx-comment", re.compile(r"\{/\*"), re.compile(r"\*/\}")),
    MarkerFamily("asciidoc-comment", re.compile(r"^////[ \t]*$", re.M)),
)

# reST comment: a bare ".." line followed by an indented (or blank-line separated) body.
RST_COMMENT_BLOCK = re.compile(r"^\.\.[ \t]*\n(?:[ \t]+[^\n]*\n?|[ \t]*\n)*", re.MULTILINE)
