"""Offset-safe, single-pass document rewriting."""

from __future__ import annotations

from collections.abc import Iterable
from functools import reduce

from pydantic import BaseModel, ConfigDict, Field

from diagrammatic.extract.models import Span


class Replacement(BaseModel):
    """Text to splice over ``span`` of the original document."""

    model_config = ConfigDict(frozen=True)

    span: Span
    text: str
    fresh: bool = Field(description="True when the span was a fresh block, not a re-render")


class ReplacementPlan(BaseModel):
    """Replacements against one original text. Spans must not overlap."""

    model_config = ConfigDict(frozen=True)

    replacements: list[Replacement] = Field(default_factory=list)

    @classmethod
    def of(cls, replacements: Iterable[Replacement]) -> ReplacementPlan:
        return cls(replacements=list(replacements))

    def __len__(self) -> int:
        return len(self.replacements)


def _splice(text: str, replacement: Replacement) -> str:
    return text[: replacement.span.start] + replacement.text + text[replacement.span.end:]


def apply(original: str, plan: ReplacementPlan) -> str:
    """Apply every replacement, last span first, so earlier offsets stay valid."""
    ordered = sorted(plan.replacements, key=lambda r: r.span.start, reverse=True)
    return reduce(_splice, ordered, original)


def should_write(plan: ReplacementPlan) -> bool:
    """Only a newly rendered block justifies touching the document."""
    return any(r.fresh for r in plan.replacements)
