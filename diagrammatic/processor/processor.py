"""DocumentProcessor — extract, name, render, embed and rewrite one document at a time."""

from __future__ import annotations

import glob
import logging
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from diagrammatic.config.models import DiagrammaticConfig
from diagrammatic.errors import DocumentIOError
from diagrammatic.extract import (
    DiagramKind,
    RenderedDiagramRecord,
    Span,
    disambiguate,
    extract,
    resolve_layout,
    scan_rendered,
)
from diagrammatic.output import (
    AssetWriter,
    Replacement,
    ReplacementPlan,
    apply,
    dialect_for,
    embed,
    read_document,
    should_write,
)
from diagrammatic.processor.models import (
    BlockError,
    DiagramResult,
    Document,
    ProcessOptions,
    ProcessResult,
)
from diagrammatic.render import RenderDispatcher, RenderOutcome, RenderRequest, create_dispatcher

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[")


def is_remote(image_path: str) -> bool:
    return "://" in image_path or image_path.startswith("data:")


def expand_documents(pattern: str) -> list[Path]:
    """A literal path yields itself; a glob yields its matching files in sorted order."""
    if not _GLOB_CHARS.intersection(pattern):
        return [Path(pattern)]
    return [Path(p) for p in sorted(glob.glob(pattern, recursive=True)) if Path(p).is_file()]


def find_missing_assets(document: Document) -> list[RenderedDiagramRecord]:
    """Rendered records whose image file does not exist next to the document."""
    missing = []
    for record in document.extraction.rendered:
        if is_remote(record.image_path):
            continue
        if not (document.directory / record.image_path).exists():
            logger.warning(
                "%s: image %s referenced by %s diagram %r is missing",
                document.path,
                record.image_path,
                record.kind.value,
                record.name,
            )
            missing.append(record)
    return missing


@dataclass(frozen=True)
class _Job:
    """One block to render: fresh (new image) or rendered record (image updated in place)."""

    name: str
    source: str
    span: Span
    request: RenderRequest
    dest: Path
    relative_path: str
    fresh: bool

    def result(self) -> DiagramResult:
        return DiagramResult(
            name=self.name,
            path=str(self.dest),
            relative_path=self.relative_path,
            type="new" if self.fresh else "re-render",
            kind=self.request.kind,
            option=self.request.option,
        )


class DocumentProcessor:
    """Runs the diagram lifecycle against documents.

    The document is read once, every block is rendered concurrently, and the
    document is overwritten at most once, only when a new diagram rendered.
    """

    def __init__(
        self,
        config: DiagrammaticConfig,
        dispatcher: RenderDispatcher | None = None,
        writer: AssetWriter | None = None,
    ) -> None:
        self.config = config
        self.dispatcher = dispatcher or create_dispatcher(config)
        self.writer = writer or AssetWriter()

    # -- analysis ----------------------------------------------------------

    def load(self, path: str | Path, kind: DiagramKind) -> Document:
        resolved = Path(path).expanduser().resolve()
        text = read_document(resolved)
        return Document(path=resolved, text=text, extraction=extract(text, kind))

    def output_dir(self, document: Document, override: str | None = None) -> Path:
        if override:
            out = Path(override).expanduser()
            return out if out.is_absolute() else document.directory / out
        return document.directory / self.config.output.diagram_dir / document.path.stem

    def _option(self, kind: DiagramKind, source: str, hint: str | None, override: str | None) -> str:
        if kind is DiagramKind.dot:
            return resolve_layout(source, fence_hint=hint, override=override, default=self.config.dot.layout)
        return override or self.config.mermaid.theme

    def _format(self, kind: DiagramKind, override: str | None) -> str:
        if override:
            return override
        return self.config.dot.format if kind is DiagramKind.dot else self.config.mermaid.format

    def _relative(self, document: Document, dest: Path) -> str:
        return Path(os.path.relpath(dest, document.directory)).as_posix()

    def _reserved_stems(self, document: Document, kind: DiagramKind, out_dir: Path) -> list[str]:
        """Image names new blocks must not take.

        Covers files already in ``out_dir`` and every recorded image there,
        whichever diagram kind it belongs to.
        """
        resolved = out_dir.resolve()
        stems = [p.stem for p in sorted(out_dir.iterdir()) if p.is_file()] if out_dir.is_dir() else []
        records = list(document.extraction.rendered)
        for other in DiagramKind:
            if other is not kind:
                records.extend(scan_rendered(document.text, other))
        for record in records:
            if is_remote(record.image_path):
                continue
            dest = document.directory / record.image_path
            if dest.resolve().parent == resolved:
                stems.append(dest.stem)
        return stems

    def plan_jobs(self, document: Document, options: ProcessOptions) -> list[_Job]:
        """Re-render jobs for rendered records first, then one job per fresh block."""
        kind = options.kind
        out_dir = self.output_dir(document, options.output_dir)
        jobs: list[_Job] = []

        reserved = self._reserved_stems(document, kind, out_dir)
        for record in document.extraction.rendered:
            if is_remote(record.image_path):
                logger.debug("skipping remote image %s", record.image_path)
                continue
            dest = document.directory / record.image_path
            fmt = PurePosixPath(record.image_path).suffix.lstrip(".").lower() or self._format(kind, None)
            request = RenderRequest(
                kind=kind,
                name=record.name,
                option=self._option(kind, record.source_code, record.layout_hint, options.option),
                format=fmt,
            )
            jobs.append(
                _Job(
                    name=record.name,
                    source=record.source_code,
                    span=record.span,
                    request=request,
                    dest=dest,
                    relative_path=record.image_path,
                    fresh=False,
                )
            )

        fmt = self._format(kind, options.format)
        for block in disambiguate(document.extraction.fresh, reserved):
            dest = out_dir / f"{block.name}.{fmt}"
            request = RenderRequest(
                kind=kind,
                name=block.name,
                option=self._option(kind, block.source_code, block.layout_hint, options.option),
                format=fmt,
            )
            jobs.append(
                _Job(
                    name=block.name,
                    source=block.source_code,
                    span=block.span,
                    request=request,
                    dest=dest,
                    relative_path=self._relative(document, dest),
                    fresh=True,
                )
            )
        return jobs

    # -- execution ---------------------------------------------------------

    def assemble(
        self,
        document: Document,
        jobs: Sequence[_Job],
        outcomes: Sequence[RenderOutcome],
    ) -> tuple[ReplacementPlan, list[DiagramResult], list[BlockError]]:
        """Write images for successful outcomes and build the replacement plan from them."""
        dialect = dialect_for(document.extension)
        replacements: list[Replacement] = []
        diagrams: list[DiagramResult] = []
        errors: list[BlockError] = []

        for job, outcome in zip(jobs, outcomes):
            if not outcome.ok or outcome.data is None:
                errors.append(BlockError(name=job.name, message=outcome.error or "render failed"))
                continue
            try:
                self.writer.write_image(job.dest, outcome.data)
            except DocumentIOError as exc:
                logger.error("%s: %s", job.name, exc)
                errors.append(BlockError(name=job.name, message=str(exc)))
                continue

            if job.fresh:
                text = embed(
                    dialect,
                    job.request.kind,
                    job.relative_path,
                    job.name,
                    job.source,
                    job.request.option,
                )
            else:
                text = document.text[job.span.start:job.span.end]
            replacements.append(Replacement(span=job.span, text=text, fresh=job.fresh))
            diagrams.append(job.result())
            logger.info(
                "%s %s -> %s", "rendered" if job.fresh else "re-rendered", job.name, job.relative_path
            )
        return ReplacementPlan.of(replacements), diagrams, errors

    async def process(self, path: str | Path, options: ProcessOptions) -> ProcessResult:
        """Process one document. Raises DocumentIOError when it cannot be read or written."""
        document = self.load(path, options.kind)
        jobs = self.plan_jobs(document, options)
        if not jobs:
            logger.info("%s: no %s diagrams found", document.path, options.kind.value)

        if options.dry_run:
            for job in jobs:
                logger.info(
                    "would %s %s -> %s (%s)",
                    "render" if job.fresh else "re-render",
                    job.name,
                    job.relative_path,
                    job.request.option,
                )
            return ProcessResult(
                document_path=str(document.path),
                dry_run=True,
                planned=[job.result() for job in jobs],
            )

        outcomes = await self.dispatcher.render_all([(job.source, job.request) for job in jobs])
        plan, diagrams, errors = self.assemble(document, jobs, outcomes)
        if should_write(plan):
            self.writer.write_document(document.path, apply(document.text, plan))

        rerendered = sum(1 for d in diagrams if d.type == "re-render")
        logger.info(
            "%s: %d re-rendered, %d new, %d failed",
            document.path.name,
            rerendered,
            len(diagrams) - rerendered,
            len(errors),
        )
        return ProcessResult(
            processed=len(diagrams),
            diagrams=diagrams,
            document_path=str(document.path),
            errors=errors,
        )

    async def process_many(self, paths: Iterable[str | Path], options: ProcessOptions) -> list[ProcessResult]:
        """Process documents in order; an I/O failure on one does not stop the rest."""
        results: list[ProcessResult] = []
        for path in paths:
            try:
                results.append(await self.process(path, options))
            except DocumentIOError as exc:
                logger.error("%s", exc)
                results.append(ProcessResult(document_path=str(path), error=str(exc)))
        return results
