"""AssetWriter — puts rendered images and rewritten documents on disk."""

from __future__ import annotations

import logging
from pathlib import Path

from diagrammatic.errors import DocumentIOError

logger = logging.getLogger(__name__)


class AssetWriter:
    """Writes image bytes and document text, honouring dry-run mode.

    Directories are created only when something is actually written, so a dry
    run leaves the filesystem untouched.
    """

    def write_image(self, dest: Path, data: bytes, *, dry_run: bool = False) -> Path:
        if dry_run:
            logger.debug("dry-run: would write %s", dest)
            return dest
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest.write_bytes(data)
        except OSError as exc:
            raise DocumentIOError(dest, "write image", exc) from exc
        logger.debug("wrote %s (%d bytes)", dest, len(data))
        return dest

    def write_document(self, dest: Path, text: str, *, dry_run: bool = False) -> Path:
        if dry_run:
            logger.debug("dry-run: would rewrite %s", dest)
            return dest
        try:
            dest.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise DocumentIOError(dest, "write", exc) from exc
        logger.info("updated %s", dest)
        return dest


def read_document(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentIOError(path, "read", exc) from exc
