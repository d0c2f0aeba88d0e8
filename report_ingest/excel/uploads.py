from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO

from ..services.slug import slugify

"""Upload temp-file lifecycle.

An uploaded spreadsheet is copied into the upload directory under a name
created atomically by ``tempfile.mkstemp`` and removed again when the
``stored_upload`` block exits, on success and on every failure path.
Concurrent uploads of the same file name never share a path.
"""

__all__ = [
    "stored_upload",
    "upload_name_parts",
]

logger = logging.getLogger(__name__)


def upload_name_parts(original_name: str) -> tuple[str, str]:
    """``Market Data.xlsx`` -> (``market-data-``, ``.xlsx``): temp file prefix and suffix."""
    original = Path(original_name or "upload")
    base = slugify(original.stem) or "upload"
    return f"{base}-", original.suffix.lower()


@contextmanager
def stored_upload(stream: BinaryIO, original_name: str, upload_dir: Path | str) -> Iterator[Path]:
    """Persist ``stream`` to a temp file and delete it exactly once on exit.

    Args:
        stream: Readable binary stream of the upload
        original_name: Client-side file name (used for the extension)
        upload_dir: Directory for temp files (created if missing)

    Yields:
        Path of the stored file
    """
    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)
    prefix, suffix = upload_name_parts(original_name)
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=suffix, dir=directory)
    target = Path(name)
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(stream, out)
        logger.debug("stored upload %s as %s", original_name, target)
        yield target
    finally:
        try:
            target.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("failed to remove upload %s: %s", target, e)
