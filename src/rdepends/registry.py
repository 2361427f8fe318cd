"""Reading raw release records from a local registry index."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)

IGNORED_NAMES = frozenset({".git", ".github", "config.json", ".DS_Store"})


def index_files(root: Path | str) -> Iterator[Path]:
    """Yield every index file below ``root`` in a stable (sorted) order.

    Version control metadata and the registry's ``config.json`` are skipped.
    """
    root = Path(root)
    for path in sorted(root.rglob("*")):
        if any(part in IGNORED_NAMES for part in path.relative_to(root).parts):
            continue
        if path.is_file():
            yield path


def iter_lines(path: Path | str) -> Iterator[str]:
    """Yield the raw release lines stored at ``path``.

    ``path`` is either a single JSON-lines file or a local checkout of a crates.io style index, where every
    file holds the releases of one package, one JSON object per line.
    """
    path = Path(path)
    if not path.exists():
        msg = f"{path!s} does not exist"
        raise FileNotFoundError(msg)
    files = [path] if path.is_file() else index_files(path)
    for file in files:
        try:
            with file.open(encoding="utf-8", errors="replace") as f:
                yield from (line.rstrip("\n") for line in f)
        except OSError as e:
            logger.warning("Could not read index file %s: %s", file, e)
