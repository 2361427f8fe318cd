"""Command-line interface for rdepends."""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from . import __version__ as rdepends_version
from .config import OutputFormat, Settings
from .db import IndexDatabase
from .dependents import DependentGraphBuilder
from .index import IndexStore, IndexUnavailableError
from .logger import setup_logger
from .models import split_node_key
from .resolver import is_known_resolver, resolvers

logger = logging.getLogger(__name__)


def parse_kinds(kinds: str) -> frozenset[str] | None:
    """Parse a comma separated list of requirement kinds. An empty list means every kind."""
    parsed = frozenset(kind.strip() for kind in kinds.split(",") if kind.strip())
    return parsed or None


def load_index(settings: Settings) -> IndexStore:
    """Load the index from the snapshot database, (re-)parsing ``settings.index`` when needed.

    Raises:
        IndexUnavailableError: if there is neither a snapshot nor an index to parse

    """
    kinds = parse_kinds(settings.kinds)
    with IndexDatabase(settings.database) as db:
        if settings.index is not None and (settings.refresh or db.is_empty()):
            # the snapshot keeps every record; filters are applied to the in-memory index only
            index = IndexStore.from_path(
                settings.index,
                max_workers=settings.max_workers,
                deduplicate=settings.deduplicate,
                progress=settings.progress,
            )
            db.save(index)
            if kinds is None and settings.include_yanked:
                return index
            return IndexStore.from_records(
                index.releases,
                skipped=index.skipped,
                deduplicate=settings.deduplicate,
                kinds=kinds,
                include_yanked=settings.include_yanked,
            )
        if settings.index is None and db.is_empty():
            msg = "No index snapshot is available; run once with `--index` pointing at a registry index"
            raise IndexUnavailableError(msg)
        logger.info("Loading the index snapshot from %s", settings.database)
        return db.load_index(deduplicate=settings.deduplicate, kinds=kinds, include_yanked=settings.include_yanked)


def main(argv: list[str] | None = None) -> int:  # noqa: C901, PLR0911, PLR0912
    settings = Settings() if argv is None else Settings(_cli_parse_args=argv)
    setup_logger(settings.log_level)

    # If max_workers isn't provided, use the number of CPUs.
    # If that fails, use 1.
    if settings.max_workers == -1:
        settings.max_workers = os.cpu_count() or 1

    logger.debug("Starting rdepends with settings: %s", settings)

    if settings.version:
        sys.stdout.write(f"rdepends version {rdepends_version}\n")
        return 0

    # List the available resolvers
    if settings.list:
        logger.info("Available resolvers:")
        for name, resolver in sorted((r.name, r) for r in resolvers()):
            sys.stdout.write(f"{name}{' ' * (12 - len(name))}{resolver.description}\n")
        return 0

    # Clear the database cache
    if settings.clear_cache:
        db_path = Path(settings.database)
        if db_path.exists():
            db_path.unlink()
        if not settings.target:
            return 0

    try:
        package, version = split_node_key(settings.target)
    except ValueError:
        logger.error("Expected a target of the form PACKAGE@VERSION, got %r", settings.target)  # noqa: TRY400
        return 1
    if not is_known_resolver(settings.resolver):
        logger.error("Unknown resolver: %s. Try --list to see the available resolvers", settings.resolver)
        return 1

    if settings.output_file is None:
        output_write = sys.stdout.write
    else:
        output_write = settings.output_file.write_text
        if not settings.force and settings.output_file.exists():
            logger.error("%s already exists!\nRe-run with `--force` to overwrite the file.\n", settings.output_file)
            return 1

    try:
        index = load_index(settings)
    except IndexUnavailableError as e:
        logger.error("%s", e)  # noqa: TRY400
        return 1

    builder = DependentGraphBuilder(
        index,
        settings.resolver,
        max_workers=settings.max_workers,
        progress=settings.progress,
    )
    cancel = threading.Event()
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="rdepends-main") as pool:
        future = pool.submit(builder.build, package, version, timeout=settings.timeout, cancel=cancel)
        try:
            graph = future.result()
        except KeyboardInterrupt:
            logger.warning("Interrupted! Writing the partial results")
            cancel.set()
            graph = future.result()

    if not graph.dependents():
        logger.info("Nothing in the index depends on %s", settings.target)

    if settings.output_format == OutputFormat.dot:
        output_write(graph.to_dot().source)
    elif settings.output_format == OutputFormat.json:
        output_write(json.dumps(graph.to_obj(), indent=4))
    else:
        msg = f"Unsupported output format {settings.output_format}"
        raise NotImplementedError(msg)

    if settings.output_file is not None:
        logger.info("Output saved to %s", settings.output_file.absolute())
    return 0
