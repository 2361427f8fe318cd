"""The in-memory registry index: release records plus reverse dependency lookups."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType
from typing import TYPE_CHECKING

from tqdm import tqdm

from .models import DependencyConstraint, ParseError, ReleaseRecord
from .registry import iter_lines

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator, Mapping
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SHARD_SIZE = 10_000


class IndexUnavailableError(RuntimeError):
    """Raised when there is no usable index to query."""


class IndexBuilder:
    """Accumulates release records into (possibly shard-local) partial indices.

    Both derived indices are purely additive per key, so partial indices built from consecutive shards of the
    input can be merged by concatenation without changing the result.
    """

    def __init__(self, kinds: Collection[str] | None = None, *, include_yanked: bool = True) -> None:
        """Initialize an empty builder.

        Args:
            kinds: Requirement kinds to index, or None to index all of them
            include_yanked: Whether yanked releases are indexed

        """
        self.kinds: frozenset[str] | None = None if kinds is None else frozenset(kinds)
        self.include_yanked: bool = include_yanked
        self.releases: list[ReleaseRecord] = []
        self.versions: dict[str, list[str]] = {}
        self.dependents: dict[str, list[DependencyConstraint]] = {}
        self.skipped: int = 0

    def add(self, record: ReleaseRecord) -> None:
        """Add one parsed release record."""
        if record.yanked and not self.include_yanked:
            return
        self.releases.append(record)
        self.versions.setdefault(record.package, []).append(record.version)
        for requirement in record.requirements:
            if self.kinds is not None and requirement.kind not in self.kinds:
                continue
            self.dependents.setdefault(requirement.package, []).append(
                DependencyConstraint(
                    target=requirement.package,
                    source=record.package,
                    source_version=record.version,
                    constraint=requirement.constraint,
                )
            )

    def add_line(self, line: str | bytes) -> bool:
        """Parse and add one raw line. Malformed lines are counted and skipped."""
        if not line.strip():
            return False
        try:
            record = ReleaseRecord.loads(line)
        except ParseError as e:
            self.skipped += 1
            logger.debug("Skipping malformed release record: %s", e)
            return False
        self.add(record)
        return True

    def merge(self, other: IndexBuilder) -> IndexBuilder:
        """Append the partial index of ``other`` (which must come later in the input) to this one."""
        self.releases.extend(other.releases)
        for package, versions in other.versions.items():
            self.versions.setdefault(package, []).extend(versions)
        for package, edges in other.dependents.items():
            self.dependents.setdefault(package, []).extend(edges)
        self.skipped += other.skipped
        return self

    def build(self, *, deduplicate: bool = False) -> IndexStore:
        """Freeze the accumulated records into an :class:`IndexStore`."""
        if deduplicate:
            dependents = {package: tuple(dict.fromkeys(edges)) for package, edges in self.dependents.items()}
        else:
            dependents = {package: tuple(edges) for package, edges in self.dependents.items()}
        return IndexStore(
            releases=tuple(self.releases),
            versions={package: tuple(dict.fromkeys(versions)) for package, versions in self.versions.items()},
            dependents=dependents,
            skipped=self.skipped,
        )


def _parse_shard(lines: list[str], kinds: Collection[str] | None, include_yanked: bool) -> IndexBuilder:  # noqa: FBT001
    builder = IndexBuilder(kinds, include_yanked=include_yanked)
    for line in lines:
        builder.add_line(line)
    return builder


class IndexStore:
    """An immutable index of release records.

    Besides the records themselves it holds two derived lookups:

    * the versions index, mapping a package name to every version seen for it, in first-seen order, and
    * the dependents index, mapping a package name to every requirement edge naming it, in first-seen order.

    An index is built once and only read afterwards. A registry refresh builds a new index; an existing one is
    never modified, so queries may share it freely.
    """

    def __init__(
        self,
        releases: tuple[ReleaseRecord, ...] = (),
        versions: Mapping[str, tuple[str, ...]] | None = None,
        dependents: Mapping[str, tuple[DependencyConstraint, ...]] | None = None,
        skipped: int = 0,
    ) -> None:
        """Initialize the index. Use :meth:`load` or :meth:`from_records` rather than calling this directly."""
        self._releases: tuple[ReleaseRecord, ...] = tuple(releases)
        self._versions: Mapping[str, tuple[str, ...]] = MappingProxyType(dict(versions or {}))
        self._dependents: Mapping[str, tuple[DependencyConstraint, ...]] = MappingProxyType(dict(dependents or {}))
        self._by_key: dict[tuple[str, str], ReleaseRecord] = {}
        for record in self._releases:
            self._by_key.setdefault((record.package, record.version), record)
        self._skipped: int = skipped

    @classmethod
    def load(  # noqa: PLR0913
        cls,
        lines: Iterable[str | bytes],
        *,
        max_workers: int = 1,
        shard_size: int = DEFAULT_SHARD_SIZE,
        deduplicate: bool = False,
        kinds: Collection[str] | None = None,
        include_yanked: bool = True,
        progress: bool = False,
    ) -> IndexStore:
        """Parse raw release lines into an index.

        A line that fails to parse is skipped and counted in :attr:`skipped`; it never aborts the load.
        With ``max_workers > 1`` the input is split into shards of ``shard_size`` lines that are parsed
        concurrently and merged in input order, so the result equals that of a sequential load.
        """
        if max_workers <= 1:
            builder = IndexBuilder(kinds, include_yanked=include_yanked)
            for line in tqdm(lines, desc="parsing index", unit=" releases", leave=False, disable=not progress):
                builder.add_line(line)
            return builder.build(deduplicate=deduplicate)

        lines = list(lines)
        shards = [lines[i : i + shard_size] for i in range(0, len(lines), shard_size)]
        builder = IndexBuilder(kinds, include_yanked=include_yanked)
        with (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="rdepends-index") as pool,
            tqdm(desc="parsing index", total=len(shards), unit=" shards", leave=False, disable=not progress) as t,
        ):
            # map() yields results in submission order, which keeps the merge deterministic
            for partial in pool.map(_parse_shard, shards, [kinds] * len(shards), [include_yanked] * len(shards)):
                builder.merge(partial)
                t.update(1)
        return builder.build(deduplicate=deduplicate)

    @classmethod
    def from_records(
        cls,
        records: Iterable[ReleaseRecord],
        *,
        skipped: int = 0,
        deduplicate: bool = False,
        kinds: Collection[str] | None = None,
        include_yanked: bool = True,
    ) -> IndexStore:
        """Build an index from already parsed release records."""
        builder = IndexBuilder(kinds, include_yanked=include_yanked)
        builder.skipped = skipped
        for record in records:
            builder.add(record)
        return builder.build(deduplicate=deduplicate)

    @classmethod
    def from_path(cls, path: Path | str, **kwargs: object) -> IndexStore:
        """Load an index from a local registry checkout or a JSON-lines file.

        Raises:
            IndexUnavailableError: if ``path`` does not exist

        """
        try:
            lines = iter_lines(path)
            first = next(lines, None)
        except FileNotFoundError as e:
            msg = f"Can not load the registry index: {e!s}"
            raise IndexUnavailableError(msg) from e
        if first is None:
            logger.warning("The registry index at %s is empty", path)
            return cls()

        def chained() -> Iterator[str]:
            yield first
            yield from lines

        index = cls.load(chained(), **kwargs)  # type: ignore[arg-type]
        logger.info(
            "Loaded %d releases of %d packages from %s (%d malformed records skipped)",
            len(index),
            len(index.packages()),
            path,
            index.skipped,
        )
        return index

    @property
    def releases(self) -> tuple[ReleaseRecord, ...]:
        """Get every indexed release record in input order."""
        return self._releases

    @property
    def skipped(self) -> int:
        """Get the number of raw records that could not be parsed."""
        return self._skipped

    def versions(self, package: str) -> tuple[str, ...]:
        """Get every known version of ``package`` in first-seen order (empty if the package is unknown)."""
        return self._versions.get(package, ())

    def dependents(self, package: str) -> tuple[DependencyConstraint, ...]:
        """Get every requirement edge naming ``package`` in first-seen order."""
        return self._dependents.get(package, ())

    def release(self, package: str, version: str) -> ReleaseRecord | None:
        """Get the release record of ``package@version``, if indexed."""
        return self._by_key.get((package, version))

    def packages(self) -> frozenset[str]:
        """Get the names of all packages with at least one indexed release."""
        return frozenset(self._versions)

    def __len__(self) -> int:
        """Return the number of indexed release records."""
        return len(self._releases)

    def __iter__(self) -> Iterator[ReleaseRecord]:
        """Iterate over the indexed release records."""
        return iter(self._releases)

    def __contains__(self, package: object) -> bool:
        """Check if a package has any indexed release."""
        return package in self._versions

    def __str__(self) -> str:
        """Return a short summary of the index."""
        return f"<{self.__class__.__name__}: {len(self)} releases of {len(self._versions)} packages>"


def load(lines: Iterable[str | bytes], **kwargs: object) -> IndexStore:
    """Parse raw release lines into an :class:`IndexStore`. See :meth:`IndexStore.load`."""
    return IndexStore.load(lines, **kwargs)  # type: ignore[arg-type]
