"""Transitive dependent graph construction."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Callable, Optional

from tqdm import tqdm

from .graph import DependentGraph
from .index import IndexStore, IndexUnavailableError
from .models import DependencyConstraint, node_key
from .resolver import ConstraintResolver, resolver_by_name

if TYPE_CHECKING:
    from collections.abc import Hashable

logger = logging.getLogger(__name__)

Resolve = Callable[[str, Sequence[str]], Optional[str]]


class VisitedEdges:
    """A thread-safe set of explored edges, shared by every step of one query."""

    def __init__(self) -> None:
        """Initialize an empty set."""
        self._seen: set[Hashable] = set()
        self._lock = threading.Lock()

    def claim(self, item: Hashable) -> bool:
        """Atomically mark ``item`` as visited. Return False if it already was."""
        with self._lock:
            if item in self._seen:
                return False
            self._seen.add(item)
            return True

    def __contains__(self, item: object) -> bool:
        """Check if ``item`` was visited."""
        with self._lock:
            return item in self._seen

    def __len__(self) -> int:
        """Return the number of visited edges."""
        with self._lock:
            return len(self._seen)


class _Query:
    """State shared by every exploration step of one query."""

    def __init__(
        self,
        resolve: Resolve,
        cancel: threading.Event | None = None,
        timeout: float | None = None,
    ) -> None:
        self.resolve: Resolve = resolve
        self.visited: VisitedEdges = VisitedEdges()
        self.cancel: threading.Event = cancel if cancel is not None else threading.Event()
        self.deadline: float | None = None if timeout is None else time.monotonic() + timeout
        self.failures: int = 0
        self._resolved: dict[tuple[str, str], str | None] = {}
        self._lock = threading.Lock()

    def cancelled(self) -> bool:
        if self.cancel.is_set():
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel.set()
            return True
        return False

    def resolve_edge(self, edge: DependencyConstraint, candidates: Sequence[str]) -> str | None:
        """Resolve the constraint of ``edge`` against the known versions of its target.

        A resolver failure only affects this edge: it is logged and treated as a non-match.
        """
        memo_key = (edge.target, edge.constraint)
        with self._lock:
            if memo_key in self._resolved:
                return self._resolved[memo_key]
        try:
            resolved = self.resolve(edge.constraint, candidates)
        except ValueError as e:
            logger.debug("Can not resolve %r: %s", edge, e)
            resolved = None
            with self._lock:
                self.failures += 1
        except Exception:
            logger.exception("Error resolving %r", edge)
            resolved = None
            with self._lock:
                self.failures += 1
        with self._lock:
            self._resolved[memo_key] = resolved
        return resolved


class _Fragment:
    """The part of the dependent graph found by exploring a single release."""

    def __init__(self, graph: DependentGraph, dependents: list[tuple[str, str]]) -> None:
        self.graph: DependentGraph = graph
        self.dependents: list[tuple[str, str]] = dependents


class DependentGraphBuilder:
    """Compute every release that transitively depends on a given release.

    A requirement only counts if its constraint, resolved against the versions the index knows for the required
    package, selects exactly the queried version.
    """

    def __init__(
        self,
        index: IndexStore | None,
        resolver: ConstraintResolver | Resolve | str = "cargo",
        *,
        max_workers: int = 1,
        progress: bool = False,
    ) -> None:
        """Initialize the builder.

        Args:
            index: The index to query. It is only read.
            resolver: A constraint resolver, its registered name, or any callable with the same signature
            max_workers: Number of releases explored concurrently
            progress: Whether to display a progress bar

        Raises:
            IndexUnavailableError: if there is no index

        """
        if not isinstance(index, IndexStore):
            msg = "A registry index must be built before dependents can be queried"
            raise IndexUnavailableError(msg)
        if isinstance(resolver, str):
            resolver = resolver_by_name(resolver)
        self.index: IndexStore = index
        self.resolve: Resolve = resolver
        self.max_workers: int = max(1, max_workers)
        self.progress: bool = progress

    def explore(self, package: str, version: str, query: _Query) -> _Fragment:
        """Find the direct dependents of ``package@version``.

        Every edge is claimed in the query's shared visited set before it is evaluated, so an edge listed more
        than once in the index is evaluated once per release. Termination on dependency cycles comes from
        :meth:`build`, which explores each release at most once.
        """
        key = node_key(package, version)
        graph = DependentGraph(root=key)
        dependents: list[tuple[str, str]] = []
        candidates = self.index.versions(package)
        worklist = deque(self.index.dependents(package))
        while worklist:
            if query.cancelled():
                graph.truncated = True
                break
            edge = worklist.popleft()
            if not query.visited.claim((version, edge)):
                continue
            if query.resolve_edge(edge, candidates) != version:
                continue
            if edge.source_key == key:
                continue
            graph.add_dependent(key, edge.source_key)
            dependents.append((edge.source, edge.source_version))
        return _Fragment(graph, dependents)

    def build(
        self,
        package: str,
        version: str,
        *,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
    ) -> DependentGraph:
        """Build the graph of every release that transitively depends on ``package@version``.

        An unknown package or version yields an empty graph. If ``cancel`` is set or ``timeout`` seconds elapse,
        the graph found so far is returned with :attr:`DependentGraph.truncated` set.
        """
        query = _Query(self.resolve, cancel=cancel, timeout=timeout)
        root = node_key(package, version)
        result = DependentGraph(root=root)
        if package not in self.index:
            logger.info("%s is not in the index", package)
            return result

        queued: set[str] = {root}
        pending: list[tuple[str, str]] = [(package, version)]

        with tqdm(desc=f"dependents of {root}", leave=False, unit=" releases", disable=not self.progress) as t:
            t.total = 1

            def absorb(fragment: _Fragment) -> None:
                result.merge(fragment.graph)
                new: list[tuple[str, str]] = []
                for dep_package, dep_version in fragment.dependents:
                    dep_key = node_key(dep_package, dep_version)
                    if dep_key not in queued:
                        queued.add(dep_key)
                        new.append((dep_package, dep_version))
                # depth first: explore the first dependent found next
                pending.extend(reversed(new))
                t.total += len(new)
                t.update(1)

            if self.max_workers <= 1:
                while pending:
                    if query.cancelled():
                        result.truncated = True
                        break
                    absorb(self.explore(*pending.pop(), query))
            else:
                self._build_concurrently(query, pending, absorb, result)

        if query.failures:
            logger.warning("%d constraint(s) could not be resolved and were ignored", query.failures)
        if result.truncated:
            logger.warning("Stopped early: the dependents of %s are incomplete", root)
        logger.info("Found %d dependents of %s", len(result.dependents()), root)
        return result

    def _build_concurrently(
        self,
        query: _Query,
        pending: list[tuple[str, str]],
        absorb: Callable[[_Fragment], None],
        result: DependentGraph,
    ) -> None:
        futures: set[Future[_Fragment]] = set()
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="rdepends-query") as pool:
            while pending or futures:
                if query.cancelled():
                    result.truncated = True
                    break
                jobs = min(self.max_workers - len(futures), len(pending))
                futures |= {pool.submit(self.explore, *pending.pop(), query) for _ in range(jobs)}
                done, futures = wait(futures, return_when=FIRST_COMPLETED)
                for finished in done:
                    absorb(finished.result())
            if futures:
                # running steps notice the cancellation and return what they found so far
                for future in futures:
                    future.cancel()
                for finished in wait(futures).done:
                    if not finished.cancelled():
                        absorb(finished.result())


def build_dependents(
    index: IndexStore | None,
    resolver: ConstraintResolver | Resolve | str,
    package: str,
    version: str,
    *,
    max_workers: int = 1,
    timeout: float | None = None,
    cancel: threading.Event | None = None,
    progress: bool = False,
) -> DependentGraph:
    """Return the graph of every release in ``index`` that transitively depends on ``package@version``."""
    builder = DependentGraphBuilder(index, resolver, max_workers=max_workers, progress=progress)
    return builder.build(package, version, timeout=timeout, cancel=cancel)
