"""Constraint resolvers: pick the version of a package a requirement resolves to."""

from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from semantic_version import SimpleSpec, Version

if TYPE_CHECKING:
    from collections.abc import Sequence

    from semantic_version.base import BaseSpec

logger = logging.getLogger(__name__)


class ResolutionError(ValueError):
    """Raised when a resolver can not evaluate a constraint expression."""


class ConstraintResolver(ABC):
    """Select which of a package's known versions a constraint expression resolves to.

    Implementations must be deterministic: the same expression and candidate versions always yield the same
    answer. Every concrete subclass registers itself and is available through :func:`resolver_by_name`.
    """

    name: str
    description: str
    _instance: ConstraintResolver | None = None

    def __new__(cls, *args: object, **kwargs: object) -> ConstraintResolver:  # noqa: PYI034
        """Create a singleton instance."""
        if not isinstance(cls._instance, cls):
            cls._instance = super().__new__(cls, *args, **kwargs)
        return cls._instance

    def __init_subclass__(cls, **kwargs: object) -> None:
        """Validate subclass configuration."""
        if not hasattr(cls, "name") or cls.name is None:
            error_msg = f"{cls.__name__} must define a `name` class member"
            raise TypeError(error_msg)
        if not hasattr(cls, "description") or cls.description is None:
            error_msg = f"{cls.__name__} must define a `description` class member"
            raise TypeError(error_msg)
        resolvers.cache_clear()
        resolver_by_name.cache_clear()

    @classmethod
    @abstractmethod
    def parse_spec(cls, spec: str) -> BaseSpec:
        """Parse a constraint expression into a semantic version spec for this specific resolver."""
        raise NotImplementedError

    @classmethod
    def parse_version(cls, version_string: str) -> Version:
        """Parse a version string into a version object for this specific resolver."""
        return Version.coerce(version_string)

    def resolve(self, constraint: str, candidates: Sequence[str]) -> str | None:
        """Return the highest candidate version satisfying ``constraint``, or None if there is none.

        Candidate versions that can not be parsed are ignored.

        Raises:
            ResolutionError: if ``constraint`` can not be parsed

        """
        try:
            spec = self.parse_spec(constraint)
        except ValueError as e:
            msg = f"{self.name} can not parse constraint <{constraint}>: {e!s}"
            raise ResolutionError(msg) from e
        parsed: dict[Version, str] = {}
        for candidate in candidates:
            try:
                version = self.parse_version(candidate)
            except ValueError:
                logger.debug("Ignoring unparseable version %r", candidate)
                continue
            parsed.setdefault(version, candidate)
        selected = spec.select(parsed)
        if selected is None:
            return None
        return parsed[selected]

    def __call__(self, constraint: str, candidates: Sequence[str]) -> str | None:
        """Resolve ``constraint``; resolvers can be injected wherever a plain callable is expected."""
        return self.resolve(constraint, candidates)

    def __hash__(self) -> int:
        """Return hash of the resolver."""
        return hash(self.name)

    def __eq__(self, other: object) -> bool:
        """Check if two resolvers are equal."""
        return isinstance(other, ConstraintResolver) and other.name == self.name

    def __repr__(self) -> str:
        """Return a debugging representation of the resolver."""
        return f"<{self.__class__.__name__} {self.name}>"


@functools.lru_cache
def resolvers() -> frozenset[ConstraintResolver]:
    """Get collection of all the default instances of ConstraintResolvers."""
    found: set[ConstraintResolver] = set()
    pending = list(ConstraintResolver.__subclasses__())
    while pending:
        cls = pending.pop()
        pending.extend(cls.__subclasses__())
        if not getattr(cls, "__abstractmethods__", None):
            found.add(cls())
    return frozenset(found)


@functools.lru_cache
def resolver_by_name(name: str) -> ConstraintResolver:
    """Find a resolver instance by name. The result is cached."""
    for instance in resolvers():
        if instance.name == name:
            return instance
    raise KeyError(name)


def is_known_resolver(name: str) -> bool:
    """Check if name is a valid/known resolver name."""
    try:
        resolver_by_name(name)
    except KeyError:
        return False
    else:
        return True


class SemverResolver(ConstraintResolver):
    """Resolver for plain semantic versioning ranges (``>=1.0,<2.0``, ``^1.2``, ``~1.2.3``)."""

    name = "semver"
    description = "resolves comma separated semantic version ranges"

    @classmethod
    def parse_spec(cls, spec: str) -> SimpleSpec:
        """Parse a semantic version range."""
        return SimpleSpec(spec)
