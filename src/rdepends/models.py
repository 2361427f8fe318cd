"""Core data models for registry release records."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

NORMAL_KIND = "normal"


class ParseError(ValueError):
    """Raised when a raw release record can not be parsed."""


def node_key(package: str, version: str) -> str:
    """Return the graph node key of a release, e.g. ``left-pad@1.0.0``."""
    return f"{package}@{version}"


def split_node_key(key: str) -> tuple[str, str]:
    """Split a node key into its package name and version."""
    package, sep, version = key.rpartition("@")
    if not sep or not package:
        msg = f"Can not parse node key <{key}>"
        raise ValueError(msg)
    return package, version


class Requirement:
    """A requirement of a release on a range of versions of another package."""

    def __init__(
        self,
        package: str,
        constraint: str,
        kind: str = NORMAL_KIND,
        *,
        optional: bool = False,
    ) -> None:
        """Initialize a requirement.

        Args:
            package: Name of the required package
            constraint: Version constraint expression, opaque to the index
            kind: Requirement kind as published by the registry (normal, dev or build)
            optional: Whether the requirement is only enabled by a feature

        """
        self.package: str = package
        self.constraint: str = constraint
        self.kind: str = kind
        self.optional: bool = optional

    @classmethod
    def from_obj(cls, obj: Any) -> Requirement:  # noqa: ANN401
        """Create a requirement from one entry of a crates.io ``deps`` list.

        Renamed dependencies carry the real crate name in ``package`` and the local alias in ``name``.
        """
        if not isinstance(obj, dict):
            msg = f"Expected a dependency object, got {type(obj).__name__}"
            raise ParseError(msg)
        package = obj.get("package") or obj.get("name")
        constraint = obj.get("req")
        if not isinstance(package, str) or not package:
            msg = "Dependency is missing its `name`"
            raise ParseError(msg)
        if not isinstance(constraint, str):
            msg = f"Dependency on {package} is missing its `req`"
            raise ParseError(msg)
        kind = obj.get("kind") or NORMAL_KIND
        return cls(package=package, constraint=constraint, kind=str(kind), optional=bool(obj.get("optional", False)))

    def to_obj(self) -> dict[str, str | bool]:
        """Convert requirement to dictionary representation."""
        return {"name": self.package, "req": self.constraint, "kind": self.kind, "optional": self.optional}

    def __str__(self) -> str:
        """Return string representation of the requirement."""
        return f"{self.package}@{self.constraint}"

    def __repr__(self) -> str:
        """Return a debugging representation of the requirement."""
        return f"{self.__class__.__name__}({self.package!r}, {self.constraint!r}, {self.kind!r})"

    def __eq__(self, other: object) -> bool:
        """Check equality with another requirement."""
        return (
            isinstance(other, Requirement)
            and self.package == other.package
            and self.constraint == other.constraint
            and self.kind == other.kind
            and self.optional == other.optional
        )

    def __hash__(self) -> int:
        """Compute hash for requirement."""
        return hash((self.package, self.constraint, self.kind, self.optional))


class ReleaseRecord:
    """One published version of a package together with its declared requirements."""

    __slots__ = ("_package", "_requirements", "_version", "_yanked")

    def __init__(
        self,
        package: str,
        version: str,
        requirements: Iterable[Requirement] = (),
        *,
        yanked: bool = False,
    ) -> None:
        """Initialize a release record.

        Args:
            package: Package name
            version: Version string, kept verbatim
            requirements: Requirements in the order they were published
            yanked: Whether the release was yanked from the registry

        """
        self._package: str = package
        self._version: str = version
        self._requirements: tuple[Requirement, ...] = tuple(requirements)
        self._yanked: bool = yanked

    @property
    def package(self) -> str:
        """Get the package name."""
        return self._package

    @property
    def version(self) -> str:
        """Get the version string."""
        return self._version

    @property
    def requirements(self) -> tuple[Requirement, ...]:
        """Get the requirements in published order."""
        return self._requirements

    @property
    def yanked(self) -> bool:
        """Check if the release was yanked."""
        return self._yanked

    @property
    def key(self) -> str:
        """Get the graph node key of this release."""
        return node_key(self._package, self._version)

    @classmethod
    def from_obj(cls, obj: Any) -> ReleaseRecord:  # noqa: ANN401
        """Create a release record from a decoded crates.io index entry."""
        if not isinstance(obj, dict):
            msg = f"Expected a release object, got {type(obj).__name__}"
            raise ParseError(msg)
        package = obj.get("name")
        version = obj.get("vers")
        if not isinstance(package, str) or not package:
            msg = "Release is missing its `name`"
            raise ParseError(msg)
        if not isinstance(version, str) or not version:
            msg = f"Release of {package} is missing its `vers`"
            raise ParseError(msg)
        deps = obj.get("deps")
        if deps is None:
            deps = []
        if not isinstance(deps, list):
            msg = f"`deps` of {node_key(package, version)} must be a list"
            raise ParseError(msg)
        return cls(
            package=package,
            version=version,
            requirements=[Requirement.from_obj(dep) for dep in deps],
            yanked=bool(obj.get("yanked", False)),
        )

    @classmethod
    def loads(cls, line: str | bytes) -> ReleaseRecord:
        """Parse one raw index line.

        Raises:
            ParseError: if the line is not valid JSON or misses a required field

        """
        try:
            obj = json.loads(line)
        except ValueError as e:
            msg = f"Invalid JSON: {e!s}"
            raise ParseError(msg) from e
        return cls.from_obj(obj)

    def to_obj(self) -> dict[str, Any]:
        """Convert release record to dictionary representation."""
        return {
            "name": self._package,
            "vers": self._version,
            "deps": [req.to_obj() for req in self._requirements],
            "yanked": self._yanked,
        }

    def dumps(self) -> str:
        """Serialize release record to a JSON index line."""
        return json.dumps(self.to_obj())

    def __str__(self) -> str:
        """Get string representation of release record."""
        requirements = "[" + ",".join(map(str, self._requirements)) + "]" if self._requirements else ""
        return self.key + requirements

    def __repr__(self) -> str:
        """Return a debugging representation of the release record."""
        return f"<{self.__class__.__name__} {self.key}>"

    def __eq__(self, other: object) -> bool:
        """Check equality with another release record."""
        return (
            isinstance(other, ReleaseRecord)
            and self._package == other._package
            and self._version == other._version
            and self._requirements == other._requirements
            and self._yanked == other._yanked
        )

    def __hash__(self) -> int:
        """Compute hash for release record."""
        return hash((self._package, self._version, self._requirements))


class DependencyConstraint:
    """A reverse edge: ``source``@``source_version`` requires ``target`` with ``constraint``.

    Instances are stored in the dependents index under ``target``.
    """

    __slots__ = ("constraint", "source", "source_version", "target")

    def __init__(self, target: str, source: str, source_version: str, constraint: str) -> None:
        """Initialize a reverse dependency edge."""
        self.target: str = target
        self.source: str = source
        self.source_version: str = source_version
        self.constraint: str = constraint

    @property
    def source_key(self) -> str:
        """Get the node key of the depending release."""
        return node_key(self.source, self.source_version)

    def _astuple(self) -> tuple[str, str, str, str]:
        return self.target, self.source, self.source_version, self.constraint

    def __eq__(self, other: object) -> bool:
        """Check equality with another edge."""
        return isinstance(other, DependencyConstraint) and self._astuple() == other._astuple()

    def __hash__(self) -> int:
        """Compute hash for edge."""
        return hash(self._astuple())

    def __repr__(self) -> str:
        """Return a debugging representation of the edge."""
        return f"<{self.__class__.__name__} {self.source_key} -> {self.target}@{self.constraint}>"
