"""NPM range resolution."""

from __future__ import annotations

from semantic_version import NpmSpec

from .resolver import ConstraintResolver


class NPMResolver(ConstraintResolver):
    """Resolver for npm ranges (``^1.2.0``, ``1.x || >=2.5.0``, ``1.0.0 - 1.4.0``)."""

    name = "npm"
    description = "resolves npm version ranges"

    @classmethod
    def parse_spec(cls, spec: str) -> NpmSpec:
        """Parse an npm range.

        npm treats an empty range and ``latest`` as "any version".
        """
        spec = spec.strip()
        if spec in ("", "latest"):
            spec = "*"
        return NpmSpec(spec)
