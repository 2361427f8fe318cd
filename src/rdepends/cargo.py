"""Cargo (crates.io) requirement resolution."""

from __future__ import annotations

from semantic_version import SimpleSpec
from semantic_version.base import Always, BaseSpec

from .resolver import ConstraintResolver


def _has_wildcard(block: str) -> bool:
    release = block.split("+", 1)[0].split("-", 1)[0]
    return any(part in ("*", "x", "X") for part in release.split("."))


@BaseSpec.register_syntax
class CargoSpec(SimpleSpec):
    """Cargo-specific version requirement."""

    SYNTAX = "cargo"

    class Parser(SimpleSpec.Parser):
        """Parser for Cargo version requirements."""

        @classmethod
        def parse(cls, expression: str) -> Always:
            """Parse a Cargo version requirement.

            Unlike simple specs, cargo blocks can contain whitespace (``>= 1.2, < 1.5``) and a bare
            version (``1.2.3``) is a caret requirement rather than an exact match. A bare wildcard
            (``1.2.*``) only matches within its last fixed component.
            """
            blocks = ["".join(b.split()) for b in expression.split(",")]
            clause = Always()
            for block in blocks:
                if block and block[0].isdigit() and not _has_wildcard(block):
                    block = "^" + block  # noqa: PLW2901
                if not cls.NAIVE_SPEC.match(block):
                    msg = f"Invalid cargo block {block!r}"
                    raise ValueError(msg)
                clause &= cls.parse_block(block)

            return clause

    def __str__(self) -> str:
        """Return string representation of the spec."""
        # remove the whitespace to canonicalize the spec
        return ",".join("".join(b.split()) for b in self.expression.split(","))

    def __or__(self, other: CargoSpec) -> CargoSpec:
        """Combine two CargoSpec instances."""
        return CargoSpec(f"{self.expression},{other.expression}")


class CargoResolver(ConstraintResolver):
    """Resolve requirements of Rust crates as published in the crates.io index."""

    name = "cargo"
    description = "resolves crates.io requirements (bare versions are caret requirements)"

    @classmethod
    def parse_spec(cls, spec: str) -> CargoSpec:
        """Parse a Cargo version requirement."""
        return CargoSpec(spec)
