import pytest

from rdepends.cargo import CargoResolver, CargoSpec
from rdepends.npm import NPMResolver
from rdepends.resolver import (
    ResolutionError,
    SemverResolver,
    is_known_resolver,
    resolver_by_name,
    resolvers,
)


class TestResolverRegistry:
    def test_known_resolvers(self) -> None:
        names = {resolver.name for resolver in resolvers()}
        assert {"cargo", "npm", "semver"} <= names
        assert is_known_resolver("cargo")
        assert not is_known_resolver("pip")

    def test_by_name(self) -> None:
        assert isinstance(resolver_by_name("cargo"), CargoResolver)
        assert resolver_by_name("npm") is NPMResolver()
        with pytest.raises(KeyError):
            resolver_by_name("apt")

    def test_singleton(self) -> None:
        assert CargoResolver() is CargoResolver()
        assert CargoResolver() != SemverResolver()


class TestCargoResolver:
    resolver = CargoResolver()

    @pytest.mark.parametrize(
        ("constraint", "expected"),
        [
            ("^1.0.0", "1.4.2"),
            ("1.0", "1.4.2"),
            ("=1.0.0", "1.0.0"),
            (">= 1.0.0, < 1.4.0", "1.3.0"),
            ("~1.3", "1.3.0"),
            ("*", "2.0.0"),
            ("0.9", None),
            ("^3", None),
            ("1.3.*", "1.3.0"),
            ("1.*", "1.4.2"),
        ],
    )
    def test_resolve(self, constraint: str, expected: str | None) -> None:
        assert self.resolver.resolve(constraint, ["1.0.0", "1.3.0", "1.4.2", "2.0.0"]) == expected

    def test_bare_version_is_caret(self) -> None:
        assert self.resolver("0.4", ["0.4.0", "0.4.9", "0.5.0"]) == "0.4.9"

    @pytest.mark.parametrize(
        ("constraint", "expected"),
        [("1.2.*", "1.2.5"), ("1.*", "1.9.0"), ("0.1.*", None), ("=1.2.*", "1.2.5"), ("1.2.x", "1.2.5")],
    )
    def test_wildcard_is_not_a_caret(self, constraint: str, expected: str | None) -> None:
        assert self.resolver.resolve(constraint, ["1.2.0", "1.2.5", "1.9.0", "2.0.0"]) == expected

    def test_returns_original_candidate_string(self) -> None:
        assert self.resolver.resolve("<2.0", ["1.0", "2.0"]) == "1.0"

    def test_unparseable_candidates_are_ignored(self) -> None:
        assert self.resolver.resolve("^1", ["not-a-version", "1.2.0"]) == "1.2.0"

    def test_no_candidates(self) -> None:
        assert self.resolver.resolve("^1", []) is None

    @pytest.mark.parametrize("constraint", ["not a version", ">>1.0", "1.0.0; 2.0.0"])
    def test_unparseable_constraint(self, constraint: str) -> None:
        with pytest.raises(ResolutionError):
            self.resolver.resolve(constraint, ["1.0.0"])

    def test_spec_canonical_form(self) -> None:
        assert str(CargoSpec(">= 1.2, < 1.5")) == ">=1.2,<1.5"


class TestNPMResolver:
    resolver = NPMResolver()

    @pytest.mark.parametrize(
        ("constraint", "expected"),
        [
            ("^1.2.0", "1.9.0"),
            ("1.x || >=2.5.0", "2.6.0"),
            ("1.0.0 - 1.4.0", "1.2.0"),
            ("latest", "2.6.0"),
            ("", "2.6.0"),
            ("<1", None),
        ],
    )
    def test_resolve(self, constraint: str, expected: str | None) -> None:
        assert self.resolver.resolve(constraint, ["1.2.0", "1.9.0", "2.0.0", "2.6.0"]) == expected

    def test_unparseable_constraint(self) -> None:
        with pytest.raises(ResolutionError):
            self.resolver.resolve("^^^", ["1.0.0"])


def test_semver_resolver() -> None:
    assert SemverResolver().resolve(">=1.0,<2.0", ["0.9.0", "1.5.0", "2.0.0"]) == "1.5.0"
