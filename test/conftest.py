from __future__ import annotations

import json
from collections.abc import Iterable

import pytest

from rdepends.index import IndexStore


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--runintegration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "integration: mark test as an integration test")


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--runintegration"):
        # --runintegration given in cli: do not skip integration tests
        return
    skip_integration = pytest.mark.skip(reason="need --runintegration option to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


def release_line(name: str, vers: str, deps: Iterable[tuple[str, str]] = (), **extra: object) -> str:
    """Render one crates.io index line."""
    obj = {
        "name": name,
        "vers": vers,
        "deps": [{"name": dep, "req": req, "kind": "normal", "optional": False} for dep, req in deps],
        **extra,
    }
    return json.dumps(obj)


def make_index(*releases: tuple, **kwargs: object) -> IndexStore:
    """Build an index from ``(name, version, [(dependency, requirement), ...])`` tuples."""
    return IndexStore.load([release_line(*release) for release in releases], **kwargs)  # type: ignore[arg-type]


@pytest.fixture
def left_pad_lines() -> list[str]:
    return [
        release_line("left-pad", "1.0.0"),
        release_line("app", "1.0.0", [("left-pad", "^1.0.0")]),
    ]
