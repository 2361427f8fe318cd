import json
from pathlib import Path

import pytest
from conftest import release_line

from rdepends._cli import main, parse_kinds


@pytest.fixture
def index_file(tmp_path: Path) -> Path:
    path = tmp_path / "index.jsonl"
    path.write_text(
        "\n".join(
            [
                release_line("left-pad", "1.0.0"),
                release_line("left-pad", "2.0.0"),
                release_line("app", "1.0.0", [("left-pad", "^1.0.0")]),
                release_line("tool", "0.3.0", [("app", "1")]),
                "this line is not a release",
            ]
        )
        + "\n"
    )
    return path


def run(*args: str) -> int:
    return main(["--max-workers", "1", "--log-level", "warning", *args])


def test_json_output(tmp_path: Path, index_file: Path) -> None:
    output = tmp_path / "out.json"
    db = tmp_path / "index.sqlite"
    args = ("--target", "left-pad@1.0.0", "--index", str(index_file), "--database", str(db))
    assert run(*args, "--output-file", str(output)) == 0
    assert json.loads(output.read_text()) == {
        "root": "left-pad@1.0.0",
        "truncated": False,
        "dependents": {"left-pad@1.0.0": ["app@1.0.0"], "app@1.0.0": ["tool@0.3.0"]},
    }
    assert db.exists()

    # the second run is served from the snapshot
    index_file.unlink()
    assert run("--target", "left-pad@2.0.0", "--database", str(db), "--output-file", str(output), "--force") == 0
    assert json.loads(output.read_text())["dependents"] == {}


def test_stdout_and_dot(index_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert (
        run("--target", "left-pad@1.0.0", "--index", str(index_file), "--database", ":memory:", "--output-format=dot")
        == 0
    )
    out = capsys.readouterr().out
    assert out.startswith("// Dependents of left-pad@1.0.0")
    assert 'label="app@1.0.0"' in out


def test_existing_output_requires_force(tmp_path: Path, index_file: Path) -> None:
    output = tmp_path / "out.json"
    output.write_text("keep me")
    args = ("--target", "left-pad@1.0.0", "--index", str(index_file), "--database", ":memory:")
    assert run(*args, "--output-file", str(output)) == 1
    assert output.read_text() == "keep me"


@pytest.mark.parametrize("target", ["left-pad", "@1.0.0", ""])
def test_bad_target(index_file: Path, target: str) -> None:
    assert run("--target", target, "--index", str(index_file), "--database", ":memory:") == 1


def test_unknown_resolver(index_file: Path) -> None:
    args = ("--target", "left-pad@1.0.0", "--index", str(index_file), "--database", ":memory:")
    assert run(*args, "--resolver", "pip") == 1


def test_no_index(tmp_path: Path) -> None:
    assert run("--target", "left-pad@1.0.0", "--database", str(tmp_path / "empty.sqlite")) == 1


def test_list(capsys: pytest.CaptureFixture[str]) -> None:
    assert run("--list") == 0
    out = capsys.readouterr().out
    assert "cargo" in out
    assert "npm" in out


def test_parse_kinds() -> None:
    assert parse_kinds("") is None
    assert parse_kinds("normal, build,") == frozenset({"normal", "build"})


def test_filters_do_not_change_the_snapshot(tmp_path: Path) -> None:
    index_file = tmp_path / "index.jsonl"
    index_file.write_text(
        release_line("a", "1.0.0") + "\n" + release_line("b", "1.0.0", [("a", "^1")], yanked=True) + "\n"
    )
    output = tmp_path / "out.json"
    db = tmp_path / "index.sqlite"
    args = ("--target", "a@1.0.0", "--database", str(db), "--output-file", str(output), "--force")

    assert run(*args, "--index", str(index_file), "--no-include-yanked", "--kinds", "dev") == 0
    assert json.loads(output.read_text())["dependents"] == {}

    assert run(*args) == 0
    assert json.loads(output.read_text())["dependents"] == {"a@1.0.0": ["b@1.0.0"]}
