from pathlib import Path
from unittest import TestCase

import pytest
from conftest import make_index

from rdepends.db import IndexDatabase
from rdepends.index import IndexStore, IndexUnavailableError
from rdepends.models import ReleaseRecord, Requirement


class TestDB(TestCase):
    def setUp(self) -> None:
        self.index: IndexStore = make_index(
            ("left-pad", "1.0.0"),
            ("left-pad", "1.1.0"),
            ("app", "1.0.0", [("left-pad", "^1.0.0"), ("serde", "^1")]),
        )

    def test_db(self) -> None:
        with IndexDatabase() as db:
            self.assertTrue(db.is_empty())
            self.assertEqual(db.save(self.index), 3)
            self.assertFalse(db.is_empty())
            self.assertEqual(len(db), 3)
            self.assertEqual(list(db.records()), list(self.index.releases))

            index = db.load_index()
            self.assertEqual(index.releases, self.index.releases)
            self.assertEqual(index.dependents("left-pad"), self.index.dependents("left-pad"))
            self.assertEqual(index.versions("left-pad"), ("1.0.0", "1.1.0"))

    def test_requirement_details_survive(self) -> None:
        record = ReleaseRecord(
            "app",
            "2.0.0",
            [Requirement("zeta", "^1", "build"), Requirement("alpha", "*", "dev", optional=True)],
            yanked=True,
        )
        with IndexDatabase() as db:
            db.save([record])
            self.assertEqual(list(db.records()), [record])
            self.assertEqual(db.skipped, 0)

    def test_skipped_preserved(self) -> None:
        index = IndexStore.load(['{"name": "a", "vers": "1.0.0"}', "garbage", "{}"])
        with IndexDatabase() as db:
            db.save(index)
            self.assertEqual(db.skipped, 2)
            self.assertEqual(db.load_index().skipped, 2)

    def test_save_replaces_snapshot(self) -> None:
        with IndexDatabase() as db:
            db.save(self.index)
            db.save(make_index(("other", "0.1.0")))
            self.assertEqual(len(db), 1)
            self.assertEqual([record.key for record in db.records()], ["other@0.1.0"])

    def test_load_index_options(self) -> None:
        with IndexDatabase() as db:
            db.save(self.index)
            index = db.load_index(kinds={"dev"})
            self.assertEqual(len(index), 3)
            self.assertEqual(index.dependents("left-pad"), ())

    def test_empty(self) -> None:
        with IndexDatabase() as db, self.assertRaises(IndexUnavailableError):
            db.load_index()

    def test_nested_context(self) -> None:
        db = IndexDatabase()
        with db:
            db.save(self.index)
            with db:
                self.assertEqual(len(db), 3)
            # the inner block must not close the connection
            self.assertEqual(len(db), 3)
        self.assertIsNone(db.session)


def test_file_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "index.sqlite"
    with IndexDatabase(path) as db:
        db.save(make_index(("left-pad", "1.0.0"), ("app", "1.0.0", [("left-pad", "^1.0.0")])))
    with IndexDatabase(path) as db:
        index = db.load_index()
    assert [edge.source_key for edge in index.dependents("left-pad")] == ["app@1.0.0"]


def test_corrupted_snapshot(tmp_path: Path) -> None:
    path = tmp_path / "index.sqlite"
    path.write_bytes(b"this is not a sqlite database" * 100)
    db = IndexDatabase(path)
    with pytest.raises(IndexUnavailableError), db:
        db.load_index()
