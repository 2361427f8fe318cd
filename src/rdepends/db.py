"""SQLite snapshots of a parsed registry index."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Self

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    create_engine,
    delete,
    insert,
    select,
)
from sqlalchemy.exc import DatabaseError
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .index import IndexStore, IndexUnavailableError
from .models import ReleaseRecord, Requirement
from .rdepends import APP_DIRS

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(APP_DIRS.user_cache_dir) / "index.sqlite"


class Base(DeclarativeBase):
    """Base class for all database models."""


class Snapshot(Base):
    """Bookkeeping for the stored snapshot."""

    __tablename__ = "snapshot"

    id = Column(Integer, primary_key=True)
    releases = Column(Integer, nullable=False)
    skipped = Column(Integer, nullable=False, default=0)


class DBRelease(Base):
    """Database model for release records."""

    __tablename__ = "releases"

    id = Column(Integer, primary_key=True)
    package = Column(String, nullable=False, index=True)
    version = Column(String, nullable=False)
    yanked = Column(Boolean, nullable=False, default=False)


class DBRequirement(Base):
    """Database model for the requirements of a release."""

    __tablename__ = "requirements"

    id = Column(Integer, primary_key=True)
    release_id = Column(Integer, ForeignKey("releases.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    package = Column(String, nullable=False)
    req = Column(String, nullable=False)
    kind = Column(String, nullable=False)
    optional = Column(Boolean, nullable=False, default=False)


class IndexDatabase:
    """A SQLite snapshot of release records, so a large registry does not have to be re-parsed on every run."""

    def __init__(self, db: str | Path = ":memory:") -> None:
        """Initialize the snapshot database."""
        if str(db) == ":memory:":
            db = "sqlite:///:memory:"
        elif db == "sqlite:///:memory:":
            pass
        elif isinstance(db, str):
            db = db.removeprefix("sqlite:///")
            db = Path(db)
        if isinstance(db, Path):
            db.parent.mkdir(parents=True, exist_ok=True)
            db = f"sqlite:///{db.absolute()!s}?check_same_thread=False"
        self.db: str = db
        self._session: Any = None
        self._entries: int = 0

    def open(self) -> None:
        """Open the database connection."""
        engine = create_engine(self.db)
        try:
            Base.metadata.create_all(engine)
        except DatabaseError as e:
            msg = f"Can not open the index snapshot {self.db}: {e!s}"
            raise IndexUnavailableError(msg) from e
        self._session = sessionmaker(bind=engine)()

    def close(self) -> None:
        """Close the database connection."""
        if self._session is not None:
            self._session.close()
        self._session = None

    def __enter__(self) -> Self:
        """Enter context manager."""
        if self._entries == 0:
            self.open()
        self._entries += 1
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: object) -> None:
        """Exit context manager."""
        self._entries -= 1
        if self._entries == 0:
            self.close()

    @property
    def session(self) -> Any:  # noqa: ANN401
        """Get the database session."""
        return self._session

    def __len__(self) -> int:
        """Return the number of stored release records."""
        return self.session.query(DBRelease).count()  # type: ignore[no-any-return]

    @property
    def skipped(self) -> int:
        """Get the number of malformed records skipped when the snapshot was built."""
        snapshot = self.session.get(Snapshot, 1)
        return 0 if snapshot is None else int(snapshot.skipped)

    def is_empty(self) -> bool:
        """Check if no snapshot has been saved."""
        return self.session.get(Snapshot, 1) is None

    def save(self, records: Iterable[ReleaseRecord], skipped: int | None = None) -> int:
        """Replace the stored snapshot with ``records``.

        If ``records`` is an :class:`IndexStore` its skip count is stored too. Returns the number of stored records.
        """
        if skipped is None:
            skipped = records.skipped if isinstance(records, IndexStore) else 0
        self.session.execute(delete(DBRequirement))
        self.session.execute(delete(DBRelease))
        self.session.execute(delete(Snapshot))
        releases: list[dict[str, Any]] = []
        requirements: list[dict[str, Any]] = []
        for release_id, record in enumerate(records, start=1):
            releases.append(
                {"id": release_id, "package": record.package, "version": record.version, "yanked": record.yanked}
            )
            requirements.extend(
                {
                    "release_id": release_id,
                    "position": position,
                    "package": req.package,
                    "req": req.constraint,
                    "kind": req.kind,
                    "optional": req.optional,
                }
                for position, req in enumerate(record.requirements)
            )
        if releases:
            self.session.execute(insert(DBRelease), releases)
        if requirements:
            self.session.execute(insert(DBRequirement), requirements)
        self.session.add(Snapshot(id=1, releases=len(releases), skipped=skipped))
        self.session.commit()
        logger.info("Saved %d releases to %s", len(releases), self.db)
        return len(releases)

    def records(self) -> Iterator[ReleaseRecord]:
        """Yield the stored release records in their original order."""
        requirements: dict[int, list[Requirement]] = {}
        for row in self.session.execute(
            select(DBRequirement).order_by(DBRequirement.release_id, DBRequirement.position)
        ).scalars():
            requirements.setdefault(row.release_id, []).append(
                Requirement(package=row.package, constraint=row.req, kind=row.kind, optional=row.optional)
            )
        # we intentionally build a list before yielding so that we don't keep the session query lingering
        rows = self.session.execute(select(DBRelease).order_by(DBRelease.id)).scalars().all()
        for row in rows:
            yield ReleaseRecord(
                package=row.package,
                version=row.version,
                requirements=requirements.get(row.id, ()),
                yanked=row.yanked,
            )

    def load_index(self, **kwargs: Any) -> IndexStore:  # noqa: ANN401
        """Build an :class:`IndexStore` from the stored snapshot.

        Raises:
            IndexUnavailableError: if no snapshot was saved or the database can not be read

        """
        try:
            if self.is_empty():
                msg = f"No index snapshot has been saved to {self.db}"
                raise IndexUnavailableError(msg)
            return IndexStore.from_records(self.records(), skipped=self.skipped, **kwargs)
        except DatabaseError as e:
            msg = f"The index snapshot {self.db} is unreadable: {e!s}"
            raise IndexUnavailableError(msg) from e
