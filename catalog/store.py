"""
catalog/store.py -- SQLAlchemy-backed persistence layer for things and reviews.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in catalog/models.py
remain the authoritative domain representation. Swapping SQLite for PostgreSQL
is a connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ThingStore is the repository; the _row_to_*
functions are the mappers. Route handlers never touch SQL directly.

Ordering: every list query orders by primary key, so reviews come back in
insertion order and things in creation order.

Owner references (thingful_things.owner_user_id, thingful_reviews.user_id)
point at the users table owned by auth/store.py. Those are checked in code by
the route layer, not by a SQL foreign key, because the two stores may live in
separate databases.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ThingStore()                                # DATABASE_URL from settings
    store = ThingStore("postgresql://user:pw@host/db")  # explicit
    thing_id = store.create_thing(thing)
    review_id = store.create_review(review)
    reviews = store.list_reviews_for_thing(thing_id)
    store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    event,
    text,
)
from sqlalchemy.engine import Engine

from catalog.models import Review, Thing
from core.config import get_settings

logger = logging.getLogger("thingful.catalog")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_things = Table(
    "thingful_things",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("url", Text, nullable=False, server_default=""),
    Column("content", Text, nullable=False, server_default=""),
    Column("owner_user_id", Integer, nullable=False),
    Column("date_created", String(32), nullable=False),
)

_reviews = Table(
    "thingful_reviews",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("text", Text, nullable=False),
    Column("rating", Integer, nullable=False),
    Column("thing_id", Integer, ForeignKey("thingful_things.id", ondelete="CASCADE"), nullable=False),
    Column("user_id", Integer, nullable=False),
    Column("date_created", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement on each new SQLite connection.

    Both are per-connection settings in SQLite; they are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ThingStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers on a threadpool, so one SQLite
            # connection may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _sqlite_pragmas)
        metadata.create_all(self.engine)
        logger.debug("Catalog store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    # ------------------------------------------------------------------
    # Things
    # ------------------------------------------------------------------

    def create_thing(self, thing: Thing) -> int:
        """Insert a new thing and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _things.insert().values(
                    title=thing.title,
                    url=thing.url,
                    content=thing.content,
                    owner_user_id=thing.owner_user_id,
                    date_created=thing.date_created or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_thing(self, thing_id: int) -> Optional[Thing]:
        """Return a single thing by ID, or None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_things.select().where(_things.c.id == thing_id)).fetchone()
        return _row_to_thing(row) if row is not None else None

    def list_things(self) -> list[Thing]:
        """Return all things ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(_things.select().order_by(_things.c.id)).fetchall()
        return [_row_to_thing(r) for r in rows]

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    def create_review(self, review: Review) -> int:
        """Insert a new review and return its assigned database ID.

        The caller validates rating and the thing/user references first;
        this is a single-row insert with no other side effects.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _reviews.insert().values(
                    text=review.text,
                    rating=review.rating,
                    thing_id=review.thing_id,
                    user_id=review.user_id,
                    date_created=review.date_created or _now_iso(),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_review(self, review_id: int) -> Optional[Review]:
        """Return a single review by ID, or None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_reviews.select().where(_reviews.c.id == review_id)).fetchone()
        return _row_to_review(row) if row is not None else None

    def list_reviews_for_thing(self, thing_id: int) -> list[Review]:
        """Return every review of one thing in insertion order (id ascending)."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _reviews.select().where(_reviews.c.thing_id == thing_id).order_by(_reviews.c.id)
            ).fetchall()
        return [_row_to_review(r) for r in rows]

    def reviews_by_thing(self, thing_ids: list[int]) -> dict[int, list[Review]]:
        """Group the reviews of many things in one query.

        Every requested id is present in the result, with an empty list when
        the thing has no reviews. Lists are in insertion order.
        """
        grouped: dict[int, list[Review]] = {thing_id: [] for thing_id in thing_ids}
        if not grouped:
            return grouped
        with self.engine.connect() as conn:
            rows = conn.execute(
                _reviews.select().where(_reviews.c.thing_id.in_(list(grouped))).order_by(_reviews.c.id)
            ).fetchall()
        for row in rows:
            grouped[row.thing_id].append(_row_to_review(row))
        return grouped

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /api/health."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Catalog store health check failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_thing(row) -> Thing:
    return Thing(
        id=row.id,
        title=row.title,
        url=row.url,
        content=row.content,
        owner_user_id=row.owner_user_id,
        date_created=row.date_created,
    )


def _row_to_review(row) -> Review:
    return Review(
        id=row.id,
        text=row.text,
        rating=row.rating,
        thing_id=row.thing_id,
        user_id=row.user_id,
        date_created=row.date_created,
    )
