"""
tests/conftest.py -- Shared test fixtures for Thingful.

This module provides:
  - make_stores(): isolated in-memory DBs for the user and catalog stores
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - seeded_stores / empty_stores: store pairs with and without fixture rows
  - client / users_only_client: TestClient over the real app using those stores
  - basic_auth(): builds an Authorization header value

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.
Each fixture uses a fresh uuid in the name so tests never share rows.

BCRYPT_ROUNDS and RATE_LIMIT_ENABLED must be set before any auth/api import:
auth.credentials hashes its timing dummy at import time and api.limiter reads
its enabled flag at import time.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager, contextmanager
from dataclasses import dataclass, field

os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient

from api.main import app
from auth.credentials import encode_basic_credentials, hash_password
from auth.models import User
from auth.store import UserStore
from catalog.models import Review, Thing
from catalog.store import ThingStore

# ---------------------------------------------------------------------------
# Fixture data
# ---------------------------------------------------------------------------

# (user_name, full_name, nickname, password)
TEST_USERS = [
    ("test-user-1", "Test user 1", "TU1", "password"),
    ("test-user-2", "Test user 2", "TU2", "password"),
    ("test-user-3", "Test user 3", None, "password"),
]

# (title, url, content, owner index)
TEST_THINGS = [
    ("First test thing!", "http://placehold.it/500x500", "Lorem ipsum dolor sit amet.", 0),
    ("Second test thing!", "http://placehold.it/500x500", "Consectetur adipisicing elit.", 1),
    ("Third test thing!", "http://placehold.it/500x500", "Natus consequuntur deserunt.", 2),
]

# (thing index, user index, rating, text)
TEST_REVIEWS = [
    (0, 1, 2, "First test review!"),
    (0, 2, 3, "Second test review!"),
    (0, 0, 3, "Third test review!"),
    (1, 2, 5, "Fourth test review!"),
    (1, 0, 4, "Fifth test review!"),
]


@dataclass
class Seeded:
    """Ids of the rows written by seed(), in the same order as the TEST_* tables."""

    user_ids: list[int] = field(default_factory=list)
    thing_ids: list[int] = field(default_factory=list)
    review_ids: list[int] = field(default_factory=list)


def basic_auth(user_name: str, password: str) -> dict[str, str]:
    return {"Authorization": encode_basic_credentials(user_name, password)}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_stores() -> tuple[UserStore, ThingStore]:
    """Create a fresh pair of named shared-memory SQLite stores."""
    suffix = uuid.uuid4().hex
    user_store = UserStore(db_url=f"sqlite:///file:test_users_{suffix}?mode=memory&cache=shared&uri=true")
    thing_store = ThingStore(db_url=f"sqlite:///file:test_things_{suffix}?mode=memory&cache=shared&uri=true")
    return user_store, thing_store


def seed(user_store: UserStore, thing_store: ThingStore) -> Seeded:
    seeded = Seeded()
    for user_name, full_name, nickname, password in TEST_USERS:
        seeded.user_ids.append(
            user_store.create_user(
                User(
                    user_name=user_name,
                    full_name=full_name,
                    nickname=nickname,
                    password_hash=hash_password(password),
                )
            )
        )
    for title, url, content, owner in TEST_THINGS:
        seeded.thing_ids.append(
            thing_store.create_thing(
                Thing(title=title, url=url, content=content, owner_user_id=seeded.user_ids[owner])
            )
        )
    for thing_idx, user_idx, rating, text in TEST_REVIEWS:
        seeded.review_ids.append(
            thing_store.create_review(
                Review(
                    text=text,
                    rating=rating,
                    thing_id=seeded.thing_ids[thing_idx],
                    user_id=seeded.user_ids[user_idx],
                )
            )
        )
    return seeded


def _patch_lifespan(user_store: UserStore, thing_store: ThingStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.thing_store = thing_store
        yield

    return test_lifespan


@contextmanager
def _client_for(user_store: UserStore, thing_store: ThingStore) -> Generator[TestClient, None, None]:
    app.router.lifespan_context = _patch_lifespan(user_store, thing_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def empty_stores() -> Generator[tuple[UserStore, ThingStore], None, None]:
    user_store, thing_store = make_stores()
    yield user_store, thing_store
    thing_store.close()
    user_store.close()


@pytest.fixture
def seeded_stores(empty_stores) -> tuple[UserStore, ThingStore, Seeded]:
    user_store, thing_store = empty_stores
    return user_store, thing_store, seed(user_store, thing_store)


@pytest.fixture
def client(seeded_stores) -> Generator[tuple[TestClient, Seeded, ThingStore], None, None]:
    """Yield (client, seeded ids, thing_store) over fully seeded stores."""
    user_store, thing_store, seeded = seeded_stores
    with _client_for(user_store, thing_store) as c:
        yield c, seeded, thing_store


@pytest.fixture
def users_only_client(empty_stores) -> Generator[tuple[TestClient, UserStore, ThingStore], None, None]:
    """Yield (client, user_store, thing_store) where only TEST_USERS exist -- no things, no reviews."""
    user_store, thing_store = empty_stores
    for user_name, full_name, nickname, password in TEST_USERS:
        user_store.create_user(
            User(user_name=user_name, full_name=full_name, nickname=nickname, password_hash=hash_password(password))
        )
    with _client_for(user_store, thing_store) as c:
        yield c, user_store, thing_store


@pytest.fixture
def auth_header() -> dict[str, str]:
    """Valid credentials for TEST_USERS[0]."""
    user_name, _, _, password = TEST_USERS[0]
    return basic_auth(user_name, password)
