"""Unit tests for auth/store.py and catalog/store.py.

Covers:
- UserStore: create/lookup, exact user_name match, unique user_name, bulk lookup
- ThingStore: create/get/list things, reviews in insertion order, grouped reviews
- server-assigned id and date_created
"""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import User
from catalog.models import Review, Thing


def _user(user_name: str) -> User:
    return User(user_name=user_name, full_name=user_name.title(), password_hash="hash")


class TestUserStore:
    def test_create_and_lookup(self, empty_stores):
        users, _ = empty_stores
        assert not users.has_users()
        uid = users.create_user(User(user_name="dunder", full_name="Dunder Mifflin", nickname="DM", password_hash="h"))
        assert users.has_users()

        by_name = users.get_by_username("dunder")
        by_id = users.get_by_id(uid)
        assert by_name == by_id
        assert by_name.id == uid
        assert by_name.nickname == "DM"
        assert by_name.password_hash == "h"
        datetime.fromisoformat(by_name.date_created)

    def test_lookup_is_exact(self, empty_stores):
        users, _ = empty_stores
        users.create_user(_user("dunder"))
        assert users.get_by_username("DUNDER") is None
        assert users.get_by_username("dund") is None

    def test_duplicate_user_name_rejected(self, empty_stores):
        users, _ = empty_stores
        users.create_user(_user("dunder"))
        with pytest.raises(IntegrityError):
            users.create_user(_user("dunder"))

    def test_get_by_ids(self, empty_stores):
        users, _ = empty_stores
        a = users.create_user(_user("a"))
        b = users.create_user(_user("b"))
        found = users.get_by_ids([a, b, 999])
        assert set(found) == {a, b}
        assert found[b].user_name == "b"
        assert users.get_by_ids([]) == {}

    def test_ping(self, empty_stores):
        users, things = empty_stores
        assert users.ping() is True
        assert things.ping() is True


class TestThingStore:
    def test_unsaved_records_have_no_id(self):
        assert Thing(title="T", owner_user_id=1).id is None
        assert Review(text="r", rating=3, thing_id=1, user_id=1).id is None
        assert User(user_name="u", full_name="U", password_hash="h").id is None

    def test_create_and_get_thing(self, empty_stores):
        _, things = empty_stores
        tid = things.create_thing(Thing(title="T", url="http://x", content="c", owner_user_id=1))
        thing = things.get_thing(tid)
        assert (thing.id, thing.title, thing.url, thing.content, thing.owner_user_id) == (tid, "T", "http://x", "c", 1)
        assert thing.date_created
        assert things.get_thing(tid + 100) is None

    def test_list_things_empty(self, empty_stores):
        _, things = empty_stores
        assert things.list_things() == []

    def test_reviews_in_insertion_order(self, empty_stores):
        _, things = empty_stores
        tid = things.create_thing(Thing(title="T", owner_user_id=1))
        other = things.create_thing(Thing(title="U", owner_user_id=1))
        ids = [
            things.create_review(Review(text="third-ish", rating=1, thing_id=tid, user_id=3)),
            things.create_review(Review(text="elsewhere", rating=5, thing_id=other, user_id=1)),
            things.create_review(Review(text="a", rating=4, thing_id=tid, user_id=1)),
            things.create_review(Review(text="b", rating=2, thing_id=tid, user_id=2)),
        ]
        listed = things.list_reviews_for_thing(tid)
        assert [r.id for r in listed] == [ids[0], ids[2], ids[3]]
        assert [r.text for r in listed] == ["third-ish", "a", "b"]

    def test_reviews_by_thing_groups_and_fills_empty(self, empty_stores):
        _, things = empty_stores
        t1 = things.create_thing(Thing(title="T1", owner_user_id=1))
        t2 = things.create_thing(Thing(title="T2", owner_user_id=1))
        things.create_review(Review(text="x", rating=3, thing_id=t1, user_id=1))
        grouped = things.reviews_by_thing([t1, t2])
        assert [r.text for r in grouped[t1]] == ["x"]
        assert grouped[t2] == []
        assert things.reviews_by_thing([]) == {}

    def test_get_review(self, empty_stores):
        _, things = empty_stores
        tid = things.create_thing(Thing(title="T", owner_user_id=1))
        rid = things.create_review(Review(text="hello", rating=4, thing_id=tid, user_id=7))
        review = things.get_review(rid)
        assert (review.text, review.rating, review.thing_id, review.user_id) == ("hello", 4, tid, 7)
        datetime.fromisoformat(review.date_created)
        assert things.get_review(rid + 1) is None

    def test_review_requires_existing_thing(self, empty_stores):
        _, things = empty_stores
        with pytest.raises(IntegrityError):
            things.create_review(Review(text="orphan", rating=3, thing_id=12345, user_id=1))
