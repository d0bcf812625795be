"""
core/aggregator.py -- Shapes stored rows into the public JSON representation.

These are pure functions over rows the caller has already fetched. They never
touch a store, so handlers decide what to load and aggregators decide how it
looks. Every free-text field passes through core.sanitizer.sanitize() here,
including the ones inside nested aggregates.

Public shapes (plain dicts, validated again by the response models in api/models.py):

  UserSummary  {id, user_name, full_name, nickname, date_created}
  ThingView    {id, title, url, content, rating, number_of_reviews, date_created, owner}
  ReviewView   {id, text, rating, date_created, thing_id, user}

password_hash never appears in any of them.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from core.errors import InvalidRating
from core.sanitizer import sanitize

if TYPE_CHECKING:
    from auth.models import User
    from catalog.models import Review, Thing

logger = logging.getLogger("thingful.aggregator")

MIN_RATING = 1
MAX_RATING = 5

# Derived rating of a thing nobody has reviewed yet.
EMPTY_RATING = 0


def is_valid_rating(rating: object) -> bool:
    """True for an int (not bool) in MIN_RATING..MAX_RATING."""
    return isinstance(rating, int) and not isinstance(rating, bool) and MIN_RATING <= rating <= MAX_RATING


def average_rating(ratings: Iterable[int]) -> int:
    """Mean of `ratings`, rounded half-up to an int. EMPTY_RATING for no ratings.

    Integer arithmetic only: floor((2*sum + n) / 2n) == floor(mean + 0.5),
    without float rounding surprises at exact halves.
    """
    values = list(ratings)
    if not values:
        return EMPTY_RATING
    total, count = sum(values), len(values)
    return (2 * total + count) // (2 * count)


def build_user_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "user_name": user.user_name,
        "full_name": user.full_name,
        "nickname": user.nickname,
        "date_created": user.date_created,
    }


def build_thing_view(thing: Thing, owner: User, reviews: Iterable[Review]) -> dict[str, Any]:
    """Build the public view of one thing.

    `owner` must be the thing's owner and every review must belong to the
    thing; a mismatch is a caller bug and raises ValueError.

    Reviews with an out-of-range rating are a data-integrity fault. They are
    logged and left out of the average, which keeps `rating` in 0..5.
    """
    if owner.id != thing.owner_user_id:
        raise ValueError(f"user {owner.id} does not own thing {thing.id}")

    ratings: list[int] = []
    for review in reviews:
        if review.thing_id != thing.id:
            raise ValueError(f"review {review.id} belongs to thing {review.thing_id}, not {thing.id}")
        if not is_valid_rating(review.rating):
            logger.warning("Ignoring review %s of thing %s: rating %r out of range", review.id, thing.id, review.rating)
            continue
        ratings.append(review.rating)

    return {
        "id": thing.id,
        "title": sanitize(thing.title),
        "url": thing.url,
        "content": sanitize(thing.content),
        "rating": average_rating(ratings),
        "number_of_reviews": len(ratings),
        "date_created": thing.date_created,
        "owner": build_user_summary(owner),
    }


def build_review_view(review: Review, user: User) -> dict[str, Any]:
    """Build the public view of one review.

    Raises:
        ValueError:    `user` is not the review's author (caller bug).
        InvalidRating: the stored rating is outside 1..5. The caller decides
                       whether to surface it or drop the review.
    """
    if user.id != review.user_id:
        raise ValueError(f"user {user.id} did not write review {review.id}")
    if not is_valid_rating(review.rating):
        raise InvalidRating(review.id, review.rating)

    return {
        "id": review.id,
        "text": sanitize(review.text),
        "rating": review.rating,
        "date_created": review.date_created,
        "thing_id": review.thing_id,
        "user": build_user_summary(user),
    }
