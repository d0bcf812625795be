"""
api/routes/things.py -- Thing catalog routes.

Routes:
  GET /things                     -- every thing with owner and rating (public)
  GET /things/{thing_id}          -- one thing (Basic Auth)
  GET /things/{thing_id}/reviews  -- reviews of one thing, insertion order (Basic Auth)

Handlers are thin orchestration: load rows from the stores, hand them to
core.aggregator, return the result. Shaping and sanitization live in the
aggregator, not here.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_thing_store, get_user_store
from api.models import ReviewResponse, ThingResponse
from auth.dependencies import get_current_user
from auth.store import UserStore
from catalog.models import Thing
from catalog.store import ThingStore
from core.aggregator import build_review_view, build_thing_view
from core.errors import InvalidRating, NotFound

logger = logging.getLogger("thingful.api")

# Auth policy:
# - GET /things:                       public
# - GET /things/{thing_id}:            requires Basic Auth (get_current_user)
# - GET /things/{thing_id}/reviews:    requires Basic Auth (get_current_user)
router = APIRouter()

THING_NOT_FOUND = "Thing doesn't exist"


def _require_thing(thing_store: ThingStore, thing_id: int) -> Thing:
    thing = thing_store.get_thing(thing_id)
    if thing is None:
        raise NotFound(THING_NOT_FOUND)
    return thing


# ---------------------------------------------------------------------------
# GET /things
# ---------------------------------------------------------------------------


@router.get("/things", response_model=list[ThingResponse])
def list_things(
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> list[dict]:
    """Return every thing ordered by id, each with its owner and review rating."""
    things = thing_store.list_things()
    reviews = thing_store.reviews_by_thing([t.id for t in things])
    owners = user_store.get_by_ids({t.owner_user_id for t in things})

    views = []
    for thing in things:
        owner = owners.get(thing.owner_user_id)
        if owner is None:
            logger.warning("Skipping thing %s: owner %s not found", thing.id, thing.owner_user_id)
            continue
        views.append(build_thing_view(thing, owner, reviews[thing.id]))
    return views


# ---------------------------------------------------------------------------
# GET /things/{thing_id}
# ---------------------------------------------------------------------------


@router.get("/things/{thing_id}", response_model=ThingResponse, dependencies=[Depends(get_current_user)])
def get_thing(
    thing_id: int,
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> dict:
    thing = _require_thing(thing_store, thing_id)
    owner = user_store.get_by_id(thing.owner_user_id)
    if owner is None:
        logger.error("Thing %s references missing owner %s", thing.id, thing.owner_user_id)
        raise NotFound(THING_NOT_FOUND)
    return build_thing_view(thing, owner, thing_store.list_reviews_for_thing(thing.id))


# ---------------------------------------------------------------------------
# GET /things/{thing_id}/reviews
# ---------------------------------------------------------------------------


@router.get(
    "/things/{thing_id}/reviews",
    response_model=list[ReviewResponse],
    dependencies=[Depends(get_current_user)],
)
def list_thing_reviews(
    thing_id: int,
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> list[dict]:
    """Return the thing's reviews in insertion order.

    Reviews whose stored rating is out of range, or whose author no longer
    exists, are data-integrity faults: they are logged and left out rather
    than failing the whole listing.
    """
    thing = _require_thing(thing_store, thing_id)
    reviews = thing_store.list_reviews_for_thing(thing.id)
    authors = user_store.get_by_ids({r.user_id for r in reviews})

    views = []
    for review in reviews:
        author = authors.get(review.user_id)
        if author is None:
            logger.warning("Skipping review %s: author %s not found", review.id, review.user_id)
            continue
        try:
            views.append(build_review_view(review, author))
        except InvalidRating as exc:
            logger.warning("Skipping %s", exc.detail)
    return views
