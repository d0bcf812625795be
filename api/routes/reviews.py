"""
api/routes/reviews.py -- Review routes.

Routes:
  POST /reviews              -- create a review; 201 + Location header
  GET  /reviews/{review_id}  -- one review (Basic Auth); target of Location

Validation order for POST is fixed: text, rating, user_id, thing_id. The first
missing field is reported verbatim as "Missing '<field>' in request body".
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from api.deps import get_thing_store, get_user_store
from api.limiter import limiter
from api.models import ReviewCreate, ReviewResponse
from auth.dependencies import get_current_user
from auth.store import UserStore
from catalog.models import Review
from catalog.store import ThingStore
from core.aggregator import MAX_RATING, MIN_RATING, build_review_view, is_valid_rating
from core.config import get_settings
from core.errors import NotFound, RequestError

logger = logging.getLogger("thingful.api")

# Auth policy:
# - POST /reviews:               public, rate-limited per client IP
# - GET  /reviews/{review_id}:   requires Basic Auth (get_current_user)
router = APIRouter()

_REQUIRED_FIELDS = ("text", "rating", "user_id", "thing_id")


# ---------------------------------------------------------------------------
# POST /reviews
# ---------------------------------------------------------------------------


@limiter.limit(get_settings().review_rate_limit)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/reviews", response_model=ReviewResponse, status_code=201)
def create_review(
    request: Request,
    response: Response,
    body: ReviewCreate,
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> dict:
    """Persist a new review and return its public view.

    Rejections (all 400):
      - a required field is absent, null, or ""
      - rating outside 1..5
      - thing_id or user_id that does not exist
    """
    for field in _REQUIRED_FIELDS:
        if getattr(body, field) is None:
            raise RequestError.missing_field(field)

    if not is_valid_rating(body.rating):
        raise RequestError(f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}")
    if thing_store.get_thing(body.thing_id) is None:
        raise RequestError("Thing doesn't exist")
    author = user_store.get_by_id(body.user_id)
    if author is None:
        raise RequestError("User doesn't exist")

    review_id = thing_store.create_review(
        Review(text=body.text, rating=body.rating, thing_id=body.thing_id, user_id=body.user_id)
    )
    created = thing_store.get_review(review_id)
    logger.info("Review %s created for thing %s by user %s", review_id, created.thing_id, created.user_id)

    response.headers["Location"] = f"/api/reviews/{review_id}"
    return build_review_view(created, author)


# ---------------------------------------------------------------------------
# GET /reviews/{review_id}
# ---------------------------------------------------------------------------


@router.get("/reviews/{review_id}", response_model=ReviewResponse, dependencies=[Depends(get_current_user)])
def get_review(
    review_id: int,
    thing_store: ThingStore = Depends(get_thing_store),
    user_store: UserStore = Depends(get_user_store),
) -> dict:
    """Return one review. A stored out-of-range rating surfaces as a 500."""
    review = thing_store.get_review(review_id)
    if review is None:
        raise NotFound("Review doesn't exist")
    author = user_store.get_by_id(review.user_id)
    if author is None:
        logger.error("Review %s references missing author %s", review.id, review.user_id)
        raise NotFound("Review doesn't exist")
    return build_review_view(review, author)
