"""
API request and response models for Thingful REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. The
aggregators in core/aggregator.py map between the two.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, StrictInt, field_validator

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ReviewCreate(BaseModel):
    """Request body for POST /api/reviews.

    Every field is optional at the schema level on purpose: the route reports
    the first missing field with its own message ("Missing 'rating' in request
    body"), which a schema-level required field would replace with a generic
    validation error.

    The numeric fields are strict: JSON `true` or `"3"` is rejected with a 400
    instead of being coerced to an int.
    """

    text: Optional[str] = None
    rating: Optional[StrictInt] = None
    user_id: Optional[StrictInt] = None
    thing_id: Optional[StrictInt] = None

    @field_validator("text", "rating", "user_id", "thing_id", mode="before")
    @classmethod
    def empty_string_is_missing(cls, value: Any) -> Any:
        """Treat "" like an absent field, so it is reported as missing rather than mistyped."""
        if isinstance(value, str) and value == "":
            return None
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserSummary(BaseModel):
    """Public part of a user record. There is deliberately no password field."""

    model_config = ConfigDict(frozen=True)

    id: int
    user_name: str
    full_name: str
    nickname: Optional[str] = None
    date_created: str


class ThingResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    url: str
    content: str
    rating: int
    number_of_reviews: int
    date_created: str
    owner: UserSummary


class ReviewResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    text: str
    rating: int
    date_created: str
    thing_id: int
    user: UserSummary


class ErrorResponse(BaseModel):
    """Body of every failure response: a single `error` string."""

    model_config = ConfigDict(frozen=True)

    error: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: str
    version: str
    components: dict[str, str]
