"""
core/errors.py -- Error taxonomy for Thingful.

Every failure the core detects locally is one of these exceptions. Each class
carries the HTTP status it maps to, and api/main.py renders all of them as the
same envelope: {"error": "<message>"}. None of them is retried.

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations


class ThingfulError(Exception):
    """Base class. `message` is the exact string sent to the client."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingToken(ThingfulError):
    """No Authorization header, or one that does not use the Basic scheme.

    The wording says "bearer" although the scheme is Basic. Clients match on
    this string, so it stays.
    """

    status_code = 401
    default_message = "Missing bearer token"


class Unauthorized(ThingfulError):
    """Malformed credentials, unknown user, or wrong password.

    All three share one message so a client cannot tell whether a username exists.
    """

    status_code = 401
    default_message = "Unauthorized request"


class RequestError(ThingfulError):
    status_code = 400
    default_message = "Invalid request body"

    @classmethod
    def missing_field(cls, field: str) -> "RequestError":
        return cls(f"Missing '{field}' in request body")


class NotFound(ThingfulError):
    status_code = 404
    default_message = "Not found"


class InvalidRating(ThingfulError):
    """A persisted review carries a rating outside 1..5 (upstream data fault).

    If surfaced, the client sees only the generic 500 message; `detail` is for logs.
    """

    status_code = 500

    def __init__(self, review_id: int | None, rating: object) -> None:
        self.review_id = review_id
        self.rating = rating
        self.detail = f"review {review_id} has invalid rating {rating!r}"
        super().__init__()
