"""
catalog/models.py -- Domain dataclasses for the Thingful catalog.

These are pure data containers with zero logic. Persistence lives in
catalog/store.py; the public JSON shape is built by core/aggregator.py.

content and text hold the RAW user-supplied strings exactly as stored. They
are sanitized on the way out, never on the way in, so the stored record
stays a faithful copy of what the user submitted.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Thing:
    """A catalog entry owned by a user.

    id is None before the record is written to the database.
    """

    title: str
    owner_user_id: int
    url: str = ""
    content: str = ""
    id: int | None = None
    date_created: str = ""  # ISO 8601, set by store on insert


@dataclass
class Review:
    """A 1..5 rating plus free text, written by one user about one thing.

    The store does not re-check rating on read. Rows that violate the 1..5
    range are reported by core.aggregator.build_review_view() as InvalidRating.
    """

    text: str
    rating: int
    thing_id: int
    user_id: int
    id: int | None = None
    date_created: str = ""  # ISO 8601
