"""
auth/models.py -- Domain dataclass for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors catalog/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/, core/, or catalog/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered Thingful user.

    password_hash is the bcrypt hash written by auth.credentials.hash_password().
    It never leaves the server: public responses embed a user summary built
    by core.aggregator.build_user_summary(), which omits it.

    id and date_created are None until the store writes the record.
    """

    user_name: str
    full_name: str
    password_hash: str
    nickname: str | None = None
    id: int | None = None
    date_created: str | None = None  # ISO 8601, set by store on insert
