"""
auth/credentials.py -- Password hashing and HTTP Basic credential handling.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). The cost factor comes
       from Settings.bcrypt_rounds. Verification reads the cost from the stored
       hash, so lowering the setting for tests never breaks existing hashes.

  Timing equalization: authenticate_user() always runs one bcrypt check, even
       for an unknown user_name (against _DUMMY_HASH). "No such user" and
       "wrong password" then cost the same and produce the same result (None),
       so neither the response body nor its latency reveals which usernames exist.

  Basic credentials: parse_basic_credentials() only decodes. It never touches
       the store, so the guard does exactly one lookup per request.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING

import bcrypt

from core.config import get_settings
from core.errors import MissingToken, Unauthorized

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("thingful.auth")

_ACCEPTED_SCHEMES = frozenset({"basic", "bearer"})

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes of the password.
    """
    salt = bcrypt.gensalt(rounds=get_settings().bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash counts as a mismatch, not an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at module load so the first failed login is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("thingful_timing_dummy")


# ---------------------------------------------------------------------------
# Basic Auth header parsing
# ---------------------------------------------------------------------------


def parse_basic_credentials(authorization: str | None) -> tuple[str, str]:
    """Decode `Authorization: Basic base64(user_name:password)`.

    The `Bearer` prefix is accepted as an alias for `Basic`; older clients
    send the same base64 payload under that name.

    Raises:
        MissingToken:  header absent or blank.
        Unauthorized:  any other scheme, an empty payload, a payload that is
                       not valid base64/UTF-8, no colon, or an empty half.

    The payload is split on the FIRST colon, so passwords may contain colons.
    """
    raw = (authorization or "").strip()
    if not raw:
        raise MissingToken()

    scheme, _, token = raw.partition(" ")
    token = token.strip()
    if scheme.lower() not in _ACCEPTED_SCHEMES or not token:
        raise Unauthorized()

    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except ValueError as exc:  # binascii.Error and UnicodeDecodeError are both ValueErrors
        raise Unauthorized() from exc

    user_name, sep, password = decoded.partition(":")
    if not sep or not user_name or not password:
        raise Unauthorized()
    return user_name, password


def encode_basic_credentials(user_name: str, password: str) -> str:
    """Build an Authorization header value. Used by the CLI and the test suite."""
    token = base64.b64encode(f"{user_name}:{password}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, user_name: str, password: str) -> User | None:
    """Resolve user_name/password to a User, or None on any failure.

    Always runs bcrypt whether or not the user exists:
    - Unknown user_name: bcrypt runs against _DUMMY_HASH (same cost as a real check)
    - Wrong password: bcrypt runs against the real hash
    """
    user = store.get_by_username(user_name)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user
