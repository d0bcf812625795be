"""
auth/dependencies.py -- The Basic Auth guard and its FastAPI Depends() wrapper.

The guard is split in two:

  try_basic_auth()   -- pure decision. Takes the raw Authorization header and
                        the credential store, returns an AuthResult carrying
                        either the resolved User or the error to report.
                        Never raises.
  get_current_user() -- the dispatcher side. Runs try_basic_auth() before the
                        route handler, raises the carried error on failure,
                        and on success attaches the User to request.state.user.

Because FastAPI resolves dependencies before calling the handler,
authentication always completes (one store lookup, one bcrypt verify) before
any handler logic runs.

Layer rule: no imports from api/ or catalog/. This module may import from
fastapi because it is part of the dependency injection system.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import Request

from auth.credentials import authenticate_user, parse_basic_credentials
from auth.models import User
from auth.store import UserStore
from core.errors import MissingToken, ThingfulError, Unauthorized

logger = logging.getLogger("thingful.auth")


@dataclass(frozen=True)
class AuthResult:
    """Outcome of one authentication attempt. Exactly one field is set."""

    user: User | None = None
    error: ThingfulError | None = None

    @property
    def ok(self) -> bool:
        return self.user is not None


def try_basic_auth(authorization: str | None, store: UserStore) -> AuthResult:
    """Authenticate a raw Authorization header value against the store.

    Failures:
      - MissingToken: no header, or a blank one.
      - Unauthorized: unknown scheme, malformed credentials, unknown user, or wrong password.
        The last two are deliberately the same error.
    """
    try:
        user_name, password = parse_basic_credentials(authorization)
    except (MissingToken, Unauthorized) as exc:
        return AuthResult(error=exc)

    user = authenticate_user(store, user_name, password)
    if user is None:
        return AuthResult(error=Unauthorized())
    return AuthResult(user=user)


def get_current_user(request: Request) -> User:
    """Require Basic authentication. Raises MissingToken or Unauthorized (HTTP 401).

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user_store: UserStore = request.app.state.user_store
    result = try_basic_auth(request.headers.get("Authorization"), user_store)
    if not result.ok:
        logger.debug(
            "Rejected %s %s: %s",
            request.method,
            request.url.path,
            type(result.error).__name__,
        )
        raise result.error
    request.state.user = result.user
    return result.user
