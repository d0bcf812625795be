"""
api/deps.py -- FastAPI Depends() providers for the persistence collaborators.

The stores are created once by the lifespan in api/main.py and parked on
app.state. Handlers never reach for app.state themselves; they declare the
store they need as a parameter, e.g.

    def get_thing(thing_store: ThingStore = Depends(get_thing_store)): ...

so every handler's collaborators are explicit in its signature, and tests can
swap them through the lifespan or app.dependency_overrides.
"""

from fastapi import Request

from auth.store import UserStore
from catalog.store import ThingStore


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store


def get_thing_store(request: Request) -> ThingStore:
    return request.app.state.thing_store
