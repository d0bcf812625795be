#!/usr/bin/env python3
"""
Thingful -- a directory of things with user reviews.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000 --reload
  python main.py create-user dunder "Dunder Mifflin" --nickname DM
  python main.py seed-demo

Environment variables (see core/config.py for the full list):
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file beside the project.
  LOG_LEVEL      Logging level name (default: INFO).
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.credentials import encode_basic_credentials, hash_password
from auth.models import User
from auth.store import UserStore
from catalog.models import Review, Thing
from catalog.store import ThingStore

_DEMO_PASSWORD = "password"

_DEMO_USERS = [
    ("dunder", "Dunder Mifflin", None),
    ("b.deboop", "Bodeep Deboop", "Bo"),
    ("c.bloggs", "Charlie Bloggs", "Charlie"),
]

_DEMO_THINGS = [
    ("First test thing!", "https://example.com/1", "A plain description of the first thing.", 0),
    ("Second test thing!", "https://example.com/2", "Second thing, with <strong>some</strong> formatting.", 1),
    ("Third test thing!", "https://example.com/3", "The third thing.", 2),
]

# (thing index, author index, rating, text)
_DEMO_REVIEWS = [
    (0, 1, 2, "Not great, not terrible."),
    (0, 2, 3, "It does what it says."),
    (1, 0, 5, "Best thing in the catalog."),
    (1, 2, 4, "Solid."),
    (2, 0, 1, "Would not recommend."),
]


def _create_user(args: argparse.Namespace) -> int:
    password: Optional[str] = args.password or getpass.getpass(f"Password for {args.user_name}: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1

    store = UserStore(args.database_url)
    try:
        user_id = store.create_user(
            User(
                user_name=args.user_name,
                full_name=args.full_name,
                nickname=args.nickname,
                password_hash=hash_password(password),
            )
        )
    except IntegrityError:
        print(f"  [!] A user named '{args.user_name}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created user {args.user_name} (id {user_id}).")
    return 0


def _seed_demo(args: argparse.Namespace) -> int:
    user_store = UserStore(args.database_url)
    thing_store = ThingStore(args.database_url)
    try:
        if user_store.has_users() or thing_store.list_things():
            print("  [!] Database is not empty; refusing to seed demo data.")
            return 1

        password_hash = hash_password(_DEMO_PASSWORD)
        user_ids = [
            user_store.create_user(User(user_name=n, full_name=f, nickname=nick, password_hash=password_hash))
            for n, f, nick in _DEMO_USERS
        ]
        thing_ids = [
            thing_store.create_thing(Thing(title=t, url=u, content=c, owner_user_id=user_ids[owner]))
            for t, u, c, owner in _DEMO_THINGS
        ]
        for thing_idx, user_idx, rating, text in _DEMO_REVIEWS:
            thing_store.create_review(
                Review(text=text, rating=rating, thing_id=thing_ids[thing_idx], user_id=user_ids[user_idx])
            )
    finally:
        thing_store.close()
        user_store.close()

    print(f"  Seeded {len(_DEMO_USERS)} users, {len(_DEMO_THINGS)} things, {len(_DEMO_REVIEWS)} reviews.")
    print(f"  Try:  curl -H 'Authorization: {encode_basic_credentials(_DEMO_USERS[0][0], _DEMO_PASSWORD)}' "
          "http://127.0.0.1:8000/api/things/1")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="thingful",
        description="Thingful API server and admin commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL from settings)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Register a user who can authenticate with Basic Auth")
    create.add_argument("user_name")
    create.add_argument("full_name")
    create.add_argument("--nickname", default=None)
    create.add_argument("--password", default=None, help="Prompted for when omitted")
    create.set_defaults(func=_create_user)

    seed = sub.add_parser("seed-demo", help="Insert demo users, things and reviews into an empty database")
    seed.set_defaults(func=_seed_demo)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
