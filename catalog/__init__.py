"""catalog/ -- Things and their reviews.

Layer rule: catalog/ imports only stdlib + third-party libraries.
It does NOT import from api/ or auth/. Public shaping of catalog rows lives in
core/aggregator.py; HTTP concerns live in api/routes/.
"""
