"""auth/ -- HTTP Basic authentication for Thingful.

Layer rule: auth/ imports only stdlib + third-party libraries, plus core/
(config and the error taxonomy). It does NOT import from api/ or catalog/.
api/ imports from auth/, not the other way around.
"""
