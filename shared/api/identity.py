"""
Caller identity

Users live in the external identity service; the engine only keeps their
opaque id. With JWT auth it comes from the token's user id claim, with
session auth from the Django user.
"""


def caller_id(request) -> str:
    return str(request.user.pk)
