"""Access-token authentication for Socket.IO connections.

Clients pass the simplejwt access token issued by ``auth/login/`` either in
the query string (``?token=...``) or in the Socket.IO ``auth`` object
(``{"token": ...}``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any
from urllib.parse import parse_qs

from channels.db import database_sync_to_async
from rest_framework_simplejwt.authentication import JWTAuthentication

if TYPE_CHECKING:  # import for type checking only
    from uuid import UUID


def extract_token(environ: dict[str, Any], auth: Any | None) -> str | None:
    """Extract the access token from Socket.IO environ/auth.

    Handles python-socketio environ shapes across ASGI/WSGI servers.
    """

    scope: Any = environ
    if isinstance(environ, dict) and "asgi.scope" in environ:
        inner = environ.get("asgi.scope")
        if isinstance(inner, dict):
            scope = inner

    query_string: str | bytes = ""
    if isinstance(scope, dict) and "query_string" in scope:
        query_string = scope.get("query_string", b"")
    elif isinstance(scope, dict) and "QUERY_STRING" in scope:
        query_string = scope.get("QUERY_STRING", "")

    if isinstance(query_string, (bytes, bytearray)):
        query_string = query_string.decode(errors="ignore")

    token = parse_qs(str(query_string)).get("token", [None])[0]
    if isinstance(token, str) and token:
        return token

    if isinstance(auth, dict):
        auth_token = auth.get("token")
        if isinstance(auth_token, str) and auth_token:
            return auth_token

    return None


@database_sync_to_async
def authenticate_token(token: str) -> UUID:
    """Return the id of the active user the token belongs to.

    Raises simplejwt ``InvalidToken``/``TokenError`` or DRF
    ``AuthenticationFailed`` (unknown or inactive user).
    """

    jwt_auth = JWTAuthentication()
    validated = jwt_auth.get_validated_token(token)
    user = jwt_auth.get_user(validated)
    return user.pk
