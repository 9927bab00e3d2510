"""DRF exception handler producing the ``{"success": false, "message": ...}`` envelope."""

from __future__ import annotations

import logging
from typing import Any

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler
from rest_framework.views import set_rollback

from social_feed.core.exceptions import DuplicateError
from social_feed.core.exceptions import NotFoundError
from social_feed.core.exceptions import PersistenceError
from social_feed.core.exceptions import SocialFeedError
from social_feed.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "Server error."

_STATUS_FOR = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateError: status.HTTP_409_CONFLICT,
}


def error_response(message: str, http_status: int, **extra: Any) -> Response:
    return Response({"success": False, "message": message, **extra}, status=http_status)


def api_exception_handler(exc: Exception, context: dict[str, Any]) -> Response | None:
    if isinstance(exc, PersistenceError):
        view = context.get("view")
        logger.error(
            "Persistence failure in %s: %s",
            type(view).__name__ if view else "unknown view",
            exc,
        )
        set_rollback()
        return error_response(GENERIC_SERVER_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR)

    if isinstance(exc, SocialFeedError):
        set_rollback()
        http_status = _STATUS_FOR.get(type(exc), status.HTTP_400_BAD_REQUEST)
        return error_response(exc.message, http_status)

    response = exception_handler(exc, context)
    if response is None:
        return None

    detail = response.data
    if isinstance(detail, dict) and "detail" in detail:
        message = str(detail["detail"])
        errors = None
    else:
        message = "Invalid request."
        errors = detail
    payload: dict[str, Any] = {"success": False, "message": message}
    if errors is not None:
        payload["errors"] = errors
    response.data = payload
    return response
