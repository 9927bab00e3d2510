"""Error taxonomy shared by the REST layer and the realtime layer.

- ``ValidationError``: a required field is missing or malformed.
- ``PersistenceError``: the store failed; the operation was aborted.
- ``NotFoundError``: a referenced user, post or recipient does not exist.
- ``DuplicateError``: a uniqueness rule was violated (e.g. email taken).

Live-connection handlers catch all of these and log them; REST views let the
DRF exception handler turn them into ``{"success": false, ...}`` responses.
"""

from __future__ import annotations


class SocialFeedError(Exception):
    """Base class for domain errors."""

    default_message = "Request could not be processed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SocialFeedError):
    default_message = "Invalid payload."


class PersistenceError(SocialFeedError):
    default_message = "Storage operation failed."


class NotFoundError(SocialFeedError):
    default_message = "Not found."


class DuplicateError(SocialFeedError):
    default_message = "Already exists."
