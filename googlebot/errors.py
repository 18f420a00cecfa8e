"""Exceptions raised while running a chat command.

Anything derived from CommandError is reported back to the room as a notice
using the exception text. Other exceptions are treated as bugs.
"""
from __future__ import annotations
from typing import Optional


class CommandError(Exception):
    """A command failed in a way the user should be told about."""


class SearchError(CommandError):
    """The image search request did not produce a usable result."""


class SearchTransportError(SearchError):
    """Connection, DNS, TLS or timeout failure talking to the search API."""


class SearchStatusError(SearchError):
    """The search API answered with a non-200 status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Request error: {status}, {body}")


class NoResultsError(SearchError):
    """The search succeeded but returned no items."""

    def __init__(self, message: str = "No images found"):
        super().__init__(message)


class SearchDecodeError(NoResultsError):
    """The search response body could not be decoded.

    Reported with the same text as an empty result set; the class keeps the
    two cases apart for logging and tests.
    """

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__()


class UploadError(CommandError):
    """Re-uploading the found image to the homeserver failed."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"Failed to upload Google image to matrix: {cause}")
