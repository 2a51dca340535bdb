"""Mapping from pipeline exceptions to HTTP responses."""

from __future__ import annotations

from typing import Tuple, Type

from fastapi.responses import JSONResponse

from vingest.config.settings import ConfigurationError
from vingest.services.catalog import EmptyPlaylistError, RemoteApiError
from vingest.services.resolver import ChannelNotFoundError
from vingest.services.storage import StorageError
from vingest.utils.validation import InvalidMaxResultsError, InvalidPlaylistFormatError

# Checked in order; the first matching class wins.
STATUS_BY_EXCEPTION: Tuple[Tuple[Type[BaseException], int], ...] = (
    (ConfigurationError, 500),
    (InvalidPlaylistFormatError, 400),
    (InvalidMaxResultsError, 400),
    (ChannelNotFoundError, 404),
    (EmptyPlaylistError, 404),
    (RemoteApiError, 502),
    (StorageError, 500),
)


def status_for(exc: BaseException) -> int:
    """Return the HTTP status code reported for ``exc``."""

    for exception_type, status_code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exception_type):
            return status_code
    return 500


def error_response(error: str, message: str, status_code: int = 500) -> JSONResponse:
    """Build the ``{error, message}`` payload used by every failure path."""

    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


__all__ = ["STATUS_BY_EXCEPTION", "error_response", "status_for"]
