"""
Exception taxonomy and API error translation for Hubs Backup.
"""

import functools
import inspect
import json
from typing import Any, Callable, Optional, TypeVar

import httpx

from .logger import logger


F = TypeVar("F", bound=Callable[..., Any])


class BackupError(Exception):
    """Base exception for backup failures."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.message = message
        self.original_error = original_error
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message} (Original: {self.original_error})"
        return self.message


class CatalogError(BackupError):
    """Transport or deserialization failure talking to the catalog API."""


class AuthenticationError(CatalogError):
    """The catalog rejected the bearer token."""


class NotFoundError(CatalogError):
    """The requested catalog record does not exist."""


class AssetDownloadError(BackupError):
    """A remote asset could not be streamed to disk."""


class DocumentError(BackupError):
    """A fetched scene or asset document could not be parsed."""


def _translate(exc: Exception) -> BackupError:
    if isinstance(exc, BackupError):
        return exc

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        url = exc.request.url
        if status in (401, 403):
            return AuthenticationError(f"Not authorized to access {url}", exc)
        if status == 404:
            return NotFoundError(f"Not found: {url}", exc)
        return CatalogError(f"Catalog API error {status} for {url}", exc)

    if isinstance(exc, httpx.RequestError):
        return CatalogError(f"Network error: {exc}", exc)

    if isinstance(exc, (json.JSONDecodeError, KeyError, TypeError)):
        return CatalogError(f"Unexpected catalog response: {exc!r}", exc)

    return CatalogError(f"Unexpected error: {exc}", exc)


def handle_api_error(func: F) -> F:
    """
    Convert transport and decoding failures raised by a catalog call
    into the backup exception taxonomy.

    Works for both plain and coroutine functions.
    """

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except Exception as e:
                error = _translate(e)
                if error is not e:
                    logger.debug(f"{func.__name__} failed: {error}")
                    raise error from e
                raise

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            error = _translate(e)
            if error is not e:
                logger.debug(f"{func.__name__} failed: {error}")
                raise error from e
            raise

    return wrapper  # type: ignore[return-value]


__all__ = [
    "BackupError",
    "CatalogError",
    "AuthenticationError",
    "NotFoundError",
    "AssetDownloadError",
    "DocumentError",
    "handle_api_error",
]
