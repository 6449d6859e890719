# facetstudio/errors.py
# Error types plus classification / retry helpers for backend calls.

import logging
import time
from typing import Callable, Optional, TypeVar

import requests

log = logging.getLogger(__name__)

T = TypeVar("T")


class EnvironmentConfigError(Exception):
    """Required configuration is missing."""


class AnalysisError(Exception):
    """The AI service returned nothing usable."""


class AuthError(Exception):
    pass


class StorageError(Exception):
    pass


class ClientResponseError(Exception):
    """Non-2xx response from the PocketBase REST API."""

    def __init__(self, status: int, data: Optional[dict] = None, url: str = ""):
        self.status = status
        self.data = data or {}
        self.url = url
        super().__init__(self.data.get("message") or f"HTTP {status} for {url}")


class PocketBaseError(Exception):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        is_network_error: bool = False,
        is_auth_error: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_network_error = is_network_error
        self.is_auth_error = is_auth_error


STATUS_MESSAGES = {
    401: "You must be logged in to perform this action.",
    403: "You do not have permission to perform this action.",
    404: "The requested resource was not found.",
    429: "Too many requests. Please slow down and try again.",
}


def parse_pocketbase_error(error: BaseException) -> PocketBaseError:
    if isinstance(error, PocketBaseError):
        return error

    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return PocketBaseError(
            "Unable to connect to server. Please check your internet connection.",
            is_network_error=True,
        )

    status = getattr(error, "status", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)

    if status:
        status = int(status)
        if status in STATUS_MESSAGES:
            message = STATUS_MESSAGES[status]
        elif status >= 500:
            message = "Server error. Please try again later."
        else:
            message = "An error occurred while communicating with the server."

        data = getattr(error, "data", None) or {}
        if isinstance(data, dict) and data.get("message"):
            message = data["message"]

        return PocketBaseError(message, status, is_auth_error=status in (401, 403))

    return PocketBaseError(str(error) or "An unknown error occurred.")


def with_retry(
    operation: Callable[[], T],
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    sleep = sleep or time.sleep
    last_error: Optional[PocketBaseError] = None
    current_delay = delay

    for attempt in range(max_retries + 1):
        try:
            return operation()
        except Exception as e:
            last_error = parse_pocketbase_error(e)

            # auth and other 4xx answers will not change on retry
            if last_error.is_auth_error or (last_error.status_code and last_error.status_code < 500):
                raise last_error from e

            if attempt == max_retries:
                break

            log.warning(
                "PocketBase operation failed (attempt %d/%d): %s. Retrying in %.2fs...",
                attempt + 1, max_retries + 1, last_error.message, current_delay,
            )
            sleep(current_delay)
            current_delay *= backoff

    raise last_error or PocketBaseError("Operation failed after multiple retries.")


def graceful_fetch(operation: Callable[[], T], fallback: T) -> T:
    try:
        return operation()
    except Exception as e:
        pb_error = parse_pocketbase_error(e)
        log.error("PocketBase operation failed (graceful): %s", pb_error.message)
        return fallback
