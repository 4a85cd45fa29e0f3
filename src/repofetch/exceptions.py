"""Exception hierarchy and upstream error classification for repofetch.

All exceptions inherit from :class:`RepofetchError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`repofetch.exit_codes`.
The CLI entry point in :func:`repofetch.app.main` catches ``RepofetchError``
and exits with the matching code.

Subclass hierarchy::

    RepofetchError      (exit 1)
    +-- InvalidUsageError (exit 2)
    +-- ConfigError       (exit 1)
    +-- ImportFailedError (exit 9)
    +-- ApiError          (exit 3 / 4 / 5 / 8 / 1, derived from the status)

Besides the classes, this module owns the rules that turn a failed upstream
response into a message that is safe to show to a user:
:func:`format_api_error_message`, :func:`is_rate_limit_error` and
:func:`get_error_message`.  Arbitrary error values are first resolved into
the closed :class:`ErrorKind` set by :func:`classify_error`, so callers never
need their own ``isinstance`` ladders.
"""

from __future__ import annotations

import enum
import re
from typing import Optional

import httpx

from repofetch.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_GENERIC_FAILURE,
    EXIT_IMPORT_FAILED,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)

RATE_LIMIT_PHRASE = "rate limit"
NETWORK_FAILURE_PHRASE = "failed to fetch"

NETWORK_ERROR_MESSAGE = "Network error. Please check your internet connection."
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

_IPV4_RE = re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")
_GOOD_NEWS_RE = re.compile(r"\s*\(But here's the good news:.*?\)", re.IGNORECASE | re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


class RepofetchError(Exception):
    """Base exception for all repofetch errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.message = message
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(RepofetchError):
    """Raised for invalid CLI arguments or unsupported source URLs."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(RepofetchError):
    """Raised for configuration problems (unreadable or invalid config file)."""

    exit_code = EXIT_GENERIC_FAILURE


class ImportFailedError(RepofetchError):
    """Raised by the CLI when a repository source yields no importable files."""

    exit_code = EXIT_IMPORT_FAILED


class ApiError(RepofetchError):
    """A failed upstream HTTP call.

    The human-readable :attr:`message` is derived once, at construction,
    from the status code and the upstream body message (see
    :func:`format_api_error_message`).  It never contains the raw client IP
    address that some APIs echo back in rate-limit responses.

    Args:
        status: HTTP status code.
        status_text: Reason phrase (``"Not Found"``); may be empty.
        api_message: Raw ``message`` field from the upstream JSON body.
        documentation_url: Raw ``documentation_url`` field from the body.
    """

    def __init__(
        self,
        status: int,
        status_text: str = "",
        api_message: Optional[str] = None,
        documentation_url: Optional[str] = None,
    ) -> None:
        self.status = status
        self.status_text = status_text
        self.api_message = api_message
        self.documentation_url = documentation_url
        super().__init__(
            format_api_error_message(status, status_text, api_message),
            exit_code=_exit_code_for(status, api_message),
        )

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, status_text={self.status_text!r})"


# --- Message derivation ---


def _mentions_rate_limit(api_message: Optional[str]) -> bool:
    return bool(api_message) and RATE_LIMIT_PHRASE in api_message.lower()


def sanitize_api_message(message: str) -> str:
    """Strip technical noise from an upstream error message.

    IPv4 addresses become ``[your IP]``, GitHub's "(But here's the good
    news: ...)" parentheticals are dropped and runs of whitespace collapse
    to a single space.
    """
    without_ip = _IPV4_RE.sub("[your IP]", message)
    simplified = _GOOD_NEWS_RE.sub("", without_ip)
    return _WHITESPACE_RE.sub(" ", simplified).strip()


def _format_rate_limit_message(api_message: str) -> str:
    if "authenticated" in api_message.lower():
        return (
            "API rate limit exceeded. Add a personal access token "
            "to increase your rate limit."
        )
    return (
        "API rate limit exceeded. Please wait a few minutes before trying again, "
        "or add a personal access token to increase your rate limit."
    )


def format_api_error_message(
    status: int,
    status_text: str = "",
    api_message: Optional[str] = None,
) -> str:
    """Build the user-facing message for a failed upstream response.

    Rules are evaluated in priority order: rate-limit wording in the body,
    429, 401, 403, 404, 5xx, then the sanitised body message or a generic
    ``Request failed`` line.
    """
    if _mentions_rate_limit(api_message):
        return _format_rate_limit_message(api_message or "")

    if status == 429:
        return (
            "Too many requests: rate limit reached. "
            "Please wait a few minutes before trying again."
        )

    if status == 401:
        return "Authentication required. Please configure a personal access token."

    if status == 403:
        if api_message and "access" in api_message.lower():
            return "Access denied. You may not have permission to view this resource."
        if api_message:
            return sanitize_api_message(api_message)
        return "Access forbidden. The resource may be private or require authentication."

    if status == 404:
        return "Resource not found. Please check the URL and try again."

    if status >= 500:
        return "The upstream service is experiencing issues. Please try again later."

    if api_message:
        return sanitize_api_message(api_message)
    return f"Request failed: {status_text or f'HTTP {status}'}"


def _exit_code_for(status: int, api_message: Optional[str]) -> int:
    if status == 429 or (status == 403 and _mentions_rate_limit(api_message)):
        return EXIT_RATE_LIMITED
    if status in (401, 403):
        return EXIT_AUTH_FAILURE
    if status == 404:
        return EXIT_NOT_FOUND
    if status >= 500:
        return EXIT_SERVER_ERROR
    return EXIT_GENERIC_FAILURE


# --- Classification of arbitrary error values ---


class ErrorKind(str, enum.Enum):
    """Closed set of shapes an error value can take at the API boundary."""

    API = "api"
    NETWORK = "network"
    GENERIC = "generic"
    STRING = "string"
    OTHER = "other"


def _safe_str(value: object) -> str:
    # A broken __str__ must not turn error reporting into a second failure.
    try:
        return str(value)
    except Exception:
        return ""


def classify_error(error: object) -> ErrorKind:
    """Resolve any value into an :class:`ErrorKind`.

    ``httpx`` transport failures and exceptions whose text contains
    "failed to fetch" are :attr:`ErrorKind.NETWORK`; every other exception
    is :attr:`ErrorKind.GENERIC`.
    """
    if isinstance(error, ApiError):
        return ErrorKind.API
    if isinstance(error, httpx.TransportError):
        return ErrorKind.NETWORK
    if isinstance(error, BaseException):
        if NETWORK_FAILURE_PHRASE in _safe_str(error).lower():
            return ErrorKind.NETWORK
        return ErrorKind.GENERIC
    if isinstance(error, str):
        return ErrorKind.STRING
    return ErrorKind.OTHER


def is_rate_limit_error(error: object) -> bool:
    """Return ``True`` for an :class:`ApiError` caused by rate limiting.

    That is HTTP 429, or HTTP 403 whose body mentions a rate limit.  Any
    other value, including ``None`` and plain strings, yields ``False``.
    """
    return isinstance(error, ApiError) and (
        error.status == 429
        or (error.status == 403 and _mentions_rate_limit(error.api_message))
    )


def get_error_message(error: object) -> str:
    """Return a user-presentable message for any error value.  Never raises."""
    kind = classify_error(error)
    if kind is ErrorKind.API and isinstance(error, ApiError):
        return error.message
    if kind is ErrorKind.NETWORK:
        return NETWORK_ERROR_MESSAGE
    if kind is ErrorKind.GENERIC:
        return _safe_str(error) or UNEXPECTED_ERROR_MESSAGE
    if kind is ErrorKind.STRING and isinstance(error, str):
        return error
    return UNEXPECTED_ERROR_MESSAGE
