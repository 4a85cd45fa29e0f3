"""Helpers that turn :class:`httpx.Response` objects into data or errors.

:func:`extract_response_data` is used for display (it never fails on a
non-JSON body) while :func:`create_api_error` builds the
:class:`~repofetch.exceptions.ApiError` raised for a non-2xx response.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from repofetch.exceptions import ApiError


def extract_response_data(response: httpx.Response) -> Any:
    """Extract the body from an HTTP response.

    Attempts to parse the body as JSON first and falls back to the raw
    text.  Returns ``None`` for responses with no content.
    """
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def create_api_error(response: httpx.Response) -> ApiError:
    """Build an :class:`ApiError` from a failed response.

    GitHub-style error bodies (``{"message": ..., "documentation_url": ...}``)
    are picked apart; a body that is not a JSON object is ignored.
    """
    api_message: Optional[str] = None
    documentation_url: Optional[str] = None

    body = extract_response_data(response)
    if isinstance(body, dict):
        api_message = _optional_str(body.get("message"))
        documentation_url = _optional_str(body.get("documentation_url"))

    return ApiError(
        status=response.status_code,
        status_text=response.reason_phrase or "",
        api_message=api_message,
        documentation_url=documentation_url,
    )
