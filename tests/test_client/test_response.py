"""Tests for response decoding and ApiError construction."""

from __future__ import annotations

import httpx

from repofetch.client.response import create_api_error, extract_response_data
from repofetch.exit_codes import EXIT_NOT_FOUND, EXIT_RATE_LIMITED


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_response(
    status_code: int = 200,
    *,
    json_data: object | None = None,
    text: str | None = None,
    content: bytes = b"",
) -> httpx.Response:
    request = httpx.Request("GET", "https://api.example.com/test")
    if json_data is not None:
        return httpx.Response(status_code, json=json_data, request=request)
    if text is not None:
        return httpx.Response(status_code, text=text, request=request)
    return httpx.Response(status_code, content=content, request=request)


# ---------------------------------------------------------------------------
# extract_response_data
# ---------------------------------------------------------------------------


class TestExtractResponseData:
    def test_json_object(self) -> None:
        data = extract_response_data(_make_response(json_data={"key": "value"}))
        assert data == {"key": "value"}

    def test_json_list(self) -> None:
        assert extract_response_data(_make_response(json_data=[1, 2, 3])) == [1, 2, 3]

    def test_fallback_to_text(self) -> None:
        assert extract_response_data(_make_response(text="not json")) == "not json"

    def test_empty_body(self) -> None:
        assert extract_response_data(_make_response(204)) is None


# ---------------------------------------------------------------------------
# create_api_error
# ---------------------------------------------------------------------------


class TestCreateApiError:
    def test_reads_github_error_body(self) -> None:
        response = _make_response(
            404,
            json_data={
                "message": "Not Found",
                "documentation_url": "https://docs.github.com/rest",
            },
        )
        error = create_api_error(response)

        assert error.status == 404
        assert error.status_text == "Not Found"
        assert error.api_message == "Not Found"
        assert error.documentation_url == "https://docs.github.com/rest"
        assert error.exit_code == EXIT_NOT_FOUND

    def test_non_object_body_is_ignored(self) -> None:
        error = create_api_error(_make_response(400, json_data=["unexpected"]))
        assert error.api_message is None
        assert error.message == "Request failed: Bad Request"

    def test_text_body_is_ignored(self) -> None:
        error = create_api_error(_make_response(502, text="Bad gateway"))
        assert error.api_message is None
        assert error.status == 502

    def test_non_string_message_is_stringified(self) -> None:
        error = create_api_error(_make_response(422, json_data={"message": 42}))
        assert error.api_message == "42"

    def test_rate_limit_body(self) -> None:
        error = create_api_error(
            _make_response(403, json_data={"message": "API rate limit exceeded for 10.0.0.1."})
        )
        assert error.exit_code == EXIT_RATE_LIMITED
        assert error.message.startswith("API rate limit exceeded.")

    def test_unknown_status_without_reason(self) -> None:
        error = create_api_error(_make_response(499))
        assert error.message == "Request failed: HTTP 499"
