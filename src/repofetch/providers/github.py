"""GitHub repository provider.

Imports presets from github.com, GitHub Enterprise servers (any host passed
as ``base_url``) and GitHub Gists.  Directory listings and gists go through
the REST API with an optional personal access token; file contents are
downloaded from raw URLs.  Every request is cached by the shared
:class:`~repofetch.client.CachedFetcher` (listings for
``api_ttl_seconds``, file contents for ``content_ttl_seconds``).

Supported URL shapes::

    https://github.com/<owner>/<repo>
    https://github.com/<owner>/<repo>/tree/<ref>/<dir>
    https://github.com/<owner>/<repo>/blob/<ref>/<path>.json
    https://github.com/<owner>/<repo>/raw/<ref>/<path>.json
    https://raw.githubusercontent.com/<owner>/<repo>/<ref>/<path>.json
    https://gist.github.com/<owner>/<gist_id>[#file-<name>-json]
    https://gist.githubusercontent.com/<owner>/<gist_id>/raw/[<rev>/]<file>
"""

from __future__ import annotations

import asyncio
import json
import logging
import posixpath
import re
from typing import Any, Optional
from urllib.parse import urlsplit

from repofetch.exceptions import get_error_message
from repofetch.models import (
    ImportResult,
    ParsedGitHubUrl,
    ProviderInstance,
    ProviderType,
    RepositorySource,
    ValidatedFile,
)
from repofetch.providers.base import FETCH_ERRORS, RepositoryProvider

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "github.com"
DEFAULT_REF = "main"
DEFAULT_FILENAME = "presets.json"

REPOSITORY_ACCESS_ERROR = "Could not access repository. Check the URL and ensure you have access."
GIST_ACCESS_ERROR = "Failed to fetch Gist. It may be private or the ID is invalid."

_GIST_FRAGMENT_RE = re.compile(r"^file-(.+)$")
_FRAGMENT_EXTENSION_RE = re.compile(r"-([^-]+)$")
_SCHEME_RE = re.compile(r"^https?://")


# --- URL parsing ---


def _normalize_base_url(base_url: str) -> str:
    return _SCHEME_RE.sub("", base_url.lower()).rstrip("/")


def parse_github_url(url: str, base_url: str = DEFAULT_BASE_URL) -> Optional[ParsedGitHubUrl]:
    """Split a GitHub, Gist or raw content URL into its components.

    Args:
        url: The URL to parse.
        base_url: Host of the GitHub instance, e.g. ``github.com`` or
            ``git.example.com`` for GitHub Enterprise.

    Returns:
        A :class:`~repofetch.models.ParsedGitHubUrl`, or ``None`` when the
        URL is malformed, belongs to another host or has too few path
        segments.
    """
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not hostname:
        return None

    segments = [s for s in parts.path.split("/") if s]
    base = _normalize_base_url(base_url)

    if hostname in ("raw.githubusercontent.com", f"raw.{base}"):
        if len(segments) < 4:
            return None
        return ParsedGitHubUrl(
            type="raw",
            owner=segments[0],
            repo=segments[1],
            ref=segments[2],
            path="/".join(segments[3:]),
        )

    if hostname in ("gist.github.com", f"gist.{base}"):
        if len(segments) < 2:
            return None
        filename: Optional[str] = None
        match = _GIST_FRAGMENT_RE.match(parts.fragment)
        if match:
            # "file-presets-json" names the file "presets.json"
            filename = _FRAGMENT_EXTENSION_RE.sub(r".\1", match.group(1))
        return ParsedGitHubUrl(
            type="gist",
            owner=segments[0],
            gist_id=segments[1],
            filename=filename,
        )

    if hostname == "gist.githubusercontent.com":
        # <owner>/<gist_id>/raw/[<revision>/]<filename>
        if len(segments) < 4:
            return None
        return ParsedGitHubUrl(
            type="gist",
            owner=segments[0],
            gist_id=segments[1],
            ref=segments[3] if len(segments) > 4 else None,
            filename=segments[-1],
        )

    if hostname not in (base, f"www.{base}") or len(segments) < 2:
        return None

    owner, repo = segments[0], segments[1]
    if len(segments) >= 4 and segments[2] in ("blob", "tree", "raw"):
        kind = segments[2]
        path = "/".join(segments[4:])
        if kind == "tree":
            return ParsedGitHubUrl(
                type="repo", owner=owner, repo=repo, ref=segments[3], path=path or None
            )
        return ParsedGitHubUrl(type=kind, owner=owner, repo=repo, ref=segments[3], path=path)

    return ParsedGitHubUrl(type="repo", owner=owner, repo=repo, ref=DEFAULT_REF)


# --- URL builders ---


def _api_base(base_url: str) -> str:
    base = _normalize_base_url(base_url)
    if base == DEFAULT_BASE_URL:
        return "https://api.github.com"
    return f"https://{base}/api/v3"


def build_contents_api_url(
    parsed: ParsedGitHubUrl, base_url: str, path: Optional[str] = None
) -> str:
    """Contents API URL for *path* (defaults to the parsed path) at the parsed ref."""
    target = path if path is not None else (parsed.path or "")
    ref = parsed.ref or DEFAULT_REF
    return f"{_api_base(base_url)}/repos/{parsed.owner}/{parsed.repo}/contents/{target}?ref={ref}"


def build_gist_api_url(gist_id: str, base_url: str) -> str:
    return f"{_api_base(base_url)}/gists/{gist_id}"


def build_raw_url(parsed: ParsedGitHubUrl, base_url: str, path: Optional[str] = None) -> str:
    """Raw download URL for *path* (defaults to the parsed path)."""
    target = path if path is not None else (parsed.path or "")
    ref = parsed.ref or DEFAULT_REF
    base = _normalize_base_url(base_url)
    if base == DEFAULT_BASE_URL:
        return f"https://raw.githubusercontent.com/{parsed.owner}/{parsed.repo}/{ref}/{target}"
    return f"https://{base}/{parsed.owner}/{parsed.repo}/raw/{ref}/{target}"


def create_api_headers() -> dict[str, str]:
    """Headers for GitHub REST API calls.  The token is added by the fetcher."""
    return {"Accept": "application/vnd.github.v3+json"}


def _filename_of(path: Optional[str]) -> str:
    return posixpath.basename(path or "") or DEFAULT_FILENAME


# --- Provider ---


class GitHubProvider(RepositoryProvider):
    """Import presets from GitHub repositories, Enterprise servers and Gists."""

    type = ProviderType.GITHUB

    def validate_url(self, url: str, base_url: Optional[str] = None) -> bool:
        return parse_github_url(url, base_url or DEFAULT_BASE_URL) is not None

    async def fetch_files(
        self,
        source: RepositorySource,
        instance: Optional[ProviderInstance] = None,
    ) -> ImportResult:
        base_url = instance.base_url if instance else DEFAULT_BASE_URL
        token = instance.token if instance else None

        parsed = parse_github_url(source.url, base_url)
        if parsed is None:
            return ImportResult(success=False, error=f"Invalid GitHub URL: {source.url}")

        logger.debug("Importing %s from %s as %s", source.name, base_url, parsed.type)
        if parsed.type == "gist":
            return await self._fetch_from_gist(parsed, base_url, token)
        if parsed.type == "raw":
            return await self._fetch_from_raw_url(parsed, base_url, token)
        return await self._fetch_from_repository(parsed, base_url, token)

    # ------------------------------------------------------------------ #
    # Source kinds
    # ------------------------------------------------------------------ #

    async def _fetch_from_repository(
        self,
        parsed: ParsedGitHubUrl,
        base_url: str,
        token: Optional[str],
    ) -> ImportResult:
        if parsed.path and parsed.path.endswith(".json"):
            validated = await self.fetch_and_validate(
                _filename_of(parsed.path), build_raw_url(parsed, base_url), token
            )
            return ImportResult(success=True, files=[validated])

        contents, api_error = await self._list_directory(
            build_contents_api_url(parsed, base_url), token
        )

        if contents is not None:
            json_files = [
                item
                for item in contents
                if item.get("type") == "file" and str(item.get("name", "")).endswith(".json")
            ]
            files = await asyncio.gather(
                *(
                    self.fetch_and_validate(
                        item["name"],
                        item.get("download_url")
                        or build_raw_url(parsed, base_url, item.get("path")),
                        token,
                    )
                    for item in json_files
                )
            )
            return ImportResult(success=True, files=list(files))

        # The listing failed; a path may still be a file reachable by raw URL.
        if parsed.path:
            validated = await self.fetch_and_validate(
                _filename_of(parsed.path), build_raw_url(parsed, base_url), token
            )
            if validated.is_valid:
                return ImportResult(success=True, files=[validated])
            return ImportResult(success=False, error=api_error or validated.error)

        return ImportResult(success=False, error=api_error or REPOSITORY_ACCESS_ERROR)

    async def _fetch_from_gist(
        self,
        parsed: ParsedGitHubUrl,
        base_url: str,
        token: Optional[str],
    ) -> ImportResult:
        api_url = build_gist_api_url(parsed.gist_id or "", base_url)
        try:
            result = await self._fetcher.fetch(
                api_url, token=token, cache_ttl=self._api_ttl, headers=create_api_headers()
            )
        except FETCH_ERRORS as exc:
            return ImportResult(success=False, error=get_error_message(exc))

        gist = result.data
        if not isinstance(gist, dict):
            return ImportResult(success=False, error=GIST_ACCESS_ERROR)

        json_files = [
            f
            for f in (gist.get("files") or {}).values()
            if isinstance(f, dict) and str(f.get("filename", "")).endswith(".json")
        ]
        if parsed.filename:
            json_files = [f for f in json_files if f.get("filename") == parsed.filename]

        files = await asyncio.gather(*(self._validate_gist_file(f, token) for f in json_files))
        return ImportResult(success=True, files=list(files))

    async def _fetch_from_raw_url(
        self,
        parsed: ParsedGitHubUrl,
        base_url: str,
        token: Optional[str],
    ) -> ImportResult:
        validated = await self.fetch_and_validate(
            _filename_of(parsed.path), build_raw_url(parsed, base_url), token
        )
        return ImportResult(success=True, files=[validated])

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    async def _list_directory(
        self,
        api_url: str,
        token: Optional[str],
    ) -> tuple[Optional[list[dict[str, Any]]], Optional[str]]:
        """Return ``(entries, None)`` or ``(None, user-facing error)``."""
        try:
            result = await self._fetcher.fetch(
                api_url, token=token, cache_ttl=self._api_ttl, headers=create_api_headers()
            )
        except FETCH_ERRORS as exc:
            return None, get_error_message(exc)

        data = result.data
        # The contents API answers with an object instead of a list for a file.
        entries = data if isinstance(data, list) else [data]
        return [e for e in entries if isinstance(e, dict)], None

    async def _validate_gist_file(
        self, gist_file: dict[str, Any], token: Optional[str]
    ) -> ValidatedFile:
        filename = str(gist_file.get("filename", DEFAULT_FILENAME))
        raw_url = str(gist_file.get("raw_url", ""))
        content = gist_file.get("content")

        if content and not gist_file.get("truncated"):
            try:
                data = json.loads(content)
            except json.JSONDecodeError as exc:
                logger.debug("Gist file %s is not valid JSON: %s", filename, exc)
                return ValidatedFile(
                    filename=filename, raw_url=raw_url, is_valid=False, error="Invalid JSON"
                )
            return self.validated_file(filename, raw_url, data)

        return await self.fetch_and_validate(filename, raw_url, token)
