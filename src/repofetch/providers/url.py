"""Plain URL provider: a single public JSON file, fetched without credentials."""

from __future__ import annotations

import logging
import posixpath
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from repofetch.models import ImportResult, ProviderInstance, ProviderType, RepositorySource
from repofetch.providers.base import RepositoryProvider

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Accept": "application/json"}


def is_json_url(url: str) -> bool:
    """Return whether *url* ends in ``.json`` or asks for ``format=json``."""
    parts = urlsplit(url)
    if parts.path.endswith(".json"):
        return True
    return parse_qs(parts.query).get("format") == ["json"]


def filename_from_url(url: str) -> str:
    """Last path segment when it is a ``.json`` file, else ``presets.json``."""
    name = posixpath.basename(urlsplit(url).path)
    return name if name.endswith(".json") else "presets.json"


class UrlProvider(RepositoryProvider):
    """Import presets from a direct http(s) link to a JSON file."""

    type = ProviderType.URL

    def validate_url(self, url: str, base_url: Optional[str] = None) -> bool:
        try:
            parts = urlsplit(url)
        except ValueError:
            return False
        return parts.scheme in ("http", "https") and bool(parts.netloc)

    async def fetch_files(
        self,
        source: RepositorySource,
        instance: Optional[ProviderInstance] = None,
    ) -> ImportResult:
        if not self.validate_url(source.url):
            return ImportResult(success=False, error=f"Invalid URL: {source.url}")

        if not is_json_url(source.url):
            logger.debug("%s does not look like a JSON file; fetching anyway", source.url)

        validated = await self.fetch_and_validate(
            filename_from_url(source.url), source.url, headers=_JSON_HEADERS
        )
        return ImportResult(success=True, files=[validated])
