"""Abstract base class for repository providers.

A provider knows how to turn a :class:`~repofetch.models.RepositorySource`
URL into a list of validated preset files.  All network access goes through
a shared :class:`~repofetch.client.CachedFetcher`, so repeated imports of the
same source are served from the in-memory cache.

Concrete providers implement :attr:`type`, :meth:`validate_url` and
:meth:`fetch_files`.  Failures never escape :meth:`fetch_files`; they are
reported through :attr:`ImportResult.error <repofetch.models.ImportResult.error>`
or :attr:`ValidatedFile.error <repofetch.models.ValidatedFile.error>` using
:func:`~repofetch.exceptions.get_error_message`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from repofetch.client import CachedFetcher
from repofetch.exceptions import ApiError, get_error_message
from repofetch.models import (
    CacheConfig,
    ImportResult,
    ProviderInstance,
    ProviderType,
    RepositorySource,
    ValidatedFile,
)
from repofetch.presets import validate_presets

FETCH_ERRORS = (ApiError, httpx.HTTPError, ValueError)
"""Errors a single upstream fetch may raise; anything else is a bug."""


class RepositoryProvider(ABC):
    """Base class every repository provider inherits from.

    Args:
        fetcher: Caching client used for every upstream request.
        cache_config: Supplies the TTLs for API listings and file contents.
    """

    type: ProviderType

    def __init__(self, fetcher: CachedFetcher, cache_config: Optional[CacheConfig] = None) -> None:
        config = cache_config or CacheConfig()
        self._fetcher = fetcher
        self._api_ttl = config.api_ttl_seconds
        self._content_ttl = config.content_ttl_seconds

    @abstractmethod
    def validate_url(self, url: str, base_url: Optional[str] = None) -> bool:
        """Return whether *url* is something this provider can import."""

    @abstractmethod
    async def fetch_files(
        self,
        source: RepositorySource,
        instance: Optional[ProviderInstance] = None,
    ) -> ImportResult:
        """Fetch and validate every preset file *source* points at."""

    # ------------------------------------------------------------------ #
    # Shared helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def validated_file(filename: str, raw_url: str, data: Any) -> ValidatedFile:
        """Validate already-decoded *data* and wrap the outcome."""
        validation = validate_presets(data)
        if validation.success:
            return ValidatedFile(
                filename=filename,
                raw_url=raw_url,
                is_valid=True,
                presets=validation.presets,
            )
        return ValidatedFile(
            filename=filename,
            raw_url=raw_url,
            is_valid=False,
            error=validation.error,
        )

    async def fetch_and_validate(
        self,
        filename: str,
        raw_url: str,
        token: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> ValidatedFile:
        """Download *raw_url* through the cache and validate it as a preset file."""
        try:
            result = await self._fetcher.fetch(
                raw_url,
                token=token,
                cache_ttl=self._content_ttl,
                headers=headers,
            )
        except FETCH_ERRORS as exc:
            return ValidatedFile(
                filename=filename,
                raw_url=raw_url,
                is_valid=False,
                error=get_error_message(exc),
            )
        return self.validated_file(filename, raw_url, result.data)
