"""Repository providers that import preset files through the response cache.

* :class:`GitHubProvider` -- repositories, GitHub Enterprise and Gists.
* :class:`UrlProvider` -- a direct link to one JSON file.

:func:`import_presets` picks the provider for a source and runs it.

Example::

    async with CachedFetcher() as fetcher:
        result = await import_presets(source, fetcher, instance=github_com)
"""

from __future__ import annotations

from typing import Optional

from repofetch.client import CachedFetcher
from repofetch.models import (
    CacheConfig,
    ImportResult,
    ProviderInstance,
    ProviderType,
    RepositorySource,
)
from repofetch.providers.base import RepositoryProvider
from repofetch.providers.github import GitHubProvider, parse_github_url
from repofetch.providers.url import UrlProvider

_PROVIDERS: dict[ProviderType, type[RepositoryProvider]] = {
    ProviderType.GITHUB: GitHubProvider,
    ProviderType.URL: UrlProvider,
}


def get_provider(
    provider_type: ProviderType,
    fetcher: CachedFetcher,
    cache_config: Optional[CacheConfig] = None,
) -> RepositoryProvider:
    """Instantiate the provider registered for *provider_type*."""
    return _PROVIDERS[ProviderType(provider_type)](fetcher, cache_config)


async def import_presets(
    source: RepositorySource,
    fetcher: CachedFetcher,
    instance: Optional[ProviderInstance] = None,
    cache_config: Optional[CacheConfig] = None,
) -> ImportResult:
    """Fetch and validate every preset file of *source*."""
    provider = get_provider(source.type, fetcher, cache_config)
    return await provider.fetch_files(source, instance)


__all__ = [
    "GitHubProvider",
    "RepositoryProvider",
    "UrlProvider",
    "get_provider",
    "import_presets",
    "parse_github_url",
]
