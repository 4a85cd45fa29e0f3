"""Fetch commands -- ``repofetch get`` and ``repofetch import``.

``get`` performs one cached GET and prints the decoded JSON body.
``import`` resolves a repository source through the matching provider and
prints a table of the preset files it found with their validation outcome.

Both build a fresh :class:`~repofetch.cache.TTLCache` from the configured
:class:`~repofetch.models.CacheConfig`.  Failures are reported with
:func:`~repofetch.exceptions.get_error_message` and mapped to the exit
codes in :mod:`repofetch.exit_codes`.
"""

from __future__ import annotations

import asyncio
from typing import NoReturn, Optional

import httpx
import typer

from repofetch.cache import create_cache
from repofetch.client import CachedFetcher, FetchResult, create_http_client
from repofetch.config import load_global_config, resolve_provider, resolve_token
from repofetch.exceptions import (
    ApiError,
    ImportFailedError,
    InvalidUsageError,
    RepofetchError,
    get_error_message,
    is_rate_limit_error,
)
from repofetch.exit_codes import EXIT_CONNECTION_ERROR, EXIT_GENERIC_FAILURE
from repofetch.models import (
    GlobalConfig,
    ImportResult,
    ProviderInstance,
    ProviderType,
    RepositorySource,
)
from repofetch.output import (
    OutputFormat,
    debug,
    error,
    format_response,
    get_output,
    info,
    print_table,
    success,
    warning,
)
from repofetch.presets import PRESET_SCHEMA_DESCRIPTION
from repofetch.providers import import_presets


def _fail(exc: RepofetchError) -> NoReturn:
    error(exc.message)
    if is_rate_limit_error(exc):
        warning("Rate limited by the upstream API. Retry later or pass --token.")
    raise typer.Exit(code=exc.exit_code)


def _fetcher_for(config: GlobalConfig, client: httpx.AsyncClient) -> CachedFetcher:
    return CachedFetcher(
        cache=create_cache(config.cache),
        client=client,
        default_ttl=config.cache.default_ttl_seconds,
    )


async def _run_get(
    config: GlobalConfig,
    url: str,
    token: Optional[str],
    ttl: Optional[float],
) -> FetchResult:
    async with create_http_client(config.request) as client:
        fetcher = _fetcher_for(config, client)
        result = await fetcher.fetch(url, token=token, cache_ttl=ttl)
        debug(f"Cache stats: {fetcher.cache.stats().model_dump()}")
        return result


async def _run_import(
    config: GlobalConfig,
    source: RepositorySource,
    instance: Optional[ProviderInstance],
) -> ImportResult:
    async with create_http_client(config.request) as client:
        fetcher = _fetcher_for(config, client)
        result = await import_presets(source, fetcher, instance, config.cache)
        debug(f"Cache stats: {fetcher.cache.stats().model_dump()}")
        return result


def get_command(
    url: str = typer.Argument(help="URL of a JSON resource."),
    token: Optional[str] = typer.Option(
        None, "--token", "-t", help="Bearer token (defaults to $REPOFETCH_TOKEN)."
    ),
    ttl: Optional[float] = typer.Option(
        None, "--ttl", help="Cache TTL in seconds for the fetched body."
    ),
) -> None:
    """Fetch a JSON resource through the response cache and print it.

    Example::

        repofetch get https://api.github.com/repos/acme/presets/contents/
        repofetch --json get https://example.com/presets.json
    """
    config = load_global_config()
    try:
        result = asyncio.run(_run_get(config, url, resolve_token(token), ttl))
    except ApiError as exc:
        _fail(exc)
    except httpx.TransportError as exc:
        error(get_error_message(exc))
        raise typer.Exit(code=EXIT_CONNECTION_ERROR)
    except ValueError as exc:
        error(f"Response from {url} is not valid JSON: {exc}")
        raise typer.Exit(code=EXIT_GENERIC_FAILURE)

    debug("Served from cache" if result.from_cache else f"Fetched {url}")
    format_response(result.data)


def import_command(
    url: str = typer.Argument(help="Repository, gist or JSON file URL."),
    source_type: ProviderType = typer.Option(
        ProviderType.GITHUB, "--type", help="Source type: github or url."
    ),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="GitHub host, e.g. git.example.com for GitHub Enterprise."
    ),
    token: Optional[str] = typer.Option(
        None, "--token", "-t", help="Personal access token (defaults to $REPOFETCH_TOKEN)."
    ),
    name: Optional[str] = typer.Option(None, "--name", help="Display name for the source."),
) -> None:
    """Import presets from a repository source and list the files found.

    Exits with code 9 when the source cannot be read or holds no valid
    preset file, and with code 2 when ``--base-url`` is combined with
    ``--type url``.

    Example::

        repofetch import https://github.com/acme/presets/tree/main/presets
        repofetch import https://gist.github.com/acme/abc123 --token ghp_...
        repofetch import https://example.com/presets.json --type url
    """
    if base_url and source_type == ProviderType.URL:
        _fail(InvalidUsageError("--base-url only applies to GitHub sources."))

    config = load_global_config()
    source = RepositorySource(name=name or url, url=url, type=source_type)
    instance = resolve_provider(config, source_type, base_url, token)

    result = asyncio.run(_run_import(config, source, instance))
    if not result.success:
        _fail(ImportFailedError(result.error or f"Could not import {url}"))

    if get_output().format == OutputFormat.JSON:
        format_response(result.model_dump(mode="json", by_alias=True))
    else:
        rows = [
            [
                f.filename,
                "yes" if f.is_valid else "no",
                str(len(f.presets or [])),
                f.error or "",
            ]
            for f in result.files
        ]
        print_table(["File", "Valid", "Presets", "Error"], rows, title=source.name)

    valid = result.valid_files
    if not valid:
        info(PRESET_SCHEMA_DESCRIPTION)
        _fail(ImportFailedError("No valid preset files found."))
    count = sum(len(f.presets or []) for f in valid)
    success(f"Found {count} preset(s) in {len(valid)} file(s).")
    if len(valid) < len(result.files):
        info(f"{len(result.files) - len(valid)} file(s) failed validation.")
