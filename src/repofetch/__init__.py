"""repofetch -- cached HTTP fetching for importing preset files from repositories.

The package wraps outbound JSON requests in a bounded, TTL-expiring,
least-recently-used cache and translates failed responses into readable
messages.  Providers built on top of it import preset files from GitHub
repositories, Gists and plain URLs.

Typical usage::

    async with CachedFetcher() as fetcher:
        result = await fetcher.fetch("https://api.github.com/repos/acme/presets")

Modules:
    app: Typer application and CLI entry point.
    cache: Bounded TTL/LRU cache.
    client: Caching fetch wrapper around ``httpx``.
    exceptions: ``ApiError`` and the error-message helpers.
    providers: GitHub and URL preset importers.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration storage.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
