"""Canonical Pydantic models shared across all repofetch modules.

Every other module imports its data shapes from here.  The models fall into
three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`ProviderInstance`
    and :class:`GlobalConfig`.

**Preset models** -- the schema imported preset files must satisfy:
    :class:`PresetParameter` and :class:`Preset`.  Field names follow the
    JSON files (``primitiveType``, ``createdAt``) through aliases.

**Repository models** -- inputs and outputs of the providers:
    :class:`RepositorySource`, :class:`ParsedGitHubUrl`,
    :class:`ValidatedFile` and :class:`ImportResult`.

All models use Pydantic v2.
"""

from __future__ import annotations

import enum
import secrets
import string
import time
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

API_CACHE_TTL_SECONDS = 5 * 60.0
CONTENT_CACHE_TTL_SECONDS = 10 * 60.0

_ID_ALPHABET = string.digits + string.ascii_lowercase


def generate_repository_id() -> str:
    """Return a fresh identifier such as ``repo-1718000000000-k3x9a1b``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(7))
    return f"repo-{int(time.time() * 1000)}-{suffix}"


# --- Configuration ---


class CacheConfig(BaseModel):
    """In-memory response cache settings."""

    max_entries: int = Field(default=100, ge=1, description="Maximum number of cached responses")
    default_ttl_seconds: float = Field(
        default=300.0, description="TTL used when a caller does not pick one"
    )
    api_ttl_seconds: float = Field(
        default=API_CACHE_TTL_SECONDS, description="TTL for API listings (directories, gists)"
    )
    content_ttl_seconds: float = Field(
        default=CONTENT_CACHE_TTL_SECONDS, description="TTL for raw file contents"
    )


class RequestConfig(BaseModel):
    """Outbound HTTP request settings."""

    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    user_agent: str = Field(default="repofetch", description="User-Agent header value")


class ProviderType(str, enum.Enum):
    """Kinds of repository sources presets can be imported from."""

    GITHUB = "github"
    URL = "url"


class ProviderInstance(BaseModel):
    """A configured provider, e.g. github.com or a GitHub Enterprise server.

    The token is optional and only needed for private repositories or a
    higher rate limit.  It is excluded from ``repr`` so it never shows up
    in tracebacks or debug output.
    """

    id: str = Field(default_factory=generate_repository_id)
    name: str
    type: ProviderType = ProviderType.GITHUB
    base_url: str = Field(default="github.com", description="Host name, e.g. git.example.com")
    token: Optional[str] = Field(default=None, repr=False)


class GlobalConfig(BaseModel):
    """Top-level user configuration.

    Loaded from and saved to ``config.json`` by
    :func:`~repofetch.config.load_global_config` and
    :func:`~repofetch.config.save_global_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    providers: list[ProviderInstance] = Field(default_factory=list)

    def find_provider(self, base_url: str) -> Optional[ProviderInstance]:
        """Return the first configured provider whose ``base_url`` matches."""
        wanted = base_url.lower()
        for provider in self.providers:
            if provider.base_url.lower() == wanted:
                return provider
        return None


# --- Presets ---


class ParameterType(str, enum.Enum):
    QUERY_PARAM = "queryParam"
    COOKIE = "cookie"
    LOCAL_STORAGE = "localStorage"


class PrimitiveType(str, enum.Enum):
    STRING = "string"
    BOOLEAN = "boolean"


class PresetParameter(BaseModel):
    """A single parameter applied by a preset."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    type: ParameterType
    key: str
    value: str
    description: Optional[str] = None
    primitive_type: Optional[PrimitiveType] = Field(default=None, alias="primitiveType")


class Preset(BaseModel):
    """A named set of parameters."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(min_length=1)
    description: Optional[str] = None
    parameters: list[PresetParameter]
    created_at: Optional[float] = Field(default=None, alias="createdAt")
    updated_at: Optional[float] = Field(default=None, alias="updatedAt")


# --- Repository sources and results ---


class RepositorySource(BaseModel):
    """A repository, gist or JSON file URL to import presets from."""

    id: str = Field(default_factory=generate_repository_id)
    name: str
    url: str
    type: ProviderType = ProviderType.GITHUB
    provider_instance_id: Optional[str] = None


class ParsedGitHubUrl(BaseModel):
    """Components extracted from a GitHub, Gist or raw content URL."""

    type: Literal["repo", "gist", "raw", "blob"]
    owner: str
    repo: Optional[str] = None
    gist_id: Optional[str] = None
    ref: Optional[str] = None
    path: Optional[str] = None
    filename: Optional[str] = None


class ValidatedFile(BaseModel):
    """A JSON file found in a source, with its schema validation outcome."""

    filename: str
    raw_url: str
    is_valid: bool
    presets: Optional[list[Preset]] = None
    error: Optional[str] = None


class ImportResult(BaseModel):
    """Outcome of fetching every preset file from one source."""

    success: bool
    files: list[ValidatedFile] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def valid_files(self) -> list[ValidatedFile]:
        return [f for f in self.files if f.is_valid]
