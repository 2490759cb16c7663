"""Canonical Pydantic models shared across all fetchcache modules.

The models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`OutputConfig`,
    and :class:`GlobalConfig`.

**Cache models** -- what the store persists and hands back:
    :class:`Headers` (the metadata attached to every entry) and
    :class:`CacheEntry` (a metadata-only reference to a stored payload).

Cache models are frozen; a new write always produces a new entry.
"""

from __future__ import annotations

import enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from fetchcache.exceptions import CacheReadError


# --- Cache Models ---


class Headers(BaseModel):
    """The subset of response headers kept as cache metadata.

    Every field is independently optional; ``None`` means "unknown", never
    zero. Produced by :func:`~fetchcache.client.headers.project_headers`.
    """

    model_config = ConfigDict(frozen=True)

    etag: Optional[str] = None
    this_page: Optional[int] = None
    next_page: Optional[str] = None
    last_page: Optional[int] = None


class CacheEntry(BaseModel):
    """Metadata-only reference to one cached payload.

    Returned by :meth:`~fetchcache.cache.base.CacheStore.probe` and
    :meth:`~fetchcache.cache.base.CacheStore.list`. The payload itself is
    only loaded by :meth:`~fetchcache.cache.base.CacheStore.read`, which
    locates it through ``integrity``.

    Attributes:
        key: Normalised URL the entry is stored under.
        integrity: ``sha256-<hexdigest>`` of the payload bytes.
        written_at: Write time in milliseconds since the epoch.
        size: Payload length in bytes.
        metadata: JSON-compatible metadata (a serialised :class:`Headers`).
    """

    model_config = ConfigDict(frozen=True)

    key: str
    integrity: str
    written_at: int
    size: int
    metadata: dict[str, Any] = Field(default_factory=dict)

    def headers(self) -> Headers:
        """Decode :attr:`metadata` into :class:`Headers`.

        Raises:
            CacheReadError: If the stored metadata has an unexpected shape.
                Clearing the cache fixes entries written by older versions.
        """
        try:
            return Headers.model_validate(self.metadata)
        except ValidationError as exc:
            raise CacheReadError(
                f"Invalid headers stored for {self.key}; try clearing the cache: {exc}"
            ) from exc


# --- Configuration Models ---


class CacheBackend(str, enum.Enum):
    """Storage backends a :class:`~fetchcache.context.FetchContext` can build."""

    DISK = "disk"
    MEMORY = "memory"


class CacheConfig(BaseModel):
    """Cache settings stored in :class:`GlobalConfig`."""

    backend: CacheBackend = Field(
        default=CacheBackend.DISK, description="Storage backend: disk, memory"
    )
    directory: Optional[str] = Field(
        default=None, description="Override the XDG cache directory"
    )
    default_ttl_seconds: int = Field(
        default=3600, ge=0, description="Local freshness window in seconds"
    )


class RequestConfig(BaseModel):
    """HTTP settings applied to every request."""

    timeout: float = Field(default=10.0, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    user_agent: str = Field(
        default="fetchcache", description="User-Agent header sent with requests"
    )


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: Literal["auto", "json", "plain", "rich"] = Field(
        default="auto", description="Output format when neither --json nor --plain is given"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/fetchcache/config.json``.

    Loaded and saved by :func:`~fetchcache.config.load_global_config` and
    :func:`~fetchcache.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or CLI
    flags. See :func:`~fetchcache.config.resolve_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
