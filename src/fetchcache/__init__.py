"""fetchcache -- a persistent fetch-through cache for paginated REST APIs.

This package keeps textual HTTP responses on local disk, revalidates them
with ``ETag``/``If-None-Match`` once their local TTL has passed, and walks
multi-page list endpoints page by page through the same cache.

Typical usage::

    from fetchcache import FetchContext, GlobalConfig

    with FetchContext(GlobalConfig()) as ctx:
        text, headers = ctx.fetcher.fetch(url, ttl)
        items = ctx.fetcher.paginate(url, ttl).consume()

Modules:
    fetcher: The hit/stale/miss state machine (:class:`Fetcher`).
    pagination: :class:`PaginatedList`, the page iterator.
    cache: Cache store interface plus disk and in-memory backends.
    client: HTTP transport and response header projection.
    context: Explicit composition of store, transport, and fetcher.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr output system with Rich support.
"""

__version__ = "0.3.0"

from fetchcache.context import FetchContext  # noqa: E402
from fetchcache.fetcher import Fetcher, TextAndHeaders  # noqa: E402
from fetchcache.models import GlobalConfig  # noqa: E402
from fetchcache.pagination import PaginatedList  # noqa: E402

__all__ = [
    "FetchContext",
    "Fetcher",
    "GlobalConfig",
    "PaginatedList",
    "TextAndHeaders",
    "__version__",
]
