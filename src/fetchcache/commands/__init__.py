"""Built-in CLI sub-commands for fetchcache.

* :mod:`~fetchcache.commands.fetch` -- ``fetch`` and ``paginate``, which
  read URLs through the cache.
* :mod:`~fetchcache.commands.cache` -- list, inspect, and clear the cache.
* :mod:`~fetchcache.commands.config` -- view and modify global settings.

Commands obtain the shared :class:`~fetchcache.context.FetchContext` via
:func:`get_fetch_context` rather than building their own.
"""

from __future__ import annotations

import typer

from fetchcache.context import FetchContext


def get_fetch_context(ctx: typer.Context) -> FetchContext:
    """Return the :class:`FetchContext` for this invocation, creating it on first use.

    The context is built from the options stored by
    :func:`~fetchcache.app.main_callback` and closed when the root command
    finishes.

    Raises:
        ConfigError: If the configuration cannot be resolved.
    """
    from fetchcache.config import resolve_config

    root = ctx.find_root()
    root.ensure_object(dict)
    obj = root.obj
    existing = obj.get("context")
    if existing is not None:
        return existing

    config = resolve_config(
        cli_ttl=obj.get("ttl"),
        cli_cache_dir=obj.get("cache_dir"),
        cli_backend=obj.get("backend"),
    )
    context = FetchContext(config, http_transport=obj.get("http_transport"))
    obj["context"] = context
    root.call_on_close(context.close)
    return context
