"""Cache commands -- inspect and clear the response cache.

Provides the ``fetchcache cache`` sub-command group. Entries are listed
without loading their payloads; ``clear`` removes everything at once.
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from fetchcache.commands import get_fetch_context
from fetchcache.output import format_response, info, print_table, success, suggest


cache_app = typer.Typer(no_args_is_help=True)


def _format_timestamp(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


@cache_app.command("list")
def cache_list(ctx: typer.Context) -> None:
    """List cached entries.

    Example::

        fetchcache cache list
        fetchcache --json cache list
    """
    context = get_fetch_context(ctx)
    rows = []
    for entry in sorted(context.store.list(), key=lambda e: e.key):
        etag = entry.metadata.get("etag") or ""
        rows.append([entry.key, str(entry.size), _format_timestamp(entry.written_at), etag])
    if not rows:
        info("Cache is empty.")
        suggest("Populate it with: fetchcache fetch URL")
        return
    print_table(["key", "size", "written_at", "etag"], rows, title="Cached entries")


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove every cached entry.

    Asks for confirmation unless ``--force`` is active.

    Example::

        fetchcache cache clear
        fetchcache --force cache clear
    """
    root = ctx.find_root()
    force = root.obj.get("force", False) if root.obj else False
    if not force:
        confirmed = typer.confirm("Remove all cached responses?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    get_fetch_context(ctx).clear_cache()
    success("Cache cleared.")


@cache_app.command("stats")
def cache_stats(ctx: typer.Context) -> None:
    """Show cache backend, entry count, and size."""
    context = get_fetch_context(ctx)
    format_response(context.store.stats())
