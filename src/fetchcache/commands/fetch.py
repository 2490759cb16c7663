"""Fetch commands -- read URLs through the cache.

``fetchcache fetch URL`` prints one response body, served from the cache
when it is fresh and revalidated with ``If-None-Match`` when it is stale.
``fetchcache paginate URL`` follows ``Link: rel="next"`` headers across a
paginated JSON list endpoint and prints every item.

The freshness window comes from the root ``--ttl`` option, the
``FETCHCACHE_TTL`` environment variable, or ``cache.default_ttl_seconds``.
"""

from __future__ import annotations

import json
from typing import Any

import typer

from fetchcache.commands import get_fetch_context
from fetchcache.output import OutputFormat, format_response, get_output, print_table


def _body(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def fetch_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="Absolute URL to fetch."),
) -> None:
    """Fetch a URL through the cache and print its body.

    With ``--json`` the body is wrapped together with the cached headers.

    Example::

        fetchcache fetch https://openmensa.org/api/v2/canteens/63
        fetchcache --json --ttl 0 fetch https://openmensa.org/api/v2/canteens/63
    """
    context = get_fetch_context(ctx)
    text, headers = context.fetcher.fetch(url, context.default_ttl)
    if get_output().format == OutputFormat.JSON:
        format_response({
            "url": url,
            "headers": headers.model_dump(mode="json"),
            "body": _body(text),
        })
    else:
        format_response(text)


def paginate_command(
    ctx: typer.Context,
    url: str = typer.Argument(help="URL of the first page."),
    pages: bool = typer.Option(
        False, "--pages", help="Print the size of each page instead of the items."
    ),
) -> None:
    """Fetch every page of a paginated JSON list and print all items.

    Pages are requested until the ``x-current-page`` header reaches
    ``x-total-pages``, a page comes back empty, or no ``rel="next"`` link
    is present.

    Example::

        fetchcache paginate https://openmensa.org/api/v2/canteens
        fetchcache paginate https://openmensa.org/api/v2/canteens --pages
    """
    context = get_fetch_context(ctx)
    batches = context.fetcher.paginate(url, context.default_ttl)
    if pages:
        rows = [[str(number), str(len(batch))] for number, batch in enumerate(batches, start=1)]
        print_table(["page", "items"], rows, title="Pages")
        return
    format_response(batches.consume())
