"""CLI entry point: ghinsight.

Subcommands:
    ghinsight verify                       # Check that the token is usable
    ghinsight analytics                    # Full refresh, print the snapshot as JSON
    ghinsight search QUERY [options]       # Full refresh, then query the entity set
    ghinsight history FILE [--clear]       # Show or clear saved recent searches
"""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from ghinsight.context import DashboardContext
from ghinsight.core.config import Settings, resolve_token
from ghinsight.core.logging import setup_logging
from ghinsight.engines.fetcher.github_client import verify_token
from ghinsight.engines.search.engine import category_counts
from ghinsight.engines.search.history import QueryHistory
from ghinsight.engines.search.models import FilterCondition
from ghinsight.exceptions import AuthError
from ghinsight.runner import RefreshRunner

_CATEGORIES = ["all", "repositories", "pull-requests", "issues", "organizations", "starred"]
_SORTS = ["relevance", "newest", "oldest", "stars", "activity"]
_GROUPS = ["none", "repository", "type", "owner", "language"]
_TIME_RANGES = ["all", "day", "week", "month", "year"]


def parse_filter(raw: str) -> FilterCondition:
    """Parse ``field:operator:value``.

    ``between`` takes ``start..end``; ``within`` takes ``N`` or ``N:unit``.
    """
    parts = raw.split(":", 2)
    if len(parts) < 3:
        raise click.BadParameter(f"expected field:operator:value, got {raw!r}")
    field, operator, value = parts

    parsed: object = value
    if operator == "between":
        start, sep, end = value.partition("..")
        if not sep:
            raise click.BadParameter(f"between expects start..end, got {value!r}")
        parsed = {"start": start or None, "end": end or None}
    elif operator == "within" and ":" in value:
        amount, unit = value.split(":", 1)
        parsed = {"amount": amount, "unit": unit}

    try:
        return FilterCondition(field=field, operator=operator, value=parsed)
    except ValidationError as e:
        raise click.BadParameter(f"invalid filter {raw!r}: {e.errors()[0]['msg']}") from e


def _require_token(obj: dict) -> str:
    token = obj.get("token")
    if not token:
        raise click.UsageError("no token: pass --token or set GHINSIGHT_TOKEN / GITHUB_TOKEN")
    return token


def _refresh(ctx: DashboardContext) -> None:
    try:
        asyncio.run(RefreshRunner().run(ctx))
    except AuthError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option("--token", default=None, help="GitHub token (default: $GHINSIGHT_TOKEN, $GITHUB_TOKEN)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, token: str | None) -> None:
    """ghinsight: GitHub activity analytics and unified search."""
    setup_logging("DEBUG" if verbose else None)
    ctx.obj = {"token": resolve_token(token), "settings": Settings.from_env()}


@main.command("verify")
@click.pass_obj
def verify(obj: dict) -> None:
    """Check that the token is accepted by the API."""
    token = _require_token(obj)
    if not asyncio.run(verify_token(token, obj["settings"])):
        click.echo("Token is invalid or expired.", err=True)
        sys.exit(1)
    click.echo("Token is valid.")


@main.command("analytics")
@click.pass_obj
def analytics(obj: dict) -> None:
    """Fetch everything and print the analytics snapshot as JSON."""
    dashboard = DashboardContext(token=_require_token(obj), settings=obj["settings"])
    _refresh(dashboard)
    if dashboard.analytics is not None:
        click.echo(dashboard.analytics.model_dump_json(indent=2))


@main.command("search")
@click.argument("query", default="")
@click.option("--category", type=click.Choice(_CATEGORIES), default="all")
@click.option("--sort", "sort_key", type=click.Choice(_SORTS), default="relevance")
@click.option("--group-by", type=click.Choice(_GROUPS), default="none")
@click.option("--time-range", type=click.Choice(_TIME_RANGES), default="all")
@click.option(
    "--filter",
    "filters",
    multiple=True,
    help="field:operator:value, repeatable (AND-combined)",
)
@click.option(
    "--history-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Load and save recent searches here",
)
@click.pass_obj
def search_cmd(
    obj: dict,
    query: str,
    category: str,
    sort_key: str,
    group_by: str,
    time_range: str,
    filters: tuple[str, ...],
    history_file: Path | None,
) -> None:
    """Fetch everything, then search repositories, PRs, issues, orgs, and stars."""
    conditions = [parse_filter(f) for f in filters]
    token = _require_token(obj)

    history = None
    if history_file is not None and history_file.exists():
        history = history_file.read_text()
    dashboard = DashboardContext.restore(token, history=history, settings=obj["settings"])
    _refresh(dashboard)

    results = RefreshRunner().search(
        dashboard,
        query,
        conditions,
        category,  # type: ignore[arg-type]
        sort_key,  # type: ignore[arg-type]
        group_by,  # type: ignore[arg-type]
        time_range=time_range,  # type: ignore[arg-type]
    )
    if history_file is not None:
        history_file.write_text(dashboard.query_history.dumps())

    payload = {
        "query": query,
        "stats": category_counts(results),
        "results": [r.model_dump(mode="json") for r in results],
    }
    click.echo(json.dumps(payload, indent=2))


@main.command("history")
@click.argument("history_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--clear", is_flag=True, help="Forget every recent search")
def history_cmd(history_file: Path, clear: bool) -> None:
    """Show (or clear) the recent searches stored in HISTORY_FILE."""
    history = QueryHistory.loads(history_file.read_text())
    if clear:
        history.clear()
        history_file.write_text(history.dumps())
        click.echo("History cleared.")
        return
    for entry in history:
        click.echo(entry)
