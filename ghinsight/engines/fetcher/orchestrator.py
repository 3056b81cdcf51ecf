"""Fetch orchestrator — one credential in, one raw data bundle out."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any

import structlog

from ghinsight.core.config import Settings
from ghinsight.engines.fetcher.github_client import GitHubClient
from ghinsight.engines.fetcher.models import RawDataBundle
from ghinsight.exceptions import AuthError, GhInsightError, PartialResourceFailure

log = structlog.get_logger("ghinsight.engine")

_PR_QUERY = "author:@me is:pr"
_ISSUE_QUERY = "author:@me is:issue"


async def fetch_all(
    token: str,
    *,
    client: GitHubClient | None = None,
    settings: Settings | None = None,
) -> RawDataBundle:
    """Fetch every resource the dashboard needs for *token*.

    Verifies the credential first and raises :class:`AuthError` when it is
    rejected.  The profile is fetched next; the remaining resources are
    fetched concurrently and each one degrades to ``[]`` on its own failure,
    recorded in :attr:`RawDataBundle.failures`.
    """
    if client is None:
        async with GitHubClient(token, settings) as owned:
            return await _fetch_with(owned)
    return await _fetch_with(client)


async def _fetch_with(client: GitHubClient) -> RawDataBundle:
    if not await client.verify_token():
        raise AuthError("invalid or expired credential")

    bundle = RawDataBundle()
    try:
        profile = await client.request("/user")
    except AuthError:
        raise
    except GhInsightError as exc:
        log.error("fetch.resource_failed", resource="profile", error=str(exc))
        bundle.failures.append(PartialResourceFailure("profile", exc))
        profile = {}
    bundle.profile = profile if isinstance(profile, dict) else {}
    login = bundle.login

    tasks: dict[str, Awaitable[list[dict[str, Any]]]] = {
        "pull_requests": client.fetch_all_pages(
            "/search/issues", {"q": _PR_QUERY, "sort": "created", "order": "desc"}
        ),
        "issues": client.fetch_all_pages(
            "/search/issues", {"q": _ISSUE_QUERY, "sort": "created", "order": "desc"}
        ),
        "repositories": client.fetch_all_pages("/user/repos", {"sort": "updated"}),
        "organizations": client.fetch_all_pages("/user/orgs"),
        "starred": client.fetch_all_pages("/user/starred", {"sort": "updated"}),
        "watched": client.fetch_all_pages("/user/subscriptions"),
        "followers": client.fetch_all_pages("/user/followers"),
        "following": client.fetch_all_pages("/user/following"),
    }
    if login:
        tasks["events"] = client.fetch_all_pages(f"/users/{login}/events")

    names = list(tasks)
    results = await asyncio.gather(*tasks.values(), return_exceptions=True)

    for name, result in zip(names, results, strict=True):
        if isinstance(result, AuthError):
            raise result
        if isinstance(result, BaseException):
            log.error(
                "fetch.resource_failed",
                resource=name,
                error=f"{type(result).__name__}: {result}",
            )
            bundle.failures.append(PartialResourceFailure(name, result))
            continue
        setattr(bundle, name, list(result))

    log.info(
        "fetch.complete",
        login=login,
        failures=[f.resource for f in bundle.failures],
        **bundle.counts(),
    )
    return bundle
