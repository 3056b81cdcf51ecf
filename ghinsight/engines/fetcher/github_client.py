"""Async GitHub API client with page-number pagination, rate-limit handling, and retries."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from typing import Any

import httpx
import structlog

from ghinsight.core.config import Settings
from ghinsight.engines.fetcher.models import RateLimitStatus
from ghinsight.exceptions import AuthError, GhInsightError, RateLimitError, TransientError

log = structlog.get_logger("ghinsight.engine")


class GitHubClient:
    """Thin async wrapper around the GitHub REST API for one credential."""

    def __init__(self, token: str, settings: Settings | None = None) -> None:
        self._settings = settings or Settings()
        self._client = httpx.AsyncClient(
            base_url=self._settings.api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": self._settings.api_version,
            },
            timeout=self._settings.timeout,
        )
        self.rate_limit_status = RateLimitStatus()

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def request(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Authenticated GET, returns parsed JSON.

        Raises :class:`AuthError` on 401 without retrying,
        :class:`RateLimitError` when the quota stays exhausted, and
        :class:`TransientError` for anything else that outlives the retries.
        """
        return await self._request_with_retry(path, params)

    async def verify_token(self) -> bool:
        """Cheap authenticated call; ``True`` iff the credential works."""
        try:
            await self.request("/user")
        except GhInsightError as exc:
            log.warning("github.token_invalid", error=str(exc))
            return False
        return True

    async def fetch_all_pages(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every page of a page-numbered endpoint, in page order.

        Stops at the first page with no records.  Search endpoints
        (``{"total_count": ..., "items": [...]}``) are unwrapped; any other
        object body is treated as a single record.  A page that fails with a
        rate-limit or transient error after the first page ends pagination and
        the records accumulated so far are returned; a failing first page
        re-raises so the caller can record the resource as failed.
        :class:`AuthError` always propagates.
        """
        base_params = dict(params or {})
        base_params.setdefault("per_page", self._settings.page_size)
        records: list[dict[str, Any]] = []
        page = 1

        while True:
            try:
                data = await self.request(path, {**base_params, "page": page})
            except (RateLimitError, TransientError) as exc:
                if page == 1:
                    raise
                log.warning(
                    "github.pagination_aborted",
                    path=path,
                    page=page,
                    collected=len(records),
                    error=str(exc),
                )
                return records

            if isinstance(data, list):
                batch = data
            elif isinstance(data, dict) and "items" in data:
                batch = data.get("items") or []
            elif isinstance(data, dict):
                records.append(data)
                return records
            else:
                return records

            if not batch:
                break
            records.extend(batch)

            if isinstance(data, dict):
                total = data.get("total_count")
                if isinstance(total, int) and len(records) >= total:
                    break

            await self._pause_if_low_quota()
            page += 1

        return records

    @staticmethod
    def rate_limit_wait(
        headers: Mapping[str, str],
        now: float | None = None,
        *,
        default: float = 60.0,
    ) -> float:
        """Seconds to wait before retrying a rate-limited request.

        ``Retry-After`` wins when present and positive.  Otherwise the wait
        is ``max(reset - now, 0)``; a zero result or a missing/unparseable
        reset header falls back to *default*.  Never negative.
        """
        retry_after = _parse_header_int(headers.get("Retry-After"))
        if retry_after is not None and retry_after > 0:
            return float(retry_after)

        reset_ts = _parse_header_int(headers.get("X-RateLimit-Reset"))
        if reset_ts is not None:
            if now is None:
                now = time.time()
            wait = max(reset_ts - now, 0.0)
            if wait > 0:
                return wait
        return max(default, 0.0)

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        path: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """GET with exponential backoff; rate-limit waits count as attempts."""
        max_retries = self._settings.max_retries
        last_exc: Exception | None = None

        for attempt in range(max_retries):
            is_last = attempt == max_retries - 1
            try:
                resp = await self._client.get(path, params=params)
            except httpx.TimeoutException as exc:
                log.warning(
                    "github.timeout",
                    path=path,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                )
                last_exc = exc
            except httpx.TransportError as exc:
                log.warning(
                    "github.network_error",
                    path=path,
                    error=str(exc),
                    attempt=attempt + 1,
                    max_retries=max_retries,
                )
                last_exc = exc
            else:
                self._record_rate_limit(resp)

                if resp.status_code == 401:
                    log.error("github.unauthorized", path=path)
                    raise AuthError(f"GET {path}: credential rejected (401)")

                # 403/429 with exhausted quota → wait for the reset and retry
                if resp.status_code in (403, 429) and self._is_rate_limited(resp):
                    wait = self.rate_limit_wait(
                        resp.headers, default=self._settings.rate_limit_wait
                    )
                    log.warning(
                        "github.rate_limit",
                        path=path,
                        wait_seconds=wait,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                    )
                    last_exc = RateLimitError(wait)
                    if not is_last:
                        await asyncio.sleep(wait)
                    continue

                if resp.is_success:
                    try:
                        return resp.json()
                    except ValueError as exc:
                        log.warning(
                            "github.bad_json",
                            path=path,
                            attempt=attempt + 1,
                            max_retries=max_retries,
                        )
                        last_exc = exc
                else:
                    log.warning(
                        "github.http_error",
                        path=path,
                        status=resp.status_code,
                        attempt=attempt + 1,
                        max_retries=max_retries,
                    )
                    last_exc = httpx.HTTPStatusError(
                        f"{resp.status_code}", request=resp.request, response=resp
                    )

            if not is_last:
                delay = self._settings.retry_base_delay * (2**attempt)
                await asyncio.sleep(delay)

        if isinstance(last_exc, RateLimitError):
            raise last_exc
        status_code = None
        if isinstance(last_exc, httpx.HTTPStatusError):
            status_code = last_exc.response.status_code
        raise TransientError(
            f"GET {path} failed after {max_retries} attempts: {last_exc}",
            status_code=status_code,
        ) from last_exc

    async def _pause_if_low_quota(self) -> None:
        """Short pause between pages once the remaining quota runs low."""
        remaining = self.rate_limit_status.remaining
        if remaining is not None and remaining < self._settings.low_quota_threshold:
            log.info(
                "github.low_quota_pause",
                remaining=remaining,
                pause_seconds=self._settings.low_quota_pause,
            )
            await asyncio.sleep(self._settings.low_quota_pause)

    def _record_rate_limit(self, response: httpx.Response) -> None:
        remaining = _parse_header_int(response.headers.get("X-RateLimit-Remaining"))
        if remaining is None:
            return
        self.rate_limit_status = RateLimitStatus(
            remaining=remaining,
            limit=_parse_header_int(response.headers.get("X-RateLimit-Limit")),
            reset=_parse_header_int(response.headers.get("X-RateLimit-Reset")),
        )

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403/429 response is due to rate limiting."""
        remaining = _parse_header_int(response.headers.get("X-RateLimit-Remaining"))
        if remaining is not None:
            return remaining == 0
        # GitHub also uses Retry-After header for secondary rate limits
        return "Retry-After" in response.headers


async def verify_token(token: str, settings: Settings | None = None) -> bool:
    """Open a short-lived client and check whether *token* is usable."""
    async with GitHubClient(token, settings) as client:
        return await client.verify_token()


def _parse_header_int(value: str | None) -> int | None:
    """Safely parse an integer header value."""
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None
