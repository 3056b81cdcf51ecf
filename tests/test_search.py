"""Tests for the unified query engine, search history, and debouncer."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from conftest import NOW, raw_issue, raw_pr, raw_repo
from pydantic import ValidationError

from ghinsight.core.config import Settings
from ghinsight.engines.normalizer import (
    NormalizedEntities,
    normalize_bundle,
    normalize_issues,
    normalize_organizations,
    normalize_profile,
    normalize_pull_requests,
    normalize_repositories,
)
from ghinsight.engines.search import (
    FilterCondition,
    GroupHeader,
    QueryHistory,
    SearchDebouncer,
    SearchResultItem,
    category_counts,
    matches_condition,
    relevance,
    search,
)


def _entities(*, repos=(), prs=(), issues=(), orgs=(), login=None):
    return NormalizedEntities(
        profile=normalize_profile({"login": login}) if login else None,
        repositories=tuple(normalize_repositories(list(repos))),
        pull_requests=tuple(normalize_pull_requests(list(prs), now=NOW)),
        issues=tuple(normalize_issues(list(issues), now=NOW)),
        organizations=tuple(normalize_organizations(list(orgs))),
    )


def _repo(name, **extra):
    extra.setdefault("description", None)
    extra.setdefault("updated_at", None)
    return raw_repo(name, **extra)


def _item(**kwargs):
    kwargs.setdefault("id", "x")
    kwargs.setdefault("type", "repositories")
    kwargs.setdefault("title", "thing")
    return SearchResultItem(**kwargs)


def _titles(results):
    return [r.title for r in results if isinstance(r, SearchResultItem)]


# ── TestRelevance ─────────────────────────────────────────────────────────


class TestRelevance:
    def test_exact_then_prefix_then_description(self):
        entities = _entities(
            repos=[
                _repo("o/zzz", description="uses foo internally", language=None),
                _repo("foo-bar", language=None),
                _repo("foo", language=None),
            ]
        )
        # full_name is the title; owner-less names keep the raw string
        results = search(entities, "foo", now=NOW)
        assert _titles(results) == ["foo", "foo-bar", "o/zzz"]
        scores = [r.score for r in results]
        assert scores[0] > scores[1] > scores[2]

    def test_score_components(self):
        item = _item(title="Foo", description="a foo lib", language="foolang", stars=1000)
        # 10 + 5 + 3 (title) + 5 (description) + 3 (language) + 5 (stars, capped)
        assert relevance(item, "foo", now=NOW) == 31

    def test_recency_bonus_decays(self):
        fresh = _item(title="x", updated_at=NOW)
        month_old = _item(title="x", updated_at=NOW - timedelta(days=30))
        stale = _item(title="x", updated_at=NOW - timedelta(days=200))
        assert relevance(fresh, "zzz", now=NOW) == 3
        assert relevance(month_old, "zzz", now=NOW) == 2
        assert relevance(stale, "zzz", now=NOW) == 0

    def test_recency_bonus_is_continuous(self):
        item = _item(title="x", updated_at=NOW - timedelta(days=15, hours=12))
        assert relevance(item, "zzz", now=NOW) == pytest.approx(3 - 15.5 / 30)

    def test_empty_query_scores_one(self):
        assert relevance(_item(stars=10_000), "", now=NOW) == 1

    def test_ties_keep_insertion_order(self):
        entities = _entities(repos=[_repo("o/foo-1"), _repo("o/foo-2"), _repo("o/foo-3")])
        assert _titles(search(entities, "foo", now=NOW)) == ["o/foo-1", "o/foo-2", "o/foo-3"]


# ── TestMatching ──────────────────────────────────────────────────────────


class TestMatching:
    def test_case_folded_substring(self):
        entities = _entities(repos=[_repo("o/HTTPX-tools"), _repo("o/other")])
        assert _titles(search(entities, "httpx", now=NOW)) == ["o/HTTPX-tools"]

    def test_matches_labels(self):
        entities = _entities(issues=[raw_issue(1), raw_issue(2, labels=[{"name": "docs"}])])
        results = search(entities, "docs", now=NOW)
        assert [r.number for r in results] == [2]

    def test_empty_query_matches_everything(self):
        entities = _entities(repos=[_repo("o/a")], prs=[raw_pr(1)], orgs=[{"login": "acme"}])
        assert len(search(entities, "", now=NOW)) == 3

    def test_category_filter(self):
        entities = _entities(repos=[_repo("o/a")], prs=[raw_pr(1)], issues=[raw_issue(2)])
        results = search(entities, "", category="pull-requests", now=NOW)
        assert [r.type for r in results] == ["pull-requests"]

    def test_time_range(self):
        entities = _entities(
            repos=[
                _repo("o/recent", updated_at="2024-06-14T00:00:00Z"),
                _repo("o/old", updated_at="2024-01-01T00:00:00Z"),
                _repo("o/undated"),
            ]
        )
        results = search(entities, "", time_range="week", now=NOW)
        assert _titles(results) == ["o/recent", "o/undated"]


# ── TestFilters ───────────────────────────────────────────────────────────


class TestFilters:
    def test_absent_field_passes_vacuously(self):
        item = _item(language=None)
        cond = FilterCondition(field="language", operator="eq", value="Python")
        assert matches_condition(item, cond) is True

    def test_unknown_field_passes(self):
        cond = FilterCondition(field="nonexistent", operator="eq", value="x")
        assert matches_condition(_item(), cond) is True

    def test_present_non_matching_value_excludes(self):
        cond = FilterCondition(field="language", operator="eq", value="python")
        assert matches_condition(_item(language="Python"), cond) is True
        assert matches_condition(_item(language="Go"), cond) is False

    def test_contains_and_aliases(self):
        cond = FilterCondition(field="name", operator="contains", value="LIB")
        assert matches_condition(_item(title="my-lib"), cond) is True
        assert matches_condition(_item(title="app"), cond) is False

    def test_numeric_comparisons(self):
        item = _item(stars=50)
        assert matches_condition(item, FilterCondition(field="stars", operator="gt", value="10"))
        assert not matches_condition(item, FilterCondition(field="stars", operator="lt", value=10))
        assert matches_condition(item, FilterCondition(field="stars", operator="gte", value=50))
        assert matches_condition(item, FilterCondition(field="stars", operator="lte", value=50))
        assert matches_condition(item, FilterCondition(field="stars", operator="eq", value="50"))
        assert not matches_condition(item, FilterCondition(field="stars", operator="gt", value="many"))

    def test_date_comparisons(self):
        item = _item(updated_at=datetime(2024, 3, 1, tzinfo=timezone.utc))
        before = FilterCondition(field="updated", operator="before", value="2024-04-01")
        after = FilterCondition(field="updated", operator="after", value="2024-04-01")
        garbage = FilterCondition(field="updated", operator="after", value="whenever")
        assert matches_condition(item, before)
        assert not matches_condition(item, after)
        assert not matches_condition(item, garbage)

    def test_between(self):
        item = _item(stars=20, created_at=datetime(2024, 3, 1, tzinfo=timezone.utc))
        stars = FilterCondition(field="stars", operator="between", value={"start": 10, "end": 30})
        dates = FilterCondition(
            field="created", operator="between", value={"start": "2024-01-01", "end": "2024-02-01"}
        )
        assert matches_condition(item, stars)
        assert not matches_condition(item, dates)

    def test_within(self):
        item = _item(updated_at=NOW - timedelta(days=10))
        assert matches_condition(
            item, FilterCondition(field="updated", operator="within", value=14), now=NOW
        )
        assert not matches_condition(
            item,
            FilterCondition(field="updated", operator="within", value={"amount": 1, "unit": "weeks"}),
            now=NOW,
        )

    def test_not_starts_ends_is(self):
        item = _item(title="octo/alpha", state="Open", is_fork=False)
        assert matches_condition(item, FilterCondition(field="title", operator="starts", value="octo"))
        assert matches_condition(item, FilterCondition(field="title", operator="ends", value="ALPHA"))
        assert matches_condition(item, FilterCondition(field="state", operator="not", value="closed"))
        assert matches_condition(item, FilterCondition(field="state", operator="is", value="open"))
        assert matches_condition(item, FilterCondition(field="is_fork", operator="is", value=False))

    def test_list_fields(self):
        item = _item(topics=["cli", "github-api"])
        assert matches_condition(item, FilterCondition(field="topics", operator="eq", value="cli"))
        assert matches_condition(item, FilterCondition(field="topics", operator="contains", value="api"))
        assert not matches_condition(item, FilterCondition(field="topics", operator="eq", value="web"))

    def test_filters_are_and_combined(self):
        entities = _entities(
            repos=[
                _repo("o/a", language="Python", stars=100),
                _repo("o/b", language="Python", stars=1),
                _repo("o/c", language="Go", stars=100),
            ]
        )
        filters = [
            FilterCondition(field="language", operator="eq", value="Python"),
            FilterCondition(field="stars", operator="gt", value=10),
        ]
        assert _titles(search(entities, "", filters, now=NOW)) == ["o/a"]

    def test_invalid_operator_rejected(self):
        with pytest.raises(ValidationError):
            FilterCondition(field="stars", operator="approximately", value=1)


# ── TestSort ──────────────────────────────────────────────────────────────


class TestSort:
    def _entities(self):
        return _entities(
            repos=[
                _repo("o/a", stars=5, forks_count=10, updated_at="2024-03-01T00:00:00Z"),
                _repo("o/b", stars=20, forks_count=0, updated_at="2024-05-01T00:00:00Z"),
                _repo("o/c", stars=1, forks_count=1),
                _repo("o/d", stars=10, forks_count=1, updated_at="2024-01-01T00:00:00Z"),
            ]
        )

    def test_newest_missing_last(self):
        results = search(self._entities(), "", sort="newest", now=NOW)
        assert _titles(results) == ["o/b", "o/a", "o/d", "o/c"]

    def test_oldest_missing_last(self):
        results = search(self._entities(), "", sort="oldest", now=NOW)
        assert _titles(results) == ["o/d", "o/a", "o/b", "o/c"]

    def test_stars(self):
        results = search(self._entities(), "", sort="stars", now=NOW)
        assert _titles(results) == ["o/b", "o/d", "o/a", "o/c"]

    def test_activity(self):
        # a: 5 + 20 = 25, b: 20, d: 12, c: 3
        results = search(self._entities(), "", sort="activity", now=NOW)
        assert _titles(results) == ["o/a", "o/b", "o/d", "o/c"]


# ── TestGrouping ──────────────────────────────────────────────────────────


class TestGrouping:
    def test_two_repositories_five_records(self):
        entities = _entities(
            prs=[
                raw_pr(1, repo="octo/alpha"),
                raw_pr(2, repo="octo/beta"),
                raw_pr(3, repo="octo/alpha"),
            ],
            issues=[raw_issue(4, repo="octo/beta"), raw_issue(5, repo="octo/alpha")],
        )
        results = search(entities, "", group_by="repository", now=NOW)

        headers = [r for r in results if isinstance(r, GroupHeader)]
        assert len(headers) == 2
        assert sum(h.count for h in headers) == 5
        assert [h.group_name for h in headers] == ["octo/alpha", "octo/beta"]
        assert headers[0].id == "group-octo/alpha"

        # Each header is immediately followed by exactly its members.
        index = 0
        while index < len(results):
            header = results[index]
            assert isinstance(header, GroupHeader)
            members = results[index + 1 : index + 1 + header.count]
            assert all(isinstance(m, SearchResultItem) for m in members)
            assert all(m.repository == header.group_name for m in members)
            index += 1 + header.count

    def test_group_by_owner_falls_back_to_login(self):
        entities = _entities(repos=[_repo("acme/tool")], prs=[raw_pr(1)], login="octocat")
        results = search(entities, "", group_by="owner", now=NOW)
        names = [r.group_name for r in results if isinstance(r, GroupHeader)]
        assert names == ["acme", "octocat"]

    def test_unknown_buckets(self):
        entities = _entities(repos=[_repo("o/a", language=None)], orgs=[{"login": "acme"}])
        results = search(entities, "", group_by="language", now=NOW)
        headers = [r for r in results if isinstance(r, GroupHeader)]
        assert [h.group_name for h in headers] == ["Unknown Language"]
        assert headers[0].count == 2

    def test_group_by_type(self):
        entities = _entities(repos=[_repo("o/a")], issues=[raw_issue(1), raw_issue(2)])
        results = search(entities, "", group_by="type", now=NOW)
        headers = {r.group_name: r.count for r in results if isinstance(r, GroupHeader)}
        assert headers == {"repositories": 1, "issues": 2}

    def test_category_counts(self, raw_bundle):
        entities = normalize_bundle(raw_bundle, now=NOW)
        results = search(entities, "", group_by="type", now=NOW)
        counts = category_counts(results)
        assert counts["pull-requests"] == 3
        assert counts["issues"] == 2
        assert counts["repositories"] == 3
        assert counts["organizations"] == 1
        assert counts["starred"] == 1
        assert counts["all"] == 10


# ── TestQueryHistory ──────────────────────────────────────────────────────


class TestQueryHistory:
    def test_most_recent_first_and_deduplicated(self):
        history = QueryHistory()
        for q in ("alpha", "beta", "alpha", "  ", "gamma"):
            history.add(q)
        assert history.entries == ["gamma", "alpha", "beta"]

    def test_capped_at_ten(self):
        history = QueryHistory()
        for i in range(15):
            history.add(f"q{i}")
        assert len(history) == 10
        assert history.entries[0] == "q14"
        assert history.entries[-1] == "q5"

    def test_round_trip_through_persisted_string(self):
        history = QueryHistory(["b", "a"])
        restored = QueryHistory.loads(history.dumps())
        assert restored.entries == ["b", "a"]

    def test_unreadable_persisted_string(self):
        assert QueryHistory.loads("{not json").entries == []
        assert QueryHistory.loads('{"a": 1}').entries == []
        assert QueryHistory.loads(None).entries == []

    def test_matching_suggestions(self):
        history = QueryHistory(["httpx retry", "structlog", "HTTP cache"])
        assert history.matching("http") == ["httpx retry", "HTTP cache"]


# ── TestSearchDebouncer ───────────────────────────────────────────────────


class TestSearchDebouncer:
    def test_default_delay_from_settings(self):
        assert SearchDebouncer(MagicMock()).delay == Settings().search_debounce
        assert SearchDebouncer(MagicMock(), 0).delay == 0

    @pytest.mark.anyio
    async def test_rapid_submissions_coalesce(self):
        search_fn = MagicMock(side_effect=lambda query: f"results for {query}")
        debouncer = SearchDebouncer(search_fn, delay=0.02)

        for q in ("f", "fo", "foo"):
            debouncer.submit(query=q)
        result = await debouncer.flush()

        search_fn.assert_called_once_with(query="foo")
        assert result == "results for foo"
        assert debouncer.latest == "results for foo"

    @pytest.mark.anyio
    async def test_separate_quiet_periods_each_compute(self):
        seen = []
        debouncer = SearchDebouncer(lambda query: query, delay=0.01, on_result=seen.append)
        debouncer.submit(query="a")
        await debouncer.flush()
        debouncer.submit(query="b")
        await debouncer.flush()
        assert seen == ["a", "b"]

    @pytest.mark.anyio
    async def test_superseded_in_flight_result_discarded(self):
        started = asyncio.Event()
        release = asyncio.Event()
        calls = []

        async def slow_search(query):
            calls.append(query)
            if query == "old":
                started.set()
                await release.wait()
            return query

        applied = []
        debouncer = SearchDebouncer(slow_search, delay=0.01, on_result=applied.append)
        debouncer.submit(query="old")
        await started.wait()

        debouncer.submit(query="new")
        release.set()
        await debouncer.flush()

        assert calls == ["old", "new"]
        assert applied == ["new"]
        assert debouncer.latest == "new"

    @pytest.mark.anyio
    async def test_cancel_drops_pending(self):
        search_fn = MagicMock()
        debouncer = SearchDebouncer(search_fn, delay=0.05)
        debouncer.submit(query="x")
        await debouncer.cancel()
        await asyncio.sleep(0.1)
        search_fn.assert_not_called()
        assert debouncer.pending is False

    @pytest.mark.anyio
    async def test_failing_search_keeps_previous_result(self):
        def flaky(query):
            if query == "bad":
                raise RuntimeError("boom")
            return query

        debouncer = SearchDebouncer(flaky, delay=0.01)
        debouncer.submit(query="good")
        await debouncer.flush()
        debouncer.submit(query="bad")
        assert await debouncer.flush() == "good"
