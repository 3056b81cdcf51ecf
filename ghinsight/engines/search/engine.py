"""Unified query engine — match, score, sort, and group normalized entities.

The whole pipeline is recomputed on every call; there is no index to
maintain between queries.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

import structlog

from ghinsight.core.dates import parse_datetime, utcnow
from ghinsight.engines.normalizer.models import (
    Issue,
    NormalizedEntities,
    Organization,
    PullRequest,
    Repository,
    StarredRepository,
)
from ghinsight.engines.search.models import (
    RESULT_TYPES,
    Category,
    FilterCondition,
    GroupHeader,
    GroupKey,
    SearchResultItem,
    SortKey,
    TimeRange,
)

log = structlog.get_logger("ghinsight.engine")

_FIELD_ALIASES = {
    "name": "title",
    "created": "created_at",
    "updated": "updated_at",
    "user": "author",
}

_TIME_RANGE_DAYS = {"day": 1, "week": 7, "month": 30, "year": 365}
_WITHIN_UNIT_DAYS = {"days": 1, "weeks": 7, "months": 30, "years": 365}

_UNKNOWN_GROUP = {
    "repository": "Unknown Repository",
    "type": "Unknown Type",
    "owner": "Unknown Owner",
    "language": "Unknown Language",
}


def search(
    entities: NormalizedEntities,
    query: str = "",
    filters: Sequence[FilterCondition] = (),
    category: Category = "all",
    sort: SortKey = "relevance",
    group_by: GroupKey = "none",
    *,
    time_range: TimeRange = "all",
    default_owner: str | None = None,
    now: datetime | None = None,
) -> list[SearchResultItem | GroupHeader]:
    """Run match → score → sort → group over *entities*.

    *default_owner* is the group name used for records that carry no owner
    of their own (PRs and issues), normally the acting user's login.
    """
    now = now or utcnow()
    needle = query.strip().casefold()
    owner = default_owner or entities.login

    results: list[SearchResultItem] = []
    for item in project(entities):
        if category != "all" and item.type != category:
            continue
        if not matches_query(item, needle):
            continue
        if not all(matches_condition(item, cond, now=now) for cond in filters):
            continue
        if not _within_time_range(item, time_range, now):
            continue
        results.append(item.model_copy(update={"score": relevance(item, needle, now=now)}))

    ordered = sort_results(results, sort)
    log.debug(
        "search.executed",
        query=needle,
        category=category,
        sort=sort,
        group_by=group_by,
        filters=len(filters),
        results=len(ordered),
    )
    return group_results(ordered, group_by, default_owner=owner)


def category_counts(items: Iterable[SearchResultItem | GroupHeader]) -> dict[str, int]:
    """Number of results per type, every type present, plus ``"all"``."""
    counts = dict.fromkeys(RESULT_TYPES, 0)
    for item in items:
        if isinstance(item, SearchResultItem):
            counts[item.type] += 1
    return {"all": sum(counts.values()), **counts}


# ── projection ────────────────────────────────────────────────────────────


def project(entities: NormalizedEntities) -> list[SearchResultItem]:
    """Every searchable entity as a :class:`SearchResultItem`, in a fixed order."""
    items: list[SearchResultItem] = []
    items.extend(_from_repository(r) for r in entities.repositories)
    items.extend(_from_pull_request(pr) for pr in entities.pull_requests)
    items.extend(_from_issue(i) for i in entities.issues)
    items.extend(_from_organization(o) for o in entities.organizations)
    items.extend(_from_starred(s) for s in entities.starred)
    return items


def _from_repository(repo: Repository) -> SearchResultItem:
    return SearchResultItem(
        id=f"repo-{repo.name}",
        type="repositories",
        title=repo.name,
        description=repo.description,
        language=repo.language,
        repository=repo.name,
        owner=repo.owner,
        stars=repo.stars,
        forks=repo.forks,
        topics=list(repo.topics),
        is_private=repo.is_private,
        is_fork=repo.is_fork,
        is_archived=repo.is_archived,
        url=repo.url,
        created_at=repo.created_at,
        updated_at=repo.updated_at,
    )


def _from_pull_request(pr: PullRequest) -> SearchResultItem:
    return SearchResultItem(
        id=f"pr-{pr.repository}#{pr.number}",
        type="pull-requests",
        title=pr.title,
        labels=pr.labels or None,
        repository=pr.repository or None,
        author=pr.author,
        state=pr.state,
        number=pr.number,
        comments=pr.comments,
        url=pr.url,
        created_at=pr.created_at,
        updated_at=pr.updated_at,
    )


def _from_issue(issue: Issue) -> SearchResultItem:
    return SearchResultItem(
        id=f"issue-{issue.repository}#{issue.number}",
        type="issues",
        title=issue.title,
        labels=issue.labels or None,
        repository=issue.repository or None,
        author=issue.author,
        state=issue.state,
        number=issue.number,
        comments=issue.comments,
        url=issue.url,
        created_at=issue.created_at,
        updated_at=issue.updated_at,
    )


def _from_organization(org: Organization) -> SearchResultItem:
    return SearchResultItem(
        id=f"org-{org.login}",
        type="organizations",
        title=org.name,
        description=org.description,
        owner=org.login,
        url=org.url,
    )


def _from_starred(repo: StarredRepository) -> SearchResultItem:
    return SearchResultItem(
        id=f"starred-{repo.name}",
        type="starred",
        title=repo.name,
        description=repo.description,
        language=repo.language,
        repository=repo.name,
        owner=repo.owner,
        stars=repo.stars,
        forks=repo.forks,
        topics=list(repo.topics),
        url=repo.url,
        updated_at=repo.updated_at,
    )


# ── matching ──────────────────────────────────────────────────────────────


def matches_query(item: SearchResultItem, needle: str) -> bool:
    """Case-folded substring match; an empty query matches everything."""
    if not needle:
        return True
    haystacks = (
        item.title,
        item.description,
        item.language,
        item.labels,
        item.repository,
        item.owner,
    )
    return any(h and needle in h.casefold() for h in haystacks)


def matches_condition(
    item: SearchResultItem,
    condition: FilterCondition,
    *,
    now: datetime | None = None,
) -> bool:
    """Evaluate one filter; an absent or null field passes vacuously."""
    value = field_value(item, condition.field)
    if value is None:
        return True

    op = condition.operator
    target = condition.value

    if op == "contains":
        needle = _fold(target)
        return any(needle in text for text in _texts(value))
    if op == "eq":
        return any(_loose_equal(v, target) for v in _values(value))
    if op == "not":
        return not any(_loose_equal(v, target) for v in _values(value))
    if op == "starts":
        return any(text.startswith(_fold(target)) for text in _texts(value))
    if op == "ends":
        return any(text.endswith(_fold(target)) for text in _texts(value))
    if op in ("gt", "lt", "gte", "lte"):
        return _compare(value, target, op)
    if op == "before":
        left, right = _as_datetime(value), _as_datetime(target)
        return left is not None and right is not None and left < right
    if op == "after":
        left, right = _as_datetime(value), _as_datetime(target)
        return left is not None and right is not None and left > right
    if op == "between":
        return _between(value, target)
    if op == "within":
        return _within(value, target, now or utcnow())
    if op == "is":
        return _fold(value) == _fold(target)
    return False


def field_value(item: SearchResultItem, field: str) -> Any:
    name = _FIELD_ALIASES.get(field, field)
    if name not in SearchResultItem.model_fields:
        return None
    return getattr(item, name)


# ── scoring & ordering ────────────────────────────────────────────────────


def relevance(item: SearchResultItem, needle: str, *, now: datetime | None = None) -> float:
    """Relevance heuristic for *needle* (already case-folded)."""
    if not needle:
        return 1.0

    score = 0.0
    title = item.title.casefold()
    if needle in title:
        score += 10
        if title == needle:
            score += 5
        if title.startswith(needle):
            score += 3
    if item.description and needle in item.description.casefold():
        score += 5
    if item.language and needle in item.language.casefold():
        score += 3
    if item.stars:
        score += min(item.stars / 100, 5)
    if item.updated_at is not None:
        days = ((now or utcnow()) - item.updated_at).total_seconds() / 86400
        score += max(0.0, min(3.0, 3 - days / 30))
    return score


def sort_results(items: Sequence[SearchResultItem], sort: SortKey) -> list[SearchResultItem]:
    """Stable sort; missing timestamps always sort last."""
    if sort == "relevance":
        return sorted(items, key=lambda i: i.score, reverse=True)
    if sort == "newest":
        dated = [i for i in items if i.updated_at is not None]
        undated = [i for i in items if i.updated_at is None]
        return sorted(dated, key=lambda i: i.updated_at, reverse=True) + undated
    if sort == "oldest":
        dated = [i for i in items if i.updated_at is not None]
        undated = [i for i in items if i.updated_at is None]
        return sorted(dated, key=lambda i: i.updated_at) + undated
    if sort == "stars":
        return sorted(items, key=lambda i: i.stars or 0, reverse=True)
    if sort == "activity":
        return sorted(items, key=lambda i: (i.stars or 0) + 2 * (i.forks or 0), reverse=True)
    raise ValueError(f"unknown sort: {sort!r}")


def group_results(
    items: Sequence[SearchResultItem],
    group_by: GroupKey,
    *,
    default_owner: str | None = None,
) -> list[SearchResultItem | GroupHeader]:
    """Header-then-members per group, groups in first-appearance order."""
    if group_by == "none":
        return list(items)
    if group_by not in _UNKNOWN_GROUP:
        raise ValueError(f"unknown group_by: {group_by!r}")

    groups: dict[str, list[SearchResultItem]] = {}
    for item in items:
        groups.setdefault(_group_key(item, group_by, default_owner), []).append(item)

    out: list[SearchResultItem | GroupHeader] = []
    for name, members in groups.items():
        out.append(GroupHeader(id=f"group-{name}", group_name=name, count=len(members)))
        out.extend(members)
    return out


# ── helpers ───────────────────────────────────────────────────────────────


def _group_key(item: SearchResultItem, group_by: str, default_owner: str | None) -> str:
    if group_by == "repository":
        key = item.repository
    elif group_by == "type":
        key = item.type
    elif group_by == "owner":
        key = item.owner or default_owner
    else:
        key = item.language
    return key or _UNKNOWN_GROUP[group_by]


def _within_time_range(item: SearchResultItem, time_range: TimeRange, now: datetime) -> bool:
    if time_range == "all" or item.updated_at is None:
        return True
    days = _TIME_RANGE_DAYS[time_range]
    return now - item.updated_at <= timedelta(days=days)


def _fold(value: Any) -> str:
    return str(value).strip().casefold()


def _values(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else [value]


def _texts(value: Any) -> list[str]:
    return [_fold(v) for v in _values(value)]


def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _loose_equal(left: Any, right: Any) -> bool:
    a, b = _number(left), _number(right)
    if a is not None and b is not None:
        return a == b
    return _fold(left) == _fold(right)


def _compare(value: Any, target: Any, op: str) -> bool:
    a, b = _number(value), _number(target)
    if a is None or b is None:
        return False
    if op == "gt":
        return a > b
    if op == "lt":
        return a < b
    if op == "gte":
        return a >= b
    return a <= b


def _as_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return parse_datetime(value.isoformat())
    if isinstance(value, str):
        return parse_datetime(value.strip())
    return None


def _range_bounds(target: Any) -> tuple[Any, Any]:
    if isinstance(target, dict):
        return target.get("start"), target.get("end")
    if isinstance(target, (list, tuple)) and len(target) == 2:
        return target[0], target[1]
    return None, None


def _between(value: Any, target: Any) -> bool:
    """Inclusive range check; dates for timestamp fields, numbers otherwise."""
    start, end = _range_bounds(target)
    if start is None and end is None:
        return False
    if isinstance(value, datetime):
        left = _as_datetime(value)
        lo = _as_datetime(start) if start is not None else None
        hi = _as_datetime(end) if end is not None else None
        if (start is not None and lo is None) or (end is not None and hi is None):
            return False
    else:
        left = _number(value)
        lo = _number(start) if start is not None else None
        hi = _number(end) if end is not None else None
        if left is None or (start is not None and lo is None) or (end is not None and hi is None):
            return False
    if lo is not None and left < lo:
        return False
    if hi is not None and left > hi:
        return False
    return True


def _within(value: Any, target: Any, now: datetime) -> bool:
    """``updated within the last N days``; target is N or ``{amount, unit}``."""
    moment = _as_datetime(value)
    if moment is None:
        return False
    if isinstance(target, dict):
        amount = _number(target.get("amount"))
        unit_days = _WITHIN_UNIT_DAYS.get(str(target.get("unit") or "days"))
    else:
        amount = _number(target)
        unit_days = 1
    if amount is None or unit_days is None:
        return False
    return now - moment <= timedelta(days=amount * unit_days)
