"""Normalizer engine — raw GitHub payloads to canonical entities, no I/O.

Every ``normalize_*`` function maps records one at a time.  A record that
fails to map is logged, appended to the optional *errors* side channel as a
:class:`RecordMappingError`, and left out; the batch always completes.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any, TypeVar

import structlog

from ghinsight.core.dates import WEEKDAYS, month_label, parse_datetime, utcnow
from ghinsight.engines.fetcher.models import RawDataBundle
from ghinsight.engines.normalizer.models import (
    ContributionSummary,
    Issue,
    IssueState,
    NormalizedEntities,
    Organization,
    Profile,
    PullRequest,
    PullRequestState,
    Repository,
    StarredRepository,
)
from ghinsight.exceptions import RecordMappingError

log = structlog.get_logger("ghinsight.engine")

T = TypeVar("T")

EVENT_LABELS: dict[str, str] = {
    "PushEvent": "Code Push",
    "PullRequestEvent": "Pull Request",
    "IssuesEvent": "Issue",
    "IssueCommentEvent": "Issue Comment",
    "CreateEvent": "Create Branch/Tag",
    "DeleteEvent": "Delete Branch/Tag",
    "WatchEvent": "Watch Repository",
    "ForkEvent": "Fork Repository",
    "CommitCommentEvent": "Commit Comment",
    "ReleaseEvent": "Release",
    "PublicEvent": "Repository Made Public",
    "PullRequestReviewEvent": "PR Review",
    "PullRequestReviewCommentEvent": "PR Review Comment",
    "GollumEvent": "Wiki Update",
    "MemberEvent": "Member Added",
}

# Errors a malformed payload can raise while being mapped.
_MAPPING_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


# ── public ────────────────────────────────────────────────────────────────


def normalize_pull_requests(
    raw: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
    now: datetime | None = None,
) -> list[PullRequest]:
    """Map raw PR records (search ``items`` or pulls payloads)."""
    now = now or utcnow()
    return _map_records("pull_request", raw, lambda r: _pull_request(r, now), errors)


def normalize_issues(
    raw: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
    now: datetime | None = None,
) -> list[Issue]:
    """Map raw issue records.

    Records carrying a ``pull_request`` marker are PRs seen through the
    issues API and are excluded without being counted as failures.
    """
    now = now or utcnow()
    return _map_records("issue", raw, lambda r: _issue(r, now), errors)


def normalize_repositories(
    raw: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
) -> list[Repository]:
    return _map_records("repository", raw, _repository, errors)


def normalize_organizations(
    raw: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
) -> list[Organization]:
    return _map_records("organization", raw, _organization, errors)


def normalize_starred(
    raw: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
    kind: str = "starred",
) -> list[StarredRepository]:
    return _map_records(kind, raw, _starred, errors)


def normalize_profile(
    raw: dict[str, Any] | None,
    *,
    errors: list[RecordMappingError] | None = None,
) -> Profile | None:
    """Map the ``/user`` payload; ``None`` when it is empty, has no login, or is malformed."""
    if not raw or not raw.get("login"):
        return None
    try:
        return _profile(raw)
    except _MAPPING_ERRORS as exc:
        _record_failure("profile", 0, exc, errors)
        return None


def summarize_contributions(
    events: Iterable[Any],
    *,
    errors: list[RecordMappingError] | None = None,
) -> ContributionSummary:
    """Fold the activity-event stream once into a :class:`ContributionSummary`.

    Push events contribute their inner commit count to the month of the
    event, not one per event.
    """
    event_counts: Counter[str] = Counter()
    monthly_commits: Counter[str] = Counter()
    repo_activity: Counter[str] = Counter()

    for index, event in enumerate(events):
        try:
            label, repo, month, commits = _contribution(event)
        except _MAPPING_ERRORS as exc:
            _record_failure("event", index, exc, errors)
            continue
        event_counts[label] += 1
        if repo:
            repo_activity[repo] += 1
        if month and commits:
            monthly_commits[month] += commits

    return ContributionSummary(
        event_counts=dict(event_counts),
        monthly_commits=dict(monthly_commits),
        repo_activity=dict(repo_activity),
    )


def normalize_bundle(bundle: RawDataBundle, *, now: datetime | None = None) -> NormalizedEntities:
    """Build the complete entity set for one refresh in a single pass."""
    now = now or utcnow()
    errors: list[RecordMappingError] = []
    entities = NormalizedEntities(
        profile=normalize_profile(bundle.profile, errors=errors),
        pull_requests=tuple(normalize_pull_requests(bundle.pull_requests, errors=errors, now=now)),
        issues=tuple(normalize_issues(bundle.issues, errors=errors, now=now)),
        repositories=tuple(normalize_repositories(bundle.repositories, errors=errors)),
        organizations=tuple(normalize_organizations(bundle.organizations, errors=errors)),
        starred=tuple(normalize_starred(bundle.starred, errors=errors)),
        watched=tuple(normalize_starred(bundle.watched, errors=errors, kind="watched")),
        followers=_logins(bundle.followers),
        following=_logins(bundle.following),
        contributions=summarize_contributions(bundle.events, errors=errors),
        errors=tuple(errors),
    )
    log.info("normalize.complete", mapping_errors=len(errors), **entities.counts())
    return entities


# ── record mappers ────────────────────────────────────────────────────────


def _pull_request(raw: Any, now: datetime) -> PullRequest:
    _require_object(raw)
    created = _require_datetime(raw, "created_at")
    closed = parse_datetime(raw.get("closed_at"))
    marker = raw.get("pull_request") or {}
    merged = parse_datetime(raw.get("merged_at") or marker.get("merged_at"))

    state: PullRequestState
    if merged is not None:
        state = "Merged"
    elif raw.get("state") == "closed":
        state = "Closed"
    else:
        state = "Open"

    return PullRequest(
        number=int(_require(raw, "number")),
        repository=_repository_name(raw),
        title=str(_require(raw, "title")),
        state=state,
        days_open=_days_between(created, closed or now),
        created_at=created,
        hour_of_day=created.hour,
        day_of_week=WEEKDAYS[created.weekday()],
        updated_at=parse_datetime(raw.get("updated_at")),
        closed_at=closed,
        merged_at=merged,
        labels=_flatten_labels(raw.get("labels")),
        comments=_int(raw.get("comments")),
        url=raw.get("html_url"),
        author=(raw.get("user") or {}).get("login"),
    )


def _issue(raw: Any, now: datetime) -> Issue | None:
    _require_object(raw)
    if raw.get("pull_request"):
        return None
    created = _require_datetime(raw, "created_at")
    closed = parse_datetime(raw.get("closed_at"))

    raw_state = raw.get("state")
    state: IssueState
    if raw_state == "open":
        state = "Open"
    elif raw_state == "closed":
        state = "Closed"
    else:
        state = "Other"

    return Issue(
        number=int(_require(raw, "number")),
        repository=_repository_name(raw),
        title=str(_require(raw, "title")),
        state=state,
        days_open=_days_between(created, closed or now),
        created_at=created,
        hour_of_day=created.hour,
        day_of_week=WEEKDAYS[created.weekday()],
        updated_at=parse_datetime(raw.get("updated_at")),
        closed_at=closed,
        labels=_flatten_labels(raw.get("labels")),
        comments=_int(raw.get("comments")),
        url=raw.get("html_url"),
        author=(raw.get("user") or {}).get("login"),
    )


def _repository(raw: Any) -> Repository:
    _require_object(raw)
    full_name = str(_require(raw, "full_name"))
    return Repository(
        name=full_name,
        owner=_owner_login(raw, full_name),
        description=raw.get("description"),
        language=raw.get("language"),
        stars=_int(raw.get("stargazers_count")),
        forks=_int(raw.get("forks_count")),
        watchers=_int(raw.get("watchers_count")),
        is_private=bool(raw.get("private")),
        is_archived=bool(raw.get("archived")),
        is_fork=bool(raw.get("fork")),
        created_at=parse_datetime(raw.get("created_at")),
        updated_at=parse_datetime(raw.get("updated_at")),
        topics=tuple(str(t) for t in raw.get("topics") or ()),
        size=_int(raw.get("size")),
        url=raw.get("html_url"),
    )


def _organization(raw: Any) -> Organization:
    _require_object(raw)
    login = str(_require(raw, "login"))
    return Organization(
        login=login,
        name=raw.get("name") or login,
        description=raw.get("description"),
        url=raw.get("html_url") or f"https://github.com/{login}",
        avatar_url=raw.get("avatar_url"),
    )


def _starred(raw: Any) -> StarredRepository:
    _require_object(raw)
    # /user/starred with the star+json media type nests the repo.
    if "repo" in raw and isinstance(raw["repo"], dict):
        raw = raw["repo"]
    full_name = str(_require(raw, "full_name"))
    return StarredRepository(
        name=full_name,
        owner=_owner_login(raw, full_name),
        description=raw.get("description"),
        language=raw.get("language"),
        stars=_int(raw.get("stargazers_count")),
        forks=_int(raw.get("forks_count")),
        url=raw.get("html_url"),
        topics=tuple(str(t) for t in raw.get("topics") or ()),
        updated_at=parse_datetime(raw.get("updated_at")),
    )


def _profile(raw: dict[str, Any]) -> Profile:
    login = str(raw["login"])
    return Profile(
        login=login,
        name=raw.get("name") or login,
        url=raw.get("html_url"),
        avatar_url=raw.get("avatar_url"),
        bio=raw.get("bio"),
        public_repos=_int(raw.get("public_repos")),
        followers=_int(raw.get("followers")),
        following=_int(raw.get("following")),
        created_at=parse_datetime(raw.get("created_at")),
    )


def _contribution(event: Any) -> tuple[str, str | None, str | None, int]:
    """(label, repo, month, commits) for one event, raising on bad payloads."""
    _require_object(event)
    event_type = event.get("type")
    label = EVENT_LABELS.get(event_type, event_type) if event_type else "Unknown"
    repo = (event.get("repo") or {}).get("name")
    if repo is not None and not isinstance(repo, str):
        raise TypeError(f"repo name is {type(repo).__name__}, not str")

    month: str | None = None
    commits = 0
    if event_type == "PushEvent":
        created = _require_datetime(event, "created_at")
        payload = event.get("payload") or {}
        commit_list = payload.get("commits")
        if isinstance(commit_list, list):
            commits = len(commit_list)
        else:
            commits = _int(payload.get("size"))
        month = month_label(created)
    return str(label), repo, month, commits


# ── helpers ───────────────────────────────────────────────────────────────


def _map_records(
    kind: str,
    raw: Iterable[Any],
    mapper: Callable[[Any], T | None],
    errors: list[RecordMappingError] | None,
) -> list[T]:
    """Map-with-catch: failures go to *errors*, ``None`` results are skipped."""
    out: list[T] = []
    for index, record in enumerate(raw):
        try:
            mapped = mapper(record)
        except _MAPPING_ERRORS as exc:
            _record_failure(kind, index, exc, errors)
            continue
        if mapped is not None:
            out.append(mapped)
    return out


def _record_failure(
    kind: str,
    index: int,
    exc: Exception,
    errors: list[RecordMappingError] | None,
) -> None:
    err = RecordMappingError(kind, index, f"{type(exc).__name__}: {exc}")
    log.warning("normalize.record_failed", kind=kind, index=index, reason=err.reason)
    if errors is not None:
        errors.append(err)


def _require_object(raw: Any) -> None:
    if not isinstance(raw, dict):
        raise TypeError(f"expected an object, got {type(raw).__name__}")


def _require(raw: dict[str, Any], key: str) -> Any:
    value = raw.get(key)
    if value is None:
        raise KeyError(key)
    return value


def _require_datetime(raw: dict[str, Any], key: str) -> datetime:
    value = parse_datetime(_require(raw, key))
    if value is None:
        raise ValueError(f"unparseable {key}: {raw.get(key)!r}")
    return value


def _days_between(start: datetime, end: datetime) -> float:
    return round((end - start).total_seconds() / 86400, 1)


def _flatten_labels(labels: Any) -> str:
    names = []
    for label in labels or ():
        name = label.get("name") if isinstance(label, dict) else label
        if name:
            names.append(str(name))
    return ", ".join(names)


def _repository_name(raw: dict[str, Any]) -> str:
    """``owner/name`` of the repository a PR or issue belongs to."""
    repository_url = raw.get("repository_url")
    if repository_url and "/repos/" in repository_url:
        return repository_url.split("/repos/", 1)[1]
    base_repo = ((raw.get("base") or {}).get("repo") or {}).get("full_name")
    if base_repo:
        return base_repo
    html_url = raw.get("html_url") or ""
    parts = html_url.split("github.com/", 1)
    if len(parts) == 2:
        segments = parts[1].split("/")
        if len(segments) >= 2:
            return f"{segments[0]}/{segments[1]}"
    return ""


def _owner_login(raw: dict[str, Any], full_name: str) -> str:
    owner = (raw.get("owner") or {}).get("login")
    return owner or full_name.split("/", 1)[0]


def _logins(raw: Iterable[Any]) -> tuple[str, ...]:
    return tuple(r["login"] for r in raw if isinstance(r, dict) and r.get("login"))


def _int(value: Any) -> int:
    if value is None:
        return 0
    return int(value)
