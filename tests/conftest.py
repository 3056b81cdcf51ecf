"""Shared pytest fixtures for ghinsight tests — no network access needed."""

from datetime import datetime, timezone

import pytest

from ghinsight.engines.fetcher.models import RawDataBundle

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def now():
    return NOW


def raw_pr(number, *, state="open", merged_at=None, closed_at=None, repo="octo/alpha", **extra):
    """Search-API shaped PR record."""
    record = {
        "number": number,
        "title": f"PR {number}",
        "state": state,
        "created_at": "2024-06-10T09:30:00Z",
        "updated_at": "2024-06-12T10:00:00Z",
        "closed_at": closed_at,
        "repository_url": f"https://api.github.com/repos/{repo}",
        "html_url": f"https://github.com/{repo}/pull/{number}",
        "labels": [],
        "comments": 0,
        "user": {"login": "octocat"},
        "pull_request": {"merged_at": merged_at},
    }
    record.update(extra)
    return record


def raw_issue(number, *, state="open", repo="octo/alpha", **extra):
    record = {
        "number": number,
        "title": f"Issue {number}",
        "state": state,
        "created_at": "2024-05-20T14:00:00Z",
        "updated_at": "2024-05-21T14:00:00Z",
        "closed_at": None,
        "repository_url": f"https://api.github.com/repos/{repo}",
        "html_url": f"https://github.com/{repo}/issues/{number}",
        "labels": [{"name": "bug"}],
        "comments": 2,
        "user": {"login": "octocat"},
    }
    record.update(extra)
    return record


def raw_repo(full_name, *, language="Python", stars=0, fork=False, private=False, **extra):
    owner = full_name.split("/")[0]
    record = {
        "full_name": full_name,
        "owner": {"login": owner},
        "description": f"{full_name} description",
        "language": language,
        "stargazers_count": stars,
        "forks_count": 0,
        "watchers_count": stars,
        "private": private,
        "archived": False,
        "fork": fork,
        "created_at": "2023-01-01T00:00:00Z",
        "updated_at": "2024-06-01T00:00:00Z",
        "topics": [],
        "size": 100,
        "html_url": f"https://github.com/{full_name}",
    }
    record.update(extra)
    return record


@pytest.fixture
def raw_bundle():
    """A small but complete raw bundle for end-to-end pipeline tests."""
    return RawDataBundle(
        profile={"login": "octocat", "name": "The Octocat", "followers": 3, "following": 1},
        pull_requests=[
            raw_pr(1, state="closed", merged_at="2024-06-11T00:00:00Z", closed_at="2024-06-11T00:00:00Z"),
            raw_pr(2, state="open"),
            raw_pr(3, state="closed", closed_at="2024-06-12T00:00:00Z", repo="octo/beta"),
        ],
        issues=[
            raw_issue(10),
            raw_issue(11, state="closed", closed_at="2024-05-25T00:00:00Z"),
            raw_issue(12, pull_request={"url": "https://api.github.com/repos/octo/alpha/pulls/12"}),
        ],
        repositories=[
            raw_repo("octocat/alpha", language="Python", stars=10, topics=["cli", "github"]),
            raw_repo("octocat/beta", language="Go", stars=1, private=True, topics=["cli"]),
            raw_repo("octocat/fork", language="Rust", stars=100, fork=True),
        ],
        organizations=[{"login": "octo-org", "name": "Octo Org", "description": "Org"}],
        starred=[raw_repo("someone/foo-lib", language="JavaScript", stars=500)],
        events=[
            {
                "type": "PushEvent",
                "created_at": "2024-06-01T10:00:00Z",
                "repo": {"name": "octocat/alpha"},
                "payload": {"commits": [{}, {}, {}]},
            },
            {"type": "WatchEvent", "created_at": "2024-06-02T10:00:00Z", "repo": {"name": "x/y"}},
        ],
        followers=[{"login": "a"}, {"login": "b"}, {"login": "c"}],
        following=[{"login": "a"}],
    )
