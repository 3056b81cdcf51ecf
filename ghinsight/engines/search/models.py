"""Query engine schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, field_validator

ResultType = Literal["repositories", "pull-requests", "issues", "organizations", "starred"]
Category = Literal["all", "repositories", "pull-requests", "issues", "organizations", "starred"]
SortKey = Literal["relevance", "newest", "oldest", "stars", "activity"]
GroupKey = Literal["none", "repository", "type", "owner", "language"]
TimeRange = Literal["all", "day", "week", "month", "year"]
FilterOperator = Literal[
    "contains",
    "eq",
    "not",
    "gt",
    "lt",
    "gte",
    "lte",
    "starts",
    "ends",
    "before",
    "after",
    "between",
    "within",
    "is",
]

RESULT_TYPES: tuple[ResultType, ...] = (
    "repositories",
    "pull-requests",
    "issues",
    "organizations",
    "starred",
)


class FilterCondition(BaseModel):
    """``{field, operator, value}`` — conditions are AND-combined."""

    field: str
    operator: FilterOperator
    value: Any = None

    @field_validator("field")
    @classmethod
    def _strip_field(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field must not be empty")
        return v


class SearchResultItem(BaseModel):
    """Query-time projection of one normalized entity."""

    id: str
    type: ResultType
    title: str
    description: str | None = None
    language: str | None = None
    labels: str | None = None
    repository: str | None = None
    owner: str | None = None
    author: str | None = None
    state: str | None = None
    number: int | None = None
    stars: int | None = None
    forks: int | None = None
    comments: int | None = None
    topics: list[str] | None = None
    is_private: bool | None = None
    is_fork: bool | None = None
    is_archived: bool | None = None
    url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    score: float = 0.0
    is_group_header: Literal[False] = False


class GroupHeader(BaseModel):
    id: str
    group_name: str
    count: int
    is_group_header: Literal[True] = True
