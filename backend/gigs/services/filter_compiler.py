"""Compile flat query parameters into store-independent predicates.

The compiler is pure: it never touches the store, so every rule can be
checked by comparing the predicates it returns.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Union

from gigs.models.job import STATUS_ACTIVE

ParamValue = Union[str, list[str]]

# Public parameter name -> Job attribute.
FIELD_COLUMNS = {
    "id": "id",
    "title": "title",
    "description": "description",
    "companyName": "company_name",
    "roleCategory": "role_category",
    "experienceLevel": "experience_level",
    "jobType": "job_type",
    "workSettings": "work_settings",
    "skills": "skills",
    "country": "country",
    "state": "state",
    "city": "city",
    "minSalary": "min_salary",
    "maxSalary": "max_salary",
    "jobStatus": "job_status",
    "postedDate": "posted_date",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "brokenLink": "broken_link",
    "ipBlocked": "ip_blocked",
}

RESERVED_PARAMS = ("page", "limit", "sort", "fields")
EXACT_FIELDS = ("country", "state", "city", "roleCategory", "experienceLevel", "jobStatus")
MEMBERSHIP_FIELDS = ("skills", "jobType", "workSettings")
LIST_FIELDS = frozenset({"skills"})
KEYWORD_FIELDS = ("title", "description", "companyName")
LOCATION_FIELDS = ("country", "state", "city")

NUMERIC_FIELDS = frozenset({"minSalary", "maxSalary"})
BOOLEAN_FIELDS = frozenset({"isActive", "brokenLink", "ipBlocked"})
DATE_FIELDS = frozenset({"postedDate", "createdAt", "updatedAt"})

DATE_POSTED_WINDOWS = {
    "today": 0,
    "last_3_days": 3,
    "last_7_days": 7,
    "last_15_days": 15,
}
DEFAULT_SORT = (("createdAt", True),)
COMPARATOR_PATTERN = re.compile(r"^(\w+)\[(gt|gte|lt|lte|ne)\]$")


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class In:
    field: str
    values: tuple


@dataclass(frozen=True)
class Range:
    field: str
    gt: Any = None
    gte: Any = None
    lt: Any = None
    lte: Any = None


@dataclass(frozen=True)
class Contains:
    """Matches when any term is a case-insensitive substring of any field."""

    fields: tuple[str, ...]
    terms: tuple[str, ...]


@dataclass(frozen=True)
class Not:
    predicate: Predicate


Predicate = Union[Equals, In, Range, Contains, Not]


@dataclass(frozen=True)
class CompiledQuery:
    predicates: tuple = ()
    fuzzy_intent: bool = False
    keyword: str = ""
    location: str = ""

    @property
    def search_text(self) -> str:
        return " ".join(part for part in (self.keyword, self.location) if part).strip()


@dataclass(frozen=True)
class QueryOptions:
    sort: tuple[tuple[str, bool], ...] = DEFAULT_SORT
    fields: tuple[str, ...] = ()
    page: int = 1
    limit: int = 10


def parse_value(field_name: str, value: str) -> Any:
    """Coerce a raw parameter string to the type of ``field_name``.

    Returns ``None`` when the value cannot be parsed; callers drop the
    predicate instead of rejecting the request.
    """
    if field_name in BOOLEAN_FIELDS:
        return value.strip().lower() == "true"
    if field_name in NUMERIC_FIELDS:
        try:
            return float(value)
        except ValueError:
            return None
    if field_name in DATE_FIELDS:
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).replace(tzinfo=None)
        except ValueError:
            return None
    return value


def _scalar(value: ParamValue | None) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        value = value[0] if value else ""
    return str(value).strip()


def _csv_values(value: ParamValue | None) -> list[str]:
    if not value:
        return []
    raw = value if isinstance(value, list) else [value]
    return [part.strip() for item in raw for part in str(item).split(",") if part.strip()]


def _parsed(query: Mapping[str, ParamValue], name: str) -> Any:
    raw = _scalar(query.get(name))
    return parse_value(name, raw) if raw else None


def _terms(text: str) -> tuple[str, ...]:
    seen: list[str] = []
    for token in text.lower().split():
        if token not in seen:
            seen.append(token)
    return tuple(seen)


def posted_window_start(date_posted: str, now: datetime, default_days: int) -> datetime:
    days = DATE_POSTED_WINDOWS.get(date_posted.strip().lower()) if date_posted else None
    if days is None:
        return now - timedelta(days=default_days)
    if days == 0:
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now - timedelta(days=days)


def compile_filters(
    params: Mapping[str, ParamValue],
    now: datetime,
    default_window_days: int = 30,
) -> CompiledQuery:
    query = {key: value for key, value in params.items() if key not in RESERVED_PARAMS}
    predicates: list[Predicate] = []

    for name in EXACT_FIELDS:
        value = _scalar(query.get(name))
        if value:
            predicates.append(Equals(name, value))

    is_active = _scalar(query.get("isActive"))
    if is_active:
        active = Equals("jobStatus", STATUS_ACTIVE)
        predicates.append(active if parse_value("isActive", is_active) else Not(active))
    elif not _scalar(query.get("jobStatus")):
        predicates.append(Equals("jobStatus", STATUS_ACTIVE))

    for name in MEMBERSHIP_FIELDS:
        values = _csv_values(query.get(name))
        if values:
            predicates.append(In(name, tuple(values)))

    min_salary = _parsed(query, "minSalary")
    if min_salary is not None:
        predicates.append(Range("minSalary", gte=min_salary))
    max_salary = _parsed(query, "maxSalary")
    if max_salary is not None:
        predicates.append(Range("maxSalary", lte=max_salary))

    for name in ("brokenLink", "ipBlocked"):
        value = _scalar(query.get(name))
        if value:
            predicates.append(Equals(name, parse_value(name, value)))

    for key, raw in query.items():
        match = COMPARATOR_PATTERN.match(key)
        if not match:
            continue
        name, op = match.groups()
        if name not in FIELD_COLUMNS:
            continue
        value = parse_value(name, _scalar(raw))
        if value is None or value == "":
            continue
        if op == "ne":
            predicates.append(Not(Equals(name, value)))
        else:
            predicates.append(Range(name, **{op: value}))

    predicates.append(
        Range("postedDate", gte=posted_window_start(_scalar(query.get("datePosted")), now, default_window_days))
    )

    keyword = _scalar(query.get("keyword"))
    location = _scalar(query.get("location"))
    if keyword:
        predicates.append(Contains(KEYWORD_FIELDS, _terms(keyword)))
    if location:
        predicates.append(Contains(LOCATION_FIELDS, _terms(location)))

    return CompiledQuery(
        predicates=tuple(predicates),
        fuzzy_intent=bool(keyword or location),
        keyword=keyword,
        location=location,
    )


def parse_sort(raw: str) -> tuple[tuple[str, bool], ...]:
    order: list[tuple[str, bool]] = []
    for part in _csv_values(raw):
        descending = part.startswith("-")
        name = part.lstrip("-+")
        if name in FIELD_COLUMNS:
            order.append((name, descending))
    return tuple(order) or DEFAULT_SORT


def _positive_int(raw: str, default: int) -> int:
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def parse_query_options(
    params: Mapping[str, ParamValue],
    default_limit: int = 10,
    max_limit: int = 100,
) -> QueryOptions:
    fields = tuple(name for name in _csv_values(params.get("fields")) if name in FIELD_COLUMNS)
    return QueryOptions(
        sort=parse_sort(_scalar(params.get("sort"))),
        fields=fields,
        page=_positive_int(_scalar(params.get("page")), 1),
        limit=min(_positive_int(_scalar(params.get("limit")), default_limit), max_limit),
    )
