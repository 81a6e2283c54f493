from __future__ import annotations

from sqlalchemy import String, and_, cast, func, or_
from sqlalchemy.orm import Query, Session

from gigs.models.job import Job
from gigs.services.filter_compiler import (
    FIELD_COLUMNS,
    LIST_FIELDS,
    CompiledQuery,
    Contains,
    Equals,
    In,
    Not,
    Range,
)
from gigs.services.paginator import Paginator


def _column(name: str):
    return getattr(Job, FIELD_COLUMNS[name])


def predicate_clause(predicate):
    if isinstance(predicate, Equals):
        column = _column(predicate.field)
        if isinstance(predicate.value, str):
            return func.lower(column) == predicate.value.lower()
        return column == predicate.value
    if isinstance(predicate, In):
        column = _column(predicate.field)
        values = [str(value).lower() for value in predicate.values]
        if predicate.field in LIST_FIELDS:
            # JSON arrays are matched on their serialized text, one quoted element per value.
            text = func.lower(cast(column, String))
            return or_(*[text.contains(f'"{value}"', autoescape=True) for value in values])
        return func.lower(column).in_(values)
    if isinstance(predicate, Range):
        column = _column(predicate.field)
        bounds = []
        if predicate.gt is not None:
            bounds.append(column > predicate.gt)
        if predicate.gte is not None:
            bounds.append(column >= predicate.gte)
        if predicate.lt is not None:
            bounds.append(column < predicate.lt)
        if predicate.lte is not None:
            bounds.append(column <= predicate.lte)
        return and_(*bounds)
    if isinstance(predicate, Contains):
        return or_(
            *[
                _column(name).icontains(term, autoescape=True)
                for name in predicate.fields
                for term in predicate.terms
            ]
        )
    if isinstance(predicate, Not):
        return ~predicate_clause(predicate.predicate)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def order_clauses(sort: tuple[tuple[str, bool], ...]) -> list:
    clauses = [_column(name).desc() if descending else _column(name).asc() for name, descending in sort]
    clauses.append(Job.id.asc())
    return clauses


class CandidateRetriever:
    def __init__(
        self,
        db: Session,
        candidate_limit: int = 2000,
        candidate_multiplier: int = 10,
        min_window: int = 100,
    ) -> None:
        self.db = db
        self.candidate_limit = candidate_limit
        self.candidate_multiplier = candidate_multiplier
        self.min_window = min_window

    def filtered(self, compiled: CompiledQuery) -> Query:
        query = self.db.query(Job)
        for predicate in compiled.predicates:
            query = query.filter(predicate_clause(predicate))
        return query

    def count(self, compiled: CompiledQuery) -> int:
        return self.filtered(compiled).order_by(None).count()

    def fetch_page(
        self,
        compiled: CompiledQuery,
        sort: tuple[tuple[str, bool], ...],
        paginator: Paginator,
    ) -> tuple[list[Job], int]:
        total = self.count(compiled)
        if paginator.offset >= total:
            return [], total
        jobs = (
            self.filtered(compiled)
            .order_by(*order_clauses(sort))
            .offset(paginator.offset)
            .limit(paginator.limit)
            .all()
        )
        return jobs, total

    def candidate_window(self, page_size: int) -> int:
        return min(self.candidate_limit, max(self.min_window, page_size * self.candidate_multiplier))

    def fetch_candidates(
        self,
        compiled: CompiledQuery,
        sort: tuple[tuple[str, bool], ...],
        page_size: int,
    ) -> list[Job]:
        return (
            self.filtered(compiled)
            .order_by(*order_clauses(sort))
            .limit(self.candidate_window(page_size))
            .all()
        )
