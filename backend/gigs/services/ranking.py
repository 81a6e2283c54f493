from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from rapidfuzz import fuzz, utils

from gigs.models.job import Job
from gigs.services.filter_compiler import FIELD_COLUMNS

KEYWORD_WEIGHTS = {"title": 0.6, "description": 0.3, "companyName": 0.1}
LOCATION_WEIGHTS = {"city": 0.35, "state": 0.25, "country": 0.2}
BEST_SCORE = 0.0
WORST_SCORE = 1.0


@dataclass(frozen=True)
class RankedJob:
    job: Job
    score: float


def _recency(posted_date: datetime | None) -> float:
    if posted_date is None:
        return float("-inf")
    return posted_date.timestamp()


class RankingEngine:
    """Weighted multi-field fuzzy ranking.

    Scores are distances on a 0-1 scale where 0 is a perfect match. Each
    weighted field is compared with the composite search text using a
    token-set ratio, so word order and casing do not matter. Candidates
    whose weighted distance exceeds ``threshold`` are dropped.
    """

    def __init__(
        self,
        threshold: float = 0.45,
        keyword_weights: Mapping[str, float] | None = None,
        location_weights: Mapping[str, float] | None = None,
    ) -> None:
        self.threshold = threshold
        self.keyword_weights = dict(KEYWORD_WEIGHTS if keyword_weights is None else keyword_weights)
        self.location_weights = dict(LOCATION_WEIGHTS if location_weights is None else location_weights)
        self._validate()

    def _validate(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"Fuzzy threshold must be within [0, 1], got {self.threshold}")
        for weights in (self.keyword_weights, self.location_weights):
            if not weights:
                raise ValueError("Ranking weights must not be empty")
            for name, weight in weights.items():
                if name not in FIELD_COLUMNS:
                    raise ValueError(f"Unknown ranking field: {name}")
                if weight <= 0:
                    raise ValueError(f"Ranking weight for {name} must be positive")

    def field_distance(self, search_text: str, value: str | None) -> float:
        if not value:
            return WORST_SCORE
        similarity = fuzz.token_set_ratio(search_text, value, processor=utils.default_process)
        return WORST_SCORE - similarity / 100.0

    def score(self, job: Job, search_text: str, weights: Mapping[str, float]) -> float:
        total_weight = sum(weights.values())
        weighted = sum(
            weight * self.field_distance(search_text, getattr(job, FIELD_COLUMNS[name]))
            for name, weight in weights.items()
        )
        return weighted / total_weight

    def active_weights(self, keyword: str, location: str) -> dict[str, float]:
        weights: dict[str, float] = {}
        if keyword.strip():
            weights.update(self.keyword_weights)
        if location.strip():
            weights.update(self.location_weights)
        return weights

    def rank(self, jobs: Sequence[Job], keyword: str = "", location: str = "") -> list[RankedJob]:
        search_text = " ".join(part.strip() for part in (keyword, location) if part.strip())
        if not search_text:
            return [RankedJob(job=job, score=BEST_SCORE) for job in jobs]

        weights = self.active_weights(keyword, location)
        scored = [RankedJob(job=job, score=self.score(job, search_text, weights)) for job in jobs]
        kept = [item for item in scored if item.score <= self.threshold]
        # sorted() is stable: equal score and date keep their store order.
        return sorted(kept, key=lambda item: (item.score, -_recency(item.job.posted_date)))
