from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Paginator:
    """1-based page window shared by the store-sliced and in-memory paths."""

    page: int = 1
    limit: int = 10

    def __post_init__(self) -> None:
        if self.page < 1 or self.limit < 1:
            raise ValueError("page and limit must be positive")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def bounds(self, total: int) -> tuple[int, int]:
        start = min(self.offset, total)
        end = min(self.offset + self.limit, total)
        return start, end

    def slice(self, items: Sequence[T]) -> list[T]:
        start, end = self.bounds(len(items))
        return list(items[start:end])
