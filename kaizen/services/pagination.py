"""Page/limit normalisation shared by the listing services."""

import math
from dataclasses import dataclass

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    """1-indexed page window."""

    page: int = 1
    limit: int = DEFAULT_LIMIT

    @classmethod
    def of(cls, page=1, limit=DEFAULT_LIMIT, max_limit=MAX_LIMIT):
        """Clamp raw values: page >= 1, 1 <= limit <= max_limit."""
        try:
            page = max(int(page), 1)
        except (TypeError, ValueError):
            page = 1
        try:
            limit = min(max(int(limit), 1), max_limit)
        except (TypeError, ValueError):
            limit = DEFAULT_LIMIT
        return cls(page=page, limit=limit)

    @property
    def offset(self):
        return (self.page - 1) * self.limit

    def total_pages(self, total):
        return math.ceil(total / self.limit) if total else 0
