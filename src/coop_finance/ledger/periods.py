"""Reporting periods (one calendar month per period)."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, order=True)
class PeriodKey:
    """A (year, month) reporting period, ordered chronologically."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be 1-12, got {self.month}")

    @classmethod
    def from_date(cls, value: date) -> PeriodKey:
        return cls(value.year, value.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def label(self) -> str:
        """Display label, e.g. ``3/2024``."""
        return f"{self.month}/{self.year}"

    def shift(self, months: int) -> PeriodKey:
        """Return the period ``months`` away (negative goes back in time)."""
        index = self.year * 12 + (self.month - 1) + months
        return PeriodKey(index // 12, index % 12 + 1)

    def previous(self) -> PeriodKey:
        return self.shift(-1)

    def trailing(self, count: int) -> list[PeriodKey]:
        """The ``count`` periods ending at this one, oldest first."""
        return [self.shift(-offset) for offset in range(count - 1, -1, -1)]

    def to_dict(self) -> dict[str, int]:
        return {"year": self.year, "month": self.month}
