"""Fixture records as consumed by the replay engine.

Fixtures arrive from the data layer as rows (dicts) with nullable fields.
:meth:`Fixture.from_row` converts one row without ever raising on missing
data; replay code then decides what to skip via :attr:`Fixture.is_playable`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (``Z`` suffix allowed) or pass a datetime through.

    Naive datetimes are assumed to be UTC.  Unparseable input returns ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _int_or_none(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(num):
        return None
    return int(num)


@dataclass(frozen=True)
class Fixture:
    """One match.  Source of truth; never mutated."""

    id: int
    date: Optional[datetime]
    competition_id: int
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    goals_home: Optional[int] = None
    goals_away: Optional[int] = None
    season: Optional[int] = None
    ht_goals_home: Optional[int] = None
    ht_goals_away: Optional[int] = None

    @property
    def is_playable(self) -> bool:
        """True when the fixture has a date, both teams and a final score."""
        return (
            self.date is not None
            and self.home_team_id is not None
            and self.away_team_id is not None
            and self.goals_home is not None
            and self.goals_away is not None
        )

    @property
    def total_goals(self) -> Optional[int]:
        if self.goals_home is None or self.goals_away is None:
            return None
        return self.goals_home + self.goals_away

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Fixture:
        return cls(
            id=_int_or_none(row.get("id")) or 0,
            date=parse_datetime(row.get("date_utc", row.get("date"))),
            competition_id=_int_or_none(row.get("competition_id")) or 0,
            home_team_id=_int_or_none(row.get("home_team_id")),
            away_team_id=_int_or_none(row.get("away_team_id")),
            goals_home=_int_or_none(row.get("goals_home")),
            goals_away=_int_or_none(row.get("goals_away")),
            season=_int_or_none(row.get("season")),
            ht_goals_home=_int_or_none(row.get("ht_goals_home")),
            ht_goals_away=_int_or_none(row.get("ht_goals_away")),
        )


def chronological(fixtures: Iterable[Fixture]) -> list[Fixture]:
    """Playable fixtures sorted by kickoff, ties kept in input order."""
    return sorted((f for f in fixtures if f.is_playable), key=lambda f: f.date)
