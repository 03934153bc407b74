"""
Pydantic schemas for data crossing the engine boundary.

Inbound settings payloads are deliberately lenient: every field is optional,
unparseable values are dropped rather than rejected, and the result is
clamped by :func:`~footy_edge.core.algo_settings.normalize_algo_settings`.
Both snake_case and the camelCase keys written by the web client are
accepted.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from footy_edge.core.algo_settings import AlgoSettings, normalize_algo_settings


# ---------------------------------------------------------------------------
# Algo settings
# ---------------------------------------------------------------------------

class AlgoSettingsPayload(BaseModel):
    """Raw settings as stored or submitted.  Call :meth:`to_settings` to clamp."""

    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "windowSize": 20,
                "bucketSize": 5,
                "weights": [1.0, 0.8, 0.6, 0.4],
                "minMatches": 5,
                "minLeagueMatches": 10,
                "threshold": 0.7,
                "lines": [2.5, "1X", "X2"],
            }
        },
    )

    window_size: Optional[float] = Field(None, alias="windowSize")
    bucket_size: Optional[float] = Field(None, alias="bucketSize")
    weights: Optional[list[float]] = None
    min_matches: Optional[float] = Field(None, alias="minMatches")
    min_league_matches: Optional[float] = Field(None, alias="minLeagueMatches")
    threshold: Optional[float] = None
    lines: Optional[list[Union[float, str]]] = None

    @field_validator(
        "window_size", "bucket_size", "min_matches", "min_league_matches", "threshold",
        mode="before",
    )
    @classmethod
    def drop_non_numeric(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        try:
            num = float(v)
        except (TypeError, ValueError):
            return None
        return num if math.isfinite(num) else None

    @field_validator("weights", mode="before")
    @classmethod
    def keep_numeric_weights(cls, v: Any) -> Optional[list[float]]:
        if v is None or not isinstance(v, (list, tuple)):
            return None
        out = []
        for item in v:
            try:
                num = float(item)
            except (TypeError, ValueError):
                continue
            if math.isfinite(num):
                out.append(num)
        return out

    @field_validator("lines", mode="before")
    @classmethod
    def keep_scalar_lines(cls, v: Any) -> Optional[list]:
        if v is None or not isinstance(v, (list, tuple)):
            return None
        return [item for item in v if isinstance(item, (int, float, str)) and not isinstance(item, bool)]

    def to_settings(self) -> AlgoSettings:
        return normalize_algo_settings(self.model_dump(exclude_none=True))

    @classmethod
    def from_settings(cls, settings: AlgoSettings) -> AlgoSettingsPayload:
        return cls(**settings.to_dict())


# ---------------------------------------------------------------------------
# Evaluations and picks
# ---------------------------------------------------------------------------

class TeamEvaluationOut(BaseModel):
    """Backtest summary for one team under its chosen settings."""

    model_config = ConfigDict(from_attributes=True)

    picks: int
    hits: int
    hit_rate: float = Field(..., ge=0.0, le=1.0)
    coverage: float = Field(..., ge=0.0, le=1.0)
    evaluated: int


class PickOut(BaseModel):
    status: Literal["pick", "no-data", "no-bet"]
    market: Optional[str] = None
    probability: Optional[float] = Field(None, ge=0.0, le=1.0)


class DailyPick(BaseModel):
    """One row of the daily pick snapshot, ready for persistence by the caller."""

    snapshot_date: date
    fixture_id: int
    fixture_date_utc: Optional[datetime] = None
    league_id: int
    season: Optional[int] = None
    team_id: int
    side: Literal["home", "away"]
    pick: str
    market: Literal["over_under", "double_chance"]
    probability: float = Field(..., ge=0.0, le=1.0)
    hit_rate: float
    coverage: float
    picks_count: int
    evaluated_count: int
    odd: Optional[float] = None
    meets_algo_criteria: bool
    meets_odds: bool
    meets_criteria: bool
    settings: AlgoSettingsPayload
    status: Literal["pending", "hit", "miss"] = "pending"
    goals_home: Optional[int] = None
    goals_away: Optional[int] = None
