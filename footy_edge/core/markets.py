"""Market lines, pick labels, and settlement rules.

Two market families are supported:

* **Goal lines**: a positive number ``L`` yields the pair ``Over L`` /
  ``Under L`` on total match goals.
* **Double chance**: ``1X`` (home or draw), ``X2`` (draw or away) and
  ``12`` (either team wins).

A pick is identified everywhere by its label string (``"Over 2.5"``,
``"1X"``), which is what callers persist and later settle.
"""

from __future__ import annotations

import math
import re
from typing import Final, Iterable, Optional, Union

DOUBLE_CHANCE_LINES: Final[tuple[str, ...]] = ("1X", "X2", "12")

DEFAULT_LINES: Final[tuple[float, ...]] = (1.5, 2.5, 3.5)

MarketLine = Union[float, str]

_GOAL_LABEL_RE: Final = re.compile(r"^(Over|Under)\s+([0-9]+(?:\.[0-9]+)?)$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Line parsing
# ---------------------------------------------------------------------------


def normalize_line(value) -> Optional[MarketLine]:
    """Coerce a raw line value to a :data:`MarketLine`, or ``None`` if invalid.

    Numbers must be finite and positive.  Strings are upper-cased with
    whitespace removed, then matched against the double-chance codes or
    parsed as a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if math.isfinite(value) and value > 0:
            return float(value)
        return None
    if isinstance(value, str):
        cleaned = re.sub(r"\s+", "", value).upper()
        if not cleaned:
            return None
        if cleaned in DOUBLE_CHANCE_LINES:
            return cleaned
        try:
            numeric = float(cleaned)
        except ValueError:
            return None
        if math.isfinite(numeric) and numeric > 0:
            return numeric
    return None


def normalize_lines(lines: Optional[Iterable]) -> tuple[MarketLine, ...]:
    """Clean, de-duplicate and order a collection of market lines.

    Goal lines come first in ascending order, followed by the double-chance
    codes in canonical ``1X, X2, 12`` order.  An empty or fully invalid
    input falls back to :data:`DEFAULT_LINES`.
    """
    cleaned = [normalize_line(v) for v in (lines or [])]
    numeric = sorted({v for v in cleaned if isinstance(v, float)})
    dc = [code for code in DOUBLE_CHANCE_LINES if code in cleaned]
    merged = tuple(numeric) + tuple(dc)
    return merged or DEFAULT_LINES


def parse_line_list(value: Optional[str]) -> list[MarketLine]:
    """Parse a comma-separated line list such as ``"1.5, 2.5, 1X"``."""
    if not value:
        return []
    parsed = (normalize_line(item.strip()) for item in value.split(","))
    return [line for line in parsed if line is not None]


def line_key(line: MarketLine) -> str:
    """Canonical string key for a line (``2.5`` → ``"2.5"``, ``2.0`` → ``"2"``)."""
    if isinstance(line, str):
        return line
    return f"{line:g}"


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------


def over_label(line: float) -> str:
    return f"Over {line_key(line)}"


def under_label(line: float) -> str:
    return f"Under {line_key(line)}"


def parse_goal_label(label: str) -> Optional[tuple[str, float]]:
    """Split ``"Over 2.5"`` into ``("over", 2.5)``; ``None`` if not a goal label."""
    match = _GOAL_LABEL_RE.match(label.strip())
    if not match:
        return None
    return match.group(1).lower(), float(match.group(2))


def market_family(label: str) -> str:
    """``"over_under"`` or ``"double_chance"`` for a pick label."""
    return "double_chance" if label.strip() in DOUBLE_CHANCE_LINES else "over_under"


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


def is_double_chance_hit(code: str, goals_home: int, goals_away: int) -> bool:
    """A double-chance pick loses only when its excluded outcome occurs."""
    if goals_home == goals_away:
        return code != "12"
    if goals_home > goals_away:
        return code != "X2"
    return code != "1X"


def settle_pick(label: str, goals_home: int, goals_away: int) -> Optional[bool]:
    """Grade a pick label against a final score.

    Returns:
        ``True`` (hit), ``False`` (miss), or ``None`` when the label is not a
        recognised market.

    Examples::

        settle_pick("Over 2.5", 2, 1)  → True
        settle_pick("Under 2.5", 2, 1) → False
        settle_pick("12", 2, 2)        → False
    """
    trimmed = label.strip()
    if trimmed in DOUBLE_CHANCE_LINES:
        return is_double_chance_hit(trimmed, goals_home, goals_away)
    parsed = parse_goal_label(trimmed)
    if parsed is None:
        return None
    side, line = parsed
    total = goals_home + goals_away
    if side == "over":
        return total > line
    return total <= line
