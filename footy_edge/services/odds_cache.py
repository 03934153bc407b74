"""
In-memory bookmaker odds, populated before any model search runs.

Odds retrieval is I/O and lives outside the engine.  Callers either hand a
list of :class:`OddsQuote` rows to :class:`OddsCache` directly or use
:meth:`OddsCache.prefetch` with a loader that fetches a whole batch of
fixtures at once.  Everything downstream (daily pick gating, calibration)
reads from the cache and never blocks on the network.

Market names and labels follow the API-Football conventions:

    "Goals Over/Under" / "Goal Line"   labels "Over 2.5", "Under 2.5"
    "Double Chance"                    labels "Home/Draw", "Draw/Away", "Home/Away"
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from footy_edge.core.fixtures import parse_datetime
from footy_edge.core.markets import DOUBLE_CHANCE_LINES, line_key, parse_goal_label

logger = logging.getLogger(__name__)

OVER_UNDER_MARKET = "Goals Over/Under"
GOAL_LINE_MARKET = "Goal Line"
DOUBLE_CHANCE_MARKET = "Double Chance"
GOAL_MARKETS = (OVER_UNDER_MARKET, GOAL_LINE_MARKET)


@dataclass(frozen=True)
class OddsQuote:
    fixture_id: int
    market_name: str
    label: str
    value: float
    update_time: Optional[datetime] = None
    bookmaker_id: Optional[int] = None

    def __post_init__(self):
        # Naive timestamps are read as UTC so they compare with kickoffs.
        object.__setattr__(self, "update_time", parse_datetime(self.update_time))

    @classmethod
    def from_row(cls, row: Mapping) -> "OddsQuote":
        bookmaker = row.get("bookmaker_id")
        return cls(
            fixture_id=int(row["fixture_id"]),
            market_name=str(row.get("market_name") or ""),
            label=str(row.get("label") or ""),
            value=float(row["value"]),
            update_time=parse_datetime(row.get("update_time")),
            bookmaker_id=int(bookmaker) if bookmaker is not None else None,
        )


@dataclass
class FixtureOdds:
    """Decimal prices for one fixture, keyed by canonical line key."""

    over: Dict[str, float] = field(default_factory=dict)
    under: Dict[str, float] = field(default_factory=dict)
    double_chance: Dict[str, float] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.over or self.under or self.double_chance)

    def odd_for_pick(self, label: str) -> Optional[float]:
        """Price of a pick label such as ``"Over 2.5"`` or ``"1X"``."""
        trimmed = label.strip()
        if trimmed in DOUBLE_CHANCE_LINES:
            return self.double_chance.get(trimmed)
        parsed = parse_goal_label(trimmed)
        if parsed is None:
            return None
        side, line = parsed
        book = self.over if side == "over" else self.under
        return book.get(line_key(line))


def parse_double_chance_label(label: str) -> Optional[str]:
    """Map ``"Home/Draw"`` style labels to ``1X`` / ``X2`` / ``12``."""
    normalized = label.lower()
    if "home" in normalized and "draw" in normalized:
        return "1X"
    if "draw" in normalized and "away" in normalized:
        return "X2"
    if "home" in normalized and "away" in normalized:
        return "12"
    return None


def latest_quotes(
    quotes: Iterable[OddsQuote],
    kickoffs: Optional[Mapping[int, datetime]] = None,
) -> List[OddsQuote]:
    """Latest quote per ``(fixture, market, label)``.

    With ``kickoffs``, only quotes timestamped strictly before the fixture's
    kickoff are eligible, and quotes without a timestamp or for unknown
    fixtures are dropped.
    """
    latest: Dict[Tuple[int, str, str], OddsQuote] = {}
    for quote in quotes:
        if kickoffs is not None:
            kickoff = kickoffs.get(quote.fixture_id)
            if kickoff is None or quote.update_time is None or quote.update_time >= kickoff:
                continue
        key = (quote.fixture_id, quote.market_name, quote.label)
        current = latest.get(key)
        if (
            current is None
            or current.update_time is None
            or (quote.update_time is not None and quote.update_time > current.update_time)
        ):
            latest[key] = quote
    return list(latest.values())


def group_by_fixture(quotes: Iterable[OddsQuote]) -> Dict[int, FixtureOdds]:
    """Fold quotes into per-fixture price books.  Later quotes overwrite earlier ones."""
    books: Dict[int, FixtureOdds] = {}
    for quote in quotes:
        if quote.market_name in GOAL_MARKETS:
            parsed = parse_goal_label(quote.label)
            if parsed is None:
                continue
            side, line = parsed
            book = books.setdefault(quote.fixture_id, FixtureOdds())
            (book.over if side == "over" else book.under)[line_key(line)] = quote.value
        elif quote.market_name == DOUBLE_CHANCE_MARKET:
            code = parse_double_chance_label(quote.label)
            if code is None:
                continue
            books.setdefault(quote.fixture_id, FixtureOdds()).double_chance[code] = quote.value
    return books


class OddsCache:
    """Per-fixture odds books built once from a prefetched batch of quotes."""

    def __init__(self, quotes: Iterable[OddsQuote] = (), bookmaker_id: Optional[int] = None):
        self.bookmaker_id = bookmaker_id
        selected = [q for q in quotes if bookmaker_id is None or q.bookmaker_id == bookmaker_id]
        self._books = group_by_fixture(latest_quotes(selected))

    @classmethod
    def prefetch(
        cls,
        loader: Callable[[Sequence[int]], Iterable[OddsQuote]],
        fixture_ids: Iterable[int],
        bookmaker_id: Optional[int] = None,
    ) -> "OddsCache":
        """Call ``loader`` once for all fixtures and cache the result.

        A failing loader is logged and yields an empty cache; picks then
        simply carry no price.
        """
        ids = sorted(set(fixture_ids))
        if not ids:
            return cls(bookmaker_id=bookmaker_id)
        try:
            quotes = list(loader(ids))
        except Exception as exc:
            logger.warning("Odds prefetch failed for %d fixtures: %s", len(ids), exc)
            quotes = []
        logger.info("Prefetched %d odds quotes for %d fixtures", len(quotes), len(ids))
        return cls(quotes, bookmaker_id=bookmaker_id)

    def __contains__(self, fixture_id: int) -> bool:
        return fixture_id in self._books

    def __len__(self) -> int:
        return len(self._books)

    def fixture_odds(self, fixture_id: int) -> Optional[FixtureOdds]:
        return self._books.get(fixture_id)

    def odd_for_pick(self, fixture_id: int, label: str) -> Optional[float]:
        book = self._books.get(fixture_id)
        return book.odd_for_pick(label) if book else None
