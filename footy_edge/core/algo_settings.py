"""Algorithm settings: the tunable knobs of the form model.

:class:`AlgoSettings` is frozen and built only from plain tuples, so two
settings with identical values hash and compare equal.  That value identity
is what the optimizer uses to de-duplicate candidates and key its backtest
cache.

Raw input (from a stored JSON payload, a CLI, or a candidate generator) is
never rejected: :func:`normalize_algo_settings` clamps every field into its
valid range and fills anything missing or non-finite from
:data:`DEFAULT_ALGO_SETTINGS`.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Final, Iterable, Mapping, Optional

from footy_edge.core.markets import DEFAULT_LINES, MarketLine, normalize_lines

# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------

WINDOW_MIN: Final[int] = 5
WINDOW_MAX: Final[int] = 60
LEAGUE_MATCHES_MAX: Final[int] = 200
THRESHOLD_MIN: Final[float] = 0.5
THRESHOLD_MAX: Final[float] = 0.95

#: Minimum bucket weight for each named recency-decay profile.  Weights fall
#: linearly from 1.0 (most recent bucket) to this value (oldest bucket).
DECAY_PROFILES: Final[dict[str, float]] = {
    "soft": 0.7,
    "medium": 0.5,
    "hard": 0.3,
}


@dataclass(frozen=True)
class AlgoSettings:
    """One complete model configuration.

    Attributes:
        window_size: Matches kept per team per venue.  Also the prior
            strength used when shrinking team averages to the league mean.
        bucket_size: Matches sharing one recency weight.
        weights: One weight per bucket, index 0 = most recent bucket.
        min_matches: Venue-specific sample floor for *both* teams before
            a pick is attempted.
        min_league_matches: League results needed before the empirical
            league averages replace the fallback baseline.
        threshold: Minimum probability for a pick to be emitted.
        lines: Markets considered, in evaluation order.
    """

    window_size: int
    bucket_size: int
    weights: tuple[float, ...]
    min_matches: int
    min_league_matches: int
    threshold: float
    lines: tuple[MarketLine, ...]

    @property
    def bucket_count(self) -> int:
        return bucket_count(self.window_size, self.bucket_size)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["weights"] = list(self.weights)
        data["lines"] = list(self.lines)
        return data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def bucket_count(window_size: int, bucket_size: int) -> int:
    return max(1, math.ceil(window_size / bucket_size))


def decay_weights(buckets: int, min_weight: float = 0.5) -> tuple[float, ...]:
    """Linear decay from 1.0 to ``min_weight`` over ``buckets``, rounded to 2 dp."""
    if buckets <= 1:
        return (1.0,)
    step = (1.0 - min_weight) / (buckets - 1)
    return tuple(round(1.0 - i * step, 2) for i in range(buckets))


def _finite(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _clamp_int(value: float, lo: int, hi: int) -> int:
    # Round half up to match how stored settings were produced.
    return max(lo, min(hi, int(math.floor(value + 0.5))))


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _normalize_weights(weights: Optional[Iterable], buckets: int) -> tuple[float, ...]:
    cleaned = [w for w in (_finite(v) for v in (weights or [])) if w is not None and w > 0]
    if not cleaned:
        cleaned = list(decay_weights(buckets))
    if len(cleaned) < buckets:
        cleaned += [cleaned[-1]] * (buckets - len(cleaned))
    return tuple(cleaned[:buckets])


DEFAULT_ALGO_SETTINGS: Final[AlgoSettings] = AlgoSettings(
    window_size=30,
    bucket_size=5,
    weights=decay_weights(6),
    min_matches=5,
    min_league_matches=10,
    threshold=0.65,
    lines=DEFAULT_LINES,
)


def normalize_algo_settings(
    raw: Optional[Mapping[str, Any] | AlgoSettings] = None,
    **overrides: Any,
) -> AlgoSettings:
    """Build a valid :class:`AlgoSettings` from arbitrary input.

    Args:
        raw: Mapping with any subset of the :class:`AlgoSettings` field
            names, or an existing instance to re-validate.
        **overrides: Field values applied on top of ``raw``.

    Returns:
        Settings with ``window_size`` in [5, 60], ``bucket_size`` in
        [1, window_size], ``min_matches`` in [1, window_size],
        ``min_league_matches`` in [1, 200], ``threshold`` in [0.5, 0.95],
        exactly ``ceil(window_size / bucket_size)`` positive weights, and a
        non-empty ordered line tuple.
    """
    if isinstance(raw, AlgoSettings):
        data: dict[str, Any] = raw.to_dict()
    else:
        data = dict(raw or {})
    data.update(overrides)
    defaults = DEFAULT_ALGO_SETTINGS

    def pick(name: str, default: float) -> float:
        value = _finite(data.get(name))
        return default if value is None else value

    window_size = _clamp_int(pick("window_size", defaults.window_size), WINDOW_MIN, WINDOW_MAX)
    bucket_size = _clamp_int(pick("bucket_size", defaults.bucket_size), 1, window_size)
    buckets = bucket_count(window_size, bucket_size)
    raw_weights = data.get("weights")
    weights = _normalize_weights(
        defaults.weights if raw_weights is None else raw_weights, buckets
    )
    min_matches = _clamp_int(pick("min_matches", defaults.min_matches), 1, window_size)
    min_league_matches = _clamp_int(
        pick("min_league_matches", defaults.min_league_matches), 1, LEAGUE_MATCHES_MAX
    )
    threshold = _clamp(pick("threshold", defaults.threshold), THRESHOLD_MIN, THRESHOLD_MAX)
    raw_lines = data.get("lines")
    lines = normalize_lines(defaults.lines if raw_lines is None else raw_lines)

    return AlgoSettings(
        window_size=window_size,
        bucket_size=bucket_size,
        weights=weights,
        min_matches=min_matches,
        min_league_matches=min_league_matches,
        threshold=threshold,
        lines=lines,
    )


def parse_number_list(value: Optional[str]) -> list[float]:
    """Parse ``"1, 0.8, 0.6"`` into floats, dropping anything non-numeric."""
    if not value:
        return []
    out = []
    for item in value.split(","):
        try:
            num = float(item.strip())
        except ValueError:
            continue
        if math.isfinite(num):
            out.append(num)
    return out
