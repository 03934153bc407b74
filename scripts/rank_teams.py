#!/usr/bin/env python3
"""
Rank teams of one league-season by backtest hit rate.

Replays the league's finished fixtures under a single settings
configuration (or, with --optimize, each team's best configuration from a
seeded candidate pool) and prints the teams with the best hit rates.

Usage:
    python scripts/rank_teams.py fixtures.csv --league 39 --season 2024
    python scripts/rank_teams.py fixtures.csv --league 39 --optimize --seed 7

The CSV needs the columns id, date_utc, competition_id, season,
home_team_id, away_team_id, goals_home, goals_away.  An optional
--teams CSV with id,name columns supplies display names.
"""

import argparse
import csv
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv()

from footy_edge.core.algo_settings import normalize_algo_settings, parse_number_list
from footy_edge.core.fixtures import Fixture
from footy_edge.core.markets import parse_line_list
from footy_edge.services.backtest import evaluate_team
from footy_edge.services.optimizer import (
    POOL_SIZE,
    SettingsOptimizer,
    build_candidate_pool,
    optimize_teams,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_fixtures(
    path: str,
    league: Optional[int] = None,
    season: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> List[Fixture]:
    with open(path, newline="", encoding="utf-8") as fh:
        rows = [Fixture.from_row(row) for row in csv.DictReader(fh)]

    selected = []
    for f in rows:
        if not f.is_playable:
            continue
        if league is not None and f.competition_id != league:
            continue
        if season is not None and f.season != season:
            continue
        if date_from is not None and f.date.date() < date_from:
            continue
        if date_to is not None and f.date.date() > date_to:
            continue
        selected.append(f)
    return selected


def load_team_names(path: Optional[str]) -> Dict[int, str]:
    if not path:
        return {}
    with open(path, newline="", encoding="utf-8") as fh:
        return {int(row["id"]): row.get("name") or f"Team {row['id']}" for row in csv.DictReader(fh)}


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    parser = argparse.ArgumentParser(description="Rank teams by backtest hit rate")
    parser.add_argument("fixtures", help="Fixtures CSV")
    parser.add_argument("--teams", default=None, help="Teams CSV (id,name)")
    parser.add_argument("--league", type=int, default=None, help="Competition id")
    parser.add_argument("--season", type=int, default=None, help="Season year")
    parser.add_argument("--from", dest="date_from", type=date.fromisoformat, default=None,
                        help="Start date YYYY-MM-DD (inclusive)")
    parser.add_argument("--to", dest="date_to", type=date.fromisoformat, default=None,
                        help="End date YYYY-MM-DD (inclusive)")
    parser.add_argument("--window", type=int, default=10, help="Rolling window per team")
    parser.add_argument("--bucket", type=int, default=5, help="Matches per recency bucket")
    parser.add_argument("--weights", default=None, help="Bucket weights, e.g. '1,0.8,0.6'")
    parser.add_argument("--lines", default=None, help="Market lines, e.g. '1.5,2.5,1X'")
    parser.add_argument("--min-matches", type=int, default=5, help="Min venue matches per team")
    parser.add_argument("--min-league-matches", type=int, default=10,
                        help="Min league matches before trusting league averages")
    parser.add_argument("--threshold", type=float, default=0.65, help="Min probability to count a pick")
    parser.add_argument("--min-picks", type=int, default=20, help="Min picks per team to appear")
    parser.add_argument("--top", type=int, default=20, help="Rows to print")
    parser.add_argument("--optimize", action="store_true", help="Search best settings per team")
    parser.add_argument("--pool-size", type=int, default=POOL_SIZE, help="Candidate pool size")
    parser.add_argument("--seed", type=int, default=None, help="Candidate pool seed")
    parser.add_argument("--workers", type=int, default=1, help="Processes for --optimize")

    args = parser.parse_args()

    fixtures = load_fixtures(args.fixtures, args.league, args.season, args.date_from, args.date_to)
    if not fixtures:
        logger.warning("No fixtures found for the given filters")
        return
    names = load_team_names(args.teams)

    base = normalize_algo_settings(
        window_size=args.window,
        bucket_size=args.bucket,
        weights=parse_number_list(args.weights) or None,
        lines=parse_line_list(args.lines) or None,
        min_matches=args.min_matches,
        min_league_matches=args.min_league_matches,
        threshold=args.threshold,
    )
    team_ids = sorted({f.home_team_id for f in fixtures} | {f.away_team_id for f in fixtures})
    logger.info("Ranking %d teams over %d fixtures with %r", len(team_ids), len(fixtures), base)

    if args.optimize:
        pool = build_candidate_pool(args.pool_size, args.seed)
        results = optimize_teams(fixtures, team_ids, base, pool, SettingsOptimizer(), args.workers)
        evaluations = {tid: r.evaluation for tid, r in results.items() if r is not None}
    else:
        evaluations = {tid: evaluate_team(fixtures, tid, base) for tid in team_ids}

    ranked = sorted(
        ((tid, ev) for tid, ev in evaluations.items() if ev.picks >= args.min_picks),
        key=lambda item: (-item[1].hit_rate, -item[1].picks),
    )

    print(f"\nRanking (league {args.league}, season {args.season})")
    print(f"Threshold >= {base.threshold}, min picks {args.min_picks}")
    print("-" * 56)
    for i, (tid, ev) in enumerate(ranked[: args.top], start=1):
        name = names.get(tid, f"Team {tid}")
        print(
            f"{i:>2}. {name} | hit {ev.hit_rate * 100:.1f}% | "
            f"picks {ev.picks} | coverage {ev.coverage * 100:.1f}%"
        )


if __name__ == "__main__":
    main()
