"""
Persistence for per-team algo settings.

Settings are keyed by :class:`SettingsScope` ``(team_id, competition_id)``;
``competition_id=None`` is the team-wide row that applies to every
competition.  Lookups fall back scoped → team-wide → caller default, see
:func:`resolve_settings`.

Stored payloads are re-validated through
:class:`~footy_edge.schemas.AlgoSettingsPayload` on every read, so a row
edited by hand (or written by an older version) still yields clamped,
usable settings.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, NamedTuple, Optional

from sqlalchemy.orm import Session

from footy_edge.core.algo_settings import AlgoSettings
from footy_edge.models import ALL_COMPETITIONS, TeamAlgoSetting
from footy_edge.schemas import AlgoSettingsPayload
from footy_edge.services.backtest import TeamEvaluation

logger = logging.getLogger(__name__)


class SettingsScope(NamedTuple):
    team_id: int
    competition_id: Optional[int] = None

    def team_wide(self) -> "SettingsScope":
        return SettingsScope(self.team_id)


def _to_payload(settings: AlgoSettings) -> dict:
    return AlgoSettingsPayload.from_settings(settings).model_dump(by_alias=True)


def _from_payload(raw) -> AlgoSettings:
    return AlgoSettingsPayload.model_validate(raw or {}).to_settings()


class SettingsRepository(ABC):
    """Read/write access to stored settings."""

    @abstractmethod
    def get(self, scope: SettingsScope) -> Optional[AlgoSettings]:
        ...

    @abstractmethod
    def put(
        self,
        scope: SettingsScope,
        settings: AlgoSettings,
        evaluation: Optional[TeamEvaluation] = None,
        meets_criteria: bool = False,
    ) -> None:
        ...


class InMemorySettingsRepository(SettingsRepository):
    """Dict-backed store, mainly for tests and one-off CLI runs."""

    def __init__(self):
        self._rows: Dict[SettingsScope, dict] = {}

    def get(self, scope: SettingsScope) -> Optional[AlgoSettings]:
        row = self._rows.get(scope)
        return _from_payload(row["settings"]) if row else None

    def put(self, scope, settings, evaluation=None, meets_criteria=False) -> None:
        self._rows[scope] = {
            "settings": _to_payload(settings),
            "evaluation": evaluation,
            "meets_criteria": meets_criteria,
        }

    def __len__(self) -> int:
        return len(self._rows)


class SqlSettingsRepository(SettingsRepository):
    """SQLAlchemy-backed store on the ``team_algo_settings`` table.

    Args:
        session_factory: Zero-arg callable returning a new ``Session``
            (e.g. ``models.SessionLocal``).  Each call opens and closes
            its own session.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    @staticmethod
    def _competition(scope: SettingsScope) -> int:
        return ALL_COMPETITIONS if scope.competition_id is None else scope.competition_id

    def _row(self, db: Session, scope: SettingsScope) -> Optional[TeamAlgoSetting]:
        return (
            db.query(TeamAlgoSetting)
            .filter(
                TeamAlgoSetting.team_id == scope.team_id,
                TeamAlgoSetting.competition_id == self._competition(scope),
            )
            .first()
        )

    def get(self, scope: SettingsScope) -> Optional[AlgoSettings]:
        db = self.session_factory()
        try:
            row = self._row(db, scope)
            return _from_payload(row.settings) if row else None
        finally:
            db.close()

    def put(self, scope, settings, evaluation=None, meets_criteria=False) -> None:
        db = self.session_factory()
        try:
            row = self._row(db, scope)
            if row is None:
                row = TeamAlgoSetting(team_id=scope.team_id, competition_id=self._competition(scope))
                db.add(row)
            row.settings = _to_payload(settings)
            row.meets_criteria = meets_criteria
            if evaluation is not None:
                row.hit_rate = evaluation.hit_rate
                row.coverage = evaluation.coverage
                row.picks = evaluation.picks
                row.evaluated = evaluation.evaluated
            db.commit()
        except Exception:
            db.rollback()
            logger.error("Failed to store settings for team %s", scope.team_id, exc_info=True)
            raise
        finally:
            db.close()


def resolve_settings(
    repo: Optional[SettingsRepository],
    scope: SettingsScope,
    default: AlgoSettings,
) -> AlgoSettings:
    """Scoped settings, else team-wide settings, else ``default``."""
    if repo is None:
        return default
    if scope.competition_id is not None:
        scoped = repo.get(scope)
        if scoped is not None:
            return scoped
    team_wide = repo.get(scope.team_wide())
    return team_wide if team_wide is not None else default
