"""
Standings Engine: pool-play aggregates per pod.

Standings are mutated additively, one increment per completed pool game, and
never recomputed from scratch. Writes are staged on the caller's session; the
caller commits them together with the match completion so a game and its
standings land in one transaction.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from podvolley.models.pod import Pod
from podvolley.models.pool_match import PoolMatch
from podvolley.models.pool_standing import PoolStanding
from podvolley.services.scoring import SIDE_A

logger = logging.getLogger(__name__)


@dataclass
class StandingRow:
    pod_id: int
    pod_number: int
    name: str
    team_name: Optional[str]
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0

    @property
    def point_differential(self) -> int:
        return self.points_for - self.points_against

    @property
    def games_played(self) -> int:
        return self.wins + self.losses


def _update_pod_standing(
    session: Session,
    tournament_id: int,
    pod_id: int,
    won: bool,
    points_for: int,
    points_against: int,
) -> bool:
    """Increment (or create) one pod's standing. Returns False if the pod was skipped."""
    pod = session.get(Pod, pod_id)
    if pod is None or pod.tournament_id != tournament_id:
        logger.warning(
            f"Skipping standings update for pod {pod_id}: not registered in tournament {tournament_id}. "
            "Check the game schedule data."
        )
        return False

    # Savepoint per pod: a failed write drops only this pod's increment
    try:
        with session.begin_nested():
            result = session.execute(
                update(PoolStanding)
                .where(PoolStanding.tournament_id == tournament_id, PoolStanding.pod_id == pod_id)
                .values(
                    wins=PoolStanding.wins + (1 if won else 0),
                    losses=PoolStanding.losses + (0 if won else 1),
                    points_for=PoolStanding.points_for + points_for,
                    points_against=PoolStanding.points_against + points_against,
                )
            )
            if result.rowcount == 0:
                session.add(
                    PoolStanding(
                        tournament_id=tournament_id,
                        pod_id=pod_id,
                        wins=1 if won else 0,
                        losses=0 if won else 1,
                        points_for=points_for,
                        points_against=points_against,
                    )
                )
    except SQLAlchemyError as e:
        logger.error(f"Failed to update standings for pod {pod_id} in tournament {tournament_id}: {e}")
        return False
    return True


def record_game_result(
    session: Session,
    tournament_id: int,
    winning_pods: Iterable[int],
    losing_pods: Iterable[int],
    winning_score: int,
    losing_score: int,
) -> int:
    """
    Apply one completed pool game to the standings of every pod involved.

    Winners get +1 win, winning_score for and losing_score against; losers the
    mirror image. Pods without a standing row get one seeded with this game.
    A pod that cannot be updated is logged and skipped; it never aborts the
    caller's game completion.

    Returns the number of pods updated. Does not commit.
    """
    winners = list(winning_pods)
    losers = list(losing_pods)
    overlap = set(winners) & set(losers)
    if overlap:
        raise ValueError(f"Pods {sorted(overlap)} cannot be on both sides of a game")

    updated = 0
    for pod_id in winners:
        if _update_pod_standing(session, tournament_id, pod_id, True, winning_score, losing_score):
            updated += 1
    for pod_id in losers:
        if _update_pod_standing(session, tournament_id, pod_id, False, losing_score, winning_score):
            updated += 1
    return updated


def apply_pool_result(session: Session, match: PoolMatch, winning_side: str) -> int:
    """Record a completed pool match, given which side ("A" or "B") won."""
    if winning_side == SIDE_A:
        return record_game_result(
            session,
            match.tournament_id,
            match.team_a_pods,
            match.team_b_pods,
            match.team_a_score,
            match.team_b_score,
        )
    return record_game_result(
        session,
        match.tournament_id,
        match.team_b_pods,
        match.team_a_pods,
        match.team_b_score,
        match.team_a_score,
    )


def rank_rows(rows: Sequence[StandingRow]) -> List[StandingRow]:
    """
    Order standings by point differential, then points for, then wins (all descending).
    The sort is stable, so fully tied pods keep their input order.
    """
    return sorted(rows, key=lambda r: (-r.point_differential, -r.points_for, -r.wins))


def rank_standings(session: Session, tournament_id: int) -> List[StandingRow]:
    """
    Ranked standings for every registered pod in the tournament, including pods
    that have not played yet. Ties fall back to pod number order.
    """
    pods = session.exec(
        select(Pod).where(Pod.tournament_id == tournament_id).order_by(Pod.pod_number, Pod.id)
    ).all()
    standings = {
        s.pod_id: s
        for s in session.exec(select(PoolStanding).where(PoolStanding.tournament_id == tournament_id)).all()
    }

    rows = []
    for pod in pods:
        standing = standings.get(pod.id)
        rows.append(
            StandingRow(
                pod_id=pod.id,
                pod_number=pod.pod_number,
                name=pod.name,
                team_name=pod.team_name,
                wins=standing.wins if standing else 0,
                losses=standing.losses if standing else 0,
                points_for=standing.points_for if standing else 0,
                points_against=standing.points_against if standing else 0,
            )
        )
    return rank_rows(rows)
