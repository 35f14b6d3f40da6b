"""
Pool-play schedule: pods play in trios, three pods per side, the rest sit.

Pods are arranged in two partitions of trios. Partition 1 takes consecutive
pods (1-2-3, 4-5-6, 7-8-9); partition 2 takes strided pods (1-4-7, 2-5-8,
3-6-9). Every pair of trios within a partition meets once, so with 9 pods there
are 6 games and each pod plays 4 and sits 2.
"""
import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import List, Optional, Sequence, Set, Tuple

from sqlmodel import Session, func, select

from podvolley.models.pod import Pod
from podvolley.models.pool_match import MATCH_COMPLETED, MATCH_IN_PROGRESS, MATCH_PENDING, PoolMatch
from podvolley.models.tournament import Tournament
from podvolley.services.bracket_formats import get_bracket_format

logger = logging.getLogger(__name__)

PODS_PER_SIDE = 3


class ScheduleError(ValueError):
    """Raised when a pool schedule cannot be generated for the registered pods."""


@dataclass
class ScheduledGame:
    game_number: int
    round_number: int
    team_a: List[int]
    team_b: List[int]
    sitting: List[int] = field(default_factory=list)


def _trio_pairings(trios: List[List[int]]) -> List[Tuple[List[int], List[int]]]:
    # Reverse order so the top trio sits out the opener (4-5-6 vs 7-8-9 first)
    pairs = reversed(list(combinations(range(len(trios)), 2)))
    return [(trios[a], trios[b]) for a, b in pairs]


def generate_pool_schedule(pod_ids: Sequence[int]) -> List[ScheduledGame]:
    """
    Build the pool schedule for pods given in pod-number order.

    Requires at least 9 pods and a multiple of 3. Returned games are numbered
    from 1; each partition forms one round.
    """
    pods = list(pod_ids)
    n = len(pods)
    if n < 3 * PODS_PER_SIDE or n % PODS_PER_SIDE != 0:
        raise ScheduleError(f"Pool schedule needs a multiple of 3 pods (at least 9); got {n}")
    if len(set(pods)) != n:
        raise ScheduleError("Pool schedule pods must be distinct")

    k = n // PODS_PER_SIDE
    consecutive = [pods[i * PODS_PER_SIDE:(i + 1) * PODS_PER_SIDE] for i in range(k)]
    strided = [[pods[i], pods[i + k], pods[i + 2 * k]] for i in range(k)]

    games: List[ScheduledGame] = []
    for round_number, trios in enumerate((consecutive, strided), start=1):
        for team_a, team_b in _trio_pairings(trios):
            on_court = set(team_a) | set(team_b)
            games.append(
                ScheduledGame(
                    game_number=len(games) + 1,
                    round_number=round_number,
                    team_a=list(team_a),
                    team_b=list(team_b),
                    sitting=[p for p in pods if p not in on_court],
                )
            )
    return games


def seed_pool_schedule(session: Session, tournament: Tournament) -> List[PoolMatch]:
    """
    Create the pool matches for a tournament from its registered pods.
    Idempotent: if pool matches already exist they are returned unchanged. Commits.
    """
    existing = get_all_pool_matches(session, tournament.id)
    if existing:
        return existing

    fmt = get_bracket_format(tournament.bracket_format)
    pods = session.exec(
        select(Pod).where(Pod.tournament_id == tournament.id).order_by(Pod.pod_number, Pod.id)
    ).all()
    if len(pods) < fmt.pods_required:
        raise ScheduleError(
            f"Not enough pods to build the pool schedule (need {fmt.pods_required}, have {len(pods)})"
        )

    schedule = generate_pool_schedule([p.id for p in pods[: fmt.pods_required]])
    for game in schedule:
        session.add(
            PoolMatch(
                tournament_id=tournament.id,
                game_number=game.game_number,
                round_number=game.round_number,
                team_a_pods=game.team_a,
                team_b_pods=game.team_b,
                sitting_pods=game.sitting,
                status=MATCH_PENDING,
            )
        )
    session.commit()
    logger.info("Seeded %d pool games for tournament %d", len(schedule), tournament.id)
    return get_all_pool_matches(session, tournament.id)


def get_all_pool_matches(session: Session, tournament_id: int) -> List[PoolMatch]:
    return session.exec(
        select(PoolMatch).where(PoolMatch.tournament_id == tournament_id).order_by(PoolMatch.game_number)
    ).all()


def get_current_pool_matches(session: Session, tournament_id: int) -> List[PoolMatch]:
    return session.exec(
        select(PoolMatch)
        .where(PoolMatch.tournament_id == tournament_id, PoolMatch.status == MATCH_IN_PROGRESS)
        .order_by(PoolMatch.game_number)
    ).all()


def get_next_pending_pool_match(session: Session, tournament_id: int) -> Optional[PoolMatch]:
    return session.exec(
        select(PoolMatch)
        .where(PoolMatch.tournament_id == tournament_id, PoolMatch.status == MATCH_PENDING)
        .order_by(PoolMatch.game_number)
    ).first()


def count_completed_pool_matches(session: Session, tournament_id: int) -> int:
    return session.exec(
        select(func.count(PoolMatch.id)).where(
            PoolMatch.tournament_id == tournament_id, PoolMatch.status == MATCH_COMPLETED
        )
    ).one()


def get_scheduled_pod_ids(session: Session, tournament_id: int) -> Set[int]:
    """Pods that take the court in at least one pool game."""
    pod_ids: Set[int] = set()
    for match in get_all_pool_matches(session, tournament_id):
        pod_ids.update(match.team_a_pods)
        pod_ids.update(match.team_b_pods)
    return pod_ids


def is_pool_play_complete(session: Session, tournament: Tournament) -> bool:
    """All scheduled pool games are completed, and at least the bracket format's minimum were played."""
    total = session.exec(
        select(func.count(PoolMatch.id)).where(PoolMatch.tournament_id == tournament.id)
    ).one()
    completed = count_completed_pool_matches(session, tournament.id)
    fmt = get_bracket_format(tournament.bracket_format)
    return total > 0 and completed >= total and completed >= fmt.min_pool_games
