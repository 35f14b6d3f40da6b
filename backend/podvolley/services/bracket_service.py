"""
Bracket play: team seeding from pool standings, bracket game seeding, and
advancement of winners/losers through the fixed double-elimination graph.

Only team_a_id/team_b_id of downstream games are ever filled in by advancement;
seeded teams and completed games are never rewritten.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete
from sqlmodel import Session, select

from podvolley.models.bracket_match import BracketMatch
from podvolley.models.bracket_team import BracketTeam
from podvolley.models.pool_match import MATCH_COMPLETED, MATCH_PENDING
from podvolley.models.tournament import Tournament
from podvolley.services.bracket_formats import (
    ROLE_LOSER,
    ROLE_WINNER,
    BracketFormat,
    get_bracket_format,
)
from podvolley.services.pool_schedule import get_scheduled_pod_ids, is_pool_play_complete
from podvolley.services.standings_service import rank_standings

logger = logging.getLogger(__name__)


class BracketStateError(ValueError):
    """Raised when a bracket operation is not valid for the tournament's current state."""


class InsufficientPodsError(BracketStateError):
    """Raised when standings have fewer pods than the seeding pattern needs."""


@dataclass
class AdvancementResult:
    slots_filled: int = 0
    decider_created: bool = False
    champion_team_id: Optional[int] = None


# ============================================================================
# Seeding
# ============================================================================


def partition_pods(ranked_pod_ids: Sequence[int], fmt: BracketFormat) -> Dict[str, List[int]]:
    """
    Split ranked pods into bracket teams using the format's seeding pattern.

    ranked_pod_ids[0] is rank 1. For the three-team format this yields
    Team A = ranks 1, 5, 9; Team B = 2, 6, 7; Team C = 3, 4, 8.
    """
    if len(ranked_pod_ids) < fmt.pods_required:
        raise InsufficientPodsError(
            f"Not enough pods to create bracket teams (need {fmt.pods_required} pods, have {len(ranked_pod_ids)})"
        )
    if len(ranked_pod_ids) > fmt.pods_required:
        raise BracketStateError(
            f"Too many pods to create bracket teams (need exactly {fmt.pods_required}, have {len(ranked_pod_ids)})"
        )
    return {
        name: [ranked_pod_ids[rank - 1] for rank in ranks]
        for name, ranks in zip(fmt.team_names, fmt.seeding)
    }


def get_bracket_teams(session: Session, tournament_id: int) -> List[BracketTeam]:
    return session.exec(
        select(BracketTeam).where(BracketTeam.tournament_id == tournament_id).order_by(BracketTeam.seed_rank)
    ).all()


def get_bracket_matches(session: Session, tournament_id: int) -> List[BracketMatch]:
    return session.exec(
        select(BracketMatch).where(BracketMatch.tournament_id == tournament_id).order_by(BracketMatch.game_number)
    ).all()


def get_bracket_match_by_number(session: Session, tournament_id: int, game_number: int) -> Optional[BracketMatch]:
    return session.exec(
        select(BracketMatch).where(
            BracketMatch.tournament_id == tournament_id,
            BracketMatch.game_number == game_number,
        )
    ).first()


def ranked_bracket_pod_ids(session: Session, tournament_id: int) -> List[int]:
    """
    Pod ids in standings order, limited to pods that played pool games.
    Pods registered beyond the pool schedule never enter the bracket.
    """
    rows = rank_standings(session, tournament_id)
    scheduled = get_scheduled_pod_ids(session, tournament_id)
    if scheduled:
        rows = [row for row in rows if row.pod_id in scheduled]
    return [row.pod_id for row in rows]


def _add_teams(session: Session, tournament: Tournament) -> List[BracketTeam]:
    fmt = get_bracket_format(tournament.bracket_format)
    groups = partition_pods(ranked_bracket_pod_ids(session, tournament.id), fmt)

    for seed_rank, name in enumerate(fmt.team_names, start=1):
        pod1, pod2, pod3 = groups[name]
        session.add(
            BracketTeam(
                tournament_id=tournament.id,
                team_name=name,
                seed_rank=seed_rank,
                pod1_id=pod1,
                pod2_id=pod2,
                pod3_id=pod3,
            )
        )
    session.flush()
    logger.info("Created %d bracket teams for tournament %d", len(fmt.team_names), tournament.id)
    return get_bracket_teams(session, tournament.id)


def _add_games(session: Session, tournament: Tournament, teams: Sequence[BracketTeam]) -> List[BracketMatch]:
    fmt = get_bracket_format(tournament.bracket_format)
    by_rank = {team.seed_rank: team for team in teams}
    if len(teams) != len(fmt.team_names) or set(by_rank) != set(range(1, len(fmt.team_names) + 1)):
        raise BracketStateError(
            f"Not enough bracket teams to create games (need {len(fmt.team_names)} teams, have {len(teams)})"
        )

    for node in fmt.games:
        session.add(
            BracketMatch(
                tournament_id=tournament.id,
                game_number=node.game_number,
                bracket_type=node.bracket_type,
                team_a_id=by_rank[node.seed_a].id if node.seed_a else None,
                team_b_id=by_rank[node.seed_b].id if node.seed_b else None,
                source_game_a=node.source_a.game_number if node.source_a else None,
                source_a_role=node.source_a.role if node.source_a else None,
                source_game_b=node.source_b.game_number if node.source_b else None,
                source_b_role=node.source_b.role if node.source_b else None,
                status=MATCH_PENDING,
            )
        )
    session.flush()
    logger.info("Seeded %d bracket games for tournament %d", len(fmt.games), tournament.id)
    return get_bracket_matches(session, tournament.id)


def seed_teams_from_standings(session: Session, tournament: Tournament) -> List[BracketTeam]:
    """
    Create bracket teams from the tournament's final pool standings.
    Idempotent: existing teams are returned unchanged. Commits.
    """
    existing = get_bracket_teams(session, tournament.id)
    if existing:
        return existing

    teams = _add_teams(session, tournament)
    session.commit()
    return teams


def seed_bracket_games(session: Session, tournament: Tournament, teams: Sequence[BracketTeam]) -> List[BracketMatch]:
    """
    Create the bracket game graph for the tournament's format.

    Games whose slots are seeded get concrete teams; every other slot starts
    null with a feeder edge. The decider game is not created here.
    Idempotent: existing games are returned unchanged. Commits.
    """
    existing = get_bracket_matches(session, tournament.id)
    if existing:
        return existing

    games = _add_games(session, tournament, teams)
    session.commit()
    return games


def initialize_bracket(session: Session, tournament: Tournament):
    """Seed teams and games once pool play is complete. Returns (teams, games)."""
    if not is_pool_play_complete(session, tournament):
        raise BracketStateError("Pool play is not yet complete")
    teams = seed_teams_from_standings(session, tournament)
    games = seed_bracket_games(session, tournament, teams)
    return teams, games


def reset_bracket(session: Session, tournament: Tournament):
    """
    Delete all bracket games and teams, then seed again from current standings.
    Commits once; if seeding fails the old bracket is left in place.
    """
    try:
        session.execute(delete(BracketMatch).where(BracketMatch.tournament_id == tournament.id))
        session.execute(delete(BracketTeam).where(BracketTeam.tournament_id == tournament.id))
        session.flush()
        teams = _add_teams(session, tournament)
        games = _add_games(session, tournament, teams)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info("Reset bracket for tournament %d", tournament.id)
    return teams, games


# ============================================================================
# Progression
# ============================================================================


def winner_of(match: BracketMatch) -> Optional[int]:
    """Winner recomputed from the game's own score. None if undecided."""
    if match.team_a_score == match.team_b_score:
        return None
    return match.team_a_id if match.team_a_score > match.team_b_score else match.team_b_id


def _fill_slots(session: Session, tournament_id: int, game_number: int, role: str, team_id: int) -> int:
    updated = 0
    downstream_a = session.exec(
        select(BracketMatch).where(
            BracketMatch.tournament_id == tournament_id,
            BracketMatch.source_game_a == game_number,
            BracketMatch.source_a_role == role,
        )
    ).all()
    for down in downstream_a:
        if down.team_a_id is None:
            down.team_a_id = team_id
            session.add(down)
            updated += 1
        elif down.team_a_id != team_id:
            logger.warning(
                f"Game {down.game_number} slot A already holds team {down.team_a_id}; "
                f"not replacing with {role.lower()} of game {game_number} (team {team_id})"
            )

    downstream_b = session.exec(
        select(BracketMatch).where(
            BracketMatch.tournament_id == tournament_id,
            BracketMatch.source_game_b == game_number,
            BracketMatch.source_b_role == role,
        )
    ).all()
    for down in downstream_b:
        if down.team_b_id is None:
            down.team_b_id = team_id
            session.add(down)
            updated += 1
        elif down.team_b_id != team_id:
            logger.warning(
                f"Game {down.game_number} slot B already holds team {down.team_b_id}; "
                f"not replacing with {role.lower()} of game {game_number} (team {team_id})"
            )
    return updated


def _maybe_create_decider(session: Session, tournament_id: int, fmt: BracketFormat, trigger_winner_id: int) -> bool:
    """
    The trigger game was just decided. If its winner is not the reference game's
    winner (the team still unbeaten lost), create the decider rematch once.
    """
    rule = fmt.decider
    reference = get_bracket_match_by_number(session, tournament_id, rule.reference_game)
    if reference is None:
        logger.warning(
            f"Game {rule.reference_game} not found for tournament {tournament_id}; "
            f"skipping game {rule.game_number} decision"
        )
        return False

    reference_winner_id = winner_of(reference)
    if reference_winner_id is None or reference_winner_id == trigger_winner_id:
        return False

    if get_bracket_match_by_number(session, tournament_id, rule.game_number) is not None:
        return False

    session.add(
        BracketMatch(
            tournament_id=tournament_id,
            game_number=rule.game_number,
            bracket_type=rule.bracket_type,
            team_a_id=reference_winner_id,
            team_b_id=trigger_winner_id,
            source_game_a=rule.reference_game,
            source_a_role=ROLE_WINNER,
            source_game_b=rule.trigger_game,
            source_b_role=ROLE_WINNER,
            status=MATCH_PENDING,
        )
    )
    logger.info(
        f"Tournament {tournament_id}: team {trigger_winner_id} won game {rule.trigger_game}; "
        f"created decider game {rule.game_number}"
    )
    return True


def advance_bracket(
    session: Session,
    tournament_id: int,
    game_number: int,
    winner_id: int,
    loser_id: int,
) -> AdvancementResult:
    """
    Route the winner and loser of a completed bracket game into their next slots.

    For the three-team bracket:
        game 1 -> winner to G2 slot B, loser to G3 slot A
        game 2 -> winner to G4 slot A, loser to G3 slot B
        game 3 -> winner to G4 slot B
        game 4 -> decider game 5 if G4's winner is not G2's winner
        game 5 -> terminal
    Game numbers with no outgoing edges are no-ops.
    Idempotent: slots are only filled when empty, the decider is only created once. Commits.
    """
    tournament = session.get(Tournament, tournament_id)
    if tournament is None:
        logger.warning(f"Tournament {tournament_id} not found; not advancing game {game_number}")
        session.commit()
        return AdvancementResult()
    fmt = get_bracket_format(tournament.bracket_format)

    result = AdvancementResult()
    result.slots_filled += _fill_slots(session, tournament_id, game_number, ROLE_WINNER, winner_id)
    result.slots_filled += _fill_slots(session, tournament_id, game_number, ROLE_LOSER, loser_id)

    if game_number == fmt.decider.trigger_game:
        result.decider_created = _maybe_create_decider(session, tournament_id, fmt, winner_id)

    session.commit()
    result.champion_team_id = get_champion(session, tournament)
    return result


def get_champion(session: Session, tournament: Tournament) -> Optional[int]:
    """
    The bracket champion, once resolved: the decider's winner if the decider
    was played, otherwise the trigger game's winner if no decider was needed.
    """
    fmt = get_bracket_format(tournament.bracket_format)
    rule = fmt.decider

    decider = get_bracket_match_by_number(session, tournament.id, rule.game_number)
    if decider is not None:
        return winner_of(decider) if decider.status == MATCH_COMPLETED else None

    trigger = get_bracket_match_by_number(session, tournament.id, rule.trigger_game)
    if trigger is None or trigger.status != MATCH_COMPLETED:
        return None
    reference = get_bracket_match_by_number(session, tournament.id, rule.reference_game)
    trigger_winner = winner_of(trigger)
    if reference is not None and winner_of(reference) == trigger_winner:
        return trigger_winner
    return None
