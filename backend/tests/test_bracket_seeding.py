"""Bracket seeding: teams from final standings, then the bracket game graph."""
import pytest
from sqlmodel import Session, select

from podvolley.models.bracket_match import BracketMatch
from podvolley.models.bracket_team import BracketTeam
from podvolley.models.pod import Pod
from podvolley.models.pool_match import MATCH_COMPLETED
from podvolley.models.pool_standing import PoolStanding
from podvolley.services.bracket_formats import (
    BRACKET_LOSERS,
    BRACKET_WINNERS,
    FOUR_TEAM,
    ROLE_LOSER,
    ROLE_WINNER,
    THREE_TEAM,
    get_bracket_format,
)
from podvolley.services.bracket_service import (
    BracketStateError,
    InsufficientPodsError,
    initialize_bracket,
    partition_pods,
    reset_bracket,
    seed_bracket_games,
    seed_teams_from_standings,
)
from podvolley.services.pool_schedule import seed_pool_schedule
from podvolley.services.scoring import SIDE_A
from podvolley.services.standings_service import apply_pool_result
from tests.conftest import make_pods, make_tournament


def _rank_pods(session: Session, tournament, pods):
    """Give pods[i] a strictly better point differential than pods[i+1]."""
    for i, pod in enumerate(pods):
        session.add(
            PoolStanding(
                tournament_id=tournament.id,
                pod_id=pod.id,
                wins=2,
                losses=2,
                points_for=100 - i,
                points_against=80,
            )
        )
    session.commit()


def test_partition_three_team_pattern():
    teams = partition_pods(["P1", "P2", "P3", "P4", "P5", "P6", "P7", "P8", "P9"], THREE_TEAM)
    assert teams == {
        "Team A": ["P1", "P5", "P9"],
        "Team B": ["P2", "P6", "P7"],
        "Team C": ["P3", "P4", "P8"],
    }


def test_partition_four_team_pattern():
    teams = partition_pods(list(range(1, 13)), FOUR_TEAM)
    assert teams == {
        "Team A": [1, 12, 7],
        "Team B": [2, 11, 8],
        "Team C": [3, 9, 6],
        "Team D": [4, 10, 5],
    }
    assert sorted(p for group in teams.values() for p in group) == list(range(1, 13))


def test_partition_requires_enough_pods():
    with pytest.raises(InsufficientPodsError):
        partition_pods(list(range(1, 9)), THREE_TEAM)


def test_unknown_format_rejected():
    assert get_bracket_format(None) is THREE_TEAM
    with pytest.raises(ValueError):
        get_bracket_format("eight_team")


def test_seed_teams_from_standings(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)

    teams = seed_teams_from_standings(session, tournament)

    p = [pod.id for pod in pods]
    assert [t.team_name for t in teams] == ["Team A", "Team B", "Team C"]
    assert [t.seed_rank for t in teams] == [1, 2, 3]
    assert teams[0].pod_ids == [p[0], p[4], p[8]]
    assert teams[1].pod_ids == [p[1], p[5], p[6]]
    assert teams[2].pod_ids == [p[2], p[3], p[7]]


def test_seed_teams_is_idempotent(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    first = seed_teams_from_standings(session, tournament)

    # Standings change after seeding; teams must not
    for s in session.exec(select(PoolStanding)).all():
        s.points_for = 0
        session.add(s)
    session.commit()

    second = seed_teams_from_standings(session, tournament)
    assert [(t.id, t.pod_ids) for t in first] == [(t.id, t.pod_ids) for t in second]
    assert len(session.exec(select(BracketTeam)).all()) == 3


def test_seed_teams_requires_nine_pods(session: Session, tournament):
    make_pods(session, tournament, count=8)
    with pytest.raises(InsufficientPodsError):
        seed_teams_from_standings(session, tournament)


def test_seed_bracket_games_three_team(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    team_a, team_b, team_c = seed_teams_from_standings(session, tournament)

    games = {g.game_number: g for g in seed_bracket_games(session, tournament, [team_a, team_b, team_c])}

    assert sorted(games) == [1, 2, 3, 4]
    assert (games[1].team_a_id, games[1].team_b_id) == (team_b.id, team_c.id)
    assert (games[2].team_a_id, games[2].team_b_id) == (team_a.id, None)
    assert (games[2].source_game_b, games[2].source_b_role) == (1, ROLE_WINNER)
    assert (games[3].team_a_id, games[3].team_b_id) == (None, None)
    assert games[3].bracket_type == BRACKET_LOSERS
    assert (games[3].source_game_a, games[3].source_a_role) == (1, ROLE_LOSER)
    assert (games[3].source_game_b, games[3].source_b_role) == (2, ROLE_LOSER)
    assert (games[4].source_game_a, games[4].source_game_b) == (2, 3)
    assert games[4].bracket_type == BRACKET_WINNERS


def test_seed_bracket_games_is_idempotent(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    teams = seed_teams_from_standings(session, tournament)

    first = seed_bracket_games(session, tournament, teams)
    second = seed_bracket_games(session, tournament, teams)

    assert [g.id for g in first] == [g.id for g in second]
    assert len(session.exec(select(BracketMatch)).all()) == 4


def test_seed_bracket_games_requires_all_teams(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    teams = seed_teams_from_standings(session, tournament)
    with pytest.raises(BracketStateError):
        seed_bracket_games(session, tournament, teams[:2])


def test_four_team_bracket_seeds_six_games(session: Session):
    tournament = make_tournament(session, slug="big-one", bracket_format="four_team", max_pods=12)
    pods = make_pods(session, tournament, count=12)
    _rank_pods(session, tournament, pods)

    teams = seed_teams_from_standings(session, tournament)
    games = {g.game_number: g for g in seed_bracket_games(session, tournament, teams)}

    assert [t.team_name for t in teams] == ["Team A", "Team B", "Team C", "Team D"]
    assert sorted(games) == [1, 2, 3, 4, 5, 6]
    assert (games[1].team_a_id, games[1].team_b_id) == (teams[0].id, teams[2].id)
    assert (games[2].team_a_id, games[2].team_b_id) == (teams[1].id, teams[3].id)


def test_initialize_requires_completed_pool_play(session: Session, tournament, pods):
    with pytest.raises(BracketStateError):
        initialize_bracket(session, tournament)

    matches = seed_pool_schedule(session, tournament)
    with pytest.raises(BracketStateError):
        initialize_bracket(session, tournament)

    for m in matches:
        m.status = MATCH_COMPLETED
        session.add(m)
    session.commit()
    _rank_pods(session, tournament, pods)

    teams, games = initialize_bracket(session, tournament)
    assert len(teams) == 3
    assert len(games) == 4


def test_reset_bracket_reseeds_from_current_standings(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    teams = seed_teams_from_standings(session, tournament)
    seed_bracket_games(session, tournament, teams)

    # Reverse the standings: the last pod is now the top seed
    for s in session.exec(select(PoolStanding)).all():
        s.points_for = 200 - s.points_for
        session.add(s)
    session.commit()

    new_teams, new_games = reset_bracket(session, tournament)

    assert new_teams[0].pod1_id == pods[-1].id
    assert len(new_games) == 4
    assert len(session.exec(select(BracketTeam)).all()) == 3
    assert len(session.exec(select(BracketMatch)).all()) == 4


def test_partition_rejects_extra_pods():
    with pytest.raises(BracketStateError):
        partition_pods(list(range(1, 11)), THREE_TEAM)


def test_pods_outside_pool_schedule_stay_out_of_bracket(session: Session):
    tournament = make_tournament(session, slug="ten-pods", max_pods=10)
    pods = make_pods(session, tournament, count=10)
    for match in seed_pool_schedule(session, tournament):
        match.team_a_score, match.team_b_score = 21, 10
        match.status = MATCH_COMPLETED
        session.add(match)
        apply_pool_result(session, match, SIDE_A)
    session.commit()

    teams, _ = initialize_bracket(session, tournament)

    seeded = {pod_id for team in teams for pod_id in team.pod_ids}
    assert pods[9].id not in seeded
    assert seeded == {pod.id for pod in pods[:9]}


def test_failed_reset_keeps_existing_bracket(session: Session, tournament, pods):
    _rank_pods(session, tournament, pods)
    teams = seed_teams_from_standings(session, tournament)
    games = seed_bracket_games(session, tournament, teams)
    team_ids = [t.id for t in teams]
    game_ids = [g.id for g in games]

    # A tenth pod with no pool schedule makes reseeding impossible
    session.add(
        Pod(tournament_id=tournament.id, pod_number=10, email="late@example.com", name="Late Pod", player1="Late")
    )
    session.commit()

    with pytest.raises(BracketStateError):
        reset_bracket(session, tournament)

    session.expire_all()
    assert [t.id for t in session.exec(select(BracketTeam).order_by(BracketTeam.seed_rank)).all()] == team_ids
    assert [g.id for g in session.exec(select(BracketMatch).order_by(BracketMatch.game_number)).all()] == game_ids
