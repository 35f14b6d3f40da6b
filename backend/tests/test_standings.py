"""Standings Engine: additive per-pod updates and the three-key ranking."""
import random

import pytest
from sqlmodel import Session, select

from podvolley.models.pool_standing import PoolStanding
from podvolley.services.standings_service import (
    StandingRow,
    rank_rows,
    rank_standings,
    record_game_result,
)
from tests.conftest import make_pods, make_tournament


def _standing(session: Session, pod_id: int) -> PoolStanding:
    return session.exec(select(PoolStanding).where(PoolStanding.pod_id == pod_id)).one()


def test_first_game_creates_rows_with_single_game_stats(session: Session, tournament, pods):
    winners = [pods[3].id, pods[4].id, pods[5].id]
    losers = [pods[6].id, pods[7].id, pods[8].id]

    updated = record_game_result(session, tournament.id, winners, losers, 21, 17)
    session.commit()

    assert updated == 6
    w = _standing(session, pods[3].id)
    assert (w.wins, w.losses, w.points_for, w.points_against) == (1, 0, 21, 17)
    lo = _standing(session, pods[8].id)
    assert (lo.wins, lo.losses, lo.points_for, lo.points_against) == (0, 1, 17, 21)


def test_updates_are_additive(session: Session, tournament, pods):
    a = [pods[0].id, pods[1].id, pods[2].id]
    b = [pods[3].id, pods[4].id, pods[5].id]

    record_game_result(session, tournament.id, a, b, 21, 15)
    session.commit()
    record_game_result(session, tournament.id, b, a, 25, 23)
    session.commit()
    session.expire_all()

    s = _standing(session, pods[0].id)
    assert (s.wins, s.losses, s.points_for, s.points_against) == (1, 1, 44, 40)
    s = _standing(session, pods[5].id)
    assert (s.wins, s.losses, s.points_for, s.points_against) == (1, 1, 40, 44)


def test_overlapping_sides_rejected(session: Session, tournament, pods):
    with pytest.raises(ValueError):
        record_game_result(session, tournament.id, [pods[0].id, pods[1].id], [pods[1].id], 21, 10)


def test_unknown_pod_is_skipped(session: Session, tournament, pods):
    other = make_tournament(session, slug="other-event")
    stranger = make_pods(session, other, count=1)[0]

    updated = record_game_result(session, tournament.id, [pods[0].id, 9999], [stranger.id], 21, 10)
    session.commit()

    assert updated == 1
    rows = session.exec(select(PoolStanding)).all()
    assert [r.pod_id for r in rows] == [pods[0].id]


def test_wins_plus_losses_matches_pods_involved(session: Session, tournament, pods):
    rng = random.Random(7)
    ids = [p.id for p in pods]
    expected = 0
    for _ in range(25):
        rng.shuffle(ids)
        size = rng.randint(1, 3)
        record_game_result(session, tournament.id, ids[:size], ids[size:size * 2], 21, rng.randint(0, 19))
        session.commit()
        expected += 2 * size
    session.expire_all()

    rows = rank_standings(session, tournament.id)
    assert sum(r.games_played for r in rows) == expected
    assert sum(r.wins for r in rows) == sum(r.losses for r in rows)


def test_pool_games_of_three_pods_give_six_results_per_game(session: Session, tournament, pods):
    ids = [p.id for p in pods]
    record_game_result(session, tournament.id, ids[3:6], ids[6:9], 21, 18)
    record_game_result(session, tournament.id, ids[0:3], ids[6:9], 21, 12)
    session.commit()
    session.expire_all()

    rows = rank_standings(session, tournament.id)
    assert sum(r.wins + r.losses for r in rows) == 2 * 3 * 2
    assert sum(r.wins for r in rows) == sum(r.losses for r in rows)


def test_rank_includes_pods_without_games(session: Session, tournament, pods):
    record_game_result(session, tournament.id, [pods[8].id], [pods[7].id], 21, 5)
    session.commit()

    rows = rank_standings(session, tournament.id)
    assert len(rows) == 9
    assert rows[0].pod_id == pods[8].id
    assert rows[-1].pod_id == pods[7].id
    # Zero-game pods sit between, in pod-number order
    assert [r.pod_number for r in rows[1:-1]] == [1, 2, 3, 4, 5, 6, 7]


def _row(pod_id, wins, losses, pf, pa):
    return StandingRow(pod_id=pod_id, pod_number=pod_id, name=f"Pod {pod_id}", team_name=None,
                       wins=wins, losses=losses, points_for=pf, points_against=pa)


def test_rank_rows_tie_breakers():
    rows = [
        _row(1, 1, 1, 40, 40),  # diff 0, pf 40
        _row(2, 2, 0, 42, 30),  # diff 12
        _row(3, 0, 2, 50, 50),  # diff 0, pf 50
        _row(4, 2, 1, 50, 50),  # diff 0, pf 50, more wins
    ]
    assert [r.pod_id for r in rank_rows(rows)] == [2, 4, 3, 1]


def test_rank_rows_is_stable_for_identical_stats():
    rows = [_row(i, 1, 1, 30, 30) for i in (5, 2, 9, 1)]
    assert [r.pod_id for r in rank_rows(rows)] == [5, 2, 9, 1]
    assert [r.pod_id for r in rank_rows(list(reversed(rows)))] == [1, 9, 2, 5]
