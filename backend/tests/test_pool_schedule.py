from collections import Counter
from itertools import combinations

import pytest
from sqlmodel import Session

from podvolley.models.pool_match import MATCH_COMPLETED, MATCH_PENDING
from podvolley.services.pool_schedule import (
    ScheduleError,
    generate_pool_schedule,
    get_all_pool_matches,
    is_pool_play_complete,
    seed_pool_schedule,
)
from tests.conftest import make_pods


def test_nine_pods_make_six_games():
    games = generate_pool_schedule(list(range(1, 10)))

    assert [g.game_number for g in games] == [1, 2, 3, 4, 5, 6]
    assert games[0].team_a == [4, 5, 6]
    assert games[0].team_b == [7, 8, 9]
    assert games[0].sitting == [1, 2, 3]
    assert {g.round_number for g in games} == {1, 2}


def test_every_pod_plays_equally():
    games = generate_pool_schedule(list(range(1, 10)))
    played = Counter(p for g in games for p in g.team_a + g.team_b)
    sat = Counter(p for g in games for p in g.sitting)

    assert set(played.values()) == {4}
    assert set(sat.values()) == {2}


def test_sides_are_disjoint_and_cover_all_pods():
    for n in (9, 12, 15):
        for g in generate_pool_schedule(list(range(100, 100 + n))):
            assert len(g.team_a) == 3 and len(g.team_b) == 3
            assert not set(g.team_a) & set(g.team_b)
            assert sorted(g.team_a + g.team_b + g.sitting) == list(range(100, 100 + n))


def test_partners_change_between_rounds():
    games = generate_pool_schedule(list(range(1, 10)))
    partner_pairs = Counter(
        pair for g in games for side in (g.team_a, g.team_b) for pair in combinations(sorted(side), 2)
    )
    # Each pair of pods is partnered at most twice (once per round at most)
    assert max(partner_pairs.values()) <= 2
    round1 = {tuple(sorted(g.team_a)) for g in games if g.round_number == 1}
    round2 = {tuple(sorted(g.team_a)) for g in games if g.round_number == 2}
    assert not round1 & round2


@pytest.mark.parametrize("n", [0, 3, 6, 10])
def test_rejects_unsupported_pod_counts(n):
    with pytest.raises(ScheduleError):
        generate_pool_schedule(list(range(n)))


def test_rejects_duplicate_pods():
    with pytest.raises(ScheduleError):
        generate_pool_schedule([1, 1, 2, 3, 4, 5, 6, 7, 8])


def test_seed_pool_schedule_uses_pod_ids_and_is_idempotent(session: Session, tournament, pods):
    first = seed_pool_schedule(session, tournament)
    second = seed_pool_schedule(session, tournament)

    assert len(first) == 6
    assert [m.id for m in first] == [m.id for m in second]
    pod_ids = {p.id for p in pods}
    for m in first:
        assert m.status == MATCH_PENDING
        assert set(m.team_a_pods) <= pod_ids
        assert set(m.team_b_pods) <= pod_ids


def test_seed_pool_schedule_needs_enough_pods(session: Session, tournament):
    make_pods(session, tournament, count=8)
    with pytest.raises(ScheduleError):
        seed_pool_schedule(session, tournament)


def test_pool_play_complete_after_all_games(session: Session, tournament, pods):
    assert not is_pool_play_complete(session, tournament)
    matches = seed_pool_schedule(session, tournament)
    assert not is_pool_play_complete(session, tournament)

    for m in matches[:-1]:
        m.status = MATCH_COMPLETED
        session.add(m)
    session.commit()
    assert not is_pool_play_complete(session, tournament)

    last = get_all_pool_matches(session, tournament.id)[-1]
    last.status = MATCH_COMPLETED
    session.add(last)
    session.commit()
    assert is_pool_play_complete(session, tournament)
