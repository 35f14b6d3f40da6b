from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlmodel import Session, select

from podvolley.models.bracket_team import BracketTeam
from podvolley.models.pod import Pod
from podvolley.models.pool_match import PoolMatch
from podvolley.models.pool_standing import PoolStanding
from podvolley.models.tournament import Tournament
from podvolley.models.tournament_role import TournamentRole
from podvolley.services.pool_schedule import seed_pool_schedule
from tests.conftest import ORGANIZER_HEADERS, ORGANIZER_ID, make_organizer, make_pods, make_tournament

NEW_TOURNAMENT = {
    "name": "Two Peas in a Pod",
    "date": "2025-12-06T09:00:00",
    "location": "Sandbox Beach",
}


def test_create_requires_sign_in(client: TestClient):
    response = client.post("/api/tournaments", json=NEW_TOURNAMENT)
    assert response.status_code == 401


def test_create_requires_whitelist(client: TestClient):
    response = client.post("/api/tournaments", json=NEW_TOURNAMENT, headers=ORGANIZER_HEADERS)
    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized to create tournaments"


def test_create_makes_creator_organizer(client: TestClient, session: Session):
    make_organizer(session)

    response = client.post("/api/tournaments", json=NEW_TOURNAMENT, headers=ORGANIZER_HEADERS)

    assert response.status_code == 201
    data = response.json()
    assert data["slug"] == "two-peas-in-a-pod-dec-2025"
    assert data["created_by"] == ORGANIZER_ID
    assert data["max_pods"] == 9
    assert data["bracket_format"] == "three_team"
    assert data["scoring_rules"] == {"start_points": 0, "end_points": 21, "win_by_two": True, "cap": 25}

    role = client.get(f"/api/tournaments/{data['id']}/role", headers=ORGANIZER_HEADERS)
    assert role.json() == {"role": "organizer"}


def test_generated_slug_is_unique(client: TestClient, session: Session):
    make_organizer(session)
    first = client.post("/api/tournaments", json=NEW_TOURNAMENT, headers=ORGANIZER_HEADERS).json()
    second = client.post("/api/tournaments", json=NEW_TOURNAMENT, headers=ORGANIZER_HEADERS).json()

    assert first["slug"] == "two-peas-in-a-pod-dec-2025"
    assert second["slug"] == "two-peas-in-a-pod-dec-2025-2"


def test_custom_slug_validation(client: TestClient, session: Session):
    make_organizer(session)
    make_tournament(session, slug="taken-slug")

    bad = client.post("/api/tournaments", json={**NEW_TOURNAMENT, "slug": "Bad Slug!"}, headers=ORGANIZER_HEADERS)
    taken = client.post("/api/tournaments", json={**NEW_TOURNAMENT, "slug": "taken-slug"}, headers=ORGANIZER_HEADERS)
    ok = client.post("/api/tournaments", json={**NEW_TOURNAMENT, "slug": "summer-pods"}, headers=ORGANIZER_HEADERS)

    assert bad.status_code == 400
    assert bad.json()["detail"].startswith("Invalid slug format")
    assert taken.status_code == 400
    assert taken.json()["detail"].startswith("This URL slug is already taken")
    assert ok.status_code == 201
    assert ok.json()["slug"] == "summer-pods"


def test_create_rejects_bad_settings(client: TestClient, session: Session):
    make_organizer(session)

    bad_format = client.post(
        "/api/tournaments", json={**NEW_TOURNAMENT, "bracket_format": "five_team"}, headers=ORGANIZER_HEADERS
    )
    bad_status = client.post("/api/tournaments", json={**NEW_TOURNAMENT, "status": "paused"}, headers=ORGANIZER_HEADERS)
    bad_rules = client.post(
        "/api/tournaments",
        json={**NEW_TOURNAMENT, "scoring_rules": {"start_points": 0, "end_points": 21, "cap": 15}},
        headers=ORGANIZER_HEADERS,
    )

    assert bad_format.status_code == 400
    assert bad_status.status_code == 400
    assert bad_rules.status_code == 422


def test_get_by_id_and_slug(client: TestClient, tournament):
    by_id = client.get(f"/api/tournaments/{tournament.id}")
    by_slug = client.get(f"/api/tournaments/by-slug/{tournament.slug}")

    assert by_id.status_code == 200
    assert by_slug.json()["id"] == tournament.id
    assert client.get("/api/tournaments/999").status_code == 404
    assert client.get("/api/tournaments/by-slug/nope").status_code == 404


def test_list_filters_by_status(client: TestClient, session: Session):
    make_tournament(session, slug="later", date=datetime(2026, 3, 1))
    make_tournament(session, slug="earlier", date=datetime(2026, 1, 1))
    make_tournament(session, slug="done", status="completed")

    upcoming = client.get("/api/tournaments", params={"status": "upcoming"}).json()

    assert [t["slug"] for t in upcoming] == ["earlier", "later"]


def test_update_requires_organizer(client: TestClient, session: Session, tournament):
    assert client.patch(f"/api/tournaments/{tournament.id}", json={"name": "X"}).status_code == 401
    stranger = client.patch(
        f"/api/tournaments/{tournament.id}", json={"name": "X"}, headers={"X-User-Id": "someone_else"}
    )
    assert stranger.status_code == 403
    assert stranger.json()["detail"] == "Not authorized to edit this tournament"

    make_organizer(session, tournament)
    response = client.patch(
        f"/api/tournaments/{tournament.id}",
        json={"name": "Renamed", "scoring_rules": {"start_points": 4, "end_points": 25, "cap": 27}},
        headers=ORGANIZER_HEADERS,
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Renamed"
    assert response.json()["scoring_rules"]["start_points"] == 4


def test_update_cannot_shrink_below_registered(client: TestClient, session: Session, tournament, pods):
    make_organizer(session, tournament)
    response = client.patch(f"/api/tournaments/{tournament.id}", json={"max_pods": 8}, headers=ORGANIZER_HEADERS)
    assert response.status_code == 400


def test_delete_requires_organizer(client: TestClient, tournament):
    assert client.delete("/api/tournaments/999", headers=ORGANIZER_HEADERS).status_code == 404
    response = client.delete(f"/api/tournaments/{tournament.id}", headers={"X-User-Id": "someone_else"})
    assert response.status_code == 403
    assert response.json()["detail"] == "Not authorized to delete this tournament"


def test_delete_removes_everything(client: TestClient, session: Session, tournament, pods):
    make_organizer(session, tournament)
    other = make_tournament(session, slug="other-event")
    make_pods(session, other, count=2)
    seed_pool_schedule(session, tournament)
    session.add(PoolStanding(tournament_id=tournament.id, pod_id=pods[0].id, wins=1, points_for=21, points_against=10))
    session.add(BracketTeam(tournament_id=tournament.id, team_name="Team A", seed_rank=1,
                            pod1_id=pods[0].id, pod2_id=pods[4].id, pod3_id=pods[8].id))
    session.commit()
    tournament_id = tournament.id

    response = client.delete(f"/api/tournaments/{tournament_id}", headers=ORGANIZER_HEADERS)

    assert response.status_code == 204
    session.expire_all()
    assert session.get(Tournament, tournament_id) is None
    for model in (Pod, PoolMatch, PoolStanding, BracketTeam, TournamentRole):
        assert session.exec(select(model).where(model.tournament_id == tournament_id)).all() == []
    assert len(session.exec(select(Pod).where(Pod.tournament_id == other.id)).all()) == 2


def test_pods_count_and_registration_status(client: TestClient, session: Session, tournament):
    make_pods(session, tournament, count=3)

    count = client.get(f"/api/tournaments/{tournament.id}/pods-count").json()
    status = client.get(f"/api/tournaments/{tournament.id}/registration-status").json()

    assert count == {"count": 3, "max_pods": 9}
    assert status["is_open"] is True
    assert status["spots_remaining"] == 6


def test_registration_status_closed_when_full(client: TestClient, tournament, pods):
    status = client.get(f"/api/tournaments/{tournament.id}/registration-status").json()
    assert status["is_open"] is False
    assert status["reason"] == "Registration is closed. All 9 spots have been filled."


def test_registration_status_before_open_date(client: TestClient, session: Session):
    tournament = make_tournament(session, registration_open_date=datetime.utcnow() + timedelta(days=3))
    status = client.get(f"/api/tournaments/{tournament.id}/registration-status").json()
    assert status["is_open"] is False
    assert status["reason"] == "Registration has not opened yet."


def test_role_for_anonymous_and_strangers(client: TestClient, tournament):
    assert client.get(f"/api/tournaments/{tournament.id}/role").json() == {"role": None}
    stranger = client.get(f"/api/tournaments/{tournament.id}/role", headers={"X-User-Id": "someone_else"})
    assert stranger.json() == {"role": None}
