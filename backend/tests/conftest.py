import os
from datetime import datetime

# Keep the app's own engine off the developer's database file
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from podvolley.database import get_session, import_models  # noqa: E402
from podvolley.main import app  # noqa: E402
from podvolley.models.organizer_whitelist import OrganizerWhitelist  # noqa: E402
from podvolley.models.pod import Pod  # noqa: E402
from podvolley.models.tournament import Tournament  # noqa: E402
from podvolley.models.tournament_role import ROLE_ORGANIZER, TournamentRole  # noqa: E402
from podvolley.services import captcha_service, email_service  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

ORGANIZER_ID = "user_organizer"
ORGANIZER_HEADERS = {"X-User-Id": ORGANIZER_ID, "X-User-Email": "organizer@example.com"}

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables are dropped and recreated for every test
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(autouse=True)
def external_services(monkeypatch):
    """Email and CAPTCHA run in dry-run mode unless a test configures them."""
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.delenv("TURNSTILE_SECRET_KEY", raising=False)
    monkeypatch.setattr(email_service, "_email_service", None)
    monkeypatch.setattr(captcha_service, "_captcha_service", None)


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on freshly created tables"""
    import_models()
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place
    for the entire duration. This ensures the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def make_tournament(session: Session, **overrides) -> Tournament:
    values = dict(
        name="Two Peas in a Pod",
        slug="two-peas-in-a-pod-dec-2025",
        date=datetime(2025, 12, 6),
        location="Sandbox Beach",
        created_by=ORGANIZER_ID,
    )
    values.update(overrides)
    tournament = Tournament(**values)
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


def make_pods(session: Session, tournament: Tournament, count: int = 9):
    pods = []
    for n in range(1, count + 1):
        pod = Pod(
            tournament_id=tournament.id,
            pod_number=n,
            email=f"pod{n}@example.com",
            name=f"Player{n}A Smith & Player{n}B Jones",
            player1=f"Player{n}A Smith",
            player2=f"Player{n}B Jones",
        )
        session.add(pod)
        pods.append(pod)
    session.commit()
    for pod in pods:
        session.refresh(pod)
    return pods


def make_organizer(session: Session, tournament: Tournament = None, user_id: str = ORGANIZER_ID) -> None:
    """Whitelist the user and, if a tournament is given, make them its organizer."""
    session.add(OrganizerWhitelist(user_id=user_id, email=f"{user_id}@example.com", added_by="admin"))
    if tournament is not None:
        session.add(TournamentRole(tournament_id=tournament.id, user_id=user_id, role=ROLE_ORGANIZER))
    session.commit()


@pytest.fixture
def tournament(session: Session) -> Tournament:
    return make_tournament(session)


@pytest.fixture
def pods(session: Session, tournament: Tournament):
    return make_pods(session, tournament)
