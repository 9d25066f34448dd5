"""Shared fixtures: an in-memory database, factories and an API client."""

import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from themeleague.database import Base, get_db
from themeleague.main import app
from themeleague.models.models import ContentType, Submission, User
from themeleague.services import leagues as league_service
from themeleague.services import round_state
from themeleague.services.allocation import AllocationRegistry
from themeleague.utils.security import create_access_token


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def registry():
    return AllocationRegistry()


@pytest.fixture
def client(db, registry):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.state.allocations = registry
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make_user(username: str) -> User:
        user = User(
            username=username,
            email=f"{username.lower()}@example.com",
            password_hash="not-a-real-hash",
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict:
        token = create_access_token({"sub": str(user.user_id)})
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def make_league(db):
    def _make_league(
        creator: User,
        members=(),
        number_of_rounds: int = 3,
        upvotes: int = 3,
        downvotes: int = 2,
    ):
        league = league_service.create_league(
            db,
            creator,
            name="Photo League",
            number_of_rounds=number_of_rounds,
            upvotes_per_user=upvotes,
            downvotes_per_user=downvotes,
            start_date=datetime(2030, 1, 1),
        )
        for member in members:
            league_service.join_league(db, member, league.league_id)
        return league

    return _make_league


@pytest.fixture
def make_round(db):
    def _make_round(league, theme: str = "Sunsets", start_open: bool = True):
        deadline = datetime(2030, 1, 8)
        return league_service.open_round(
            db,
            league.creator,
            league.league_id,
            theme=theme,
            submission_deadline=deadline,
            voting_deadline=deadline + timedelta(days=7),
            start_open=start_open,
        )

    return _make_round


@pytest.fixture
def make_submission(db):
    def _make_submission(user: User, round_obj, content: str = None):
        submission = Submission(
            user_id=user.user_id,
            round_id=round_obj.round_id,
            content_type=ContentType.TEXT,
            content=content or f"{user.username}'s entry",
        )
        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    return _make_submission


@pytest.fixture
def voting_round(db, make_user, make_league, make_round, make_submission):
    """Round 1 of a three-round league, in voting, with three entries.

    Alice created the league; Bob and Carol joined. Everyone submitted.
    Allowances are 3 upvotes and 2 downvotes.
    """
    alice, bob, carol = (make_user(n) for n in ("Alice", "Bob", "Carol"))
    league = make_league(alice, members=(bob, carol))
    round_obj = make_round(league)
    entries = {
        user.username: make_submission(user, round_obj)
        for user in (alice, bob, carol)
    }
    round_state.start_voting(db, alice, round_obj.round_id)
    return {
        "league": league,
        "round": round_obj,
        "users": {"Alice": alice, "Bob": bob, "Carol": carol},
        "entries": entries,
    }
