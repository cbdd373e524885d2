import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from forum_engine.database import Base, get_db
from forum_engine.main import app
from forum_engine.models.user import User
from forum_engine.models.forum import ForumBoard, ForumCategory
from forum_engine.schemas.forum import ThreadCreate
from forum_engine.services import thread_service

TEST_DB_URL = "sqlite:///./test_forum.db"

REPORT_REASONS = {"spam": "Spam", "abuse": "Abuse"}

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(username="admin", nickname="Admin", role="admin"),
        "moderator": User(username="mod", nickname="Moderator", role="moderator"),
        "alice": User(username="alice", nickname="Alice", role="member"),
        "bob": User(username="bob", nickname="Bob", role="member"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


@pytest.fixture
def seed_board(db):
    category = ForumCategory(title="General", slug="general", position=0)
    db.add(category)
    db.flush()
    board = ForumBoard(category_id=category.id, title="Chat", slug="chat", position=0)
    db.add(board)
    db.commit()
    db.refresh(board)
    return board


@pytest.fixture
def seed_thread(db, seed_users, seed_board):
    return thread_service.create_thread(
        db,
        seed_board.id,
        ThreadCreate(title="First thread", body="<p>Opening post</p>"),
        seed_users["alice"],
    )


def get_token(client, username: str) -> str:
    resp = client.post("/api/auth/login", json={"username": username})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, username: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, username)}"}
