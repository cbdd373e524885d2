"""Seed the database with a small forum tree and demo users."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from forum_engine.database import SessionLocal, engine, Base
import forum_engine.models  # noqa: F401

from forum_engine.models.user import User
from forum_engine.schemas.forum import BoardCreate, CategoryCreate, ThreadCreate
from forum_engine.services import post_service, structure_service, thread_service


def seed():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        if db.query(User).count() > 0:
            print("Database already seeded. Skipping.")
            return

        # Users
        users = [
            User(username="admin", nickname="관리자", role="admin"),
            User(username="moderator", nickname="모더레이터", role="moderator"),
            User(username="alice", nickname="앨리스", role="member"),
            User(username="bob", nickname="밥", role="member"),
        ]
        db.add_all(users)
        db.commit()
        admin, _, alice, bob = users

        # Categories / boards
        news = structure_service.create_category(db, CategoryCreate(title="News", description="공지와 소식"), admin)
        community = structure_service.create_category(db, CategoryCreate(title="Community"), admin)
        announcements = structure_service.create_board(
            db, BoardCreate(category_id=news.id, title="Announcements"), admin
        )
        structure_service.create_board(db, BoardCreate(category_id=news.id, title="Changelog"), admin)
        chat = structure_service.create_board(db, BoardCreate(category_id=community.id, title="Chat"), admin)

        # Threads / posts
        welcome = thread_service.create_thread(
            db, announcements.id, ThreadCreate(title="Welcome to the forum", body="<p>규칙을 먼저 읽어주세요.</p>"), admin
        )
        thread_service.pin(db, welcome, admin)
        thread_service.lock(db, welcome, admin)

        hello = thread_service.create_thread(
            db, chat.id, ThreadCreate(title="Hello everyone", body="처음 인사드립니다."), alice
        )
        post_service.create_post(db, hello, "반갑습니다!", bob)
        post_service.create_post(db, hello, "환영해요.", admin)

        print("Seed data inserted successfully.")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
