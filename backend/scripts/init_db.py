"""Create the forum engine tables (categories, boards, threads, posts, reports, revisions, reads, audit log)."""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from forum_engine.config import settings
from forum_engine.database import engine, Base
import forum_engine.models  # noqa: F401 - registers all models


def init_db():
    print(f"Creating forum tables on {settings.DATABASE_URL} ...")
    Base.metadata.create_all(bind=engine)
    tables = ", ".join(sorted(Base.metadata.tables))
    print(f"Forum schema ready: {tables}")


if __name__ == "__main__":
    init_db()
