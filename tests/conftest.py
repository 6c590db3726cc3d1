import pytest
import os

# test environment, must be set before the app is imported
os.environ["APP_ENV"] = "test"

from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker
from blog_api.main import app
from blog_api.db.database import Base, build_engine, create_tables, get_session_maker, SQLITE_TEST_DB
from blog_api.models.post import Post
from blog_api.models.post_tag import tags_posts
from blog_api.models.tag import Tag
from blog_api.services.post_repository import PostRepository

# test database
test_engine = build_engine(SQLITE_TEST_DB)
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(autouse=True)
def clean_db():
    """Drop and recreate the test database"""
    Base.metadata.drop_all(bind=test_engine)
    create_tables(test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session_factory():
    return TestSessionLocal


@pytest.fixture
def repository(session_factory):
    return PostRepository(session_factory)


@pytest.fixture
def client(clean_db):
    """Test client bound to the test database"""
    app.dependency_overrides[get_session_maker] = lambda: TestSessionLocal
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture
def post_data():
    return {
        "title": "Test Post",
        "content": "This is a test post content",
        "category": "general",
        "tags": ["x", "y"]
    }


def count_rows(table) -> int:
    with TestSessionLocal() as session:
        return session.execute(select(func.count()).select_from(table)).scalar_one()


def count_posts() -> int:
    return count_rows(Post.__table__)


def count_tags() -> int:
    return count_rows(Tag.__table__)


def count_links() -> int:
    return count_rows(tags_posts)


def tag_ids_by_name() -> dict:
    with TestSessionLocal() as session:
        return {row.name: row.id for row in session.execute(select(Tag.id, Tag.name))}
