import os

os.environ.setdefault("BLOG_AUTH_KEY", "test-signing-key")
os.environ.setdefault("BLOG_DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text
from sqlalchemy.pool import StaticPool

import AuthAndUser as auth
import main
from database import BlogStore, PersistenceError


class RecordingStore:
    """Stands in for BlogStore and remembers every write it was asked to do."""

    def __init__(self, fail_insert=False, delete_result=True):
        self.fail_insert = fail_insert
        self.delete_result = delete_result
        self.inserts = []
        self.deletes = []

    def insert_comment(self, comment):
        self.inserts.append(comment)
        if self.fail_insert:
            raise PersistenceError("NOT NULL constraint failed: comment.post_id")

    def delete_comment(self, post_id, comment_id):
        self.deletes.append((post_id, comment_id))
        return self.delete_result


def _execute(store, sql, params):
    with store.engine.begin() as conn:
        conn.execute(text(sql), params)


@pytest.fixture
def store():
    blog_store = BlogStore.from_url(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    blog_store.create_schema()
    for post_id, title in ((3, "Here's our first post"), (5, "Now for a second article")):
        _execute(
            blog_store,
            "INSERT INTO post (id, title, body, created_at) VALUES (:id, :title, :body, :created_at)",
            {"id": post_id, "title": title, "body": f"Body of {title}", "created_at": "2026-10-01 09:00:00"},
        )
    _execute(
        blog_store,
        'INSERT INTO comment (id, post_id, name, website, "text", created_at) '
        'VALUES (:id, :post_id, :name, :website, :text, :created_at)',
        {"id": 8, "post_id": 5, "name": "Jimmy", "website": "http://example.com/",
         "text": "This is Jimmy's contribution", "created_at": "2026-10-02 10:00:00"},
    )
    yield blog_store
    blog_store.dispose()


@pytest.fixture
def user(store):
    _execute(
        store,
        'INSERT INTO "user" (username, password, created_at, is_enabled) '
        'VALUES (:username, :password, :created_at, :is_enabled)',
        {"username": "admin", "password": auth.get_password_hash("s3cret"),
         "created_at": "2026-10-01 08:00:00", "is_enabled": True},
    )
    return "admin"


@pytest.fixture
def token(user):
    return auth.create_access_token(data={"sub": user})


@pytest.fixture
def client(store):
    main.app.dependency_overrides[auth.get_blog_store] = lambda: store
    yield TestClient(main.app, base_url="http://localhost")
    main.app.dependency_overrides.clear()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def failing_store():
    return RecordingStore(fail_insert=True)
