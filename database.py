"""
Relational store access for posts, comments and users.

Every statement is a SQLAlchemy ``text()`` construct with bound parameters;
no request value is ever formatted into SQL. The store holds no business
rules, it only translates between rows and the domain models.
"""
import logging
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from domain.comments import Comment, NewComment, Post
from domain.user import UserInDB

logger = logging.getLogger('uvicorn.error')

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS post (
        id INTEGER PRIMARY KEY,
        title VARCHAR NOT NULL,
        body VARCHAR NOT NULL,
        user_id INTEGER,
        created_at VARCHAR NOT NULL,
        updated_at VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS comment (
        id INTEGER PRIMARY KEY,
        post_id INTEGER NOT NULL REFERENCES post (id),
        created_at VARCHAR NOT NULL,
        name VARCHAR NOT NULL,
        website VARCHAR,
        "text" VARCHAR NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS "user" (
        id INTEGER PRIMARY KEY,
        username VARCHAR NOT NULL UNIQUE,
        password VARCHAR NOT NULL,
        created_at VARCHAR NOT NULL,
        is_enabled BOOLEAN NOT NULL DEFAULT TRUE
    )
    """,
)

POST_QUERY = text(
    """
    SELECT id, title, created_at, body,
           (SELECT COUNT(*) FROM comment WHERE comment.post_id = post.id) AS comment_count
    FROM post
    WHERE id = :id
    """
)

COMMENTS_QUERY = text(
    """
    SELECT id, post_id, name, website, "text", created_at
    FROM comment
    WHERE post_id = :post_id
    ORDER BY created_at, id
    """
)

INSERT_COMMENT = text(
    """
    INSERT INTO comment (name, website, "text", created_at, post_id)
    VALUES (:name, :website, :text, :created_at, :post_id)
    """
)

# The comment id alone identifies the row; post_id guards against
# deleting a comment through the wrong post.
DELETE_COMMENT = text(
    """
    DELETE FROM comment
    WHERE post_id = :post_id
    AND id = :comment_id
    """
)

USER_QUERY = text(
    """
    SELECT username, password, is_enabled
    FROM "user"
    WHERE username = :username
    """
)


class BlogStoreError(Exception):
    """Base class for store failures."""


class QueryError(BlogStoreError):
    """A statement could not be prepared or run."""


class PersistenceError(BlogStoreError):
    """The store rejected a write; the message is the driver diagnostic."""


def _diagnostic(error: SQLAlchemyError) -> str:
    orig = getattr(error, 'orig', None)
    return str(orig) if orig is not None else str(error)


class BlogStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs) -> 'BlogStore':
        return cls(create_engine(url, **engine_kwargs))

    def create_schema(self) -> None:
        """Create missing tables; used for local sqlite databases and tests."""
        with self.engine.begin() as conn:
            for statement in SCHEMA:
                conn.execute(text(statement))

    def dispose(self) -> None:
        self.engine.dispose()

    def fetch_post(self, post_id: int) -> Optional[Post]:
        """Retrieve a single post with its live comment count."""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(POST_QUERY, {"id": post_id}).mappings().first()
        except SQLAlchemyError as e:
            raise QueryError(f"There was a problem running this query: {_diagnostic(e)}") from e
        if row is None:
            return None
        return Post(**row)

    def fetch_comments(self, post_id: int) -> List[Comment]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(COMMENTS_QUERY, {"post_id": post_id}).mappings().all()
        except SQLAlchemyError as e:
            raise QueryError(f"There was a problem running this query: {_diagnostic(e)}") from e
        return [Comment(**{**row, "website": row["website"] or ""}) for row in rows]

    def insert_comment(self, comment: NewComment) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(INSERT_COMMENT, comment.model_dump())
        except SQLAlchemyError as e:
            raise PersistenceError(_diagnostic(e)) from e

    def delete_comment(self, post_id: int, comment_id: int) -> bool:
        """
        Delete the comment matched by both ids.

        Returns True when the statement ran, whether or not a row matched.
        """
        try:
            with self.engine.begin() as conn:
                conn.execute(DELETE_COMMENT, {"post_id": post_id, "comment_id": comment_id})
        except IntegrityError as e:
            logger.error(f"Store rejected deletion of comment {comment_id} on post {post_id}: {_diagnostic(e)}")
            return False
        except SQLAlchemyError as e:
            raise QueryError(f"There was a problem running this query: {_diagnostic(e)}") from e
        return True

    def fetch_user(self, username: str) -> Optional[UserInDB]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(USER_QUERY, {"username": username}).mappings().first()
        except SQLAlchemyError as e:
            raise QueryError(f"There was a problem running this query: {_diagnostic(e)}") from e
        if row is None:
            return None
        return UserInDB(
            username=row["username"],
            hashed_password=row["password"],
            disabled=not row["is_enabled"],
        )
