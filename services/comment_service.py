import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from database import BlogStore, PersistenceError
from domain.comments import CommentForm, NewComment, PostWithComments, validate_comment
from domain.user import AuthContext

logger = logging.getLogger('uvicorn.error')

STORE_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
GENERAL_ERROR_KEY = "general"
SAVE_FAILED_MESSAGE = "Your comment could not be saved. Please try again later."


class RemovalOutcome(str, Enum):
    DELETED = "deleted"
    NOT_DELETED = "not_deleted"
    SKIPPED = "skipped"
    UNAUTHORIZED = "unauthorized"


def now_as_store_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(STORE_TIMESTAMP_FORMAT)


def submit_comment(
    store: BlogStore,
    post_id: int,
    comment: CommentForm,
    clock: Callable[[], str] = now_as_store_timestamp,
) -> Dict[str, str]:
    """
    Validate a submitted comment and write it to the post.

    Returns the error mapping, empty when the comment was stored. Field
    errors stop before the store is touched. A rejected insert is logged
    with the store's diagnostic and reported under a generic key.
    """
    errors = validate_comment(comment)
    if errors:
        return errors

    new_comment = NewComment(
        post_id=post_id,
        name=comment.name,
        website=comment.website or "",
        text=comment.text,
        created_at=clock(),
    )
    try:
        store.insert_comment(new_comment)
    except PersistenceError as e:
        logger.error(f"Store rejected comment on post {post_id}: {e}")
        return {GENERAL_ERROR_KEY: SAVE_FAILED_MESSAGE}

    logger.info(f"Comment by '{new_comment.name}' added to post {post_id}")
    return {}


def remove_comment(
    store: BlogStore,
    post_id: int,
    comment_id: Optional[int],
    auth: AuthContext,
) -> RemovalOutcome:
    """Delete a comment for an authenticated user; anyone else gets UNAUTHORIZED and no store call."""
    if not auth.is_authenticated:
        return RemovalOutcome.UNAUTHORIZED
    if not comment_id:
        return RemovalOutcome.SKIPPED

    if store.delete_comment(post_id, comment_id):
        logger.info(f"User '{auth.user.username}' deleted comment {comment_id} on post {post_id}")
        return RemovalOutcome.DELETED
    logger.warning(f"Comment {comment_id} on post {post_id} was not deleted")
    return RemovalOutcome.NOT_DELETED


def get_post_with_comments(store: BlogStore, post_id: int) -> Optional[PostWithComments]:
    post = store.fetch_post(post_id)
    if post is None:
        return None
    return PostWithComments(**post.model_dump(), comments=store.fetch_comments(post_id))
