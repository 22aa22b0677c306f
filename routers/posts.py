import logging
import re
from typing import Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel

import AuthAndUser as auth
from database import BlogStore, QueryError
from domain.comments import Comment, CommentForm, PostWithComments
from domain.user import AuthContext
from services import comment_service
from services.comment_service import RemovalOutcome

logger = logging.getLogger('uvicorn.error')

# Form inputs look like name="delete-comment[8]" value="Delete"
DELETE_FIELD_PATTERN = re.compile(r'^delete-comment\[(?P<comment_id>[^\]]*)\]$')

router = APIRouter(
    prefix="/posts",
    tags=["posts", "comments"]
)


class Redirect(BaseModel):
    url: str


class FormErrors(BaseModel):
    errors: Dict[str, str]
    comment: CommentForm


def post_url(post_id: int) -> str:
    return f"/posts/{post_id}"


# --- Handlers ---
def handle_submit(store: BlogStore, post_id: int, comment: CommentForm) -> Redirect | FormErrors:
    """Store a comment, then send the browser back to the post; on errors keep what was typed."""
    errors = comment_service.submit_comment(store, post_id, comment)
    if not errors:
        return Redirect(url=post_url(post_id))
    return FormErrors(errors=errors, comment=comment)


def parse_delete_request(form) -> Dict[str, str]:
    """Collect {comment_id: label} from delete-comment[<id>] fields, in form order."""
    delete_request = {}
    for key, value in form.multi_items():
        match = DELETE_FIELD_PATTERN.match(key)
        if match:
            delete_request.setdefault(match.group('comment_id'), value)
    return delete_request


def _first_comment_id(delete_request: Dict[str, str]) -> Optional[int]:
    # Only the first key is honoured, whatever its value says.
    first_key = next(iter(delete_request), None)
    if first_key is None:
        return None
    try:
        return int(first_key)
    except ValueError:
        return None


def handle_delete(
    store: BlogStore,
    post_id: int,
    delete_request: Dict[str, str],
    auth_context: AuthContext,
) -> Optional[Redirect]:
    """
    Remove the comment named by the first key of the delete request.

    Authenticated callers are always redirected back to the post, even when
    the id was missing or nothing matched. Anyone else gets None and no
    side effects.
    """
    outcome = comment_service.remove_comment(store, post_id, _first_comment_id(delete_request), auth_context)
    if outcome is RemovalOutcome.UNAUTHORIZED:
        return None
    return Redirect(url=post_url(post_id))


# --- Helpers ---
def _load_post(store: BlogStore, post_id: int) -> PostWithComments:
    try:
        post = comment_service.get_post_with_comments(store, post_id)
    except QueryError as e:
        logger.exception(f"Error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error while fetching post")
    if post is None:
        logger.warning(f"Post with ID {post_id} not found.")
        raise HTTPException(status_code=404, detail=f"Post with id {post_id} not found")
    return post


async def get_delete_request(request: Request) -> Dict[str, str]:
    form = await request.form()
    return parse_delete_request(form)


def _redirect(result: Redirect) -> RedirectResponse:
    return RedirectResponse(url=result.url, status_code=status.HTTP_303_SEE_OTHER)


# --- Post API Routes ---
@router.get("/{post_id}", response_model=PostWithComments)
def get_post_by_id(
    post_id: int,
    store: BlogStore = Depends(auth.get_blog_store)
):
    return _load_post(store, post_id)


# --- Comment API Routes ---
@router.get("/{post_id}/comments/", response_model=List[Comment])
def get_comments_for_post(
    post_id: int,
    store: BlogStore = Depends(auth.get_blog_store)
):
    post = _load_post(store, post_id)
    return post.comments


@router.post("/{post_id}/comments/")
def create_comment(
    post_id: int,
    name: Annotated[str, Form()] = "",
    website: Annotated[str, Form()] = "",
    text: Annotated[str, Form()] = "",
    store: BlogStore = Depends(auth.get_blog_store)
):
    result = handle_submit(store, post_id, CommentForm(name=name, website=website, text=text))
    if isinstance(result, Redirect):
        return _redirect(result)
    return JSONResponse(
        status_code=422,
        content=result.model_dump(),
    )


@router.post("/{post_id}/comments/delete")
def delete_comment(
    post_id: int,
    delete_request: Annotated[Dict[str, str], Depends(get_delete_request)],
    auth_context: Annotated[AuthContext, Depends(auth.get_auth_context)],
    store: BlogStore = Depends(auth.get_blog_store)
):
    try:
        result = handle_delete(store, post_id, delete_request, auth_context)
    except QueryError as e:
        logger.exception(f"Error deleting comment on post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error while deleting comment")
    if result is None:
        # Not logged in: nothing happens and the post is shown as usual.
        return _load_post(store, post_id)
    return _redirect(result)
