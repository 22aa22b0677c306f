from pydantic import BaseModel, Field
from typing import Dict, List, Optional
import datetime

NAME_REQUIRED = "A name is required"
TEXT_REQUIRED = "A comment is required"


class Post(BaseModel):
    id: int
    title: str
    created_at: str | datetime.datetime
    body: str
    comment_count: int = 0

    class Config:
        from_attributes = True


class CommentForm(BaseModel):
    """Raw values of the comment form, echoed back unchanged on errors."""
    name: Optional[str] = ""
    website: Optional[str] = ""
    text: Optional[str] = ""


class NewComment(BaseModel):
    post_id: int
    name: str
    website: str = ""
    text: str
    created_at: str  # server clock, store timestamp format


class Comment(NewComment):
    id: int
    created_at: str | datetime.datetime

    class Config:
        from_attributes = True


class PostWithComments(Post):
    comments: List[Comment] = Field(default_factory=list)


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def validate_comment(comment: CommentForm) -> Dict[str, str]:
    """
    Map each invalid field of a submitted comment to its error message.

    Both rules are checked independently; an empty dict means the comment
    may be stored. The website field is free-form and never rejected.
    """
    errors: Dict[str, str] = {}
    if _is_blank(comment.name):
        errors['name'] = NAME_REQUIRED
    if _is_blank(comment.text):
        errors['text'] = TEXT_REQUIRED
    return errors
