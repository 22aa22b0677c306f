from datetime import datetime, timedelta, timezone
from typing import Annotated, Optional

import bcrypt
import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel
import logging

from config import get_settings
from database import BlogStore
from domain.user import AuthContext, User, UserInDB
import secretmanager

ALGORITHM = "HS256"

logger = logging.getLogger('uvicorn.error')

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    username: str | None = None


def get_blog_store(request: Request) -> BlogStore:
    if not hasattr(request.app.state, 'db') or not request.app.state.db:
        logger.error("Blog store not initialized or unavailable.")
        raise HTTPException(status_code=503, detail="Database service unavailable")
    return request.app.state.db


class MissingSigningKeyError(RuntimeError):
    """Neither BLOG_AUTH_KEY nor BLOG_AUTH_SECRET_ID is configured."""


def get_secret_key():
    settings = get_settings()
    if settings.auth_key:
        return settings.auth_key
    if settings.auth_secret_id:
        return secretmanager.get_secret(settings.auth_secret_id)
    raise MissingSigningKeyError("Set BLOG_AUTH_KEY or BLOG_AUTH_SECRET_ID to sign access tokens")


def verify_password(plain_password, hashed_password):
    return bcrypt.checkpw(
        bytes(plain_password, encoding="utf-8"),
        bytes(hashed_password, encoding="utf-8"),
    )


def get_password_hash(password):
    return bcrypt.hashpw(
        bytes(password, encoding="utf-8"),
        bcrypt.gensalt(),
    ).decode("utf-8")


def authenticate_user(store: BlogStore, username: str, password: str):
    user = store.fetch_user(username)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=15)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, get_secret_key(), algorithm=ALGORITHM)
    return encoded_jwt


def _user_from_token(store: BlogStore, token: str) -> Optional[UserInDB]:
    try:
        payload = jwt.decode(token, get_secret_key(), algorithms=[ALGORITHM])
    except InvalidTokenError:
        return None
    username = payload.get("sub")
    if username is None:
        return None
    token_data = TokenData(username=username)
    return store.fetch_user(token_data.username)


def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    store: Annotated[BlogStore, Depends(get_blog_store)],
):
    user = _user_from_token(store, token)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
):
    logging.info("current_user: %s", current_user.username)
    if current_user.disabled:
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def get_auth_context(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    store: Annotated[BlogStore, Depends(get_blog_store)],
) -> AuthContext:
    """Resolve the caller without rejecting anonymous or badly authenticated requests."""
    if not token:
        return AuthContext()
    try:
        user = _user_from_token(store, token)
    except MissingSigningKeyError as e:
        logger.error(f"Cannot verify bearer token, treating caller as anonymous: {e}")
        return AuthContext()
    if user is None:
        logger.warning("Ignoring invalid bearer token")
        return AuthContext()
    return AuthContext(user=User(username=user.username, disabled=user.disabled))
