from datetime import timedelta
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from fastapi.middleware.trustedhost import TrustedHostMiddleware

import logging
import AuthAndUser as auth
from config import get_settings
from contextlib import asynccontextmanager
from database import BlogStore

# Import routers
from routers import users, posts

logger = logging.getLogger('uvicorn.error')

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: Initializing resources...")
    try:
        app.state.db = BlogStore.from_url(settings.database_url)
        app.state.db.create_schema()
        logger.info("Blog store initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize blog store: {e}")
        app.state.db = None
    if not settings.has_signing_key:
        logger.warning("No token signing key configured; bearer tokens will be ignored.")

    yield
    logger.info("Application shutdown: Cleaning up resources...")
    if hasattr(app.state, 'db') and app.state.db:
        app.state.db.dispose()
        logger.info("Blog store connections closed.")


app = FastAPI(lifespan=lifespan)
app.include_router(users.router)
app.include_router(posts.router)

app.add_middleware(
    TrustedHostMiddleware, allowed_hosts=settings.allowed_host_list
)


@app.post("/token")
def login_for_access_token(
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        store: Annotated[BlogStore, Depends(auth.get_blog_store)],
) -> auth.Token:
    user = auth.authenticate_user(store, form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = auth.create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )
    logger.info(f"Issued access token for user '{user.username}'")
    return auth.Token(access_token=access_token, token_type="bearer")
