from fastapi import APIRouter
import AuthAndUser as auth
from typing import Annotated
from fastapi import Depends
from domain.user import User

router = APIRouter()


@router.get("/users/me/", response_model=User, tags=["users"])
async def read_users_me(
    current_user: Annotated[User, Depends(auth.get_current_active_user)],
):
    return current_user
