from pydantic import BaseModel


class User(BaseModel):
    username: str
    disabled: bool | None = None


class UserInDB(User):
    hashed_password: str


class AuthContext(BaseModel):
    """Who is making the request; user is None for anonymous visitors."""
    user: User | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and not self.user.disabled
