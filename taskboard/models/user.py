"""User model and the member/guest role."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class Role(str, Enum):
    MEMBER = "member"
    GUEST = "guest"


class User(BaseModel):
    id: int
    email: str
    name: str
    role: Role
    auth_id: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResult(BaseModel):
    """A signed-in user with the session token the identity service issued."""

    user: User
    token: str
