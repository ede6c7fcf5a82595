from pydantic import BaseModel, Field
from typing import Optional

from schemas.user import UserProfile


class SignupRequest(BaseModel):
    email: str
    password: str = Field(min_length=6)
    name: Optional[str] = None
    user_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserProfile
