from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user
from core.security import create_access_token
from db.database import get_db
from db.models import User
from schemas.auth import LoginRequest, SignupRequest, TokenResponse
from schemas.user import UserProfile
from services.user_service import authenticate, create_user

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id),
        user=UserProfile.model_validate(user),
    )


@router.post("/signup", response_model=TokenResponse, status_code=201)
async def signup(request: SignupRequest, db: AsyncSession = Depends(get_db)):
    user = await create_user(
        db, request.email, request.password, name=request.name, user_name=request.user_name
    )
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(request: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await authenticate(db, request.email, request.password)
    return _token_response(user)


@router.get("/session", response_model=UserProfile)
async def current_session(user: User = Depends(get_current_user)):
    return user
