from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import get_token_codec, require
from blog_api.identity import Identity, Principal
from blog_api.notifier import VerificationNotifier, get_notifier
from blog_api.policy import Action
from blog_api.schemas import LoginRequest, MessageResponse, SignupRequest, TokenResponse, UserResponse
from blog_api.services import user_service
from blog_api.tokens import TokenCodec

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.post("/signup", status_code=201, response_model=TokenResponse)
async def signup(
    data: SignupRequest,
    _: Principal = Depends(require(Action.SIGN_UP)),
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    notifier: VerificationNotifier = Depends(get_notifier),
):
    return await user_service.signup(db, codec, notifier, data)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    _: Principal = Depends(require(Action.LOG_IN)),
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    return await user_service.login(db, codec, data)


@router.delete("/logout", status_code=204)
async def logout():
    # Tokens are stateless; the client discards its copy.
    return None


@router.get("/verify-email", response_model=UserResponse)
async def verify_email(
    token: str = Query(..., min_length=1),
    _: Principal = Depends(require(Action.VERIFY_EMAIL)),
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
):
    return await user_service.verify_email(db, codec, token)


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    identity: Identity = Depends(require(Action.RESEND_VERIFICATION)),
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    notifier: VerificationNotifier = Depends(get_notifier),
):
    if await user_service.resend_verification(db, codec, notifier, identity):
        return {"message": "Verification email sent"}
    return {"message": "Email address is already verified"}
