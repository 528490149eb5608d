from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import require
from blog_api.identity import Identity
from blog_api.policy import Action
from blog_api.schemas import UserResponse
from blog_api.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_me(
    identity: Identity = Depends(require(Action.VIEW_PROFILE)),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_profile(db, identity)
