from functools import lru_cache

from fastapi import Depends, Header, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api import policy
from blog_api.config import settings
from blog_api.database import get_db
from blog_api.identity import IdentityResolver, Principal, SqlIdentityStore
from blog_api.policy import Action
from blog_api.tokens import TokenCodec


class PaginationParams:
    """
    Reusable FastAPI dependency that parses and validates pagination /
    sorting query parameters.

    Attributes
    ----------
    page:
        1-based page number (minimum 1).
    page_size:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``.
    sort_by:
        Column name to sort by; the service layer falls back to
        ``created_at`` for anything it does not recognise.
    sort_order:
        ``"asc"`` or ``"desc"``.
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        page_size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=100,
            description="Number of items returned per page (max 100).",
        ),
        sort_by: str = Query("created_at", description="Column name to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page = page
        self.page_size = min(page_size, settings.MAX_PAGE_SIZE)
        self.sort_by = sort_by
        self.sort_order = sort_order


@lru_cache
def get_token_codec() -> TokenCodec:
    """The process-wide codec, built from settings on first use."""
    return TokenCodec.from_settings(settings)


async def get_principal(
    authorization: str | None = Header(None),
    db: AsyncSession = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
) -> Principal:
    """
    Resolve the caller once per request.

    FastAPI caches dependency results per request, so every dependency and
    handler that asks for the principal sees the same value.
    """
    resolver = IdentityResolver(codec, SqlIdentityStore(db))
    return await resolver.resolve(authorization)


def require(action: Action):
    """
    Dependency factory: resolve the caller and enforce the access policy
    for *action* before the handler runs.  Returns the principal.
    """

    async def _dependency(principal: Principal = Depends(get_principal)) -> Principal:
        policy.enforce(principal, action)
        return principal

    return _dependency
