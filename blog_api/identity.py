"""
Identity resolution: turn an ``Authorization`` header into the principal
making the request.

``IdentityResolver.resolve`` returns either an ``Identity`` or the
``ANONYMOUS`` sentinel and raises an ``AuthenticationError`` subclass when
a bearer credential is present but unusable.  Whether anonymous access is
acceptable is decided later by the access policy, not here.
"""
import logging
from dataclasses import dataclass
from typing import Protocol, Union

from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import AuthenticationError, AuthenticationFailed, IdentityNotFound, MalformedToken
from blog_api.models import Role, User
from blog_api.tokens import TokenCodec

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class Identity:
    id: int
    role: Role
    email_verified: bool
    username: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(
            id=user.id,
            role=Role(user.role),
            email_verified=bool(user.email_verified),
            username=user.username,
        )


class Anonymous:
    """Principal for requests that carry no bearer credential."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANONYMOUS"


ANONYMOUS = Anonymous()

Principal = Union[Identity, Anonymous]


class IdentityStore(Protocol):
    async def find_by_id(self, subject_id: int) -> Identity | None: ...


class SqlIdentityStore:
    """``IdentityStore`` backed by the ``users`` table."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def find_by_id(self, subject_id: int) -> Identity | None:
        user = await self._db.get(User, subject_id)
        if user is None:
            return None
        return Identity.from_user(user)


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Return the token carried by a ``Bearer`` header.

    Returns None when the header is missing or uses another scheme.  A
    ``Bearer`` header with nothing after the scheme yields ``""`` so that
    verification reports it as malformed rather than treating the request
    as anonymous.
    """
    if not authorization:
        return None
    scheme, _, credential = authorization.strip().partition(" ")
    if scheme.lower() != BEARER_SCHEME:
        return None
    return credential.strip()


class IdentityResolver:
    def __init__(self, codec: TokenCodec, store: IdentityStore) -> None:
        self._codec = codec
        self._store = store

    async def resolve(self, authorization: str | None) -> Principal:
        token = extract_bearer_token(authorization)
        if token is None:
            return ANONYMOUS

        try:
            if not token:
                raise MalformedToken("Invalid token: empty bearer credential")
            claim = self._codec.verify(token)
            identity = await self._store.find_by_id(claim.subject_id)
        except AuthenticationError as exc:
            logger.info("Bearer credential rejected: %s", exc.code)
            raise
        except Exception as exc:
            logger.exception("Unexpected error while resolving identity")
            raise AuthenticationFailed() from exc

        if identity is None:
            # Account removed after the token was issued.
            logger.info("Token subject %s no longer exists", claim.subject_id)
            raise IdentityNotFound()
        return identity
