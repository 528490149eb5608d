"""
User service — registration, login and email verification.

Passwords are hashed with passlib (PBKDF2-SHA256).  Tokens are issued by
the injected ``TokenCodec``: access tokens for login/signup and
``email_verification`` tokens for the verification link.  Both are
stateless, so logging out and re-sending a link never touch the database.

Every account starts out ``regular``.  The account whose address matches
``settings.ADMIN_EMAIL`` is promoted to ``admin`` only once that address
has been verified, so registering the address alone grants nothing.

Usernames are stored lower-cased, which makes their uniqueness
case-insensitive.
"""
import logging
from datetime import timedelta

from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.errors import DuplicateAccount, IdentityNotFound, InvalidCredentials
from blog_api.identity import Identity
from blog_api.models import Role, User
from blog_api.notifier import VerificationNotifier
from blog_api.schemas import LoginRequest, SignupRequest
from blog_api.tokens import PURPOSE_EMAIL_VERIFICATION, TokenCodec

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def _is_admin_email(email: str) -> bool:
    return bool(settings.ADMIN_EMAIL) and email.lower() == settings.ADMIN_EMAIL.strip().lower()


def _user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": Role(user.role).value,
        "email_verified": user.email_verified,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _token_payload(codec: TokenCodec, user: User) -> dict:
    token = codec.issue(user.id)
    claim = codec.verify(token)
    return {
        "token": token,
        "token_type": "bearer",
        "expires_at": claim.expires_at.isoformat(),
        "user": _user_to_dict(user),
    }


async def send_verification(codec: TokenCodec, notifier: VerificationNotifier, user: User) -> None:
    token = codec.issue(
        user.id,
        ttl=timedelta(hours=settings.EMAIL_VERIFICATION_EXPIRE_HOURS),
        purpose=PURPOSE_EMAIL_VERIFICATION,
    )
    await notifier.send_verification(user.email, user.username, token)


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def signup(
    db: AsyncSession,
    codec: TokenCodec,
    notifier: VerificationNotifier,
    data: SignupRequest,
) -> dict:
    """
    Create an account and return an access token for it.

    Username and email uniqueness is enforced by the database; a
    violation becomes ``DuplicateAccount``.  The verification email is only
    requested once the row exists.
    """
    email = data.email.strip().lower()
    user = User(
        username=data.username.strip().lower(),
        email=email,
        password_hash=hash_password(data.password),
        role=Role.REGULAR,
        email_verified=False,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        raise DuplicateAccount() from exc

    await db.refresh(user)
    await send_verification(codec, notifier, user)
    logger.info("User %d registered (%s)", user.id, Role(user.role).value)
    return _token_payload(codec, user)


async def login(db: AsyncSession, codec: TokenCodec, data: LoginRequest) -> dict:
    result = await db.execute(select(User).where(func.lower(User.email) == data.email.strip().lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise InvalidCredentials()
    return _token_payload(codec, user)


async def verify_email(db: AsyncSession, codec: TokenCodec, token: str) -> dict:
    """
    Exchange an email-verification token.  Verifying an already verified
    account succeeds again without change.  A verified ``ADMIN_EMAIL``
    account is promoted to admin here.
    """
    claim = codec.verify(token, purpose=PURPOSE_EMAIL_VERIFICATION)
    user = await db.get(User, claim.subject_id)
    if user is None:
        raise IdentityNotFound()

    if not user.email_verified:
        user.email_verified = True
        logger.info("User %d verified their email address", user.id)
    if _is_admin_email(user.email) and Role(user.role) is not Role.ADMIN:
        user.role = Role.ADMIN
        logger.info("User %d promoted to admin", user.id)
    await db.flush()
    return _user_to_dict(user)


async def resend_verification(
    db: AsyncSession, codec: TokenCodec, notifier: VerificationNotifier, identity: Identity
) -> bool:
    """Send a fresh verification link.  Returns False when there is nothing to verify."""
    user = await db.get(User, identity.id)
    if user is None:
        raise IdentityNotFound()
    if user.email_verified:
        return False
    await send_verification(codec, notifier, user)
    return True


async def get_profile(db: AsyncSession, identity: Identity) -> dict:
    user = await db.get(User, identity.id)
    if user is None:
        raise IdentityNotFound()
    return _user_to_dict(user)

