"""
Access policy — the one place that decides whether a principal may perform
an action.

Every action the API exposes is listed in ``Action`` and classified by an
``ActionTag``.  Rules are evaluated in this order:

1. ``PUBLIC`` actions are allowed for everyone, anonymous included.
2. Any other action with no identity is ``AUTHENTICATION_REQUIRED``.
3. ``OWNER_OR_ADMIN`` actions need the caller to own the resource or be
   an admin, otherwise ``UNAUTHORIZED``.
4. ``ADMIN_ONLY`` actions need the admin role, otherwise ``FORBIDDEN``.
5. ``AUTHENTICATED`` actions are allowed for any identity, except those in
   ``_REQUIRES_VERIFIED_EMAIL`` which deny an unverified account with
   ``EMAIL_NOT_VERIFIED``.

Each deny reason maps to exactly one HTTP status (``DENY_STATUS``).
"""
import enum
import logging
from dataclasses import dataclass

from blog_api.errors import BlogAPIError
from blog_api.identity import Identity, Principal

logger = logging.getLogger(__name__)


class ActionTag(str, enum.Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    OWNER_OR_ADMIN = "owner-or-admin"
    ADMIN_ONLY = "admin-only"


class Action(str, enum.Enum):
    # Posts
    LIST_POSTS = "list_posts"
    READ_POST = "read_post"
    SEARCH_POSTS = "search_posts"
    CREATE_POST = "create_post"
    UPDATE_POST = "update_post"
    DELETE_POST = "delete_post"
    # Comments
    LIST_COMMENTS = "list_comments"
    CREATE_COMMENT = "create_comment"
    DELETE_COMMENT = "delete_comment"
    LIST_PENDING_COMMENTS = "list_pending_comments"
    APPROVE_COMMENT = "approve_comment"
    REJECT_COMMENT = "reject_comment"
    # Likes
    LIKE_POST = "like_post"
    UNLIKE_POST = "unlike_post"
    # Accounts
    SIGN_UP = "sign_up"
    LOG_IN = "log_in"
    VERIFY_EMAIL = "verify_email"
    VIEW_PROFILE = "view_profile"
    RESEND_VERIFICATION = "resend_verification"
    # Operations
    VIEW_METRICS = "view_metrics"


ACTION_TAGS: dict[Action, ActionTag] = {
    Action.LIST_POSTS: ActionTag.PUBLIC,
    Action.READ_POST: ActionTag.PUBLIC,
    Action.SEARCH_POSTS: ActionTag.PUBLIC,
    Action.CREATE_POST: ActionTag.ADMIN_ONLY,
    Action.UPDATE_POST: ActionTag.ADMIN_ONLY,
    Action.DELETE_POST: ActionTag.ADMIN_ONLY,
    Action.LIST_COMMENTS: ActionTag.PUBLIC,
    Action.CREATE_COMMENT: ActionTag.AUTHENTICATED,
    Action.DELETE_COMMENT: ActionTag.OWNER_OR_ADMIN,
    Action.LIST_PENDING_COMMENTS: ActionTag.ADMIN_ONLY,
    Action.APPROVE_COMMENT: ActionTag.ADMIN_ONLY,
    Action.REJECT_COMMENT: ActionTag.ADMIN_ONLY,
    Action.LIKE_POST: ActionTag.AUTHENTICATED,
    Action.UNLIKE_POST: ActionTag.AUTHENTICATED,
    Action.SIGN_UP: ActionTag.PUBLIC,
    Action.LOG_IN: ActionTag.PUBLIC,
    Action.VERIFY_EMAIL: ActionTag.PUBLIC,
    Action.VIEW_PROFILE: ActionTag.AUTHENTICATED,
    Action.RESEND_VERIFICATION: ActionTag.AUTHENTICATED,
    Action.VIEW_METRICS: ActionTag.ADMIN_ONLY,
}

_REQUIRES_VERIFIED_EMAIL: frozenset[Action] = frozenset({Action.CREATE_COMMENT})


class DenyReason(str, enum.Enum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    EMAIL_NOT_VERIFIED = "email_not_verified"


DENY_STATUS: dict[DenyReason, int] = {
    DenyReason.AUTHENTICATION_REQUIRED: 401,
    DenyReason.UNAUTHORIZED: 401,
    DenyReason.FORBIDDEN: 403,
    DenyReason.EMAIL_NOT_VERIFIED: 403,
}

DENY_DETAIL: dict[DenyReason, str] = {
    DenyReason.AUTHENTICATION_REQUIRED: "Authentication required",
    DenyReason.UNAUTHORIZED: "Unauthorized",
    DenyReason.FORBIDDEN: "Forbidden. Admin privileges required",
    DenyReason.EMAIL_NOT_VERIFIED: "Please verify your email address first",
}


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: DenyReason | None = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(True)

    @classmethod
    def deny(cls, reason: DenyReason) -> "Decision":
        return cls(False, reason)


class AccessDenied(BlogAPIError):
    def __init__(self, reason: DenyReason) -> None:
        self.reason = reason
        self.status_code = DENY_STATUS[reason]
        self.code = reason.value
        super().__init__(DENY_DETAIL[reason])


def authorize(principal: Principal, action: Action, owner_id: int | None = None) -> Decision:
    """
    Decide whether *principal* may perform *action*.

    *owner_id* is the author of the target resource and is only consulted
    for ``OWNER_OR_ADMIN`` actions; when it is unknown only an admin passes.
    """
    tag = ACTION_TAGS[action]
    if tag is ActionTag.PUBLIC:
        return Decision.allow()

    if not isinstance(principal, Identity):
        return Decision.deny(DenyReason.AUTHENTICATION_REQUIRED)

    if tag is ActionTag.OWNER_OR_ADMIN:
        if principal.is_admin or (owner_id is not None and principal.id == owner_id):
            return Decision.allow()
        return Decision.deny(DenyReason.UNAUTHORIZED)

    if tag is ActionTag.ADMIN_ONLY:
        if principal.is_admin:
            return Decision.allow()
        return Decision.deny(DenyReason.FORBIDDEN)

    if action in _REQUIRES_VERIFIED_EMAIL and not principal.email_verified:
        return Decision.deny(DenyReason.EMAIL_NOT_VERIFIED)
    return Decision.allow()


def enforce(principal: Principal, action: Action, owner_id: int | None = None) -> None:
    """Raise ``AccessDenied`` unless ``authorize`` allows the action."""
    decision = authorize(principal, action, owner_id)
    if not decision.allowed:
        logger.info("Denied %s for %r: %s", action.value, principal, decision.reason.value)
        raise AccessDenied(decision.reason)
