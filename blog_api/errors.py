"""
Error taxonomy for the blog API.

Every failure the API reports on purpose is a ``BlogAPIError`` subclass.
Each class pins an HTTP status, a stable machine-readable ``code`` and a
default user-facing ``detail``; the single exception handler registered
in ``blog_api.main`` renders them as ``{"detail": ..., "code": ...}``.

Token-level and identity-level failures are all 401: the caller has to
authenticate again.  The ``code`` field is what lets a client tell
"log in again" (``token_expired``) apart from "credential corrupt"
(``invalid_signature`` / ``malformed_token``).

Access-policy denials live in ``blog_api.policy`` (``AccessDenied``)
because their status depends on the deny reason.
"""


class BlogAPIError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

class AuthenticationError(BlogAPIError):
    status_code = 401
    code = "authentication_failed"
    detail = "Authentication failed"


class TokenError(AuthenticationError):
    """Base class for failures raised by ``TokenCodec.verify``."""


class MalformedToken(TokenError):
    code = "malformed_token"
    detail = "Invalid token: malformed credential"


class InvalidSignature(TokenError):
    code = "invalid_signature"
    detail = "Invalid token: signature verification failed"


class TokenExpired(TokenError):
    code = "token_expired"
    detail = "Token has expired. Please log in again."


class IdentityNotFound(AuthenticationError):
    code = "identity_not_found"
    detail = "User not found"


class AuthenticationFailed(AuthenticationError):
    """Generic failure used when resolution breaks for an unexpected reason."""


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"
    detail = "Invalid email or password"


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

class NotFoundError(BlogAPIError):
    status_code = 404
    code = "not_found"
    detail = "Resource not found"


class InvalidTransition(BlogAPIError):
    status_code = 409
    code = "invalid_transition"
    detail = "Comment has already been moderated"


class DuplicateAccount(BlogAPIError):
    status_code = 409
    code = "duplicate_account"
    detail = "A user with this username or email already exists"
