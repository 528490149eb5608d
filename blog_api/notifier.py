"""
Outbound notifications.

The API only decides *what* to send; delivery belongs to whatever
``VerificationNotifier`` is wired in through ``get_notifier``.  The default
implementation writes the verification link to the log, which is enough
for development and for deployments that forward logs to a mail relay.
"""
import logging
from typing import Protocol
from urllib.parse import urlencode

from blog_api.config import settings

logger = logging.getLogger(__name__)


def verification_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/verify-email?{urlencode({'token': token})}"


class VerificationNotifier(Protocol):
    async def send_verification(self, email: str, username: str, token: str) -> None: ...


class LoggingNotifier:
    async def send_verification(self, email: str, username: str, token: str) -> None:
        logger.info(
            "Verification email for %s <%s>: %s", username, email, verification_url(token)
        )


_default_notifier = LoggingNotifier()


def get_notifier() -> VerificationNotifier:
    return _default_notifier
