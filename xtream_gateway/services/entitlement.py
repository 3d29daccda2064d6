"""
Credential and subscription checks shared by every Xtream endpoint.
"""
import hmac
import logging
from datetime import datetime
from typing import Optional

from xtream_gateway.exceptions import AuthenticationFailure
from xtream_gateway.models.account import AuthContext
from xtream_gateway.services.background import BackgroundWriter
from xtream_gateway.services.store import CatalogStore
from xtream_gateway.timeutils import utcnow

logger = logging.getLogger(__name__)

# Compared against when the username is unknown so both failure paths do the same work
_DUMMY_SECRET = "x" * 32


def secrets_match(supplied: str, stored: Optional[str]) -> bool:
    """Constant-time exact comparison; a missing stored secret never matches."""
    expected = stored if stored is not None else _DUMMY_SECRET
    matched = hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
    return matched and stored is not None


class EntitlementGate:
    """
    Decides whether a username/password pair may use the service.

    A subscriber is authorized when the secret matches, the account is
    active, and exactly one active subscription has an end date at or after
    ``now``. Any failure raises AuthenticationFailure carrying the
    client-facing message.
    """

    def __init__(self, store: CatalogStore, writer: BackgroundWriter):
        self.store = store
        self.writer = writer

    async def authenticate(
        self,
        username: Optional[str],
        password: Optional[str],
        now: Optional[datetime] = None,
    ) -> AuthContext:
        if not username or not password:
            raise AuthenticationFailure("Authentication required")

        now = now or utcnow()
        subscriber = await self.store.get_subscriber_by_username(username)

        stored_secret = subscriber.api_password if subscriber else None
        if not secrets_match(password, stored_secret) or subscriber is None:
            logger.info(f"Rejected credentials for user '{username}'")
            raise AuthenticationFailure("Invalid credentials")

        if not subscriber.is_active:
            logger.info(f"Rejected user '{username}': account status {subscriber.status}")
            raise AuthenticationFailure("Account suspended")

        entitlements = await self.store.get_active_entitlements(subscriber.id, now)
        if len(entitlements) != 1:
            logger.info(
                f"Rejected user '{username}': {len(entitlements)} active subscriptions"
            )
            raise AuthenticationFailure("No active subscription")

        entitlement, package = entitlements[0]
        self.writer.submit(
            self.store.touch_last_login(subscriber.id, now),
            f"last_login for {subscriber.id}",
        )
        logger.debug(f"Authenticated user '{username}'")
        return AuthContext(subscriber=subscriber, entitlement=entitlement, package=package)
