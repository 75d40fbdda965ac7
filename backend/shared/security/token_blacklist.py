"""
Token revocation store.

Provides token revocation capability for:
- User logout (one token)
- Refresh token rotation (one token)
- Password change / account ban (every token of a user)

Entries live in the key-value store with a TTL equal to the token's remaining
lifetime, so they clean themselves up once the token would have expired anyway.

Store failures are NOT swallowed here: StoreUnavailableError propagates and
the caller decides. The access gate treats it as "cannot prove the token is
not revoked" and fails closed.
"""

from __future__ import annotations

import time
from typing import Callable

from shared.config.logging import get_logger, mask_token, audit_token_event
from shared.infrastructure.kv_store import KeyValueStore
from shared.infrastructure.redis.constants import get_blacklist_key, get_user_revoke_key

logger = get_logger(__name__)


class TokenRevocationStore:
    """Blacklist of individual raw tokens plus per-user revocation markers."""

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        self._store = store
        self._clock = clock

    def revoke(self, token: str, remaining_ttl: int) -> bool:
        """
        Blacklist a token until it would have expired.

        Idempotent: revoking an already revoked token leaves the original
        entry (and its TTL) in place.

        Returns:
            True if a new entry was written, False if it already existed.

        Raises:
            ValueError: remaining_ttl is not positive.
            StoreUnavailableError: the store could not be written.
        """
        if remaining_ttl <= 0:
            raise ValueError("cannot revoke a token that has no remaining lifetime")

        created = self._store.set_if_absent(get_blacklist_key(token), "1", remaining_ttl)
        if created:
            logger.info("Token blacklisted", token_hash=mask_token(token), ttl_seconds=remaining_ttl)
        else:
            logger.debug("Token already blacklisted", token_hash=mask_token(token))
        return created

    def is_revoked(self, token: str) -> bool:
        """Raises StoreUnavailableError when the store cannot answer."""
        return self._store.exists(get_blacklist_key(token))

    def revoke_user(self, user_id: int, ttl: int) -> None:
        """
        Revoke every token of a user issued before now.

        The marker holds the revocation time in milliseconds and lives as long
        as the longest-lived token (refresh TTL). A login right after the
        revocation, even within the same second, gets a token that passes.
        """
        revoked_at_ms = int(self._clock() * 1000)
        self._store.set_with_ttl(get_user_revoke_key(user_id), str(revoked_at_ms), ttl)
        audit_token_event("USER_REVOKED", user_id=user_id, revoked_at_ms=revoked_at_ms)

    def is_user_revoked(self, user_id: int, issued_at_ms: int) -> bool:
        value = self._store.get(get_user_revoke_key(user_id))
        if not value:
            return False
        try:
            revoked_at_ms = int(value)
        except ValueError:
            logger.error("Corrupt user revocation marker - treating as revoked", user_id=user_id)
            return True
        return issued_at_ms < revoked_at_ms
