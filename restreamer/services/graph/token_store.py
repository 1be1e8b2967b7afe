"""In-memory store for the account token slot and per-resource tokens.

One TokenStore belongs to one orchestrator. Nothing is persisted across
process restarts.
"""

import asyncio
from datetime import datetime

from loguru import logger

from restreamer.schemas.tokens import AccountToken, ResourceToken


class TokenStore:
    """Single account-token slot plus a resource_id -> ResourceToken mapping.

    Readers that refresh an entry hold the matching lock (account_lock() or
    resource_lock(resource_id)) for the whole check-fetch-store sequence, so two
    runs never refresh the same key at once.
    """

    def __init__(self) -> None:
        self._account: AccountToken | None = None
        self._resources: dict[str, ResourceToken] = {}
        self._account_lock = asyncio.Lock()
        self._resource_locks: dict[str, asyncio.Lock] = {}

    def account_lock(self) -> asyncio.Lock:
        return self._account_lock

    def resource_lock(self, resource_id: str) -> asyncio.Lock:
        lock = self._resource_locks.get(resource_id)
        if lock is None:
            lock = asyncio.Lock()
            self._resource_locks[resource_id] = lock
        return lock

    def get_account(self, now: datetime | None = None) -> AccountToken | None:
        """Return the cached account token if it has not expired.

        Tokens without an expiry are never cached here, so a hit always carries
        a renewal window.
        """
        token = self._account
        if token is None or token.expires_at is None:
            return None
        if token.is_expired(now):
            logger.debug("Cached account token expired at {}", token.expires_at)
            self._account = None
            return None
        return token

    def set_account(self, token: AccountToken) -> None:
        self._account = token

    def clear_account(self) -> None:
        self._account = None

    def get_resource(self, resource_id: str, now: datetime | None = None) -> ResourceToken | None:
        token = self._resources.get(resource_id)
        if token is None:
            return None
        if token.is_expired(now):
            logger.debug("Cached resource token for {} expired at {}", resource_id, token.expires_at)
            self._resources.pop(resource_id, None)
            return None
        return token

    def set_resource(self, token: ResourceToken) -> None:
        self._resources[token.resource_id] = token

    def purge_resource(self, resource_id: str) -> None:
        self._resources.pop(resource_id, None)

    def clear(self) -> None:
        self._account = None
        self._resources.clear()
