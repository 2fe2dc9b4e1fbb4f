"""
Identity Binder

Maps a chat-platform identity (Telegram user id) to an internal account id
and serves the account's Lightspark wallet config.

First contact is lazy: the first message from an unknown platform id creates
a binding. Two messages from a new user can be dispatched concurrently, so
creation goes through ``BindingStore.compare_and_set``; the loser of the race
re-reads and returns the winner's account id.
"""

import logging
import uuid
from datetime import datetime, timezone
from threading import Lock
from typing import Callable, Dict, Optional

from app.core.exceptions import UnboundAccountError
from app.repositories.base import BindingStore, PlatformUser, WalletConfig, WalletConfigStore

logger = logging.getLogger(__name__)

# a winner can in theory be re-linked between our failed CAS and the re-read
MAX_RESOLVE_ATTEMPTS = 3


def new_account_id() -> str:
    return str(uuid.uuid4())


class IdentityBinder:
    def __init__(
        self,
        bindings: BindingStore,
        wallets: WalletConfigStore,
        id_factory: Callable[[], str] = new_account_id,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._bindings = bindings
        self._wallets = wallets
        self._id_factory = id_factory
        self._clock = clock
        self._wallet_cache: Dict[str, WalletConfig] = {}
        self._cache_lock = Lock()

    def lookup(self, platform_id: int) -> Optional[str]:
        """Current binding without creating one."""
        return self._bindings.get(platform_id)

    def resolve_account(self, platform_id: int, display_name: Optional[str] = None) -> str:
        """
        Return the account bound to ``platform_id``, creating it on first contact.

        Every call also advances the user's ``last_seen``.
        """
        now = self._clock()
        for _ in range(MAX_RESOLVE_ATTEMPTS):
            account_id = self._bindings.get(platform_id)
            if account_id is not None:
                self._bindings.mark_seen(platform_id, now, display_name)
                return account_id

            candidate = self._id_factory()
            if self._bindings.compare_and_set(platform_id, None, candidate, now, display_name=display_name):
                logger.info("created account %s for platform_id=%s", candidate, platform_id)
                return candidate

            winner = self._bindings.get(platform_id)
            if winner is not None:
                self._bindings.mark_seen(platform_id, now, display_name)
                return winner
        raise RuntimeError(f"could not settle binding for platform_id={platform_id}")

    def register_account(self, platform_id: int, account_id: str) -> None:
        """Administrative re-link; drops any cached wallet config of the previous binding."""
        if not account_id:
            raise ValueError("account_id is required")
        previous = self._bindings.get(platform_id)
        self._bindings.put(platform_id, account_id, self._clock())
        with self._cache_lock:
            if previous is not None:
                self._wallet_cache.pop(previous, None)
            self._wallet_cache.pop(account_id, None)
        logger.info("platform_id=%s re-linked from %s to %s", platform_id, previous, account_id)

    def get_wallet_config(self, account_id: str) -> WalletConfig:
        # miss, store read and fill happen under one lock so a concurrent
        # re-link cannot be overtaken by a stale fill
        with self._cache_lock:
            cached = self._wallet_cache.get(account_id)
            if cached is not None:
                return cached
            config = self._wallets.get(account_id)
            if config is None:
                raise UnboundAccountError(account_id)
            self._wallet_cache[account_id] = config
            return config

    def save_wallet_config(self, account_id: str, wallet_id: str) -> WalletConfig:
        """Storage half of provisioning; the provisioning flow itself lives elsewhere."""
        if not account_id or not wallet_id:
            raise ValueError("account_id and wallet_id are required")
        config = WalletConfig(account_id=account_id, wallet_id=wallet_id)
        with self._cache_lock:
            self._wallets.put(config)
            self._wallet_cache[account_id] = config
        return config

    def get_user(self, platform_id: int) -> Optional[PlatformUser]:
        return self._bindings.get_user(platform_id)

    def deactivate(self, platform_id: int) -> bool:
        """Users are never deleted, only deactivated."""
        changed = self._bindings.set_active(platform_id, False)
        if changed:
            logger.info("deactivated platform_id=%s", platform_id)
        return changed
