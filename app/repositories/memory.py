"""In-process stores, for single-instance deployments and tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Dict, Optional

from app.repositories.base import BindingStore, PlatformUser, WalletConfig, WalletConfigStore


class InMemoryBindingStore(BindingStore):
    def __init__(self):
        self._users: Dict[int, PlatformUser] = {}
        self._lock = Lock()

    def get(self, platform_id: int) -> Optional[str]:
        user = self._users.get(platform_id)
        return user.account_id if user else None

    def _check_account_free(self, platform_id: int, account_id: str) -> None:
        for other in self._users.values():
            if other.account_id == account_id and other.platform_id != platform_id:
                raise ValueError(f"account {account_id} is already bound to another identity")

    def put(self, platform_id: int, account_id: str, now: datetime) -> None:
        with self._lock:
            self._check_account_free(platform_id, account_id)
            current = self._users.get(platform_id)
            if current is None:
                self._users[platform_id] = PlatformUser(
                    platform_id=platform_id, account_id=account_id, created_at=now, last_seen=now
                )
            else:
                self._users[platform_id] = replace(current, account_id=account_id)

    def compare_and_set(
        self,
        platform_id: int,
        expected: Optional[str],
        account_id: str,
        now: datetime,
        display_name: Optional[str] = None,
    ) -> bool:
        with self._lock:
            current = self._users.get(platform_id)
            if (current.account_id if current else None) != expected:
                return False
            self._check_account_free(platform_id, account_id)
            if current is None:
                self._users[platform_id] = PlatformUser(
                    platform_id=platform_id,
                    account_id=account_id,
                    created_at=now,
                    last_seen=now,
                    display_name=display_name,
                )
            else:
                self._users[platform_id] = replace(current, account_id=account_id)
            return True

    def get_user(self, platform_id: int) -> Optional[PlatformUser]:
        return self._users.get(platform_id)

    def find_platform_id(self, account_id: str) -> Optional[int]:
        with self._lock:
            for user in self._users.values():
                if user.account_id == account_id:
                    return user.platform_id
        return None

    def mark_seen(self, platform_id: int, now: datetime, display_name: Optional[str] = None) -> None:
        with self._lock:
            current = self._users.get(platform_id)
            if current is None:
                return
            changes = {"last_seen": max(current.last_seen, now)}
            if display_name:
                changes["display_name"] = display_name
            self._users[platform_id] = replace(current, **changes)

    def set_active(self, platform_id: int, active: bool) -> bool:
        with self._lock:
            current = self._users.get(platform_id)
            if current is None:
                return False
            self._users[platform_id] = replace(current, is_active=active)
            return True


class InMemoryWalletConfigStore(WalletConfigStore):
    def __init__(self):
        self._configs: Dict[str, WalletConfig] = {}
        self._lock = Lock()

    def get(self, account_id: str) -> Optional[WalletConfig]:
        return self._configs.get(account_id)

    def put(self, config: WalletConfig) -> None:
        with self._lock:
            self._configs[config.account_id] = config

    def delete(self, account_id: str) -> bool:
        with self._lock:
            return self._configs.pop(account_id, None) is not None
