"""Storage interfaces for identity bindings and wallet configuration."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PlatformUser:
    platform_id: int
    account_id: str
    created_at: datetime
    last_seen: datetime
    display_name: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class WalletConfig:
    account_id: str
    wallet_id: str


class BindingStore(ABC):
    """
    Table of ``platform_id -> account_id`` bindings.

    ``compare_and_set`` is the only write used on the first-contact path;
    implementations must make it atomic per ``platform_id``.
    """

    @abstractmethod
    def get(self, platform_id: int) -> Optional[str]:
        ...

    @abstractmethod
    def put(self, platform_id: int, account_id: str, now: datetime) -> None:
        """Create or overwrite a binding unconditionally."""

    @abstractmethod
    def compare_and_set(
        self,
        platform_id: int,
        expected: Optional[str],
        account_id: str,
        now: datetime,
        display_name: Optional[str] = None,
    ) -> bool:
        """
        Bind ``platform_id`` to ``account_id`` only if the current binding is
        ``expected`` (None meaning "no binding yet"). Returns False when
        another writer got there first.
        """

    @abstractmethod
    def get_user(self, platform_id: int) -> Optional[PlatformUser]:
        ...

    @abstractmethod
    def find_platform_id(self, account_id: str) -> Optional[int]:
        ...

    @abstractmethod
    def mark_seen(self, platform_id: int, now: datetime, display_name: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def set_active(self, platform_id: int, active: bool) -> bool:
        ...


class WalletConfigStore(ABC):
    @abstractmethod
    def get(self, account_id: str) -> Optional[WalletConfig]:
        ...

    @abstractmethod
    def put(self, config: WalletConfig) -> None:
        ...

    @abstractmethod
    def delete(self, account_id: str) -> bool:
        ...
