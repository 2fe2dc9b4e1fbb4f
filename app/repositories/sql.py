"""SQLAlchemy-backed stores; atomicity comes from the database constraints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.platform_users import PlatformUserRecord, WalletConfigRecord
from app.repositories.base import BindingStore, PlatformUser, WalletConfig, WalletConfigStore

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


def _to_user(record: PlatformUserRecord) -> PlatformUser:
    return PlatformUser(
        platform_id=record.platform_id,
        account_id=record.account_id,
        created_at=record.created_at,
        last_seen=record.last_seen,
        display_name=record.display_name,
        is_active=record.is_active,
    )


class SqlBindingStore(BindingStore):
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def get(self, platform_id: int) -> Optional[str]:
        with self._session_factory() as db:
            record = db.query(PlatformUserRecord).filter(PlatformUserRecord.platform_id == platform_id).first()
            return record.account_id if record else None

    def put(self, platform_id: int, account_id: str, now: datetime) -> None:
        with self._session_factory() as db:
            record = db.query(PlatformUserRecord).filter(PlatformUserRecord.platform_id == platform_id).first()
            if record is None:
                db.add(PlatformUserRecord(
                    platform_id=platform_id,
                    account_id=account_id,
                    is_active=True,
                    created_at=now,
                    last_seen=now,
                ))
            else:
                record.account_id = account_id  # type: ignore
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ValueError(f"account {account_id} is already bound to another identity") from exc

    def compare_and_set(
        self,
        platform_id: int,
        expected: Optional[str],
        account_id: str,
        now: datetime,
        display_name: Optional[str] = None,
    ) -> bool:
        with self._session_factory() as db:
            if expected is None:
                # the primary key on platform_id arbitrates concurrent first contacts
                db.add(PlatformUserRecord(
                    platform_id=platform_id,
                    account_id=account_id,
                    display_name=display_name,
                    is_active=True,
                    created_at=now,
                    last_seen=now,
                ))
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.debug("lost first-contact race for platform_id=%s", platform_id)
                    return False
                return True

            updated = (
                db.query(PlatformUserRecord)
                .filter(
                    PlatformUserRecord.platform_id == platform_id,
                    PlatformUserRecord.account_id == expected,
                )
                .update({PlatformUserRecord.account_id: account_id}, synchronize_session=False)
            )
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ValueError(f"account {account_id} is already bound to another identity") from exc
            return updated == 1

    def get_user(self, platform_id: int) -> Optional[PlatformUser]:
        with self._session_factory() as db:
            record = db.query(PlatformUserRecord).filter(PlatformUserRecord.platform_id == platform_id).first()
            return _to_user(record) if record else None

    def find_platform_id(self, account_id: str) -> Optional[int]:
        with self._session_factory() as db:
            record = db.query(PlatformUserRecord).filter(PlatformUserRecord.account_id == account_id).first()
            return record.platform_id if record else None

    def mark_seen(self, platform_id: int, now: datetime, display_name: Optional[str] = None) -> None:
        changes = {PlatformUserRecord.last_seen: now}
        if display_name:
            changes[PlatformUserRecord.display_name] = display_name
        with self._session_factory() as db:
            db.query(PlatformUserRecord).filter(
                PlatformUserRecord.platform_id == platform_id,
                PlatformUserRecord.last_seen <= now,
            ).update(changes, synchronize_session=False)
            db.commit()

    def set_active(self, platform_id: int, active: bool) -> bool:
        with self._session_factory() as db:
            updated = db.query(PlatformUserRecord).filter(
                PlatformUserRecord.platform_id == platform_id
            ).update({PlatformUserRecord.is_active: active}, synchronize_session=False)
            db.commit()
            return updated == 1


class SqlWalletConfigStore(WalletConfigStore):
    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    def get(self, account_id: str) -> Optional[WalletConfig]:
        with self._session_factory() as db:
            record = db.query(WalletConfigRecord).filter(WalletConfigRecord.account_id == account_id).first()
            if record is None:
                return None
            return WalletConfig(account_id=record.account_id, wallet_id=record.wallet_id)

    def put(self, config: WalletConfig) -> None:
        with self._session_factory() as db:
            db.merge(WalletConfigRecord(account_id=config.account_id, wallet_id=config.wallet_id))
            db.commit()

    def delete(self, account_id: str) -> bool:
        with self._session_factory() as db:
            deleted = db.query(WalletConfigRecord).filter(WalletConfigRecord.account_id == account_id).delete()
            db.commit()
            return deleted == 1
