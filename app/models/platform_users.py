from sqlalchemy import BigInteger, Boolean, Column, DateTime, String, Text
from sqlalchemy.sql import func

from app.db.base import Base


class PlatformUserRecord(Base):
    """Binding of a chat-platform identity to an internal account.
    Example:
    {
        "platform_id": 950870644,
        "account_id": "6f1c2b1e-6d1b-4c53-9a8e-0b0f3f6f2a10",
        "display_name": "satoshi",
        "is_active": true,
        "created_at": "2024-01-01T12:00:00",
        "last_seen": "2024-01-01T12:00:00"
    }
    """

    __tablename__ = "platform_users"

    platform_id = Column(BigInteger, primary_key=True, autoincrement=False)
    account_id = Column(String(64), nullable=False, unique=True)
    display_name = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    last_seen = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class WalletConfigRecord(Base):
    """Lightspark wallet handle provisioned for an internal account."""

    __tablename__ = "wallet_configs"

    account_id = Column(String(64), primary_key=True)
    wallet_id = Column(String(255), nullable=False)
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
