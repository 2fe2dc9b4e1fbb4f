"""Error taxonomy for the identity -> account -> credential -> gateway path."""

from enum import Enum
from typing import Optional


class WalletCoreError(Exception):
    """Base class for wallet core errors."""


class InvalidMnemonicError(WalletCoreError):
    """Raised when a recovery phrase fails wordlist/checksum validation."""


class KeyMaterialError(WalletCoreError):
    """Raised when signing key material is missing, malformed or on the wrong curve."""


class SigningError(WalletCoreError):
    """Raised when a token is requested but no key pair is loaded."""


class UnboundAccountError(WalletCoreError):
    """Raised when wallet config is requested before the account is provisioned."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"no wallet provisioned for account {account_id}")


class UnresolvedIdentityError(WalletCoreError):
    """Raised when a session is authenticated before its identity has been bound."""

    def __init__(self, platform_id: int):
        self.platform_id = platform_id
        super().__init__(f"platform identity {platform_id} has no account binding")


class GatewayPath(str, Enum):
    SDK = "SDK"
    REST = "REST"


# 429 is rate limiting, safe to retry later
RETRYABLE_STATUSES = {408, 425, 429}


class GatewayError(WalletCoreError):
    """
    Failure reported by, or while talking to, the payment network.

    ``upstream_status`` is None when no HTTP response was received
    (timeout, connection refused, SDK transport error). ``accepted`` marks a
    call the upstream completed whose result could not be read; retrying it
    could repeat the side effect, so it is never retryable.
    """

    def __init__(
        self,
        path: GatewayPath,
        message: str,
        upstream_status: Optional[int] = None,
        timed_out: bool = False,
        accepted: bool = False,
    ):
        self.path = path
        self.message = message
        self.upstream_status = upstream_status
        self.timed_out = timed_out
        self.accepted = accepted
        super().__init__(f"[{path.value}] {upstream_status or '-'}: {message}")

    @property
    def retryable(self) -> bool:
        if self.accepted:
            return False
        if self.upstream_status is None:
            return True
        if self.upstream_status >= 500:
            return True
        return self.upstream_status in RETRYABLE_STATUSES
