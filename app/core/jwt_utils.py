"""
JWT Token Utilities

This module builds the short-lived ES256 tokens presented to the Lightspark
authentication boundary. Verification is the network's job; this side only
issues.

Flow:
1. Gateway needs a credential -> TokenIssuer.issue_token(subject, audience, ttl)
2. Claims are built with iat = now, exp = now + ttl and a random jti
3. Claims are signed with the process KeyPair (KeyMaterialManager)
4. The compact token goes into the Authorization header of one call

The JWT contains:
- iss: Lightspark account id (``Account:`` prefix removed)
- sub: the wallet (or account) the call acts for
- aud: the API the token is meant for
- iat / exp: issue and expiry timestamps
- jti: random nonce, so two tokens issued in the same second never share a signature
- test: present and true on testnet deployments
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt

from app.core.exceptions import SigningError
from app.core.key_material import SIGNING_ALGORITHM, KeyMaterialManager
from app.core.redact import preview

logger = logging.getLogger(__name__)

JTI_NUM_BYTES = 16


@dataclass(frozen=True)
class TokenClaims:
    issuer: str
    subject: str
    audience: str
    issued_at: int
    expires_at: int
    nonce: str
    test: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "iss": self.issuer,
            "sub": self.subject,
            "aud": self.audience,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "jti": self.nonce,
        }
        if self.test:
            payload["test"] = True
        return payload


@dataclass(frozen=True)
class SignedToken:
    claims: TokenClaims
    token: str = field(repr=False)

    def __repr__(self) -> str:
        return f"SignedToken(sub={self.claims.subject!r}, exp={self.claims.expires_at}, token={self.preview()!r})"

    @property
    def signature(self) -> str:
        return self.token.rsplit(".", 1)[-1]

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.claims.expires_at, tz=timezone.utc)

    def preview(self) -> str:
        return preview(self.token, keep=12)


class TokenIssuer:
    def __init__(
        self,
        key_manager: KeyMaterialManager,
        issuer: Optional[str],
        test: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self._key_manager = key_manager
        self._issuer = issuer
        self._test = test
        self._clock = clock

    @classmethod
    def from_settings(cls, settings, key_manager: KeyMaterialManager) -> "TokenIssuer":
        return cls(key_manager, issuer=settings.token_issuer(), test=settings.LIGHTSPARK_TESTNET)

    @property
    def issuer(self) -> Optional[str]:
        return self._issuer

    def issue_token(self, subject: str, audience: str, ttl_seconds: int) -> SignedToken:
        """
        Sign a fresh claim set for one external call.

        Raises:
            ValueError: empty subject/audience or non-positive ttl
            SigningError: no key pair loaded, no issuer configured, or the
                signing backend rejected the key
        """
        if not subject:
            raise ValueError("subject is required")
        if not audience:
            raise ValueError("audience is required")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        key_pair = self._key_manager.key_pair
        if key_pair is None:
            raise SigningError("no signing key loaded (LIGHTSPARK_PRIVATE_KEY not configured)")
        if not self._issuer:
            raise SigningError("no token issuer configured (LIGHTSPARK_ACCOUNT_ID not configured)")

        now = self._clock()
        claims = TokenClaims(
            issuer=self._issuer,
            subject=subject,
            audience=audience,
            issued_at=int(now.timestamp()),
            expires_at=int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            nonce=secrets.token_hex(JTI_NUM_BYTES),
            test=self._test,
        )
        try:
            token = jwt.encode(
                claims.to_payload(),
                key_pair.private_key,
                algorithm=SIGNING_ALGORITHM,
                headers={"typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as exc:
            raise SigningError(f"failed to sign token: {type(exc).__name__}") from exc

        signed = SignedToken(claims=claims, token=token)
        logger.debug("issued token sub=%s aud=%s exp=%s %s", subject, audience, claims.expires_at, signed.preview())
        return signed
