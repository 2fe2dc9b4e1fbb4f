"""
Signing Key Material

Holds the EC key pair used to sign Lightspark authentication tokens.
The network expects ES256 JWTs, so the only accepted curve is P-256
(``secp256r1``). The private half never leaves this module as text: callers
get a ``KeyPair`` whose ``repr`` hides it and which PyJWT can sign with
directly.

Flow:
1. Startup reads LIGHTSPARK_PRIVATE_KEY from settings -> KeyMaterialManager.load()
2. TokenIssuer signs claims with KeyPair.private_key
3. Operators register public_key_pem() with the network

For a fresh deployment generate() creates a pair and save() writes it
into a directory that must stay out of version control (``keys/``).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.exceptions import KeyMaterialError

logger = logging.getLogger(__name__)

CURVE = ec.SECP256R1
SIGNING_ALGORITHM = "ES256"
PRIVATE_KEY_FILENAME = "lightspark_private.pem"
PUBLIC_KEY_FILENAME = "lightspark_public.pem"


@dataclass(frozen=True)
class KeyPair:
    private_key: ec.EllipticCurvePrivateKey = field(repr=False)
    public_key: ec.EllipticCurvePublicKey = field(repr=False)
    algorithm: str = SIGNING_ALGORITHM

    def __repr__(self) -> str:
        return f"KeyPair(algorithm={self.algorithm!r}, curve={self.public_key.curve.name!r})"

    def public_key_pem(self) -> str:
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()


def _check_curve(key, source: str) -> None:
    if not isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        raise KeyMaterialError(f"{source} is not an elliptic-curve key")
    if not isinstance(key.curve, CURVE):
        raise KeyMaterialError(
            f"{source} uses curve {key.curve.name}, {SIGNING_ALGORITHM} requires {CURVE.name}"
        )


def _public_numbers_equal(a: ec.EllipticCurvePublicKey, b: ec.EllipticCurvePublicKey) -> bool:
    return a.public_numbers() == b.public_numbers()


class KeyMaterialManager:
    """Owns the process signing key pair. Keys are immutable once loaded."""

    def __init__(self, key_pair: Optional[KeyPair] = None):
        self._key_pair = key_pair

    @classmethod
    def from_settings(cls, settings) -> "KeyMaterialManager":
        """
        Build the manager from startup configuration.

        A missing private key is not fatal here: the manager stays empty and
        token issuance fails with SigningError, leaving unrelated identity and
        session operations untouched. A present but malformed key raises
        KeyMaterialError immediately.
        """
        manager = cls()
        private_pem = settings.private_key_pem()
        if private_pem is None:
            logger.warning("LIGHTSPARK_PRIVATE_KEY not configured, token signing disabled")
            return manager
        manager.load(private_pem, settings.public_key_pem())
        return manager

    @property
    def key_pair(self) -> Optional[KeyPair]:
        return self._key_pair

    @property
    def is_loaded(self) -> bool:
        return self._key_pair is not None

    def generate(self) -> KeyPair:
        if self._key_pair is not None:
            raise KeyMaterialError("key pair already loaded for this process")
        private_key = ec.generate_private_key(CURVE())
        self._key_pair = KeyPair(private_key=private_key, public_key=private_key.public_key())
        logger.info("generated new %s key pair", SIGNING_ALGORITHM)
        return self._key_pair

    def load(self, private_pem: str | bytes, public_pem: str | bytes | None = None) -> KeyPair:
        """
        Reconstruct the key pair from PEM text (SEC1 or PKCS8 private key).

        Raises:
            KeyMaterialError: malformed encoding, encrypted key, wrong key
                type or curve, or a public key that does not match.
        """
        if self._key_pair is not None:
            raise KeyMaterialError("key pair already loaded for this process")
        if isinstance(private_pem, str):
            private_pem = private_pem.encode()
        try:
            private_key = serialization.load_pem_private_key(private_pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise KeyMaterialError(f"private key could not be parsed: {type(exc).__name__}") from exc
        _check_curve(private_key, "private key")

        derived_public = private_key.public_key()
        if public_pem:
            if isinstance(public_pem, str):
                public_pem = public_pem.encode()
            try:
                public_key = serialization.load_pem_public_key(public_pem)
            except (ValueError, UnsupportedAlgorithm) as exc:
                raise KeyMaterialError(f"public key could not be parsed: {type(exc).__name__}") from exc
            _check_curve(public_key, "public key")
            if not _public_numbers_equal(public_key, derived_public):
                raise KeyMaterialError("public key does not match private key")

        self._key_pair = KeyPair(private_key=private_key, public_key=derived_public)
        logger.info("loaded %s signing key", SIGNING_ALGORITHM)
        return self._key_pair

    def save(self, directory: str | Path) -> Path:
        """Write the pair as PEM files; the private file is created owner-only."""
        if self._key_pair is None:
            raise KeyMaterialError("no key pair to save")
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        private_path = directory / PRIVATE_KEY_FILENAME
        private_bytes = self._key_pair.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        fd = os.open(private_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as file:
            file.write(private_bytes)
        (directory / PUBLIC_KEY_FILENAME).write_text(self._key_pair.public_key_pem())
        logger.info("key pair written to %s", directory)
        return private_path
