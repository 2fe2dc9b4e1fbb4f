"""
BIP-39 recovery phrase handling.

The master phrase is the sole root of spend-key derivation, so the seed must
be bit-exact across processes: PBKDF2-HMAC-SHA512 over the NFKD phrase,
2048 rounds, salt ``"mnemonic" + passphrase``, 64 bytes out. The ``mnemonic``
package implements the standard; this module only adds validation and keeps
the result from leaking into logs.
"""

import logging
from dataclasses import dataclass, field

from mnemonic import Mnemonic

from app.core.exceptions import InvalidMnemonicError
from app.core.redact import preview

logger = logging.getLogger(__name__)

SEED_NUM_BYTES = 64  # 128 hex characters


@dataclass(frozen=True)
class Seed:
    value: bytes = field(repr=False)

    def __post_init__(self):
        if len(self.value) != SEED_NUM_BYTES:
            raise ValueError(f"seed must be {SEED_NUM_BYTES} bytes, got {len(self.value)}")

    def __repr__(self) -> str:
        return f"Seed({self.preview()})"

    def hex(self) -> str:
        return self.value.hex()

    def preview(self) -> str:
        return preview(self.value, keep=16)


class MnemonicSeedDeriver:
    def __init__(self, language: str = "english", passphrase: str = ""):
        self._mnemo = Mnemonic(language)
        self._passphrase = passphrase

    @classmethod
    def from_settings(cls, settings) -> "MnemonicSeedDeriver":
        return cls(passphrase=settings.MNEMONIC_PASSPHRASE)

    @staticmethod
    def normalize(phrase: str) -> str:
        """Collapse runs of whitespace; word lists are space-delimited."""
        return " ".join(phrase.split())

    def derive_seed(self, phrase: str) -> Seed:
        """
        Convert a recovery phrase into its 64-byte BIP-39 seed.

        Raises:
            InvalidMnemonicError: empty input, a single token with no
                whitespace (most likely a hex seed or key pasted by mistake),
                unknown words, wrong word count or a bad checksum.
        """
        if phrase is None or not phrase.strip():
            raise InvalidMnemonicError("recovery phrase is empty")
        normalized = self.normalize(phrase)
        if " " not in normalized:
            raise InvalidMnemonicError(
                f"recovery phrase contains no spaces ({len(normalized)} chars); "
                "expected a word list, not a raw seed or key"
            )
        if not self._mnemo.check(normalized):
            raise InvalidMnemonicError(
                f"recovery phrase of {len(normalized.split(' '))} words failed wordlist/checksum validation"
            )
        seed = Seed(Mnemonic.to_seed(normalized, passphrase=self._passphrase))
        logger.debug("derived seed %s", seed.preview())
        return seed

    def generate_phrase(self, strength: int = 128) -> str:
        """New random phrase: 128 bits -> 12 words, 256 bits -> 24 words."""
        return self._mnemo.generate(strength=strength)


def load_master_seed(settings, deriver: MnemonicSeedDeriver | None = None) -> Seed:
    """Startup helper: the master phrase is mandatory for spend-key derivation."""
    if not settings.SPARK_MASTER_MNEMONIC:
        raise InvalidMnemonicError("SPARK_MASTER_MNEMONIC is not configured")
    deriver = deriver or MnemonicSeedDeriver.from_settings(settings)
    return deriver.derive_seed(settings.SPARK_MASTER_MNEMONIC)
