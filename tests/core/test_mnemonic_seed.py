import pytest
from mnemonic import Mnemonic

from app.core.config import Settings
from app.core.exceptions import InvalidMnemonicError
from app.core.mnemonic_seed import MnemonicSeedDeriver, Seed, load_master_seed
from tests.conftest import VECTOR_PHRASE, VECTOR_SEED_HEX


class TestDeriveSeed:
    """Test cases for MnemonicSeedDeriver.derive_seed"""

    def test_reference_vector(self):
        """Test the standard 12-word vector produces the published seed"""
        seed = MnemonicSeedDeriver().derive_seed(VECTOR_PHRASE)

        assert seed.hex() == VECTOR_SEED_HEX
        assert len(seed.value) == 64
        assert len(seed.hex()) == 128

    def test_reference_vector_with_passphrase(self):
        """Test the passphrase is mixed into the salt"""
        seed = MnemonicSeedDeriver(passphrase="TREZOR").derive_seed(VECTOR_PHRASE)

        assert seed.hex() == (
            "c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e5349553"
            "1f09a6987599d18264c1e1c92f2cf141630c7a3c4ab7c81b2f001698e7463b04"
        )

    def test_deterministic_across_instances(self):
        """Test that two derivers give bit-identical seeds for the same phrase"""
        first = MnemonicSeedDeriver().derive_seed(VECTOR_PHRASE)
        second = MnemonicSeedDeriver().derive_seed(VECTOR_PHRASE)

        assert first == second
        assert first.value == second.value

    def test_extra_whitespace_is_normalized(self):
        """Test leading/trailing/repeated whitespace does not change the seed"""
        messy = "  " + VECTOR_PHRASE.replace(" ", "   ") + "\n"

        assert MnemonicSeedDeriver().derive_seed(messy).hex() == VECTOR_SEED_HEX

    def test_phrase_without_spaces_fails_fast(self):
        """Test a pasted hex seed is rejected with its own diagnostic"""
        with pytest.raises(InvalidMnemonicError) as exc_info:
            MnemonicSeedDeriver().derive_seed(VECTOR_SEED_HEX)

        assert "no spaces" in str(exc_info.value)
        # the rejected secret is not echoed back
        assert VECTOR_SEED_HEX not in str(exc_info.value)

    def test_bad_checksum(self):
        """Test twelve valid words with a wrong checksum are rejected"""
        with pytest.raises(InvalidMnemonicError) as exc_info:
            MnemonicSeedDeriver().derive_seed(" ".join(["abandon"] * 12))

        assert "checksum" in str(exc_info.value)

    def test_unknown_word(self):
        """Test a word outside the wordlist is rejected"""
        phrase = " ".join(["abandon"] * 11 + ["zzzz"])

        with pytest.raises(InvalidMnemonicError):
            MnemonicSeedDeriver().derive_seed(phrase)

    def test_wrong_word_count(self):
        """Test a valid-looking phrase of the wrong length is rejected"""
        with pytest.raises(InvalidMnemonicError):
            MnemonicSeedDeriver().derive_seed("abandon abandon about")

    @pytest.mark.parametrize("phrase", ["", "   ", "\n\t"])
    def test_empty_phrase(self, phrase):
        """Test empty input is rejected"""
        with pytest.raises(InvalidMnemonicError):
            MnemonicSeedDeriver().derive_seed(phrase)


class TestGeneratePhrase:
    """Test cases for MnemonicSeedDeriver.generate_phrase"""

    def test_default_strength_is_twelve_words(self):
        deriver = MnemonicSeedDeriver()
        phrase = deriver.generate_phrase()

        assert len(phrase.split(" ")) == 12
        assert Mnemonic("english").check(phrase)

    def test_generated_phrase_derives(self):
        deriver = MnemonicSeedDeriver()
        phrase = deriver.generate_phrase(strength=256)

        assert len(phrase.split(" ")) == 24
        assert len(deriver.derive_seed(phrase).value) == 64


class TestSeed:
    """Test cases for the Seed value object"""

    def test_repr_shows_only_prefix(self):
        """Test repr/preview never contain the full seed"""
        seed = Seed(bytes.fromhex(VECTOR_SEED_HEX))

        assert VECTOR_SEED_HEX not in repr(seed)
        assert seed.preview() == VECTOR_SEED_HEX[:16] + "..."
        assert seed.preview() in repr(seed)

    def test_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            Seed(b"\x00" * 32)


class TestLoadMasterSeed:
    """Test cases for the startup helper"""

    def test_missing_phrase(self):
        with pytest.raises(InvalidMnemonicError):
            load_master_seed(Settings(SPARK_MASTER_MNEMONIC=None))

    def test_configured_phrase(self):
        settings = Settings(SPARK_MASTER_MNEMONIC=VECTOR_PHRASE, MNEMONIC_PASSPHRASE="")

        assert load_master_seed(settings).hex() == VECTOR_SEED_HEX
