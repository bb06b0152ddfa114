"""
Transaction Signer - handles key derivation and transaction signing.

Derives the administrative Ed25519 key from a mnemonic phrase and signs
transaction data with the ledger's intent scheme.
"""

import base64
import hashlib

import pysui_fastcrypto
import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from mnemonic import Mnemonic
from pysui.abstracts import SignatureScheme
from pysui.sui.sui_crypto import SuiKeyPair, create_new_keypair, keypair_from_keystring

from oracle_runner.config import DEFAULT_DERIVATION_PATH, ConfigurationError, RunnerConfig

logger = structlog.get_logger(__name__)

ED25519_FLAG = SignatureScheme.ED25519.value

# Intent prefix: scope TransactionData, version V0, app id Sui
TRANSACTION_INTENT = bytes([0, 0, 0])


class SigningFailure(Exception):
    """Raised when the keypair cannot produce a valid signature."""
    pass


def intent_digest(tx_bytes: bytes) -> bytes:
    """Blake2b-256 digest of the transaction data behind its intent prefix."""
    return hashlib.blake2b(TRANSACTION_INTENT + tx_bytes, digest_size=32).digest()


class Keypair:
    """
    Ed25519 keypair of the administrative account.

    Supports loading keys from:
    - A BIP-39 mnemonic phrase and derivation path
    - A raw 32-byte private key seed
    """

    def __init__(self, sui_keypair: SuiKeyPair):
        if sui_keypair.scheme != SignatureScheme.ED25519:
            raise ConfigurationError(f"Expected an Ed25519 key, got {sui_keypair.scheme.name}")
        self._sui_keypair = sui_keypair
        self._verify_key = Ed25519PublicKey.from_public_bytes(self.public_key)
        self._address = "0x" + hashlib.blake2b(
            sui_keypair.public_key.scheme_and_key(), digest_size=32
        ).hexdigest()

    @classmethod
    def from_mnemonic(
        cls,
        phrase: str,
        path: str = DEFAULT_DERIVATION_PATH,
    ) -> "Keypair":
        """
        Derive the keypair from a mnemonic phrase.

        Raises:
            ConfigurationError: If the phrase or path is invalid
        """
        phrase = " ".join(phrase.split())
        if not Mnemonic("english").check(phrase):
            raise ConfigurationError("Admin phrase is not a valid BIP-39 mnemonic")

        try:
            public, private = pysui_fastcrypto.keys_from_mnemonics(
                SignatureScheme.ED25519, path, phrase
            )
        except ValueError as e:
            raise ConfigurationError(f"Cannot derive key at {path}: {e}")

        keypair = cls(SuiKeyPair.from_pfc_bytes(SignatureScheme.ED25519, bytes(public), bytes(private)))

        logger.info("keypair_derived", path=path, address=keypair.address[:10] + "...")
        return keypair

    @classmethod
    def from_config(cls, config: RunnerConfig) -> "Keypair":
        """Derive the keypair from configuration."""
        return cls.from_mnemonic(
            config.admin_phrase.get_secret_value(),
            config.derivation_path,
        )

    @classmethod
    def from_secret_key(cls, secret: bytes) -> "Keypair":
        """Load the keypair from a raw 32-byte private key seed."""
        if len(secret) != 32:
            raise ConfigurationError(f"Secret key must be 32 bytes, got {len(secret)}")
        keystring = base64.b64encode(bytes([ED25519_FLAG]) + secret).decode("ascii")
        return cls(keypair_from_keystring(keystring))

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key(self) -> bytes:
        return self._sui_keypair.public_key.key_bytes

    def sign_transaction(self, tx_bytes: bytes) -> str:
        """
        Sign BCS-encoded transaction data.

        Args:
            tx_bytes: Transaction data bytes

        Returns:
            Base64 serialized signature (flag || signature || public key)

        Raises:
            SigningFailure: If no valid signature can be produced
        """
        try:
            signature = self._sui_keypair.new_sign_secure(
                base64.b64encode(tx_bytes).decode("ascii")
            )
        except (AssertionError, TypeError, ValueError) as e:
            logger.error("transaction_signing_failed", error=str(e))
            raise SigningFailure(f"Failed to sign transaction: {e}") from e

        if not self.verify_transaction(tx_bytes, signature):
            logger.error("transaction_signing_failed", error="signature does not verify")
            raise SigningFailure("Failed to sign transaction: signature does not verify")

        logger.debug("transaction_signed", digest=intent_digest(tx_bytes).hex()[:16] + "...")
        return signature

    def verify_transaction(self, tx_bytes: bytes, serialized_signature: str) -> bool:
        """Check a serialized signature against transaction data."""
        raw = base64.b64decode(serialized_signature)
        if len(raw) != 97 or raw[0] != ED25519_FLAG or raw[65:] != self.public_key:
            return False
        try:
            self._verify_key.verify(raw[1:65], intent_digest(tx_bytes))
        except InvalidSignature:
            return False
        return True

    def __repr__(self) -> str:
        return f"Keypair(address={self._address[:10]}...)"


def generate_test_keypair() -> Keypair:
    """
    Generate a new random keypair for testing.

    WARNING: Do not use in production. The key is not persisted.
    """
    _, sui_keypair = create_new_keypair(SignatureScheme.ED25519)
    keypair = Keypair(sui_keypair)
    logger.warning("test_keypair_generated", address=keypair.address[:10] + "...")
    return keypair
