"""Passphrase-based encryption of individual vault secrets.

Uses the cryptography library for:
- PBKDF2-HMAC-SHA256 key derivation with a fresh salt per secret
- Fernet (AES-128-CBC + HMAC-SHA256) for authenticated encryption

Ciphertext format (URL-safe base64 of):
[version (1 byte)] [iterations (4 bytes)] [salt (16 bytes)] [Fernet token]

The iteration count travels with the ciphertext, so secrets written under an
older work factor still decrypt after the configured default changes.
"""

import base64
import binascii
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import get_vault_config
from .exceptions import DecryptionError, EncryptionError

FORMAT_VERSION = 1
SALT_SIZE = 16  # 128 bits
KEY_SIZE = 32  # Fernet splits this into signing and encryption halves
ITERATIONS_SIZE = 4
HEADER_SIZE = 1 + ITERATIONS_SIZE + SALT_SIZE

# Smallest Fernet token: version, timestamp, IV, one AES block, HMAC
MIN_TOKEN_SIZE = 1 + 8 + 16 + 16 + 32
MAX_ITERATIONS = 10_000_000


class KeyDerivation:
    """Derives Fernet keys from the master passphrase using PBKDF2."""

    @staticmethod
    def generate_salt() -> bytes:
        """Generate cryptographically secure random salt."""
        return os.urandom(SALT_SIZE)

    @staticmethod
    def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
        """
        Derive a 256-bit key from the passphrase using PBKDF2-HMAC-SHA256.

        Args:
            passphrase: Master passphrase
            salt: Random salt (stored inside the ciphertext)
            iterations: PBKDF2 iteration count

        Returns:
            32-byte derived key
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(passphrase.encode("utf-8"))

    @staticmethod
    def derive_fernet_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
        """Derive a Fernet-compatible key (URL-safe base64 encoded)."""
        raw_key = KeyDerivation.derive_key(passphrase, salt, iterations)
        return base64.urlsafe_b64encode(raw_key)


class Cipher:
    """
    Symmetric encryption of single strings under a passphrase.

    Every call to encrypt() draws a new salt, so the same plaintext
    encrypted twice under the same passphrase yields different ciphertexts.
    """

    def __init__(self, iterations: Optional[int] = None):
        """
        Args:
            iterations: PBKDF2 iterations for new ciphertexts
                (default from vault config)
        """
        iterations = iterations or get_vault_config().pbkdf2_iterations
        if not 1 <= iterations <= MAX_ITERATIONS:
            raise EncryptionError(f"PBKDF2 iterations must be between 1 and {MAX_ITERATIONS:,}, got {iterations:,}")
        self.iterations = iterations

    def encrypt(self, plaintext: str, passphrase: str) -> str:
        """
        Encrypt a string.

        Args:
            plaintext: Secret to encrypt
            passphrase: Master passphrase

        Returns:
            ASCII ciphertext safe to store remotely
        """
        if not passphrase:
            raise EncryptionError("Cannot encrypt without a passphrase")

        salt = KeyDerivation.generate_salt()
        try:
            fernet = Fernet(KeyDerivation.derive_fernet_key(passphrase, salt, self.iterations))
            token = fernet.encrypt(plaintext.encode("utf-8"))
        except (TypeError, ValueError) as e:
            raise EncryptionError(f"Fernet encryption failed: {e}") from e

        payload = (
            FORMAT_VERSION.to_bytes(1, "big")
            + self.iterations.to_bytes(ITERATIONS_SIZE, "big")
            + salt
            + base64.urlsafe_b64decode(token)
        )
        return base64.urlsafe_b64encode(payload).decode("ascii")

    def decrypt(self, ciphertext: str, passphrase: str) -> str:
        """
        Decrypt a string produced by encrypt().

        Args:
            ciphertext: Value from the record store
            passphrase: Master passphrase

        Returns:
            Decrypted plaintext

        Raises:
            DecryptionError: Wrong passphrase, or malformed/truncated ciphertext
        """
        try:
            payload = base64.urlsafe_b64decode(ciphertext.encode("ascii"))
        except (AttributeError, UnicodeEncodeError, binascii.Error, ValueError):
            raise DecryptionError("Ciphertext is not valid base64")

        if len(payload) < HEADER_SIZE + MIN_TOKEN_SIZE:
            raise DecryptionError("Ciphertext is truncated")
        if payload[0] != FORMAT_VERSION:
            raise DecryptionError(f"Unsupported ciphertext version: {payload[0]}")

        iterations = int.from_bytes(payload[1:1 + ITERATIONS_SIZE], "big")
        salt = payload[1 + ITERATIONS_SIZE:HEADER_SIZE]
        token = base64.urlsafe_b64encode(payload[HEADER_SIZE:])

        if not 1 <= iterations <= MAX_ITERATIONS:
            raise DecryptionError("Ciphertext has an invalid iteration count")

        try:
            fernet = Fernet(KeyDerivation.derive_fernet_key(passphrase, salt, iterations))
            plaintext = fernet.decrypt(token)
        except InvalidToken:
            raise DecryptionError("Invalid ciphertext or wrong passphrase")

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise DecryptionError("Decrypted secret is not valid UTF-8")


def encrypt(plaintext: str, passphrase: str) -> str:
    """Encrypt with the configured default work factor."""
    return Cipher().encrypt(plaintext, passphrase)


def decrypt(ciphertext: str, passphrase: str) -> str:
    """Decrypt a ciphertext produced by encrypt()."""
    return Cipher().decrypt(ciphertext, passphrase)
