"""
Encryption utilities for storing tenant shared secrets.

Uses Fernet symmetric encryption from the cryptography library. The key comes
from CONNECT_STORE_KEY.
"""
from cryptography.fernet import Fernet, InvalidToken

GENERATE_KEY_HINT = (
    "Generate one with: python3 -c 'from cryptography.fernet import Fernet; "
    "print(Fernet.generate_key().decode())'"
)


class SecretCipher:
    """Fernet cipher for secrets written to disk."""

    def __init__(self, key: str):
        """
        Initialize cipher.

        Args:
            key: Fernet key (32 bytes, URL-safe base64-encoded)

        Raises:
            RuntimeError: If the key is missing or not a valid Fernet key
        """
        if not key:
            raise RuntimeError(f"CONNECT_STORE_KEY is required to encrypt stored tenant secrets. {GENERATE_KEY_HINT}")

        try:
            self._fernet = Fernet(key.encode("utf-8") if isinstance(key, str) else key)
        except (ValueError, TypeError) as e:
            raise RuntimeError(f"CONNECT_STORE_KEY must be a valid Fernet key: {str(e)}. {GENERATE_KEY_HINT}") from e

    def encrypt_secret(self, plaintext: str) -> str:
        """
        Encrypt a plaintext secret.

        Returns:
            str: Base64-encoded ciphertext
        """
        if not plaintext:
            raise ValueError("plaintext cannot be empty")
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt_secret(self, ciphertext: str) -> str:
        """
        Decrypt a ciphertext produced by encrypt_secret.

        Raises:
            RuntimeError: If the ciphertext was made with another key or is corrupt
        """
        if not ciphertext:
            raise ValueError("ciphertext cannot be empty")
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise RuntimeError("Failed to decrypt secret: wrong CONNECT_STORE_KEY or corrupt data") from e
