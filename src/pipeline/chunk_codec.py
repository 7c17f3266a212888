"""Chunk sealing: zlib compression then optional AES-256-GCM encryption.

Sealed encrypted chunks are laid out as ``nonce || ciphertext+tag``.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import os
import zlib

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.constants import ENCRYPTION_NONCE_SIZE
from core.errors import VaultDatastoreError


def derive_key(encryption_key: str) -> bytes:
    """Derive a 256-bit AES key from a configured passphrase."""
    return hashlib.sha256(encryption_key.encode("utf-8")).digest()


@dataclass(frozen=True)
class ChunkCodec:
    """Seal and open chunk payloads for one dump.

    Attributes:
        compression: Whether payloads are zlib-compressed.
        encryption_key: Optional passphrase enabling AES-256-GCM.
    """

    compression: bool = True
    encryption_key: str | None = None

    @property
    def encrypted(self) -> bool:
        return self.encryption_key is not None

    def encode(self, raw: bytes) -> bytes:
        """Seal raw row bytes for storage."""
        data = zlib.compress(raw) if self.compression else raw
        if self.encryption_key is None:
            return data
        nonce = os.urandom(ENCRYPTION_NONCE_SIZE)
        return nonce + AESGCM(derive_key(self.encryption_key)).encrypt(nonce, data, None)

    def decode(self, key: str, sealed: bytes) -> bytes:
        """Open a stored chunk: decrypt, then decompress.

        Args:
            key: Chunk key, used in error messages.
            sealed: Stored chunk bytes.

        Returns:
            Raw row bytes.

        Raises:
            VaultDatastoreError: If the chunk cannot be decrypted or decompressed.
        """
        data = sealed
        if self.encryption_key is not None:
            if len(sealed) < ENCRYPTION_NONCE_SIZE:
                raise VaultDatastoreError(f"Chunk '{key}' is truncated and cannot be decrypted.")
            nonce, ciphertext = sealed[:ENCRYPTION_NONCE_SIZE], sealed[ENCRYPTION_NONCE_SIZE:]
            try:
                data = AESGCM(derive_key(self.encryption_key)).decrypt(nonce, ciphertext, None)
            except InvalidTag as error:
                raise VaultDatastoreError(
                    f"Failed to decrypt chunk '{key}'. Check the encryption key used for restore."
                ) from error
        if not self.compression:
            return data
        try:
            return zlib.decompress(data)
        except zlib.error as error:
            raise VaultDatastoreError(
                f"Failed to decompress chunk '{key}': {error}. The chunk may be corrupted."
            ) from error
