"""Cryptographic helpers for license material and request signatures.

Implements AES-256-CBC using the ``cryptography`` package.

- License material (8 bytes) is PKCS7-padded to one 16-byte block and
  encrypted with the provider's crypto_key/crypto_iv.
- Request signatures encrypt a 32-byte buffer with the provider's
  sign_key/sign_iv and emit only the update output (no padding block).

Security invariants:
- Never log keys, IVs or plaintext license material
- Keys are 32 bytes, IVs are 16 bytes; anything else is a CryptoError
- Fresh secrets always come from os.urandom
"""

import binascii
import os

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

KEY_SIZE = 32
IV_SIZE = 16
BLOCK_SIZE = 16


class CryptoError(Exception):
    """Raised when cryptographic operations fail."""

    pass


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the OS CSPRNG."""
    return os.urandom(size)


def to_bytes(value: bytes | str) -> bytes:
    """Accept raw bytes or a hex string and return raw bytes.

    Raises:
        CryptoError: If a string value is not valid hex.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    try:
        return bytes.fromhex(value)
    except (ValueError, TypeError) as e:
        raise CryptoError("Secret material is not valid hex") from e


def _cipher(key: bytes | str, iv: bytes | str) -> Cipher:
    key = to_bytes(key)
    iv = to_bytes(iv)
    if len(key) != KEY_SIZE:
        raise CryptoError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    if len(iv) != IV_SIZE:
        raise CryptoError(f"IV must be {IV_SIZE} bytes, got {len(iv)}")
    return Cipher(algorithms.AES(key), modes.CBC(iv))


def cbc_update(data: bytes, key: bytes | str, iv: bytes | str) -> bytes:
    """Encrypt block-aligned ``data`` without emitting a final padding block.

    Args:
        data: Plaintext whose length is a multiple of 16.
        key: 32-byte AES key (raw or hex).
        iv: 16-byte IV (raw or hex).

    Returns:
        Ciphertext of the same length as ``data``.
    """
    if len(data) % BLOCK_SIZE:
        raise CryptoError("Unpadded input must be a multiple of the block size")
    encryptor = _cipher(key, iv).encryptor()
    return encryptor.update(data)


def encrypt(plaintext: bytes, key: bytes | str, iv: bytes | str) -> bytes:
    """PKCS7-pad and encrypt ``plaintext`` with AES-256-CBC."""
    padder = padding.PKCS7(BLOCK_SIZE * 8).padder()
    padded = padder.update(plaintext) + padder.finalize()
    encryptor = _cipher(key, iv).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def decrypt(ciphertext: bytes, key: bytes | str, iv: bytes | str) -> bytes:
    """Decrypt AES-256-CBC ``ciphertext`` and strip PKCS7 padding.

    Raises:
        CryptoError: If the ciphertext is malformed or the padding is wrong
            (typically a wrong key or IV).
    """
    if not ciphertext or len(ciphertext) % BLOCK_SIZE:
        raise CryptoError("Ciphertext length is not a multiple of the block size")
    decryptor = _cipher(key, iv).decryptor()
    padded = decryptor.update(bytes(ciphertext)) + decryptor.finalize()
    unpadder = padding.PKCS7(BLOCK_SIZE * 8).unpadder()
    try:
        return unpadder.update(padded) + unpadder.finalize()
    except ValueError as e:
        raise CryptoError("Decryption failed: bad padding") from e


def to_hex(value: bytes) -> str:
    """Lowercase hex encoding of raw bytes."""
    return binascii.hexlify(value).decode("ascii")
