"""
Encryption of TOTP secrets at rest.

Uses AES-256-CBC with PKCS7 padding and a fresh random IV per encryption.
Stored values are envelopes in one of two shapes:

- EncryptedEnvelope: "<iv hex>:<ciphertext hex>"
- PlainFallbackEnvelope: base64 of the secret, no delimiter. Written by
  older deployments whose encryption step failed at setup time; still
  readable so those accounts keep working.
"""
import os
import base64
import binascii
import hashlib
import logging
import string
from dataclasses import dataclass
from typing import Optional, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import ConfigurationError, DecryptionFailure

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16
DELIMITER = ":"


@dataclass(frozen=True)
class EncryptedEnvelope:
    iv: bytes
    ciphertext: bytes

    def serialize(self) -> str:
        return f"{self.iv.hex()}{DELIMITER}{self.ciphertext.hex()}"


@dataclass(frozen=True)
class PlainFallbackEnvelope:
    text: str

    def serialize(self) -> str:
        return self.text


Envelope = Union[EncryptedEnvelope, PlainFallbackEnvelope]


def parse_envelope(value: str) -> Envelope:
    """
    Parse a stored envelope string.

    Raises:
        DecryptionFailure: If the value is empty or not a well-formed envelope.
    """
    if not value:
        raise DecryptionFailure()

    if DELIMITER not in value:
        return PlainFallbackEnvelope(value)

    parts = value.split(DELIMITER)
    if len(parts) != 2:
        raise DecryptionFailure()

    try:
        iv = bytes.fromhex(parts[0])
        ciphertext = bytes.fromhex(parts[1])
    except ValueError:
        raise DecryptionFailure()

    if len(iv) != IV_SIZE or not ciphertext or len(ciphertext) % IV_SIZE:
        raise DecryptionFailure()

    return EncryptedEnvelope(iv=iv, ciphertext=ciphertext)


def derive_key(master_key: Union[str, bytes]) -> bytes:
    """
    Turn configured key material into a 32-byte AES key.

    A 64-char hex string is decoded; material that is already 32 bytes is used
    as is; anything else is hashed with SHA-256.
    """
    if isinstance(master_key, str):
        if len(master_key) == KEY_SIZE * 2 and all(c in string.hexdigits for c in master_key):
            return bytes.fromhex(master_key)
        material = master_key.encode('utf-8')
    else:
        material = master_key

    if len(material) == KEY_SIZE:
        return material
    return hashlib.sha256(material).digest()


class SecretCipher:
    """
    Symmetric cipher for TOTP secrets.

    Example usage:
        cipher = SecretCipher(settings.encryption_key)
        stored = cipher.encrypt(secret)
        secret = cipher.decrypt(stored)
    """

    def __init__(self, master_key: Optional[Union[str, bytes]]):
        if not master_key:
            raise ConfigurationError(
                "ENCRYPTION_KEY not set. "
                "Generate with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )
        self._key = derive_key(master_key)

    def encrypt_envelope(self, plaintext: str) -> EncryptedEnvelope:
        iv = os.urandom(IV_SIZE)

        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()

        encryptor = Cipher(algorithms.AES(self._key), modes.CBC(iv)).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return EncryptedEnvelope(iv=iv, ciphertext=ciphertext)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext string.

        Returns:
            Serialized envelope "<iv hex>:<ciphertext hex>".
        """
        return self.encrypt_envelope(plaintext).serialize()

    def decrypt_envelope(self, envelope: Envelope) -> str:
        if isinstance(envelope, PlainFallbackEnvelope):
            try:
                raw = base64.b64decode(envelope.text.encode('ascii'), validate=True)
                return raw.decode('utf-8')
            except (binascii.Error, UnicodeError, ValueError):
                logger.error("Decryption failed: malformed fallback envelope")
                raise DecryptionFailure()

        try:
            decryptor = Cipher(algorithms.AES(self._key), modes.CBC(envelope.iv)).decryptor()
            padded = decryptor.update(envelope.ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            raw = unpadder.update(padded) + unpadder.finalize()
            return raw.decode('utf-8')
        except (ValueError, UnicodeError):
            logger.error("Decryption failed: bad key or corrupted envelope")
            raise DecryptionFailure()

    def decrypt(self, value: str) -> str:
        """
        Decrypt a stored envelope string.

        Raises:
            DecryptionFailure: If the envelope is malformed or does not decrypt.
        """
        return self.decrypt_envelope(parse_envelope(value))
