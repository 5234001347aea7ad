"""
Password based AES encryption used for remote file transfers.

Key material comes from ``generate_password_hash``: the first 16 bytes of
the hash are used both as the AES-128 key and as the CBC initialization
vector, so two shells agree on the cipher as long as they were given the
same password.
"""
import hashlib
from typing import Optional, Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from myshell.errors import (
    AuthenticationError,
    CipherUnavailableError,
    PaddingError,
)

PASSWORD_SALT = "peaches.*"
HASH_LEN = 32
BLOCK_SIZE = 16

BytesLike = Union[bytes, bytearray, memoryview]


def generate_password_hash(password: str) -> str:
    """Return the upper-case hex SHA-1 digest of the salted password."""
    salted = (password + PASSWORD_SALT).encode("utf-8")
    return hashlib.sha1(salted).hexdigest().upper()  # nosec B324


def post_encrypt_size(size: int) -> int:
    """Return the ciphertext length for ``size`` bytes of plaintext."""
    return (size // BLOCK_SIZE + 1) * BLOCK_SIZE


def _key_from_hash(password_hash: str) -> bytes:
    if len(password_hash) < HASH_LEN:
        raise ValueError(f"Hash length must not be smaller than {HASH_LEN}")
    return bytes.fromhex(password_hash[:HASH_LEN])


class StreamCipher:
    """AES/CBC/PKCS7 cipher that encrypts or decrypts a stream chunk by chunk.

    ``update`` may be called any number of times with arbitrarily sized
    chunks; ``finalize`` flushes the last block and resets the cipher so the
    same instance can process the next file.
    """

    ENCRYPT = True
    DECRYPT = False

    def __init__(self, password_hash: str, mode: bool):
        """Initialize the cipher.

        Args:
            password_hash: Hash from ``generate_password_hash``
            mode: ``StreamCipher.ENCRYPT`` or ``StreamCipher.DECRYPT``
        """
        self.key = _key_from_hash(password_hash)
        self.mode = mode
        self._context = None
        self._padding = None
        self.reset()

    @property
    def encrypting(self) -> bool:
        """True if this cipher is in encryption mode."""
        return self.mode == self.ENCRYPT

    def reset(self):
        """Discard any buffered state and start over with the same key."""
        try:
            cipher = Cipher(algorithms.AES(self.key), modes.CBC(self.key))
        except UnsupportedAlgorithm as e:
            raise CipherUnavailableError(
                "Algorithm unavailable (AES/CBC/PKCS7)") from e

        if self.encrypting:
            self._context = cipher.encryptor()
            self._padding = padding.PKCS7(BLOCK_SIZE * 8).padder()
        else:
            self._context = cipher.decryptor()
            self._padding = padding.PKCS7(BLOCK_SIZE * 8).unpadder()

    def update(
        self,
        data: BytesLike,
        offset: int = 0,
        length: Optional[int] = None
    ) -> bytes:
        """Feed ``length`` bytes of ``data`` starting at ``offset``.

        Returns:
            Zero or more transformed bytes
        """
        if length is None:
            length = len(data) - offset
        chunk = bytes(memoryview(data)[offset:offset + length])

        if self.encrypting:
            return self._context.update(self._padding.update(chunk))
        return self._padding.update(self._context.update(chunk))

    def finalize(self) -> bytes:
        """Flush the remaining block.

        Raises:
            PaddingError: If decrypted padding is invalid, which almost
                always means the password does not match the peer's
        """
        try:
            if self.encrypting:
                last = self._context.update(self._padding.finalize())
                return last + self._context.finalize()

            last = self._padding.update(self._context.finalize())
            return last + self._padding.finalize()
        except ValueError as e:
            raise PaddingError(
                "Invalid padding. This is probably due to incorrect password."
            ) from e
        finally:
            self.reset()

    def new_digest(self) -> "PayloadDigest":
        """Return a fresh plaintext digest keyed like this cipher."""
        return PayloadDigest(self.key)


class PayloadDigest:
    """HMAC-SHA256 over transferred plaintext, keyed from the cipher key."""

    def __init__(self, key: bytes):
        self._key = hashlib.sha256(key).digest()
        self._mac = hmac.HMAC(self._key, hashes.SHA256())

    def update(self, data: BytesLike) -> None:
        """Add plaintext bytes to the digest."""
        self._mac.update(bytes(data))

    def digest(self) -> bytes:
        """Return the digest of everything added so far."""
        return self._mac.finalize()

    def verify(self, expected: bytes) -> None:
        """Compare against the peer's digest.

        Raises:
            AuthenticationError: If the digests differ
        """
        try:
            self._mac.verify(expected)
        except InvalidSignature as e:
            raise AuthenticationError(
                "Content did not authenticate. "
                "This is probably due to incorrect password."
            ) from e
