"""
auth/passwords.py -- Argon2id password hashing with a deployment-wide salt.

Security design decisions:
  Argon2id (argon2-cffi) is memory-hard, which makes GPU brute force of
  leaked hashes expensive. The cost parameters are argon2-cffi's defaults,
  taken from a PasswordHasher instance so they track the library's
  recommendations.

  The salt is NOT per-record. It comes from HASHER_SALT (base64 text) and is
  injected by the caller, so tests can pin it. The output is a PHC string
  ("$argon2id$v=19$m=...,t=...,p=...$<salt>$<hash>") which records every
  parameter needed to verify it later, including the salt.

  Verification goes through argon2's own verifier, which compares digests in
  constant time.

Layer rule: no imports from api/ or db/.
"""

from __future__ import annotations

import base64
import binascii
import logging

from argon2 import PasswordHasher as _Argon2
from argon2.exceptions import HashingError, InvalidHashError, VerificationError
from argon2.low_level import hash_secret

from core.errors import AuthenticationError, CryptoError

logger = logging.getLogger("unpacking.auth")

# Argon2 rejects salts shorter than 8 bytes.
_MIN_SALT_BYTES = 8


def decode_salt(salt: str) -> bytes:
    """Decode base64 salt text (padding optional). Raises CryptoError."""
    try:
        raw = base64.b64decode(salt + "=" * (-len(salt) % 4), validate=True)
    except (binascii.Error, ValueError) as exc:
        logger.error("HASHER_SALT is not valid base64: %s", exc)
        raise CryptoError() from exc
    if len(raw) < _MIN_SALT_BYTES:
        logger.error("HASHER_SALT decodes to %d bytes, need at least %d", len(raw), _MIN_SALT_BYTES)
        raise CryptoError()
    return raw


class PasswordHasher:
    """Hash and verify user passwords.

    Usage:
        hasher = PasswordHasher(get_settings().hasher_salt)
        stored = hasher.hash("s3cret!")
        hasher.verify("s3cret!", stored)   # raises AuthenticationError on mismatch
    """

    def __init__(self, salt: str) -> None:
        self._salt = decode_salt(salt)
        self._argon2 = _Argon2()

    def hash(self, plaintext: str) -> str:
        """Return the PHC-encoded Argon2id hash of plaintext."""
        try:
            encoded = hash_secret(
                plaintext.encode("utf-8"),
                self._salt,
                time_cost=self._argon2.time_cost,
                memory_cost=self._argon2.memory_cost,
                parallelism=self._argon2.parallelism,
                hash_len=self._argon2.hash_len,
                type=self._argon2.type,
            )
        except HashingError as exc:
            logger.error("Argon2 hashing failed: %r", exc)
            raise CryptoError() from exc
        return encoded.decode("ascii")

    def verify(self, plaintext: str, hashed: str) -> None:
        """Raise AuthenticationError unless plaintext matches hashed."""
        try:
            self._argon2.verify(hashed, plaintext)
        except (VerificationError, InvalidHashError) as exc:
            logger.info("Password verification failed: %s", exc)
            raise AuthenticationError() from exc
