"""
Credential primitives - bcrypt hashing and verification-code generation.

Both passwords and verification codes go through the same hasher so that
no secret is ever kept in plaintext in any store.
"""

import secrets
from dataclasses import dataclass

import bcrypt


@dataclass(frozen=True)
class BcryptHasher:
    """
    One-way salted hash with an adaptive cost factor.

    bcrypt.checkpw performs the comparison in constant time, so verify()
    does not leak how many leading bytes matched.
    """

    cost: int = 10

    def hash(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=self.cost)).decode()

    def verify(self, secret: str, hash_token: str) -> bool:
        try:
            return bcrypt.checkpw(secret.encode(), hash_token.encode())
        except ValueError:
            # Malformed or truncated hash
            return False


@dataclass(frozen=True)
class CodeGenerator:
    """
    Numeric verification codes drawn from the OS CSPRNG.

    secrets.randbelow() rejects out-of-range draws internally, so every
    value in 0 .. 10**length - 1 is equally likely. Returns a string to
    preserve leading zeros.
    """

    length: int = 6

    def next(self) -> str:
        return str(secrets.randbelow(10**self.length)).zfill(self.length)
