"""Password hashing for admin accounts (bcrypt via passlib)."""

from __future__ import annotations

from passlib.context import CryptContext

from flowboard.config import settings


def make_context(rounds: int | None = None) -> CryptContext:
    """bcrypt context; ``rounds`` defaults to ``settings.bcrypt_rounds``."""
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=rounds if rounds is not None else settings.bcrypt_rounds,
    )


class PasswordHasher:
    """Hash and verify admin passwords."""

    def __init__(self, context: CryptContext | None = None) -> None:
        self._context = context or make_context()

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str | None, password_hash: str | None) -> bool:
        """Constant-time check; malformed hashes count as a mismatch."""
        if not password or not password_hash:
            return False
        try:
            return self._context.verify(password, password_hash)
        except ValueError:
            return False

    def dummy_verify(self) -> None:
        """Spend the same time as a real verify, for unknown accounts."""
        self._context.dummy_verify()
