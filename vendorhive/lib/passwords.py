"""Password hashing with passlib's bcrypt scheme."""
from passlib.context import CryptContext


class PasswordHasher:
    """Hashes and verifies user passwords."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed: str) -> bool:
        """Return False for malformed hashes instead of raising."""
        if not hashed:
            return False
        try:
            return self._context.verify(password, hashed)
        except ValueError:
            return False
