from passlib.context import CryptContext
from passlib.exc import UnknownHashError


class PasswordHasher:
    """Salted bcrypt hashing with a tunable work factor."""

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)
        self._dummy_hash = None

    def hash(self, password: str) -> str:
        """Hashes a plain password."""
        return self._context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verifies a plain password against a hashed password."""
        try:
            return self._context.verify(plain_password, hashed_password)
        except (UnknownHashError, ValueError, TypeError):
            return False

    def dummy_verify(self, plain_password: str) -> bool:
        """Spends the same work as verify() when there is no real hash to check."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("dummy-password")
        self.verify(plain_password, self._dummy_hash)
        return False
