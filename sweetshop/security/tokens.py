import time
from typing import Callable, Optional

from jose import JWTError, jwt

from ..config.settings import Settings
from ..errors import ExpiredTokenError, InvalidTokenError


class SessionIssuer:
    """
    Issues and verifies signed session tokens.

    A token asserts ``sub`` (account id), ``iat`` and ``exp``. Nothing is
    stored server-side, so expiry is the only way a token stops working.
    """

    def __init__(self, settings: Settings, clock: Optional[Callable[[], float]] = None):
        self._secret = settings.SECRET_KEY
        self._algorithm = settings.ALGORITHM
        self._lifetime = settings.ACCESS_TOKEN_EXPIRE_SECONDS
        self._clock = clock or time.time

    @property
    def lifetime_seconds(self) -> int:
        return self._lifetime

    def issue(self, account_id: str) -> str:
        issued_at = int(self._clock())
        claims = {"sub": account_id, "iat": issued_at, "exp": issued_at + self._lifetime}
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> str:
        """Returns the account id carried by a valid token."""
        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidTokenError() from exc

        account_id = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(account_id, str) or not account_id:
            raise InvalidTokenError()
        if not isinstance(expires_at, (int, float)):
            raise InvalidTokenError()
        if self._clock() > expires_at:
            raise ExpiredTokenError()
        return account_id
