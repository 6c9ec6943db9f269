"""Admin bearer tokens: shared-password login, HS256 JWTs with an expiry."""

import hmac
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_SUBJECT = "admin"


class AuthError(Exception):
    """Raised when admin credentials are missing or wrong."""


class AdminAuth:
    """Issues and verifies time-boxed admin tokens."""

    def __init__(self, password: str, secret: str, ttl_sec: int = 3600) -> None:
        if not password or not secret:
            raise AuthError("Admin password and token secret must both be set")
        self._password = password
        self._secret = secret
        self._ttl_sec = ttl_sec

    @property
    def ttl_sec(self) -> int:
        return self._ttl_sec

    def issue_token(self, password: str) -> str:
        if not hmac.compare_digest(password.encode("utf-8"), self._password.encode("utf-8")):
            raise AuthError("Invalid admin password")
        expires = datetime.now(timezone.utc) + timedelta(seconds=self._ttl_sec)
        return jwt.encode({"sub": ADMIN_SUBJECT, "exp": expires}, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> bool:
        """Return True for an unexpired admin token signed with our secret."""
        try:
            payload = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            logger.debug("Rejected admin token: %s", exc)
            return False
        return payload.get("sub") == ADMIN_SUBJECT
