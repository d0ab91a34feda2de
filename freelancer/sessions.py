from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from .errors import Unauthenticated


class SessionIssuer:
    """Stateless signed bearer tokens.

    A token is valid iff its signature checks out against the current key and
    its ``exp`` has not passed. There is no revocation list: logout is the
    client dropping the token.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)):
        if not secret_key:
            raise ValueError("A signing key is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def validate(self, token: str) -> int:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "sub"]},
            )
            return int(payload["sub"])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Session has expired.")
        except (jwt.InvalidTokenError, ValueError):
            raise Unauthenticated("Invalid session token.")
