import datetime as dt
import logging
from functools import lru_cache
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vault.errors import Unauthorized

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
_BCRYPT_MAX_BYTES = 72

_bearer = HTTPBearer(auto_error=False)


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Salted bcrypt digest. Slow; call from a worker thread."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time bcrypt comparison. A corrupt stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except ValueError:
        logger.warning("[auth] stored password hash is not a valid bcrypt digest")
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int) -> str:
    """Hash checked against when the email is unknown, so both paths cost the same."""
    return hash_password("not-a-real-password", rounds)


class TokenIssuer:
    """Signs and verifies stateless bearer tokens carrying only a user id and expiry."""

    def __init__(self, secret: str, algorithm: str = "HS256", expires_minutes: int = 60 * 24 * 7):
        self.secret = secret
        self.algorithm = algorithm
        self.expires = dt.timedelta(minutes=expires_minutes)

    def issue(self, user_id: str, now: Optional[dt.datetime] = None) -> str:
        now = now or dt.datetime.now(dt.timezone.utc)
        payload = {"sub": user_id, "iat": now, "exp": now + self.expires}
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Return the user id in a valid token; raise Unauthorized otherwise."""
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[self.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("[auth] rejected expired token")
            raise Unauthorized("Invalid or expired token")
        except jwt.InvalidTokenError as exc:
            logger.info("[auth] rejected token: %s", exc.__class__.__name__)
            raise Unauthorized("Invalid or expired token")

        user_id = payload.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise Unauthorized("Invalid or expired token")
        return user_id


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.tokens


def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """
    FastAPI dependency — verifies the bearer token and returns the user id
    every data route scopes its queries by. Runs before the handler body, so
    a bad token never reaches the gateway.
    """
    if credentials is None:
        raise Unauthorized("Authentication required")
    return tokens.verify(credentials.credentials)
