"""
Registration, login and current-user lookup.

All methods are synchronous and include bcrypt work; the HTTP layer calls them
from `def` endpoints, which FastAPI runs on its worker threadpool.
"""

import logging

from vault.auth import TokenIssuer, dummy_hash, hash_password, verify_password
from vault.errors import Conflict, NotFound, Unauthorized
from vault.gateway import PersistenceGateway
from vault.schemas import AuthOut, UserOut

logger = logging.getLogger(__name__)

# Same message for unknown email and wrong password
INVALID_CREDENTIALS = "Invalid credentials"


class AccountService:
    def __init__(self, gateway: PersistenceGateway, tokens: TokenIssuer, bcrypt_rounds: int = 12):
        self.gateway = gateway
        self.tokens = tokens
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, username: str, email: str, password: str) -> AuthOut:
        email = email.strip().lower()
        if self.gateway.get_user_by_username(username) or self.gateway.get_user_by_email(email):
            raise Conflict("Username or email already registered")

        password_hash = hash_password(password, self.bcrypt_rounds)
        user = self.gateway.create_user(username=username, email=email, password_hash=password_hash)
        logger.info("[auth] registered user %s", user.id)
        return AuthOut(user=user.public(), token=self.tokens.issue(user.id))

    def login(self, email: str, password: str) -> AuthOut:
        user = self.gateway.get_user_by_email(email.strip().lower())
        if user is None:
            # Burn the same bcrypt time as a real check
            verify_password(password, dummy_hash(self.bcrypt_rounds))
            raise Unauthorized(INVALID_CREDENTIALS)

        if not verify_password(password, user.password_hash):
            logger.info("[auth] failed login for user %s", user.id)
            raise Unauthorized(INVALID_CREDENTIALS)

        return AuthOut(user=user.public(), token=self.tokens.issue(user.id))

    def current_user(self, user_id: str) -> UserOut:
        user = self.gateway.get_user(user_id)
        if user is None:
            raise NotFound("User not found")
        return user.public()
