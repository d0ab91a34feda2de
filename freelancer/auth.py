import bcrypt
import logging
import secrets
from typing import Optional

from .database import User
from .database_manager import DatabaseManager
from .errors import (
    DuplicateEmail,
    InvalidCredentials,
    InvalidSecondFactorCode,
    LoginFailure,
    SecondFactorNotSetUp,
    SecondFactorRequired,
    UserNotFound,
)
from .mfa import Enrollment, MFAManager
from .sessions import SessionIssuer
from .throttle import LoginThrottle

logger = logging.getLogger(__name__)


class AuthManager:
    def __init__(self, sessions: SessionIssuer, throttle: LoginThrottle,
                 mfa: MFAManager = None, db_manager: DatabaseManager = None):
        self.sessions = sessions
        self.throttle = throttle
        self.mfa = mfa or MFAManager()
        self.db_manager = db_manager or DatabaseManager()
        self._dummy_hash = None

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt"""
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')

    def verify_password(self, password: str, hashed: str) -> bool:
        """Verify password against hash"""
        return bcrypt.checkpw(password.encode('utf-8'), hashed.encode('utf-8'))

    def _timing_hash(self) -> str:
        # hashed once, then checked against when the email is unknown
        if self._dummy_hash is None:
            self._dummy_hash = self.hash_password(secrets.token_urlsafe(16))
        return self._dummy_hash

    # credential store

    def register(self, email: str, password: str) -> User:
        """Register a new user; the email must not exist yet (exact match)"""
        if self.db_manager.get_user_by_email(email):
            raise DuplicateEmail()

        user = self.db_manager.create_user(email, self.hash_password(password))
        if user is None:
            # lost a race against a concurrent registration
            raise DuplicateEmail()
        logger.info("registered user %s", user.id)
        return user

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db_manager.get_user_by_email(email)

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db_manager.get_user_by_id(user_id)

    def _require_user(self, user_id: int) -> User:
        user = self.find_by_id(user_id)
        if not user:
            raise UserNotFound("User not found.")
        return user

    def set_second_factor_secret(self, user_id: int, secret: str) -> User:
        user = self._require_user(user_id)
        user.two_fa_secret = secret
        self.db_manager.update_user(user)
        return user

    def enable_second_factor(self, user_id: int) -> User:
        user = self._require_user(user_id)
        user.is_two_fa_enabled = True
        self.db_manager.update_user(user)
        logger.info("two-factor enabled for user %s", user_id)
        return user

    # second factor setup

    def setup_second_factor(self, user_id: int) -> Enrollment:
        """Generate and store a pending secret; login ignores it until verified"""
        user = self._require_user(user_id)
        enrollment = self.mfa.generate_secret(f"{self.mfa.issuer_name} ({user.email})")
        self.set_second_factor_secret(user_id, enrollment.secret)
        return enrollment

    def verify_second_factor(self, user_id: int, token: str) -> bool:
        user = self._require_user(user_id)
        if not user.two_fa_secret:
            raise SecondFactorNotSetUp()
        if not self.mfa.verify_totp(user.two_fa_secret, token):
            raise InvalidSecondFactorCode()
        self.enable_second_factor(user_id)
        return True

    # login

    def login(self, email: str, password: str, token: Optional[str], client_address: str) -> str:
        """Full login flow; returns a signed session token.

        Every failed step is counted against the client address. A success
        does not clear earlier failures, only the window expiring does.
        """
        with self.throttle.attempt(client_address):
            try:
                user = self.find_by_email(email)
                if not user:
                    # same bcrypt cost as a real check, so timing does not reveal accounts
                    self.verify_password(password, self._timing_hash())
                    raise UserNotFound()

                if not self.verify_password(password, user.password_hash):
                    raise InvalidCredentials()

                if user.is_two_fa_enabled:
                    if not token:
                        raise SecondFactorRequired()
                    if not self.mfa.verify_totp(user.two_fa_secret, token):
                        raise InvalidSecondFactorCode()
            except LoginFailure as e:
                logger.info("login failed (%s) from %s", e.code, client_address)
                raise

        logger.info("user %s logged in from %s", user.id, client_address)
        return self.sessions.issue(user.id)
