"""Auth service - Registration, login, refresh-token rotation and logout"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...clock import Clock, utcnow
from ...errors import (
    EmailAlreadyRegistered,
    InvalidCredentials,
    RefreshTokenInvalid,
    UserNotFound,
)
from ...models import User
from ...security import hash_password, log_security_event, mask_email, verify_password
from ...tokens import TokenPair, TokenService
from .repository import RefreshTokenRepository, UserRepository
from .schemas import RegisterRequest

logger = logging.getLogger(__name__)


class AuthService:
    """Service layer for authentication flows"""

    def __init__(self, db: Session, token_service: TokenService, clock: Optional[Clock] = None):
        self.db = db
        self.tokens = token_service
        self.users = UserRepository()
        self.refresh_tokens = RefreshTokenRepository()
        self._clock = clock or utcnow

    def _issue(self, user: User, refresh_expires_at=None) -> TokenPair:
        pair = self.tokens.issue_token_pair(user.id, user.role, user.email, refresh_expires_at)
        self.refresh_tokens.create(self.db, user.id, pair.refresh_token, pair.refresh_expires_at, commit=False)
        self.db.commit()
        return pair

    def register(self, data: RegisterRequest) -> tuple[User, TokenPair]:
        logger.info(f"📥 Registering {mask_email(data.email)}")
        if self.users.find_by_email(self.db, data.email):
            raise EmailAlreadyRegistered()

        try:
            user = self.users.create_user(
                self.db,
                email=data.email,
                password_hash=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                phone=data.phone,
            )
        except IntegrityError as e:
            # Concurrent registration with the same address
            self.db.rollback()
            raise EmailAlreadyRegistered() from e

        log_security_event("register", user_id=user.id)
        return user, self._issue(user)

    def login(self, email: str, password: str, ip_address: Optional[str] = None) -> tuple[User, TokenPair]:
        user = self.users.find_by_email(self.db, email)
        # Unknown address and wrong password are indistinguishable to the caller
        if not user or not verify_password(password, user.password_hash):
            log_security_event("failed_login", ip_address=ip_address, details={"email": mask_email(email)})
            raise InvalidCredentials()
        if not user.is_active:
            log_security_event("inactive_login", user_id=user.id, ip_address=ip_address)
            raise InvalidCredentials("Account is deactivated")

        log_security_event("login", user_id=user.id, ip_address=ip_address)
        return user, self._issue(user)

    def refresh(self, refresh_token: str) -> tuple[User, TokenPair]:
        """
        Exchange a refresh token for a new pair. The presented token is
        revoked and its replacement keeps the original expiry, so a session
        cannot be extended indefinitely by refreshing.
        """
        now = self._clock()
        record = self.refresh_tokens.find(self.db, refresh_token)
        if record is None or record.is_revoked or record.expires_at <= now:
            raise RefreshTokenInvalid()

        user = self.users.find_by_id(self.db, record.user_id)
        if user is None or not user.is_active:
            raise RefreshTokenInvalid()

        if not self.refresh_tokens.revoke_if_active(self.db, record, now):
            self.db.rollback()
            raise RefreshTokenInvalid()

        pair = self._issue(user, refresh_expires_at=record.expires_at)
        logger.info(f"🔄 Refresh token rotated for user {user.id}")
        return user, pair

    def logout(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Revoke the presented access token and, if given, the caller's refresh token"""
        claims = self.tokens.revoke(access_token)
        if refresh_token:
            record = self.refresh_tokens.find(self.db, refresh_token)
            if record is not None and record.user_id == claims.sub:
                self.refresh_tokens.revoke_if_active(self.db, record, self._clock())
                self.db.commit()
        log_security_event("logout", user_id=claims.sub)

    def revoke_all_refresh_tokens(self, user_id: str) -> int:
        count = self.refresh_tokens.revoke_all_for_user(self.db, user_id)
        logger.info(f"🔒 Revoked {count} refresh tokens for user {user_id}")
        return count

    def get_user(self, user_id: str) -> User:
        user = self.users.find_by_id(self.db, user_id)
        if user is None:
            raise UserNotFound()
        return user
