"""Credential store - Database operations for users and refresh tokens"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...clock import utcnow
from ...models import RefreshToken, User, UserRole
from ...security import hash_token


class UserRepository:
    """Repository for user lookups"""

    @staticmethod
    def find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def find_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def create_user(
        db: Session,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None,
        role: str = UserRole.USER.value,
    ) -> User:
        user = User(
            email=email.strip().lower(),
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


class RefreshTokenRepository:
    """Repository for persisted refresh tokens (stored as SHA-256 hashes)"""

    @staticmethod
    def create(db: Session, user_id: str, token: str, expires_at: datetime, commit: bool = True) -> RefreshToken:
        record = RefreshToken(user_id=user_id, token_hash=hash_token(token), expires_at=expires_at)
        db.add(record)
        if commit:
            db.commit()
            db.refresh(record)
        return record

    @staticmethod
    def find(db: Session, token: str) -> Optional[RefreshToken]:
        return db.query(RefreshToken).filter(RefreshToken.token_hash == hash_token(token)).first()

    @staticmethod
    def revoke_if_active(db: Session, record: RefreshToken, now: datetime) -> bool:
        """
        Mark the token revoked unless it already is. Returns False when another
        request revoked it first, so one refresh token yields one exchange.
        """
        updated = (
            db.query(RefreshToken)
            .filter(RefreshToken.id == record.id, RefreshToken.is_revoked.is_(False))
            .update({"is_revoked": True, "revoked_at": now}, synchronize_session=False)
        )
        return updated == 1

    @staticmethod
    def revoke_all_for_user(db: Session, user_id: str) -> int:
        count = (
            db.query(RefreshToken)
            .filter(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .update({"is_revoked": True, "revoked_at": utcnow()}, synchronize_session=False)
        )
        db.commit()
        return count

