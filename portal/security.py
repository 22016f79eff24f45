"""
Security Utilities
Password hashing, opaque token helpers and security audit logging
"""

import hashlib
import logging
import os
import secrets
from typing import Any, Optional

# Password hashing
from passlib.context import CryptContext

from .clock import utcnow

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


# ============================================================================
# PASSWORD SECURITY
# ============================================================================


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against bcrypt hash"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


# ============================================================================
# OPAQUE TOKENS
# ============================================================================


def generate_secure_token(num_bytes: int = 32) -> str:
    """Generate a cryptographically secure random token, hex-encoded"""
    return secrets.token_hex(num_bytes)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store opaque tokens without keeping the token itself"""
    return hashlib.sha256(token.encode()).hexdigest()


# ============================================================================
# AUDIT LOGGING
# ============================================================================


def mask_email(email: str) -> str:
    """Mask email for privacy: jo***@gm***.com"""
    if not email or "@" not in email:
        return "***@***.***"
    local, domain = email.split("@", 1)
    domain_parts = domain.split(".")
    masked_local = f"{local[:2]}***" if len(local) > 2 else f"{local[:1]}***"
    masked_domain = (
        f"{domain_parts[0][:2]}***" if len(domain_parts[0]) > 2 else f"{domain_parts[0][:1]}***"
    )
    return f"{masked_local}@{masked_domain}.{domain_parts[-1]}"


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
):
    """
    Log security-related events for audit trail

    Args:
        event_type: Type of security event (login, logout, failed_auth, etc.)
        user_id: User identifier
        ip_address: Client IP address
        details: Additional event details
    """
    log_entry = {
        "timestamp": utcnow().isoformat(),
        "event_type": event_type,
        "user_id": user_id,
        "ip_address": ip_address,
        "details": details or {},
    }
    logger.info(f"SECURITY_EVENT: {log_entry}")
