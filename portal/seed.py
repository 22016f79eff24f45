"""
Seed the default roles, the permission catalogue and demo accounts.

Every function is idempotent: existing rows are left alone, missing ones are
created. Run automatically at startup when SEED_DATA=true, or manually with
``python -m portal.seed``.
"""

import logging

from sqlalchemy.orm import Session

from .config import ADMIN_EMAIL, ADMIN_PASSWORD
from .database import SessionLocal
from .models import Permission, Role, User, UserRole
from .permissions.defaults import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DESCRIPTIONS, ROLE_DEFINITIONS
from .permissions.matching import parse_permission_name
from .security import hash_password

logger = logging.getLogger(__name__)

DEMO_USERS = [
    # (email, first name, last name, role)
    ("berater@elterngeld-portal.de", "Anna", "Berater", UserRole.ADVISOR.value),
    ("junior@elterngeld-portal.de", "Max", "Junior", UserRole.JUNIOR_ADVISOR.value),
    ("user@elterngeld-portal.de", "Lisa", "Mustermann", UserRole.USER.value),
]
DEMO_PASSWORD = "demo-password-123"


def _all_permission_names() -> list[str]:
    names = set(PERMISSION_DESCRIPTIONS)
    for permission_names in DEFAULT_ROLE_PERMISSIONS.values():
        names.update(permission_names)
    return sorted(names)


def seed_permissions_and_roles(db: Session) -> None:
    """Create missing permissions and roles and attach each role's default permission set"""
    permissions = {p.name: p for p in db.query(Permission).all()}
    created = 0
    for name in _all_permission_names():
        if name in permissions:
            continue
        resource, action = parse_permission_name(name)
        permission = Permission(
            name=name,
            resource=resource,
            action=action,
            description=PERMISSION_DESCRIPTIONS.get(name),
        )
        db.add(permission)
        permissions[name] = permission
        created += 1

    for role_name, (display_name, description, sort_order, is_default) in ROLE_DEFINITIONS.items():
        role = db.query(Role).filter(Role.name == role_name).first()
        if role is None:
            role = Role(
                name=role_name,
                display_name=display_name,
                description=description,
                sort_order=sort_order,
                is_default=is_default,
            )
            db.add(role)
            # Defaults are only attached to new roles so admin edits survive a restart
            role.permissions = [permissions[name] for name in DEFAULT_ROLE_PERMISSIONS.get(role_name, [])]
            logger.info(f"➕ Created role {role_name} with {len(role.permissions)} permissions")

    db.commit()
    logger.info(f"✅ Permissions seeded ({created} new)")


def _ensure_user(db: Session, email: str, password: str, first_name: str, last_name: str, role: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user is None:
        user = User(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=role,
            email_verified=True,
        )
        db.add(user)
        logger.info(f"👤 Created {role} account {email}")
    return user


def seed_demo_users(db: Session) -> None:
    """Create the admin account and one demo account per role"""
    if ADMIN_PASSWORD:
        _ensure_user(db, ADMIN_EMAIL, ADMIN_PASSWORD, "System", "Administrator", UserRole.ADMIN.value)
    else:
        logger.warning("⚠️ ADMIN_PASSWORD not set, skipping admin account")

    for email, first_name, last_name, role in DEMO_USERS:
        _ensure_user(db, email, DEMO_PASSWORD, first_name, last_name, role)
    db.commit()


def seed_all(db: Session) -> None:
    seed_permissions_and_roles(db)
    seed_demo_users(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    from .database import Base, engine

    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_all(session)
    finally:
        session.close()
