"""
GAuth Web - Default Data Seeding

Creates the default roles (from roles.yaml) and the bootstrap admin
account. Idempotent: existing rows are left untouched.
"""

import logging
from pathlib import Path
from typing import Dict, List

import yaml
from sqlmodel import Session as DBSession, select

from gauth_web.auth.models import Role, User
from gauth_web.auth.password import hash_password


logger = logging.getLogger(__name__)

ROLES_FILE = Path(__file__).parent / "roles.yaml"

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_EMAIL = "admin@gauth.local"
DEFAULT_ADMIN_PASSWORD = "password"


def load_default_roles(path: Path = ROLES_FILE) -> Dict[str, dict]:
    """Load role definitions; a missing file means no default roles."""
    if not path.exists():
        return {}

    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    return {
        name: {
            "description": (definition or {}).get("description", ""),
            "permissions": list((definition or {}).get("permissions") or []),
        }
        for name, definition in (config.get("roles") or {}).items()
    }


def seed_roles(db: DBSession) -> List[Role]:
    """Create any default role that does not exist yet. Returns created roles."""
    created = []
    for name, definition in load_default_roles().items():
        existing = db.exec(select(Role).where(Role.name == name)).first()
        if existing:
            continue

        role = Role(name=name, description=definition["description"])
        role.set_permissions(definition["permissions"])
        db.add(role)
        created.append(role)
        logger.info("Role created: %s", name)

    db.commit()
    return created


def seed_admin_user(db: DBSession) -> bool:
    """Create the bootstrap admin account. Returns False if it already exists."""
    existing = db.exec(
        select(User).where(User.username == DEFAULT_ADMIN_USERNAME)
    ).first()
    if existing:
        return False

    admin_role = db.exec(select(Role).where(Role.name == "admin")).first()
    if admin_role is None:
        raise RuntimeError("admin role missing; run seed_roles first")

    admin = User(
        username=DEFAULT_ADMIN_USERNAME,
        email=DEFAULT_ADMIN_EMAIL,
        password_hash=hash_password(DEFAULT_ADMIN_PASSWORD),
        first_name="Admin",
        last_name="User",
        is_active=True,
        is_verified=True,
        roles=[admin_role],
    )
    db.add(admin)
    db.commit()

    logger.info(
        "Admin user created (username: %s, password: %s)",
        DEFAULT_ADMIN_USERNAME,
        DEFAULT_ADMIN_PASSWORD,
    )
    return True


def seed_defaults(db: DBSession) -> None:
    seed_roles(db)
    seed_admin_user(db)
