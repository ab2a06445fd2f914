"""
GAuth Web - Database Seed Script

Creates the default roles and the bootstrap admin account, plus optional
demo users holding the "user" role.

Usage:
    python -m scripts.seed_users
    python -m scripts.seed_users --demo
"""

import argparse
import logging

from sqlmodel import Session, select

from gauth_web.auth.database import get_engine, init_db
from gauth_web.auth.models import Role, User
from gauth_web.auth.password import hash_password
from gauth_web.auth.seed import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_USERNAME, seed_admin_user, seed_roles
from gauth_web.config import settings


logger = logging.getLogger("seed_users")

DEMO_USERS = [
    ("alice", "alice@gauth.local", "Alice", "Demo"),
    ("bob", "bob@gauth.local", "Bob", "Demo"),
]
DEMO_PASSWORD = "password"


def seed_demo_users(db: Session) -> int:
    """Create demo accounts with the "user" role. Returns the number created."""
    user_role = db.exec(select(Role).where(Role.name == "user")).first()
    created = 0

    for username, email, first_name, last_name in DEMO_USERS:
        existing = db.exec(select(User).where(User.username == username)).first()
        if existing:
            logger.info("User %s already exists", username)
            continue

        db.add(
            User(
                username=username,
                email=email,
                password_hash=hash_password(DEMO_PASSWORD),
                first_name=first_name,
                last_name=last_name,
                roles=[user_role] if user_role else [],
            )
        )
        created += 1
        logger.info("Created user: %s", username)

    db.commit()
    return created


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed GAuth Web default data")
    parser.add_argument("--demo", action="store_true", help="Also create demo users")
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(message)s")

    engine = get_engine(settings.database_url())
    init_db(engine)

    with Session(engine) as db:
        roles = seed_roles(db)
        logger.info("%d default roles created", len(roles))

        if seed_admin_user(db):
            logger.info("Admin ready: %s / %s", DEFAULT_ADMIN_USERNAME, DEFAULT_ADMIN_EMAIL)
        else:
            logger.info("Admin user already exists")

        if args.demo:
            seed_demo_users(db)

    engine.dispose()


if __name__ == "__main__":
    main()
