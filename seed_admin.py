"""Create or promote an administrator account by phone number.

Usage: python seed_admin.py 13800138000 [--name "Ops Admin"] [--password secret123]
"""
import argparse
import logging

from dotenv import load_dotenv

load_dotenv()

from sqlmodel import Session

from chatauth.core.config import settings
from chatauth.database import create_db_and_tables, engine
from chatauth.db.models import Role
from chatauth.infrastructure.persistence.sqlalchemy.repositories.audit_log_repository_sql import SqlAuditLogger
from chatauth.infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository
from chatauth.infrastructure.security.bcrypt_hasher import BcryptPasswordHasher
from chatauth.utils import is_valid_phone

logging.basicConfig(level=logging.INFO, format=settings.LOG_FORMAT)
logger = logging.getLogger("seed_admin")


def seed_admin(session: Session, phone: str, name: str = None, password: str = None) -> str:
    users = SqlUserRepository(session)
    existing = users.get_by_phone(phone)
    if existing is None:
        password_hash = BcryptPasswordHasher(settings.PASSWORD_HASH_ROUNDS).hash(password) if password else None
        admin = users.create(phone=phone, name=name, role=Role.ADMIN, password_hash=password_hash)
        action = "user.created"
    else:
        admin = existing
        users.set_role(admin.id, Role.ADMIN)
        if password:
            users.set_password_hash(admin.id, BcryptPasswordHasher(settings.PASSWORD_HASH_ROUNDS).hash(password))
        action = "user.role.changed"
    SqlAuditLogger(session).log(action, resource="user", target_id=admin.id, phone=phone, details={"role": Role.ADMIN.value, "via": "seed_admin"})
    return admin.id


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("phone")
    parser.add_argument("--name", default=None)
    parser.add_argument("--password", default=None)
    args = parser.parse_args()

    if not is_valid_phone(args.phone):
        parser.error("Invalid phone number format")
    if args.password is not None and not 6 <= len(args.password) <= 255:
        parser.error("Password must be between 6 and 255 characters")

    create_db_and_tables()
    with Session(engine) as session:
        admin_id = seed_admin(session, args.phone, args.name, args.password)
    logger.info(f"Admin ready: {admin_id}")


if __name__ == "__main__":
    main()
