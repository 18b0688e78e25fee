"""Create (or promote) the first admin account.

    python -m app.db.create_admin admin@example.com "Front Desk" secret123
"""
import argparse

from app.db.session import SessionLocal
from app.core.security import hash_password
from app.core.logging_config import get_logger
from app.models.user import User
from app.models.room import Room  # noqa: F401
from app.models.booking import Booking  # noqa: F401
from app.models.payment import Payment  # noqa: F401
from app.models.enums import UserRole

logger = get_logger()


def create_admin(db, email: str, name: str, password: str) -> User:
    email = email.lower()
    user = db.query(User).filter(User.email == email).first()

    if user:
        user.role = UserRole.ADMIN.value
        user.is_blocked = False
    else:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.ADMIN.value,
        )
        db.add(user)

    db.commit()
    db.refresh(user)

    logger.bind(log_type="admin").info(f"Admin bootstrap | User={user.email}")
    return user


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("email")
    parser.add_argument("name")
    parser.add_argument("password")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        user = create_admin(db, args.email, args.name, args.password)
        print(f"Admin ready: {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
