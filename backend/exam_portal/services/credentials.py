import logging

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from exam_portal.core.errors import AuthError, Conflict, InvalidPayload
from exam_portal.models import User

logger = logging.getLogger(__name__)

ROLES = ("student", "admin")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


class CredentialStore:
    def __init__(self, db: Session):
        self.db = db

    def get_user_by_email(self, email: str) -> User | None:
        return self.db.scalars(select(User).where(User.email == email)).first()

    def create_user(self, name: str, email: str, password: str, role: str = "student") -> User:
        if role not in ROLES:
            raise InvalidPayload(f"role must be one of {', '.join(ROLES)}")
        # bcrypt only looks at the first 72 bytes
        if len(password.encode("utf-8")) > 72:
            raise InvalidPayload("Password is too long")
        if self.get_user_by_email(email) is not None:
            raise Conflict("User already exists")

        user = User(name=name, email=email, password_hash=hash_password(password), role=role)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("User already exists")
        self.db.refresh(user)
        logger.info("Registered %s user %s", role, email)
        return user

    def verify_credentials(self, email: str, password: str) -> User:
        user = self.get_user_by_email(email)
        if user is None:
            raise AuthError("User not found")
        if not verify_password(password, user.password_hash):
            raise AuthError("Invalid password")
        return user

    def list_users(self) -> list[User]:
        return list(self.db.scalars(select(User).order_by(User.name)).all())
