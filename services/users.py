import logging
from typing import Optional

from passlib.context import CryptContext
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from db.models import PublicUser, User
from services.errors import PersistenceError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

DUPLICATE_EMAIL_MESSAGE = "An account with this email already exists."


class SignupResult(BaseModel):
    success: bool
    message: str
    user: Optional[PublicUser] = None


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def find_user_by_email(session: Session, email: str) -> Optional[User]:
    try:
        return session.exec(select(User).where(User.email == normalize_email(email))).first()
    except SQLAlchemyError as e:
        logger.exception("Failed to read user data")
        raise PersistenceError("Could not retrieve user data.") from e


def add_user(session: Session, fullname: str, email: str, password: str) -> SignupResult:
    if find_user_by_email(session, email):
        return SignupResult(success=False, message=DUPLICATE_EMAIL_MESSAGE)

    user = User(fullname=fullname.strip(), email=normalize_email(email), password_hash=hash_password(password))
    try:
        session.add(user)
        session.commit()
        session.refresh(user)
    except IntegrityError:
        # Another signup with the same email committed first
        session.rollback()
        return SignupResult(success=False, message=DUPLICATE_EMAIL_MESSAGE)
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Failed to create user")
        raise PersistenceError("Could not save user.") from e

    logger.info("Created user %s", user.id)
    return SignupResult(success=True, message="User created successfully.", user=PublicUser.model_validate(user))


def authenticate(session: Session, email: str, password: str) -> Optional[PublicUser]:
    """The user without credentials on an exact match, otherwise None."""
    user = find_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return PublicUser.model_validate(user)
