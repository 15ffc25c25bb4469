import logging

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.user import User
from ..utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class UserExistsError(Exception):
    pass


def user_exists(db: Session, *, username: str, email: str) -> bool:
    return (
        db.query(User.id)
        .filter(or_(User.username == username, User.email == email))
        .first()
        is not None
    )


def create_user(db: Session, *, username: str, email: str, password: str, role: str = "user") -> User:
    """
    Insert a new user with a bcrypt hash of `password`.

    Raises UserExistsError when the username or email is taken (including a
    concurrent signup that wins the race), ValueError for unusable passwords.
    """
    if user_exists(db, username=username, email=email):
        raise UserExistsError(username)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise UserExistsError(username) from e
    db.refresh(user)
    logger.info("Created %s account %r (id=%s)", role, username, user.id)
    return user


def authenticate(db: Session, *, username: str, password: str) -> User | None:
    user = db.query(User).filter(User.username == username).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def public_user(user: User) -> dict:
    return {"id": user.id, "username": user.username, "email": user.email, "role": user.role}
