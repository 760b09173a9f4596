"""
SECURE USER AUTHENTICATION
==========================
Authenticate users using hashed credentials.

FLOW:
- Query user by email.
- Verify password hash and role/account state.
- Return user on success.

HOW:
- Argon2 hashes via passlib; legacy bcrypt hashes still verify.
"""

from passlib.context import CryptContext
from passlib.exc import UnknownHashError
from sqlalchemy.orm import Session

from .models import User

pwd_context = CryptContext(
    schemes=["argon2", "bcrypt"],
    deprecated="auto",
)


def hash_password(password: str) -> str:
    """
    Hash a plain text password using Argon2.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError):
        return False


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def authenticate_user(db: Session, email: str, password: str, role: str):
    """Return the user if the credentials match an active account of this role."""
    email = normalize_email(email)
    if not email or not password:
        return None
    user = db.query(User).filter(User.email == email, User.role == role).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    if not user.is_active:
        return None
    if user.role == "farmer" and user.status != "approved":
        return None
    return user


def create_user(db: Session, email: str, password: str, role: str, name: str, status: str | None = None) -> User:
    if role not in ("admin", "farmer", "buyer"):
        raise ValueError(f"Unknown role: {role}")
    if status is None:
        status = "pending" if role == "farmer" else "approved"
    user = User(
        email=normalize_email(email),
        name=name,
        role=role,
        password_hash=hash_password(password),
        status=status,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
