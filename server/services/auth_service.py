"""Authentication service: register, login, cookie session lookup."""

import hashlib
import secrets
from datetime import timedelta
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError
from sqlalchemy.orm import Session as DBSession

from server.db.models import Session, User
from study.models import utc_now

ph = PasswordHasher()


def normalize_email(email: str) -> str:
    return email.lower().strip()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def register_user(db: DBSession, email: str, password: str) -> User:
    """Create a new user. Raises ValueError if email exists."""
    email = normalize_email(email)
    if db.query(User).filter(User.email == email).first():
        raise ValueError("Email already registered")
    user = User(email=email, password_hash=ph.hash(password))
    db.add(user)
    db.flush()
    return user


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError):
        return False


def authenticate(db: DBSession, email: str, password: str) -> Optional[User]:
    """Return the user for valid credentials, else None."""
    user = db.query(User).filter(User.email == normalize_email(email)).first()
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_session(db: DBSession, user_id: str, ttl_hours: int = 24 * 7) -> str:
    """Create a login session and return the raw token for the cookie."""
    token = secrets.token_urlsafe(32)
    db.add(Session(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=utc_now() + timedelta(hours=ttl_hours),
    ))
    db.flush()
    return token


def get_user_by_session(db: DBSession, token: str) -> Optional[User]:
    """Return user if the token maps to an unexpired session, else None."""
    if not token:
        return None
    sess = db.query(Session).filter(
        Session.token_hash == hash_token(token),
        Session.expires_at > utc_now(),
    ).first()
    if not sess:
        return None
    return db.get(User, sess.user_id)


def logout_session(db: DBSession, token: str) -> bool:
    """Delete session by token. Returns True if found."""
    if not token:
        return False
    deleted = db.query(Session).filter(Session.token_hash == hash_token(token)).delete()
    return deleted > 0
