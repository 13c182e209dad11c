import hashlib
import secrets
from datetime import timedelta
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from applyhub.config import get_settings
from applyhub.database import get_db
from applyhub.models.magic_link_token import MagicLinkToken
from applyhub.models.user import User
from applyhub.models.user_session import UserSession
from applyhub.utils.clock import utcnow

settings = get_settings()


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token() -> str:
    """64 lowercase hex chars."""
    return secrets.token_hex(32)


def create_magic_link_token(db: Session, email: str) -> str:
    """Store a one-time sign-in token for email. Returns the raw token (only its hash is stored)."""
    token = generate_token()
    db.add(MagicLinkToken(
        email=email.strip().lower(),
        token_hash=hash_token(token),
        expires_at=utcnow() + timedelta(minutes=settings.magic_link_expire_minutes),
    ))
    db.commit()
    return token


def verify_magic_link_token(db: Session, token: str) -> str | None:
    """Consume an unused, unexpired token. Returns its email, or None."""
    now = utcnow()
    row = db.query(MagicLinkToken).filter(
        MagicLinkToken.token_hash == hash_token(token),
        MagicLinkToken.used_at.is_(None),
        MagicLinkToken.expires_at > now,
    ).first()
    if not row:
        return None
    row.used_at = now
    db.commit()
    return row.email


def get_or_create_user(db: Session, email: str) -> User:
    email = email.strip().lower()
    user = db.query(User).filter(func.lower(User.email) == email).first()
    if user:
        return user
    user = User(email=email)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_session(
    db: Session,
    user_id: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> str:
    token = generate_token()
    db.add(UserSession(
        user_id=user_id,
        token_hash=hash_token(token),
        expires_at=utcnow() + timedelta(days=settings.session_expire_days),
        ip_address=ip_address[:64] if ip_address else None,
        user_agent=user_agent[:512] if user_agent else None,
    ))
    db.commit()
    return token


def validate_session(db: Session, token: str) -> User | None:
    """Return the session's user if the session exists and has not expired. Touches last_activity."""
    now = utcnow()
    session = db.query(UserSession).filter(
        UserSession.token_hash == hash_token(token),
        UserSession.expires_at > now,
    ).first()
    if not session:
        return None
    session.last_activity = now
    db.commit()
    return session.user


def delete_session(db: Session, token: str) -> None:
    db.query(UserSession).filter(UserSession.token_hash == hash_token(token)).delete(synchronize_session=False)
    db.commit()


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = request.cookies.get(settings.session_cookie_name)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    user = validate_session(db, token)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        )

    return user
