from __future__ import annotations

from passlib.context import CryptContext
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

from civicfix.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Signed cookie for session (stateless); the payload only carries the user id.
serializer = URLSafeTimedSerializer(settings.SECRET_KEY, salt="civicfix_sid")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # unknown or malformed hash format
        return False


def password_needs_rehash(password_hash: str) -> bool:
    return pwd_context.needs_update(password_hash)


def issue_session(user_id: int) -> str:
    return serializer.dumps({"user_id": int(user_id)})


def read_session(token: str | None, max_age_seconds: int | None = None) -> int | None:
    """User id carried by a valid, unexpired session token."""
    if not token:
        return None
    try:
        payload = serializer.loads(token, max_age=max_age_seconds or settings.SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return None
    if not isinstance(payload, dict):
        return None
    user_id = payload.get("user_id")
    return user_id if isinstance(user_id, int) else None
