from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import HTTPException, status
import bcrypt
import hashlib
import os
import secrets
from dotenv import load_dotenv
from pathlib import Path

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


def _load_jwt_secret() -> str:
    secret = os.environ.get('JWT_SECRET_KEY')
    if not secret:
        raise RuntimeError('JWT_SECRET_KEY is required and must be set in environment')
    weak_values = {
        'default_secret_key',
        'changeme',
        'change_me',
        'secret',
        'jwt_secret',
        'password',
        'admin123',
    }
    if len(secret) < 32 or secret.strip().lower() in weak_values:
        raise RuntimeError('JWT_SECRET_KEY is too weak; use a random secret with at least 32 characters')
    return secret


SECRET_KEY = _load_jwt_secret()
ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
ADMIN_TOKEN_EXPIRE_DAYS = int(os.environ.get('ADMIN_TOKEN_EXPIRE_DAYS', 0))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        pw_bytes = plain_password.encode('utf-8')
    except Exception:
        pw_bytes = str(plain_password).encode('utf-8')
    digest = hashlib.sha256(pw_bytes).digest()
    try:
        return bcrypt.checkpw(digest, hashed_password.encode('utf-8'))
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    # Always pre-hash password with SHA-256, then bcrypt the digest
    try:
        pw_bytes = password.encode('utf-8')
    except Exception:
        pw_bytes = str(password).encode('utf-8')
    digest = hashlib.sha256(pw_bytes).digest()
    hashed = bcrypt.hashpw(digest, bcrypt.gensalt())
    return hashed.decode('utf-8')


def generate_session_id() -> str:
    return secrets.token_urlsafe(24)


def create_admin_token(session_id: str, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = {"sub": "admin", "sid": session_id, "type": "access", "user_type": "admin"}
    if expires_delta is None and ADMIN_TOKEN_EXPIRE_DAYS > 0:
        expires_delta = timedelta(days=ADMIN_TOKEN_EXPIRE_DAYS)
    # Admin sessions have no expiry unless one is configured; logout revokes the marker.
    if expires_delta is not None:
        to_encode["exp"] = datetime.now(timezone.utc) + expires_delta
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return payload
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
