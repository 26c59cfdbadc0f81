import hmac
import logging
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from auth import verify_password
from config import Settings
from errors import StoreError
from models import SystemConfig

logger = logging.getLogger(__name__)

ADMIN_MARKER_KEY = "admin_token"
ADMIN_MARKER_VALUE = "authenticated"


class KeyValueStore:
    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)


class SystemConfigStore(KeyValueStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        row = self.db.query(SystemConfig).filter(SystemConfig.key == key).first()
        return row.value if row else None

    def set(self, key: str, value: str) -> None:
        try:
            row = self.db.query(SystemConfig).filter(SystemConfig.key == key).first()
            if row:
                row.value = value
            else:
                self.db.add(SystemConfig(key=key, value=value))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError("Failed to persist session marker", reason="session-store-failed") from exc

    def delete(self, key: str) -> None:
        try:
            row = self.db.query(SystemConfig).filter(SystemConfig.key == key).first()
            if row:
                self.db.delete(row)
                self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError("Failed to clear session marker", reason="session-store-failed") from exc


class CredentialVerifier:
    def verify(self, username: str, password: str) -> bool:
        raise NotImplementedError


class StaticCredentialVerifier(CredentialVerifier):
    def __init__(self, username: str, password_hash: Optional[str] = None, password: Optional[str] = None):
        if not username or not (password_hash or password):
            raise RuntimeError("Admin credentials are not configured")
        self.username = username
        self.password_hash = password_hash
        self.password = password

    def verify(self, username: str, password: str) -> bool:
        # Both checks always run so a failure does not reveal which field was wrong.
        username_ok = hmac.compare_digest(str(username or "").encode("utf-8"), self.username.encode("utf-8"))
        if self.password_hash:
            password_ok = verify_password(str(password or ""), self.password_hash)
        else:
            password_ok = hmac.compare_digest(str(password or "").encode("utf-8"), self.password.encode("utf-8"))
        return username_ok and password_ok


def build_credential_verifier(settings: Settings) -> StaticCredentialVerifier:
    if settings.admin_password and not settings.admin_password_hash:
        logger.warning("ADMIN_PASSWORD is set in plain text; prefer ADMIN_PASSWORD_HASH")
    return StaticCredentialVerifier(
        settings.admin_username or "",
        password_hash=settings.admin_password_hash,
        password=settings.admin_password,
    )


def session_marker_key(session_id: Optional[str] = None) -> str:
    if not session_id:
        return ADMIN_MARKER_KEY
    return f"{ADMIN_MARKER_KEY}:{session_id}"


class AdminSession:
    def __init__(self, store: KeyValueStore, verifier: CredentialVerifier, marker_key: str = ADMIN_MARKER_KEY):
        self.store = store
        self.verifier = verifier
        self.marker_key = marker_key
        self.is_authenticated = store.get(marker_key) == ADMIN_MARKER_VALUE

    def login(self, username: str, password: str) -> bool:
        if not self.verifier.verify(username, password):
            logger.info("Rejected admin login attempt")
            return False
        self.store.set(self.marker_key, ADMIN_MARKER_VALUE)
        self.is_authenticated = True
        return True

    def logout(self) -> None:
        self.store.delete(self.marker_key)
        self.is_authenticated = False


def clear_session_markers(db: Session) -> int:
    """Delete every per-session admin marker; the caller commits."""
    return (
        db.query(SystemConfig)
        .filter(SystemConfig.key.like(f"{ADMIN_MARKER_KEY}:%"))
        .delete(synchronize_session=False)
        or 0
    )
