from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from database import get_db
from auth import decode_token
from config import Settings, get_settings
from admin_session import AdminSession, CredentialVerifier, SystemConfigStore, build_credential_verifier, session_marker_key

admin_bearer = HTTPBearer(auto_error=False)


def get_credential_verifier(settings: Settings = Depends(get_settings)) -> CredentialVerifier:
    try:
        return build_credential_verifier(settings)
    except RuntimeError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Admin login is not configured")


def _session_id_from_credentials(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[str]:
    if not credentials:
        return None
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access" or payload.get("user_type") != "admin":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    session_id = payload.get("sid")
    if not session_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return session_id


def get_admin_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(admin_bearer),
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    db: Session = Depends(get_db),
) -> Optional[AdminSession]:
    session_id = _session_id_from_credentials(credentials)
    if not session_id:
        return None
    return AdminSession(SystemConfigStore(db), verifier, marker_key=session_marker_key(session_id))


def require_admin(session: Optional[AdminSession] = Depends(get_admin_session)) -> AdminSession:
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Admin session has ended")
    return session
