import io
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from admin_listing import RegistrationListing
from admin_session import AdminSession, CredentialVerifier, SystemConfigStore, session_marker_key
from auth import create_admin_token, generate_session_id
from database import get_db
from dependencies import get_registration_listing
from errors import RegistrationError
from exports import CSV_MEDIA_TYPE, XLSX_MEDIA_TYPE, export_filename
from schemas import (
    AdminLogin,
    AdminRegistrationResponse,
    AdminSessionResponse,
    AdminTokenResponse,
    RegistrationStats,
    RegistrationStatusUpdate,
)
from security import get_admin_session, get_credential_verifier, require_admin
from utils import to_http_exception

router = APIRouter()
logger = logging.getLogger(__name__)


def _load_listing(listing: RegistrationListing, search: Optional[str] = None) -> RegistrationListing:
    try:
        listing.load()
    except RegistrationError as exc:
        raise to_http_exception(exc)
    listing.filter(search)
    return listing


@router.post("/admin/login", response_model=AdminTokenResponse)
def admin_login(
    login_data: AdminLogin,
    verifier: CredentialVerifier = Depends(get_credential_verifier),
    db: Session = Depends(get_db),
):
    session_id = generate_session_id()
    session = AdminSession(SystemConfigStore(db), verifier, marker_key=session_marker_key(session_id))
    try:
        accepted = session.login(login_data.username, login_data.password)
    except RegistrationError as exc:
        raise to_http_exception(exc)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return AdminTokenResponse(access_token=create_admin_token(session_id))


@router.post("/admin/logout")
def admin_logout(session: Optional[AdminSession] = Depends(get_admin_session)):
    if session is not None:
        try:
            session.logout()
        except RegistrationError as exc:
            raise to_http_exception(exc)
    return {"message": "You have been successfully logged out"}


@router.get("/admin/session", response_model=AdminSessionResponse)
def admin_session_status(session: Optional[AdminSession] = Depends(get_admin_session)):
    return AdminSessionResponse(is_authenticated=bool(session and session.is_authenticated))


@router.get("/admin/registrations", response_model=List[AdminRegistrationResponse])
def list_registrations(
    search: Optional[str] = None,
    _: AdminSession = Depends(require_admin),
    listing: RegistrationListing = Depends(get_registration_listing),
):
    _load_listing(listing, search)
    return listing.ranked()


@router.get("/admin/registrations/stats", response_model=RegistrationStats)
def registration_stats(
    _: AdminSession = Depends(require_admin),
    listing: RegistrationListing = Depends(get_registration_listing),
):
    _load_listing(listing)
    return listing.stats()


@router.get("/admin/registrations/export")
def export_registrations(
    export_format: str = Query("csv", alias="format", enum=["csv", "xlsx"]),
    search: Optional[str] = None,
    _: AdminSession = Depends(require_admin),
    listing: RegistrationListing = Depends(get_registration_listing),
):
    _load_listing(listing, search)
    if export_format == "xlsx":
        content = listing.export_xlsx()
        media_type = XLSX_MEDIA_TYPE
    else:
        content = listing.export_csv()
        media_type = CSV_MEDIA_TYPE
    filename = export_filename(export_format)
    logger.info("Exported %s registrations as %s", len(listing.visible), export_format)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=media_type,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.put("/admin/registrations/{registration_id}/status", response_model=AdminRegistrationResponse)
def update_registration_status(
    registration_id: int,
    payload: RegistrationStatusUpdate,
    _: AdminSession = Depends(require_admin),
    listing: RegistrationListing = Depends(get_registration_listing),
):
    _load_listing(listing)
    try:
        record = listing.set_status(listing.find(registration_id), payload.status)
    except RegistrationError as exc:
        raise to_http_exception(exc)
    return listing.ranked([record])[0]


@router.delete("/admin/registrations/{registration_id}")
def delete_registration(
    registration_id: int,
    confirm: bool = False,
    _: AdminSession = Depends(require_admin),
    listing: RegistrationListing = Depends(get_registration_listing),
):
    _load_listing(listing)
    try:
        record = listing.find(registration_id)
        listing.delete_record(record, confirmed=confirm)
    except RegistrationError as exc:
        raise to_http_exception(exc)
    return {"message": f"Registration for {record.name} has been deleted"}
