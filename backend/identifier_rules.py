import logging
import re
from typing import Optional

from sqlalchemy.orm import Session

from models import Registration
from time_utils import now_millis

logger = logging.getLogger(__name__)

REGISTRATION_PREFIX = "BKL"
REGISTRATION_NUMBER_RE = re.compile(r"^BKL\d{6}$")


def generate_registration_number(now_ms: Optional[int] = None) -> str:
    millis = now_millis() if now_ms is None else int(now_ms)
    return f"{REGISTRATION_PREFIX}{millis % 1_000_000:06d}"


def is_registration_number(value: Optional[str]) -> bool:
    return bool(REGISTRATION_NUMBER_RE.match(str(value or "")))


def normalize_identifier(value: Optional[str]) -> str:
    return str(value or "").strip().upper()


def find_registration_number_collision(db: Session, registration_number: str) -> Optional[Registration]:
    normalized = normalize_identifier(registration_number)
    if not is_registration_number(normalized):
        return None
    existing = (
        db.query(Registration)
        .filter(Registration.registration_number == normalized)
        .order_by(Registration.id.asc())
        .first()
    )
    if existing:
        logger.warning(
            "Registration number %s already assigned to record %s; keeping duplicate",
            normalized,
            existing.id,
        )
    return existing
