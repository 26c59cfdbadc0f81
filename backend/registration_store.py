import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import RecordNotFound, StoreError, ValidationError
from identifier_rules import find_registration_number_collision, generate_registration_number
from models import Gender, Registration, RegistrationStatus
from schemas import RegistrationRecord
from time_utils import from_millis, now_millis

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {"status"}


@dataclass
class NewRegistration:
    name: str
    age: str
    gender: str
    address: str
    mobile: str
    phone_verified: bool = False


@dataclass
class AppendResult:
    registration_number: str
    storage_key: int


def to_record(row: Registration) -> RegistrationRecord:
    return RegistrationRecord(
        id=row.id,
        name=row.name,
        age=row.age,
        gender=row.gender.value if hasattr(row.gender, "value") else str(row.gender),
        address=row.address,
        mobile=row.mobile,
        phone_verified=bool(row.phone_verified),
        registration_number=row.registration_number,
        status=row.status.value if hasattr(row.status, "value") else str(row.status),
        created_at=row.created_at,
    )


class RegistrationStore:
    def __init__(self, db: Session, clock: Optional[Callable[[], int]] = None):
        self.db = db
        self._clock = clock or now_millis

    def append(self, record: NewRegistration) -> AppendResult:
        try:
            gender = Gender(record.gender)
        except ValueError:
            raise ValidationError(f"Invalid gender: {record.gender}", reason="invalid-gender")

        created_ms = self._clock()
        registration_number = generate_registration_number(created_ms)
        try:
            find_registration_number_collision(self.db, registration_number)
            row = Registration(
                name=record.name,
                age=record.age,
                gender=gender,
                address=record.address,
                mobile=record.mobile,
                phone_verified=bool(record.phone_verified),
                registration_number=registration_number,
                status=RegistrationStatus.REGISTERED,
                created_at=from_millis(created_ms),
            )
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error saving registration: %s", exc)
            raise StoreError("Failed to save registration data", reason="persist-failed") from exc

        logger.info("Saved registration %s (id=%s)", registration_number, row.id)
        return AppendResult(registration_number=registration_number, storage_key=row.id)

    def list_all(self) -> List[RegistrationRecord]:
        try:
            rows = (
                self.db.query(Registration)
                .order_by(Registration.created_at.desc(), Registration.id.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error fetching registrations: %s", exc)
            raise StoreError("Failed to fetch registrations", reason="list-failed") from exc
        return [to_record(row) for row in rows]

    def _get_row(self, storage_key: int) -> Registration:
        try:
            row = self.db.query(Registration).filter(Registration.id == storage_key).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error loading registration %s: %s", storage_key, exc)
            raise StoreError("Failed to load registration", reason="read-failed") from exc
        if not row:
            raise RecordNotFound(f"Registration {storage_key} not found")
        return row

    def get(self, storage_key: int) -> RegistrationRecord:
        return to_record(self._get_row(storage_key))

    def update(self, storage_key: int, fields: Dict[str, object]) -> None:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        changes = {}
        if "status" in fields:
            raw_status = fields["status"]
            raw_status = raw_status.value if hasattr(raw_status, "value") else raw_status
            try:
                changes["status"] = RegistrationStatus(raw_status)
            except ValueError:
                raise ValidationError(f"Invalid status: {raw_status}", reason="invalid-status")

        row = self._get_row(storage_key)
        try:
            for key, value in changes.items():
                setattr(row, key, value)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error updating registration %s: %s", storage_key, exc)
            raise StoreError("Failed to update status", reason="update-failed") from exc

    def remove(self, storage_key: int) -> None:
        row = self._get_row(storage_key)
        try:
            self.db.delete(row)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error deleting registration %s: %s", storage_key, exc)
            raise StoreError("Failed to delete registration", reason="delete-failed") from exc
        logger.info("Deleted registration id=%s", storage_key)
