from pathlib import Path
import os
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ["JWT_SECRET_KEY"] = "test-only-jwt-secret-9f8e7d6c5b4a3f2e1d0c"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["APP_TIMEZONE"] = "Asia/Kolkata"
os.environ["ADMIN_USERNAME"] = "adminkarate"
os.environ["ADMIN_PASSWORD"] = "helloworld131"
os.environ.pop("ADMIN_PASSWORD_HASH", None)
os.environ.pop("SMS_GATEWAY_URL", None)
os.environ.pop("RECAPTCHA_SECRET", None)

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
import models  # noqa: F401
from errors import StoreError
from registration_store import AppendResult
from schemas import RegistrationRecord
from sms_gateway import SmsGateway


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


class RecordingSmsGateway(SmsGateway):
    def __init__(self):
        self.messages = []

    def send(self, to_number: str, message: str) -> None:
        self.messages.append((to_number, message))

    @property
    def last_code(self) -> str:
        return self.messages[-1][1].split(" ", 1)[0]


@pytest.fixture
def sms_gateway():
    return RecordingSmsGateway()


class InMemoryRegistrationStore:
    """Store double with the same contract as RegistrationStore."""

    def __init__(self, records: Optional[List[RegistrationRecord]] = None):
        self.records = {record.id: record.model_copy() for record in (records or [])}
        self.fail_on = set()
        self.calls = []
        self._next_id = max(self.records, default=0) + 1

    def _check(self, operation: str):
        self.calls.append(operation)
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed", reason=f"{operation}-failed")

    def append(self, record):
        self._check("append")
        storage_key = self._next_id
        self._next_id += 1
        registration_number = f"BKL{storage_key:06d}"
        self.records[storage_key] = RegistrationRecord(
            id=storage_key,
            name=record.name,
            age=record.age,
            gender=record.gender,
            address=record.address,
            mobile=record.mobile,
            phone_verified=record.phone_verified,
            registration_number=registration_number,
            created_at=datetime.now(timezone.utc),
        )
        return AppendResult(registration_number=registration_number, storage_key=storage_key)

    def list_all(self):
        self._check("list")
        ordered = sorted(self.records.values(), key=lambda r: (r.created_at, r.id), reverse=True)
        return [record.model_copy() for record in ordered]

    def update(self, storage_key, fields):
        self._check("update")
        record = self.records[storage_key]
        for key, value in fields.items():
            setattr(record, key, value)

    def remove(self, storage_key):
        self._check("remove")
        del self.records[storage_key]


def make_record(index: int, base: Optional[datetime] = None, **overrides) -> RegistrationRecord:
    created = (base or datetime(2026, 1, 1, tzinfo=timezone.utc)) + timedelta(minutes=index)
    values = dict(
        id=index + 1,
        name=f"Participant {index}",
        age="21",
        gender="male" if index % 2 == 0 else "female",
        address=f"{index} Main Road, Guwahati",
        mobile=f"98765{index:05d}",
        phone_verified=True,
        registration_number=f"BKL{100000 + index:06d}",
        status="registered",
        created_at=created,
    )
    values.update(overrides)
    return RegistrationRecord(**values)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def memory_store_factory():
    return InMemoryRegistrationStore
