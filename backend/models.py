from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum as SQLEnum, Text, Index
from sqlalchemy.sql import func
from database import Base
import enum


class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class RegistrationStatus(str, enum.Enum):
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Registration(Base):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    age = Column(String(10), nullable=False)
    gender = Column(SQLEnum(Gender, native_enum=False, values_callable=_enum_values, length=10), nullable=False)
    address = Column(Text, nullable=False)
    mobile = Column(String(10), nullable=False, index=True)
    phone_verified = Column(Boolean, nullable=False, default=False)
    # Not unique: two writes in the same millisecond-mod-10^6 window share a number.
    registration_number = Column(String(9), nullable=False, index=True)
    status = Column(
        SQLEnum(RegistrationStatus, native_enum=False, values_callable=_enum_values, length=20),
        nullable=False,
        default=RegistrationStatus.REGISTERED,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_registrations_created_at_id", "created_at", "id"),
    )


class PhoneChallenge(Base):
    __tablename__ = "phone_challenges"

    id = Column(String(64), primary_key=True)
    mobile = Column(String(10), nullable=False, index=True)
    code_hash = Column(String(64), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class SystemConfig(Base):
    __tablename__ = "system_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(500), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
