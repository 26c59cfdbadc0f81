from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from enum import Enum
from datetime import datetime


class GenderEnum(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class RegistrationStatusEnum(str, Enum):
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Public registration schemas
class RegistrationFields(CamelModel):
    # Plain strings; RegistrationWorkflow validates them.
    name: str = ""
    age: str = ""
    gender: str = ""
    address: str = ""
    mobile: str = ""

    @field_validator("age", mode="before")
    @classmethod
    def coerce_age(cls, v):
        if v is None:
            return ""
        return str(v)


class OtpRequest(RegistrationFields):
    captcha_token: Optional[str] = None


class OtpResponse(CamelModel):
    challenge_id: str
    expires_at: datetime


class RegistrationSubmit(RegistrationFields):
    challenge_id: str = Field(..., min_length=1)
    otp: str = ""


class RegistrationCreatedResponse(CamelModel):
    id: int
    registration_number: str


class RegistrationRecord(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    age: str
    gender: GenderEnum
    address: str
    mobile: str
    phone_verified: bool
    registration_number: str
    status: RegistrationStatusEnum = RegistrationStatusEnum.REGISTERED
    created_at: Optional[datetime] = None


class AdminRegistrationResponse(RegistrationRecord):
    gift_rank: Optional[int] = None
    gift_eligible: bool = False


class RegistrationStats(CamelModel):
    total: int
    gift_eligible: int
    male: int
    female: int


class RegistrationStatusUpdate(CamelModel):
    status: RegistrationStatusEnum


# Admin auth schemas
class AdminLogin(BaseModel):
    username: str
    password: str


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class AdminSessionResponse(CamelModel):
    is_authenticated: bool
