from fastapi import Depends
from sqlalchemy.orm import Session

from admin_listing import RegistrationListing
from config import Settings, get_settings
from database import get_db
from human_verification import HumanVerifier, build_human_verifier
from phone_verification import PhoneVerificationClient
from registration_store import RegistrationStore
from sms_gateway import SmsGateway, build_sms_gateway


def get_registration_store(db: Session = Depends(get_db)) -> RegistrationStore:
    return RegistrationStore(db)


def get_sms_gateway(settings: Settings = Depends(get_settings)) -> SmsGateway:
    return build_sms_gateway(settings)


def get_phone_verification_client(
    db: Session = Depends(get_db),
    gateway: SmsGateway = Depends(get_sms_gateway),
    settings: Settings = Depends(get_settings),
) -> PhoneVerificationClient:
    return PhoneVerificationClient(
        db,
        gateway,
        country_code=settings.phone_country_code,
        otp_length=settings.otp_length,
        ttl_seconds=settings.otp_ttl_seconds,
        max_attempts=settings.otp_max_attempts,
    )


def get_human_verifier(settings: Settings = Depends(get_settings)) -> HumanVerifier:
    return build_human_verifier(settings)


def get_registration_listing(
    store: RegistrationStore = Depends(get_registration_store),
    settings: Settings = Depends(get_settings),
) -> RegistrationListing:
    return RegistrationListing(store, gift_limit=settings.gift_eligible_limit)
