import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')


def _bool_env(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name}: {raw}")


def _optional_env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    database_url: str
    admin_username: Optional[str]
    admin_password_hash: Optional[str]
    admin_password: Optional[str]
    phone_country_code: str
    otp_length: int
    otp_ttl_seconds: int
    otp_max_attempts: int
    sms_gateway_url: Optional[str]
    sms_gateway_api_key: Optional[str]
    sms_sender_id: str
    sms_timeout_seconds: int
    recaptcha_secret: Optional[str]
    recaptcha_verify_url: str
    gift_eligible_limit: int
    cors_origins: List[str]
    sql_echo: bool


def load_settings() -> Settings:
    otp_length = _int_env("OTP_LENGTH", 6)
    if otp_length < 4 or otp_length > 10:
        raise RuntimeError("OTP_LENGTH must be between 4 and 10")
    otp_max_attempts = _int_env("OTP_MAX_ATTEMPTS", 5)
    if otp_max_attempts < 1:
        raise RuntimeError("OTP_MAX_ATTEMPTS must be at least 1")

    return Settings(
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./registrations.db"),
        admin_username=_optional_env("ADMIN_USERNAME"),
        admin_password_hash=_optional_env("ADMIN_PASSWORD_HASH"),
        admin_password=_optional_env("ADMIN_PASSWORD"),
        phone_country_code=os.environ.get("PHONE_COUNTRY_CODE", "+91"),
        otp_length=otp_length,
        otp_ttl_seconds=_int_env("OTP_TTL_SECONDS", 300),
        otp_max_attempts=otp_max_attempts,
        sms_gateway_url=_optional_env("SMS_GATEWAY_URL"),
        sms_gateway_api_key=_optional_env("SMS_GATEWAY_API_KEY"),
        sms_sender_id=os.environ.get("SMS_SENDER_ID", "BKLREG"),
        sms_timeout_seconds=_int_env("SMS_TIMEOUT_SECONDS", 10),
        recaptcha_secret=_optional_env("RECAPTCHA_SECRET"),
        recaptcha_verify_url=os.environ.get(
            "RECAPTCHA_VERIFY_URL", "https://www.google.com/recaptcha/api/siteverify"
        ),
        gift_eligible_limit=_int_env("GIFT_ELIGIBLE_LIMIT", 100),
        cors_origins=[origin.strip() for origin in os.environ.get("CORS_ORIGINS", "*").split(",") if origin.strip()],
        sql_echo=_bool_env(os.environ.get("SQL_ECHO"), default=False),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
