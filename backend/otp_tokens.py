import hashlib
import secrets

OTP_TTL_SECONDS = 5 * 60
OTP_MAX_ATTEMPTS = 5


def generate_token() -> str:
    return secrets.token_urlsafe(32)


def generate_otp_code(length: int = 6) -> str:
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
