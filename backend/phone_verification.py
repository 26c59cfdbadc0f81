import hmac
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import ChallengeError, ConfirmError
from models import PhoneChallenge
from otp_tokens import OTP_MAX_ATTEMPTS, OTP_TTL_SECONDS, generate_otp_code, generate_token, hash_token
from sms_gateway import SmsDeliveryError, SmsGateway

logger = logging.getLogger(__name__)

MOBILE_LENGTH = 10
NON_DIGIT_RE = re.compile(r"\D")
OTP_MESSAGE = "{code} is your Brahmaputra Karate League verification code. It expires in {minutes} minutes."


def normalize_mobile(raw: Optional[str]) -> str:
    return NON_DIGIT_RE.sub("", str(raw or ""))[:MOBILE_LENGTH]


def is_valid_mobile(mobile: Optional[str]) -> bool:
    value = str(mobile or "")
    return len(value) == MOBILE_LENGTH and value.isdigit()


def to_international(mobile: str, country_code: str = "+91") -> str:
    return f"{country_code}{mobile}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class PendingChallenge:
    challenge_id: str
    mobile: str
    expires_at: datetime


@dataclass
class VerifiedPhone:
    mobile: str
    challenge_id: str
    verified_at: datetime


class PhoneVerificationClient:
    def __init__(
        self,
        db: Session,
        gateway: SmsGateway,
        *,
        country_code: str = "+91",
        otp_length: int = 6,
        ttl_seconds: int = OTP_TTL_SECONDS,
        max_attempts: int = OTP_MAX_ATTEMPTS,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.gateway = gateway
        self.country_code = country_code
        self.otp_length = otp_length
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._now = now or _utc_now

    def request_challenge(self, mobile: str) -> PendingChallenge:
        if not is_valid_mobile(mobile):
            raise ChallengeError("Please enter a valid 10-digit mobile number", reason="invalid-number")

        now = self._now()
        code = generate_otp_code(self.otp_length)
        expires_at = now + timedelta(seconds=self.ttl_seconds)
        challenge = PhoneChallenge(
            id=generate_token(),
            mobile=mobile,
            code_hash=hash_token(code),
            attempts=0,
            expires_at=expires_at,
        )
        try:
            purge_stale_challenges(self.db, now, self.max_attempts, mobile=mobile)
            self.db.add(challenge)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error storing OTP challenge: %s", exc)
            raise ChallengeError("Failed to send OTP") from exc

        message = OTP_MESSAGE.format(code=code, minutes=max(1, self.ttl_seconds // 60))
        try:
            self.gateway.send(to_international(mobile, self.country_code), message)
        except SmsDeliveryError as exc:
            logger.error("Error sending OTP to %s: %s", mobile[-4:].rjust(MOBILE_LENGTH, "*"), exc)
            self._discard(challenge)
            raise ChallengeError("Failed to send OTP. Please check your mobile number and try again.") from exc

        return PendingChallenge(challenge_id=challenge.id, mobile=mobile, expires_at=expires_at)

    def _discard(self, challenge: PhoneChallenge) -> None:
        try:
            self.db.delete(challenge)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.warning("Could not discard undelivered OTP challenge %s: %s", challenge.id, exc)

    def load_challenge(self, challenge_id: str) -> PendingChallenge:
        row = self._get_challenge(challenge_id)
        return PendingChallenge(challenge_id=row.id, mobile=row.mobile, expires_at=_as_utc(row.expires_at))

    def _get_challenge(self, challenge_id: str) -> PhoneChallenge:
        try:
            row = self.db.query(PhoneChallenge).filter(PhoneChallenge.id == challenge_id).first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error loading OTP challenge: %s", exc)
            raise ConfirmError("Could not verify OTP. Please try again.", reason="confirm-failed") from exc
        if not row:
            raise ConfirmError("Verification session not found. Please request a new OTP.", reason="unknown-challenge")
        return row

    def confirm_challenge(self, pending: PendingChallenge, code: str) -> VerifiedPhone:
        row = self._get_challenge(pending.challenge_id)
        if row.mobile != pending.mobile:
            raise ConfirmError("Verification session not found. Please request a new OTP.", reason="unknown-challenge")
        if row.consumed_at is not None:
            raise ConfirmError("This OTP has already been used. Please request a new one.", reason="already-used")
        if (row.attempts or 0) >= self.max_attempts:
            raise _too_many_attempts()

        now = self._now()
        if _as_utc(row.expires_at) <= now:
            raise ConfirmError("OTP has expired. Please request a new one.", reason="expired")
        if not hmac.compare_digest(hash_token(str(code or "").strip()), row.code_hash):
            if self._record_failed_attempt(row.id) >= self.max_attempts:
                logger.warning("OTP challenge %s locked after %s failed attempts", row.id, self.max_attempts)
                raise _too_many_attempts()
            raise ConfirmError("Invalid OTP", reason="bad-code")

        # Conditional update so only one caller can consume the challenge.
        live = (
            PhoneChallenge.id == row.id,
            PhoneChallenge.consumed_at.is_(None),
            PhoneChallenge.attempts < self.max_attempts,
        )
        try:
            consumed = (
                self.db.query(PhoneChallenge)
                .filter(*live)
                .update({PhoneChallenge.consumed_at: now}, synchronize_session=False)
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error consuming OTP challenge: %s", exc)
            raise ConfirmError("Could not verify OTP. Please try again.", reason="confirm-failed") from exc
        if consumed != 1:
            raise ConfirmError("This OTP has already been used. Please request a new one.", reason="already-used")

        return VerifiedPhone(mobile=row.mobile, challenge_id=row.id, verified_at=now)

    def _record_failed_attempt(self, challenge_id: str) -> int:
        try:
            self.db.query(PhoneChallenge).filter(PhoneChallenge.id == challenge_id).update(
                {PhoneChallenge.attempts: PhoneChallenge.attempts + 1}, synchronize_session=False
            )
            self.db.commit()
            attempts = (
                self.db.query(PhoneChallenge.attempts).filter(PhoneChallenge.id == challenge_id).scalar()
            )
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Error recording failed OTP attempt: %s", exc)
            raise ConfirmError("Could not verify OTP. Please try again.", reason="confirm-failed") from exc
        return attempts or 0


def _too_many_attempts() -> ConfirmError:
    return ConfirmError("Too many incorrect attempts. Please request a new OTP.", reason="too-many-attempts")


def purge_stale_challenges(
    db: Session,
    now: datetime,
    max_attempts: int = OTP_MAX_ATTEMPTS,
    mobile: Optional[str] = None,
) -> int:
    """Delete challenges that can no longer be confirmed; the caller commits."""
    query = db.query(PhoneChallenge).filter(
        or_(
            PhoneChallenge.expires_at <= now,
            PhoneChallenge.consumed_at.isnot(None),
            PhoneChallenge.attempts >= max_attempts,
        )
    )
    if mobile is not None:
        query = query.filter(PhoneChallenge.mobile == mobile)
    return query.delete(synchronize_session=False)
