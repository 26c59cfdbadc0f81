import logging
from dataclasses import dataclass, fields as dataclass_fields
from enum import Enum
from typing import List, Optional, Tuple

from errors import ChallengeError, ConfirmError, StoreError, ValidationError, WorkflowStateError
from human_verification import HumanVerifier
from phone_verification import PendingChallenge, is_valid_mobile, normalize_mobile
from registration_store import NewRegistration

logger = logging.getLogger(__name__)

GENDER_CHOICES = {"male", "female", "other"}
REQUIRED_FIELDS = ("name", "age", "gender", "address")


class WorkflowState(str, Enum):
    EDITING = "editing"
    OTP_PENDING = "otp_pending"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RegistrationForm:
    name: str = ""
    age: str = ""
    gender: str = ""
    address: str = ""
    mobile: str = ""


FORM_FIELDS = tuple(field.name for field in dataclass_fields(RegistrationForm))


@dataclass
class SubmissionResult:
    registration_number: str
    storage_key: int


def validate_fields(form: RegistrationForm) -> None:
    if not is_valid_mobile(form.mobile):
        raise ValidationError("Please enter a valid 10-digit mobile number", reason="invalid-mobile")
    missing = [name for name in REQUIRED_FIELDS if not str(getattr(form, name) or "").strip()]
    if missing:
        raise ValidationError("Please fill in all required fields", reason="missing-fields")
    age = form.age.strip()
    if not age.isdigit():
        raise ValidationError("Age must be a non-negative whole number", reason="invalid-age")
    if form.gender.strip().lower() not in GENDER_CHOICES:
        raise ValidationError("Gender must be male, female or other", reason="invalid-gender")


class RegistrationWorkflow:
    """One participant's pass through the registration form.

    States run EDITING -> OTP_PENDING -> VERIFYING -> COMPLETED, with FAILED
    reachable from the first three. A completed submission resets the
    workflow to a fresh EDITING state with cleared fields; the assigned
    registration number is kept on ``last_result``.

    ``verifier`` needs ``request_challenge(mobile)`` and
    ``confirm_challenge(pending, code)``; ``store`` needs ``append(record)``.
    Every validation runs before the corresponding backend call, so a
    rejected action never reaches either collaborator.
    """

    def __init__(self, verifier, store, human_verifier: Optional[HumanVerifier] = None):
        self.verifier = verifier
        self.store = store
        self.human_verifier = human_verifier
        self.form = RegistrationForm()
        self.state = WorkflowState.EDITING
        self.failure_reason: Optional[str] = None
        self.pending: Optional[PendingChallenge] = None
        self.last_result: Optional[SubmissionResult] = None
        self.history: List[Tuple[WorkflowState, WorkflowState]] = []
        self._human_verified = False

    def _transition(self, new_state: WorkflowState, reason: Optional[str] = None) -> None:
        previous = self.state
        self.state = new_state
        self.failure_reason = reason if new_state == WorkflowState.FAILED else None
        self.history.append((previous, new_state))
        logger.debug("Registration workflow %s -> %s%s", previous.value, new_state.value, f" ({reason})" if reason else "")

    def _require_state(self, action: str, *allowed: WorkflowState) -> None:
        if self.state not in allowed:
            raise WorkflowStateError(f"Cannot {action} while {self.state.value}")

    def update_fields(self, **changes) -> RegistrationForm:
        self._require_state("edit fields", WorkflowState.EDITING, WorkflowState.OTP_PENDING, WorkflowState.FAILED)
        unknown = set(changes) - set(FORM_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}", reason="unknown-field")
        for name, value in changes.items():
            value = "" if value is None else str(value)
            if name == "mobile":
                value = normalize_mobile(value)
            elif name == "gender":
                value = value.strip().lower()
            setattr(self.form, name, value)
        return self.form

    def send_code(self, human_token: Optional[str] = None) -> PendingChallenge:
        self._require_state("send OTP", WorkflowState.EDITING, WorkflowState.OTP_PENDING)
        validate_fields(self.form)

        if not self._human_verified and self.human_verifier is not None:
            if not self.human_verifier.verify(human_token):
                self._transition(WorkflowState.FAILED, "challenge-request-failed")
                raise ChallengeError("Human verification failed. Please try again.", reason="human-verification-failed")
        self._human_verified = True

        try:
            pending = self.verifier.request_challenge(self.form.mobile)
        except ChallengeError:
            self.pending = None
            self._transition(WorkflowState.FAILED, "challenge-request-failed")
            raise

        self.pending = pending
        if self.state != WorkflowState.OTP_PENDING:
            self._transition(WorkflowState.OTP_PENDING)
        return pending

    def resume(self, pending: PendingChallenge) -> None:
        self._require_state("resume verification", WorkflowState.EDITING)
        if pending.mobile != self.form.mobile:
            raise ValidationError("Mobile number does not match the number the OTP was sent to", reason="mobile-mismatch")
        self.pending = pending
        self._transition(WorkflowState.OTP_PENDING)

    def validate_submission(self, code: Optional[str]) -> None:
        if not str(code or "").strip():
            raise ValidationError("Please enter the OTP", reason="missing-code")
        validate_fields(self.form)

    def submit_code(self, code: Optional[str]) -> SubmissionResult:
        self._require_state("submit OTP", WorkflowState.OTP_PENDING)
        self.validate_submission(code)
        pending = self.pending
        if pending is None:
            raise WorkflowStateError("No OTP has been requested")
        if pending.mobile != self.form.mobile:
            raise ValidationError("Mobile number changed after the OTP was sent. Please request a new OTP.", reason="mobile-mismatch")

        self._transition(WorkflowState.VERIFYING)
        try:
            verified = self.verifier.confirm_challenge(pending, str(code).strip())
        except ConfirmError as exc:
            # Only a plain wrong code leaves the challenge open for another try.
            if exc.reason != "bad-code":
                self.pending = None
            self._transition(WorkflowState.FAILED, "bad-code")
            raise

        # The provider's challenge is single-use from here on.
        self.pending = None
        record = NewRegistration(
            name=self.form.name.strip(),
            age=self.form.age.strip(),
            gender=self.form.gender.strip().lower(),
            address=self.form.address.strip(),
            mobile=verified.mobile,
            phone_verified=True,
        )
        try:
            appended = self.store.append(record)
        except StoreError:
            self._transition(WorkflowState.FAILED, "persist-failed")
            raise

        result = SubmissionResult(
            registration_number=appended.registration_number,
            storage_key=appended.storage_key,
        )
        self.last_result = result
        self._transition(WorkflowState.COMPLETED)
        self.form = RegistrationForm()
        self._transition(WorkflowState.EDITING)
        return result

    def retry_from_editing(self) -> None:
        self._require_state("return to editing", WorkflowState.FAILED, WorkflowState.OTP_PENDING)
        self.pending = None
        self._transition(WorkflowState.EDITING)

    def back_to_otp_pending(self) -> None:
        self._require_state("re-enter OTP", WorkflowState.FAILED)
        if self.failure_reason != "bad-code" or self.pending is None:
            raise WorkflowStateError("No pending OTP to re-enter")
        self._transition(WorkflowState.OTP_PENDING)
