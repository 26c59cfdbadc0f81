from typing import Optional


class RegistrationError(Exception):
    default_reason = "error"

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.default_reason


class ValidationError(RegistrationError):
    default_reason = "invalid-input"


class ChallengeError(RegistrationError):
    default_reason = "challenge-request-failed"


class ConfirmError(RegistrationError):
    default_reason = "bad-code"


class StoreError(RegistrationError):
    default_reason = "store-failed"


class RecordNotFound(StoreError):
    default_reason = "not-found"


class WorkflowStateError(RegistrationError):
    default_reason = "invalid-state"
