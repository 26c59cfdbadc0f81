import logging
from typing import Optional

from fastapi import APIRouter, Depends, status

from dependencies import get_human_verifier, get_phone_verification_client, get_registration_store
from errors import RegistrationError
from human_verification import HumanVerifier
from phone_verification import PhoneVerificationClient
from registration_store import RegistrationStore
from registration_workflow import RegistrationWorkflow
from schemas import (
    OtpRequest,
    OtpResponse,
    RegistrationCreatedResponse,
    RegistrationFields,
    RegistrationSubmit,
)
from utils import to_http_exception

router = APIRouter()
logger = logging.getLogger(__name__)


def _workflow_with_fields(
    fields: RegistrationFields,
    verifier: PhoneVerificationClient,
    store: RegistrationStore,
    human_verifier: Optional[HumanVerifier] = None,
) -> RegistrationWorkflow:
    workflow = RegistrationWorkflow(verifier, store, human_verifier=human_verifier)
    workflow.update_fields(
        name=fields.name,
        age=fields.age,
        gender=fields.gender,
        address=fields.address,
        mobile=fields.mobile,
    )
    return workflow


@router.post("/registrations/otp", response_model=OtpResponse)
def send_registration_otp(
    payload: OtpRequest,
    verifier: PhoneVerificationClient = Depends(get_phone_verification_client),
    store: RegistrationStore = Depends(get_registration_store),
    human_verifier: HumanVerifier = Depends(get_human_verifier),
):
    workflow = _workflow_with_fields(payload, verifier, store, human_verifier)
    try:
        pending = workflow.send_code(payload.captcha_token)
    except RegistrationError as exc:
        logger.info("OTP request rejected (%s)", exc.reason)
        raise to_http_exception(exc)
    return OtpResponse(challenge_id=pending.challenge_id, expires_at=pending.expires_at)


@router.post(
    "/registrations",
    response_model=RegistrationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def submit_registration(
    payload: RegistrationSubmit,
    verifier: PhoneVerificationClient = Depends(get_phone_verification_client),
    store: RegistrationStore = Depends(get_registration_store),
):
    workflow = _workflow_with_fields(payload, verifier, store)
    try:
        workflow.validate_submission(payload.otp)
        pending = verifier.load_challenge(payload.challenge_id)
        workflow.resume(pending)
        result = workflow.submit_code(payload.otp)
    except RegistrationError as exc:
        logger.info("Registration submission rejected (%s)", exc.reason)
        raise to_http_exception(exc)
    return RegistrationCreatedResponse(id=result.storage_key, registration_number=result.registration_number)
