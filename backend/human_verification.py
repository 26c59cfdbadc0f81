import json
import logging
from typing import Optional
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import Request as UrlRequest, urlopen

from config import Settings

logger = logging.getLogger(__name__)


class HumanVerifier:
    def verify(self, token: Optional[str]) -> bool:
        raise NotImplementedError


class AllowAllVerifier(HumanVerifier):
    def verify(self, token: Optional[str]) -> bool:
        return True


class RecaptchaVerifier(HumanVerifier):
    def __init__(self, secret: str, verify_url: str, timeout: int = 8):
        self.secret = secret
        self.verify_url = verify_url
        self.timeout = timeout

    def verify(self, token: Optional[str]) -> bool:
        if not token:
            return False
        body = urlencode({"secret": self.secret, "response": token}).encode("utf-8")
        request = UrlRequest(
            self.verify_url,
            data=body,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            method="POST",
        )
        try:
            with urlopen(request, timeout=self.timeout) as response:
                payload = json.loads(response.read().decode("utf-8") or "{}")
        except (URLError, OSError, ValueError) as exc:
            logger.warning("reCAPTCHA verification request failed: %s", exc)
            return False
        if not payload.get("success"):
            logger.info("reCAPTCHA rejected token: %s", payload.get("error-codes"))
            return False
        return True


def build_human_verifier(settings: Settings) -> HumanVerifier:
    if settings.recaptcha_secret:
        return RecaptchaVerifier(settings.recaptcha_secret, settings.recaptcha_verify_url)
    return AllowAllVerifier()
