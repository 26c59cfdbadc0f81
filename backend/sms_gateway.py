import json
import logging
from typing import Optional
from urllib.error import URLError
from urllib.request import Request as UrlRequest, urlopen

from config import Settings

logger = logging.getLogger(__name__)


class SmsDeliveryError(Exception):
    pass


class SmsGateway:
    def send(self, to_number: str, message: str) -> None:
        raise NotImplementedError


class LoggingSmsGateway(SmsGateway):
    """Development gateway: writes the message to the log instead of sending it."""

    def send(self, to_number: str, message: str) -> None:
        logger.info("SMS to %s: %s", to_number, message)


class HttpSmsGateway(SmsGateway):
    def __init__(self, url: str, api_key: Optional[str], sender_id: str, timeout: int = 10):
        self.url = url
        self.api_key = api_key
        self.sender_id = sender_id
        self.timeout = timeout

    def send(self, to_number: str, message: str) -> None:
        payload = json.dumps({"to": to_number, "from": self.sender_id, "message": message}).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        request = UrlRequest(self.url, data=payload, headers=headers, method="POST")
        try:
            with urlopen(request, timeout=self.timeout) as response:
                status_code = response.getcode()
        except (URLError, OSError) as exc:
            raise SmsDeliveryError(f"SMS gateway unreachable: {exc}") from exc
        if status_code is None or status_code >= 300:
            raise SmsDeliveryError(f"SMS gateway rejected message with status {status_code}")


def build_sms_gateway(settings: Settings) -> SmsGateway:
    if settings.sms_gateway_url:
        return HttpSmsGateway(
            settings.sms_gateway_url,
            settings.sms_gateway_api_key,
            settings.sms_sender_id,
            timeout=settings.sms_timeout_seconds,
        )
    logger.warning("SMS_GATEWAY_URL not set; OTP messages will only be logged")
    return LoggingSmsGateway()
