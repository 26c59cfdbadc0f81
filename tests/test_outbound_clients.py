import io
import json
from dataclasses import replace
from urllib.error import URLError

import pytest

import human_verification
import sms_gateway
from config import load_settings
from human_verification import AllowAllVerifier, RecaptchaVerifier, build_human_verifier
from sms_gateway import HttpSmsGateway, LoggingSmsGateway, SmsDeliveryError, build_sms_gateway


class FakeResponse(io.BytesIO):
    def __init__(self, body=b"", status=200):
        super().__init__(body)
        self.status = status

    def getcode(self):
        return self.status

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


def test_http_gateway_posts_json(monkeypatch):
    seen = {}

    def fake_urlopen(request, timeout):
        seen["url"] = request.full_url
        seen["body"] = json.loads(request.data.decode("utf-8"))
        seen["auth"] = request.get_header("Authorization")
        seen["timeout"] = timeout
        return FakeResponse(status=202)

    monkeypatch.setattr(sms_gateway, "urlopen", fake_urlopen)
    gateway = HttpSmsGateway("https://sms.example.test/send", "key-123", "BKLREG", timeout=4)

    gateway.send("+919876543210", "123456 is your code")

    assert seen["url"] == "https://sms.example.test/send"
    assert seen["body"] == {"to": "+919876543210", "from": "BKLREG", "message": "123456 is your code"}
    assert seen["auth"] == "Bearer key-123"
    assert seen["timeout"] == 4


def test_http_gateway_raises_on_unreachable(monkeypatch):
    def fake_urlopen(request, timeout):
        raise URLError("connection refused")

    monkeypatch.setattr(sms_gateway, "urlopen", fake_urlopen)
    with pytest.raises(SmsDeliveryError):
        HttpSmsGateway("https://sms.example.test/send", None, "BKLREG").send("+919876543210", "hi")


def test_http_gateway_raises_on_bad_status(monkeypatch):
    monkeypatch.setattr(sms_gateway, "urlopen", lambda request, timeout: FakeResponse(status=500))
    with pytest.raises(SmsDeliveryError):
        HttpSmsGateway("https://sms.example.test/send", None, "BKLREG").send("+919876543210", "hi")


def test_build_sms_gateway_falls_back_to_logging():
    settings = load_settings()
    assert isinstance(build_sms_gateway(replace(settings, sms_gateway_url=None)), LoggingSmsGateway)
    assert isinstance(build_sms_gateway(replace(settings, sms_gateway_url="https://sms.example.test")), HttpSmsGateway)


def test_recaptcha_accepts_successful_token(monkeypatch):
    seen = {}

    def fake_urlopen(request, timeout):
        seen["body"] = request.data.decode("utf-8")
        return FakeResponse(json.dumps({"success": True}).encode("utf-8"))

    monkeypatch.setattr(human_verification, "urlopen", fake_urlopen)
    verifier = RecaptchaVerifier("secret-key", "https://captcha.example.test/verify")

    assert verifier.verify("token-abc") is True
    assert "secret=secret-key" in seen["body"]
    assert "response=token-abc" in seen["body"]


def test_recaptcha_rejects_failed_or_missing_token(monkeypatch):
    monkeypatch.setattr(
        human_verification,
        "urlopen",
        lambda request, timeout: FakeResponse(json.dumps({"success": False}).encode("utf-8")),
    )
    verifier = RecaptchaVerifier("secret-key", "https://captcha.example.test/verify")

    assert verifier.verify("token-abc") is False
    assert verifier.verify(None) is False


def test_recaptcha_rejects_when_unreachable(monkeypatch):
    def fake_urlopen(request, timeout):
        raise URLError("timed out")

    monkeypatch.setattr(human_verification, "urlopen", fake_urlopen)
    assert RecaptchaVerifier("secret-key", "https://captcha.example.test/verify").verify("token") is False


def test_build_human_verifier_without_secret():
    settings = replace(load_settings(), recaptcha_secret=None)
    assert isinstance(build_human_verifier(settings), AllowAllVerifier)
