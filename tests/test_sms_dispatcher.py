# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import asyncio
import base64
from urllib.parse import parse_qs

import httpx
import pytest

from app.config import Settings
from app.services.sms_dispatcher import (
    SmsDispatcher,
    is_domestic_number,
    normalize_domestic_number,
    PROVIDER_PRIMARY,
    PROVIDER_SECONDARY,
    PROVIDER_NONE,
)

ALIGO = dict(aligo_api_key="aligo-key", aligo_user_id="hankki", aligo_sender="0212345678")
TWILIO = dict(twilio_account_sid="AC123", twilio_auth_token="tok", twilio_phone_number="+15550001111")


class Gateway:
    """httpx transport handler that records requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response or httpx.Response(200, json={"result_code": "1", "message": "success"})
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.response

    def form(self, index=0):
        return {k: v[0] for k, v in parse_qs(self.requests[index].content.decode()).items()}


def make_dispatcher(gateway, **overrides):
    return SmsDispatcher(Settings(**overrides), transport=httpx.MockTransport(gateway))


@pytest.mark.parametrize("phone, expected", [
    ("+821012345678", True),
    ("+82 10-1234-5678", True),
    ("01012345678", True),
    ("010-1234-5678", True),
    ("+15551234567", False),
    ("15551234567", False),
    ("", False),
])
def test_is_domestic_number(phone, expected):
    assert is_domestic_number(phone, "82") is expected


@pytest.mark.parametrize("phone, expected", [
    ("+82 10-1234-5678", "01012345678"),
    ("+821012345678", "01012345678"),
    ("010-1234-5678", "01012345678"),
])
def test_normalize_domestic_number(phone, expected):
    assert normalize_domestic_number(phone) == expected


def test_no_credentials_logs_only():
    gateway = Gateway()
    result = asyncio.run(make_dispatcher(gateway).send("+821012345678", "hello"))

    assert result.success is True
    assert result.provider == PROVIDER_NONE
    assert gateway.requests == []


def test_domestic_number_goes_to_primary_gateway():
    gateway = Gateway()
    result = asyncio.run(make_dispatcher(gateway, **ALIGO, **TWILIO).send("+82 10-1234-5678", "hello"))

    assert result.success is True
    assert result.provider == PROVIDER_PRIMARY
    assert str(gateway.requests[0].url) == "https://apis.aligo.in/send/"
    form = gateway.form()
    assert form["receiver"] == "01012345678"
    assert form["key"] == "aligo-key"
    assert form["msg"] == "hello"


def test_primary_gateway_rejection_is_a_failure():
    gateway = Gateway(httpx.Response(200, json={"result_code": "-101", "message": "auth failed"}))
    result = asyncio.run(make_dispatcher(gateway, **ALIGO).send("01012345678", "hello"))

    assert result.success is False
    assert result.provider == PROVIDER_PRIMARY


def test_unreadable_primary_response_is_a_failure():
    gateway = Gateway(httpx.Response(502, text="<html>bad gateway</html>"))
    result = asyncio.run(make_dispatcher(gateway, **ALIGO).send("01012345678", "hello"))

    assert result.success is False


def test_domestic_number_without_primary_uses_secondary():
    gateway = Gateway(httpx.Response(201, json={"sid": "SM1"}))
    result = asyncio.run(make_dispatcher(gateway, **TWILIO).send("+821012345678", "hello"))

    assert result.success is True
    assert result.provider == PROVIDER_SECONDARY
    request = gateway.requests[0]
    assert str(request.url) == "https://api.twilio.com/2010-04-01/Accounts/AC123/Messages.json"
    assert request.headers["Authorization"] == "Basic " + base64.b64encode(b"AC123:tok").decode()
    assert gateway.form() == {"To": "+821012345678", "From": "+15550001111", "Body": "hello"}


def test_international_number_goes_to_secondary():
    gateway = Gateway(httpx.Response(201, json={"sid": "SM1"}))
    dispatcher = make_dispatcher(gateway, **ALIGO, **TWILIO)

    assert dispatcher.select_provider("+15551234567") == PROVIDER_SECONDARY
    assert asyncio.run(dispatcher.send("+15551234567", "hi")).success is True


def test_international_number_with_only_primary_configured_logs_only():
    gateway = Gateway()
    result = asyncio.run(make_dispatcher(gateway, **ALIGO).send("+15551234567", "hi"))

    assert result.provider == PROVIDER_NONE
    assert result.success is True
    assert gateway.requests == []


def test_secondary_http_error_is_a_failure():
    gateway = Gateway(httpx.Response(400, json={"message": "invalid To"}))
    result = asyncio.run(make_dispatcher(gateway, **TWILIO).send("+15551234567", "hi"))

    assert result.success is False
    assert result.provider == PROVIDER_SECONDARY


def test_transport_error_never_raises():
    gateway = Gateway(error=httpx.ConnectError("connection refused"))
    result = asyncio.run(make_dispatcher(gateway, **ALIGO).send("01012345678", "hello"))

    assert result.success is False
    assert result.provider == PROVIDER_PRIMARY
