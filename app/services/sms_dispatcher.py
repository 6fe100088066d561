# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import Settings
from app.utils.errors import DeliveryError

logger = logging.getLogger(__name__)

PROVIDER_PRIMARY = "primary"        # domestic gateway (Aligo)
PROVIDER_SECONDARY = "secondary"    # international gateway (Twilio)
PROVIDER_NONE = "none"              # log-only development mode

LOCAL_MOBILE_PATTERN = re.compile(r"^01[0-9]")


@dataclass
class SmsResult:
    success: bool
    provider: str


def is_domestic_number(phone: str, country_code: str = "82") -> bool:
    phone = (phone or "").strip()
    return phone.startswith(f"+{country_code}") or bool(LOCAL_MOBILE_PATTERN.match(phone))


def normalize_domestic_number(phone: str, country_code: str = "82") -> str:
    """'+82 10-1234-5678' -> '01012345678'"""
    digits = re.sub(r"[^0-9]", "", phone or "")
    if digits.startswith(country_code):
        digits = "0" + digits[len(country_code):]
    return digits


class SmsDispatcher:
    """
    Single send() contract over the two SMS gateways.

    Routing: domestic numbers go to the domestic gateway when it is configured,
    everything else to the international gateway when that is configured, and
    with no credentials at all the message is only logged.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    def select_provider(self, phone: str) -> str:
        domestic = is_domestic_number(phone, self.settings.domestic_country_code)
        if domestic and self.settings.has_domestic_gateway:
            return PROVIDER_PRIMARY
        if self.settings.has_international_gateway:
            return PROVIDER_SECONDARY
        return PROVIDER_NONE

    async def send(self, phone: str, message: str, kind: str = "emergency") -> SmsResult:
        provider = self.select_provider(phone)

        if provider == PROVIDER_NONE:
            logger.info(f"📵 [DEV SMS] To: {phone}, Type: {kind}, Message: {message}")
            return SmsResult(success=True, provider=PROVIDER_NONE)

        try:
            async with httpx.AsyncClient(timeout=self.settings.sms_timeout_seconds, transport=self.transport) as client:
                if provider == PROVIDER_PRIMARY:
                    await self._send_domestic(client, phone, message)
                else:
                    await self._send_international(client, phone, message)
        except DeliveryError as e:
            logger.warning(f"⚠️ SMS via {provider} failed for {phone}: {e.message}")
            return SmsResult(success=False, provider=provider)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ SMS transport error via {provider} for {phone}: {e}")
            return SmsResult(success=False, provider=provider)

        logger.info(f"📩 SMS sent via {provider} to {phone} ({kind})")
        return SmsResult(success=True, provider=provider)

    async def _send_domestic(self, client: httpx.AsyncClient, phone: str, message: str):
        s = self.settings
        response = await client.post(
            s.aligo_api_url,
            data={
                "key": s.aligo_api_key,
                "user_id": s.aligo_user_id or "",
                "sender": s.aligo_sender or "",
                "receiver": normalize_domestic_number(phone, s.domestic_country_code),
                "msg": message,
            },
        )
        try:
            result = response.json()
        except ValueError:
            raise DeliveryError(f"Unreadable gateway response (HTTP {response.status_code})", PROVIDER_PRIMARY)

        logger.debug(f"Aligo response: {result}")
        if str(result.get("result_code")) != "1":
            raise DeliveryError(
                f"Gateway rejected message: {result.get('result_code')} {result.get('message', '')}".strip(),
                PROVIDER_PRIMARY,
            )

    async def _send_international(self, client: httpx.AsyncClient, phone: str, message: str):
        s = self.settings
        response = await client.post(
            f"{s.twilio_api_base}/Accounts/{s.twilio_account_sid}/Messages.json",
            data={"To": phone, "From": s.twilio_phone_number or "", "Body": message},
            auth=(s.twilio_account_sid, s.twilio_auth_token or ""),
        )
        if not response.is_success:
            raise DeliveryError(f"Gateway returned HTTP {response.status_code}", PROVIDER_SECONDARY)
