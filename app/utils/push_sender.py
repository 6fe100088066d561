# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import json
import logging
from dataclasses import dataclass
from typing import Dict, Any

import requests
from pywebpush import webpush, WebPushException

from app.config import Settings
from app.utils.errors import DeliveryError

logger = logging.getLogger(__name__)

PUSH_TTL_SECONDS = 86400
GONE_STATUSES = (404, 410)


@dataclass
class PushResult:
    success: bool
    expired: bool = False


class WebPushSender:
    """
    Web Push delivery with VAPID. Without a private key the payload is only
    logged (local development).
    """

    def __init__(self, settings: Settings):
        self.settings = settings

    @property
    def configured(self) -> bool:
        return bool(self.settings.vapid_private_key)

    def _deliver(self, subscription: Dict[str, Any], payload: Dict[str, Any]):
        try:
            webpush(
                subscription_info=subscription,
                data=json.dumps(payload, ensure_ascii=False),
                vapid_private_key=self.settings.vapid_private_key,
                vapid_claims={"sub": self.settings.vapid_subject},
                ttl=PUSH_TTL_SECONDS,
                timeout=self.settings.push_timeout_seconds,
            )
        except WebPushException as e:
            status = getattr(e.response, "status_code", None)
            raise DeliveryError(f"Push rejected (HTTP {status}): {e}") from e

    def send(self, subscription: Dict[str, Any], payload: Dict[str, Any]) -> PushResult:
        """Never raises. Reports expired=True when the push service says the subscription is gone."""
        if not subscription or not subscription.get("endpoint"):
            logger.warning("⚠️ Push skipped: subscription has no endpoint")
            return PushResult(success=False)

        if not self.configured:
            logger.info(f"📵 [DEV PUSH] To: {subscription.get('endpoint')}, Payload: {payload}")
            return PushResult(success=True)

        try:
            self._deliver(subscription, payload)
            return PushResult(success=True)
        except DeliveryError as e:
            cause = e.__cause__
            status = getattr(getattr(cause, "response", None), "status_code", None)
            logger.warning(f"⚠️ {e.message}")
            return PushResult(success=False, expired=status in GONE_STATUSES)
        except requests.RequestException as e:
            logger.warning(f"⚠️ Push transport error: {e}")
            return PushResult(success=False)
