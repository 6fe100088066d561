# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import logging
import os
import secrets
from functools import lru_cache
from typing import List, Optional

import pytz
from pydantic import BaseModel

# ✅ Only load .env in local/dev
if os.environ.get("ENV") != "production":
    from dotenv import load_dotenv
    load_dotenv()

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _jwt_secret_from_env() -> str:
    secret = _env_str("JWT_SECRET_KEY")
    if secret:
        return secret
    if os.environ.get("ENV") == "production":
        raise RuntimeError("JWT_SECRET_KEY environment variable is not set.")
    # Throwaway key: tokens stop verifying on restart
    logger.warning("⚠️ JWT_SECRET_KEY not set. Using a random per-process secret (development only).")
    return secrets.token_urlsafe(32)


class Settings(BaseModel):
    # 🗄️ Data store (no URL → local-only mode)
    database_url: Optional[str] = None
    local_store_path: Optional[str] = ".hankki_local.json"

    app_timezone: str = "Asia/Seoul"
    app_brand: str = "Hankki"

    # 🔐 Auth
    jwt_secret_key: Optional[str] = None
    jwt_algorithm: str = "HS256"
    admin_roles: List[str] = ["service_role", "admin"]
    cron_secret: Optional[str] = None
    fernet_secret: Optional[str] = None

    # 📩 Domestic gateway (Aligo)
    aligo_api_key: Optional[str] = None
    aligo_user_id: Optional[str] = None
    aligo_sender: Optional[str] = None
    aligo_api_url: str = "https://apis.aligo.in/send/"

    # 🌍 International gateway (Twilio)
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    twilio_api_base: str = "https://api.twilio.com/2010-04-01"

    domestic_country_code: str = "82"
    sms_timeout_seconds: float = 10.0
    sms_max_attempts: int = 3
    sms_backoff_base: float = 2.0
    sms_max_concurrency: int = 5

    # 📲 Web push
    vapid_public_key: Optional[str] = None
    vapid_private_key: Optional[str] = None
    vapid_subject: str = "mailto:admin@hankki.app"
    push_timeout_seconds: float = 10.0
    push_max_concurrency: int = 5

    # ⏰ Jobs
    unresponsive_threshold_hours: int = 48
    reminder_start_hour: int = 11
    reminder_end_hour: int = 13
    reminder_sample_rate: float = 0.33

    scheduler_enabled: bool = True
    rate_limit_enabled: bool = True
    checkin_rate_limit: str = "30/minute"

    @property
    def tz(self):
        return pytz.timezone(self.app_timezone)

    @property
    def local_only(self) -> bool:
        return not self.database_url

    @property
    def has_domestic_gateway(self) -> bool:
        return bool(self.aligo_api_key)

    @property
    def has_international_gateway(self) -> bool:
        return bool(self.twilio_account_sid)

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        roles = _env_str("ADMIN_ROLES")
        return cls(
            database_url=_env_str("DATABASE_URL"),
            local_store_path=_env_str("LOCAL_STORE_PATH", defaults.local_store_path),
            app_timezone=_env_str("APP_TIMEZONE", defaults.app_timezone),
            app_brand=_env_str("APP_BRAND", defaults.app_brand),
            jwt_secret_key=_jwt_secret_from_env(),
            jwt_algorithm=_env_str("JWT_ALGORITHM", defaults.jwt_algorithm),
            admin_roles=[r.strip() for r in roles.split(",") if r.strip()] if roles else defaults.admin_roles,
            cron_secret=_env_str("CRON_SECRET"),
            fernet_secret=_env_str("FERNET_SECRET"),
            aligo_api_key=_env_str("ALIGO_API_KEY"),
            aligo_user_id=_env_str("ALIGO_USER_ID"),
            aligo_sender=_env_str("ALIGO_SENDER"),
            aligo_api_url=_env_str("ALIGO_API_URL", defaults.aligo_api_url),
            twilio_account_sid=_env_str("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=_env_str("TWILIO_AUTH_TOKEN"),
            twilio_phone_number=_env_str("TWILIO_PHONE_NUMBER"),
            domestic_country_code=_env_str("DOMESTIC_COUNTRY_CODE", defaults.domestic_country_code),
            sms_timeout_seconds=float(_env_str("SMS_TIMEOUT_SECONDS", str(defaults.sms_timeout_seconds))),
            sms_max_attempts=int(_env_str("SMS_MAX_ATTEMPTS", str(defaults.sms_max_attempts))),
            sms_max_concurrency=int(_env_str("SMS_MAX_CONCURRENCY", str(defaults.sms_max_concurrency))),
            vapid_public_key=_env_str("VAPID_PUBLIC_KEY"),
            vapid_private_key=_env_str("VAPID_PRIVATE_KEY"),
            vapid_subject=_env_str("VAPID_SUBJECT", defaults.vapid_subject),
            unresponsive_threshold_hours=int(
                _env_str("UNRESPONSIVE_THRESHOLD_HOURS", str(defaults.unresponsive_threshold_hours))
            ),
            reminder_start_hour=int(_env_str("REMINDER_START_HOUR", str(defaults.reminder_start_hour))),
            reminder_end_hour=int(_env_str("REMINDER_END_HOUR", str(defaults.reminder_end_hour))),
            reminder_sample_rate=float(_env_str("REMINDER_SAMPLE_RATE", str(defaults.reminder_sample_rate))),
            scheduler_enabled=_env_bool("SCHEDULER_ENABLED", defaults.scheduler_enabled),
            rate_limit_enabled=_env_bool("RATE_LIMIT_ENABLED", defaults.rate_limit_enabled),
            checkin_rate_limit=_env_str("CHECKIN_RATE_LIMIT", defaults.checkin_rate_limit),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.from_env()
