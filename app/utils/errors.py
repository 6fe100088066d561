# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


class HankkiError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HankkiError):
    """Malformed or missing request input. User-correctable."""

    status_code = 400


class UserNotFoundError(ValidationError):
    status_code = 404

    def __init__(self, user_id):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id


class PersistenceError(HankkiError):
    """A data store call failed."""

    status_code = 500


class DeliveryError(HankkiError):
    """An SMS or push transport failed. Never leaves the dispatcher."""

    def __init__(self, message: str, provider: str = "none"):
        super().__init__(message)
        self.provider = provider
