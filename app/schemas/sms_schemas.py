# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from pydantic import BaseModel
from typing import Optional


class SmsSendRequest(BaseModel):
    phone: Optional[str] = None
    message: Optional[str] = None
    type: str = "general"  # e.g., emergency, guardian_update
