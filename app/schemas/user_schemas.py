# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


def _clean_phone(v):
    if v is None:
        return None
    v = v.strip()
    return v or None


class UserCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    nickname: str
    guardian_phone: Optional[str] = Field(None, alias="guardianPhone")

    @field_validator("guardian_phone", mode="before")
    @classmethod
    def clean_guardian_phone(cls, v):
        return _clean_phone(v)


class UserSettingsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    nickname: Optional[str] = None
    guardian_phone: Optional[str] = Field(None, alias="guardianPhone")

    @field_validator("guardian_phone", mode="before")
    @classmethod
    def clean_guardian_phone(cls, v):
        return _clean_phone(v)
