# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class CheckInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Left optional so missing fields surface as a ValidationError from the recorder
    user_id: Optional[str] = Field(None, alias="userId")
    response: Optional[str] = None
