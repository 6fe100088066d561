# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from app.models.database import Base


class CheckIn(Base):
    __tablename__ = "check_ins"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    response = Column(String, nullable=True)  # "ate" / "not_ate", null when missed
    responded_at = Column(DateTime, nullable=True, index=True)
    scheduled_at = Column(DateTime, nullable=False)
    is_missed = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="check_ins")
