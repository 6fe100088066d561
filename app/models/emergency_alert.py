# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from sqlalchemy import Column, Integer, String, Text, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from app.models.database import Base
from app.utils.encryption import EncryptedTypeHybrid  # 🔐 Encryption wrapper


class EmergencyAlert(Base):
    __tablename__ = "emergency_alerts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)

    guardian_phone = Column(EncryptedTypeHybrid, nullable=False)  # 🔐
    message = Column(Text, nullable=False)

    sent_at = Column(DateTime, default=datetime.utcnow, index=True)
    success = Column(Boolean, default=False, nullable=False)

    user = relationship("User", back_populates="emergency_alerts")
