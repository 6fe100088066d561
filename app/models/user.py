# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.


from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from app.models.database import Base
from app.utils.encryption import EncryptedTypeHybrid  # 🔐


class User(Base):
    __tablename__ = "users"

    # Identity comes from the hosted auth provider
    id = Column(String, primary_key=True, index=True)
    email = Column(String, nullable=False)
    nickname = Column(String, nullable=False, default="")

    guardian_phone = Column(EncryptedTypeHybrid, nullable=True)  # 🔐 Encrypted

    # ✅ Streak state, written only by the check-in recorder
    streak = Column(Integer, nullable=False, default=0)
    last_check_in = Column(DateTime, nullable=True, index=True)

    # ✅ Web push subscription (JSON: endpoint + keys)
    push_subscription = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # ✅ Relationships
    check_ins = relationship("CheckIn", back_populates="user", cascade="all, delete-orphan")
    emergency_alerts = relationship("EmergencyAlert", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("NotificationLog", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User id={self.id} streak={self.streak} last_check_in={self.last_check_in}>"
