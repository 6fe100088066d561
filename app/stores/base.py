# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, List, Set, Dict, Any

from app.schemas.records import (
    UserRecord,
    CheckInRecord,
    EmergencyAlertRecord,
    NotificationLogRecord,
)

# Marker for "leave this field alone" in partial updates
UNSET = object()


class CheckInStore(ABC):
    """
    Narrow contract over the User / CheckIn / EmergencyAlert / NotificationLog tables.

    Writes are staged until commit(); rollback() discards them. Every method
    raises PersistenceError when the backing store fails.
    """

    # ---------------------- USERS ----------------------
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def list_users(self) -> List[UserRecord]: ...

    @abstractmethod
    def create_user(self, user_id: str, email: str, nickname: str,
                    guardian_phone: Optional[str] = None, created_at: Optional[datetime] = None) -> UserRecord: ...

    @abstractmethod
    def update_user_settings(self, user_id: str, nickname=UNSET, guardian_phone=UNSET) -> Optional[UserRecord]: ...

    @abstractmethod
    def set_push_subscription(self, user_id: str, subscription: Optional[Dict[str, Any]]) -> bool: ...

    @abstractmethod
    def update_streak(self, user_id: str, expected_last_check_in: Optional[datetime],
                      streak: int, last_check_in: datetime) -> bool:
        """Conditional write: applies only if last_check_in still equals expected_last_check_in."""

    @abstractmethod
    def find_unresponsive_users(self, cutoff: datetime, require_guardian: bool = True) -> List[UserRecord]:
        """Users never checked in or last checked in before cutoff, oldest first."""

    @abstractmethod
    def users_with_push_subscription(self) -> List[UserRecord]: ...

    # ---------------------- CHECK-INS ----------------------
    @abstractmethod
    def add_check_in(self, user_id: str, response: Optional[str], responded_at: Optional[datetime],
                     scheduled_at: datetime, is_missed: bool = False) -> CheckInRecord: ...

    @abstractmethod
    def latest_check_in_since(self, user_id: str, since: datetime) -> Optional[CheckInRecord]: ...

    @abstractmethod
    def list_check_ins(self, user_id: str, limit: int = 30, start: Optional[datetime] = None,
                       end: Optional[datetime] = None) -> List[CheckInRecord]: ...

    @abstractmethod
    def checked_in_user_ids_since(self, since: datetime) -> Set[str]: ...

    @abstractmethod
    def user_ids_with_entry_between(self, start: datetime, end: datetime) -> Set[str]:
        """Users with any check-in row (missed rows included) scheduled in [start, end)."""

    # ---------------------- ALERTS & NOTIFICATIONS ----------------------
    @abstractmethod
    def add_emergency_alert(self, user_id: str, guardian_phone: str, message: str,
                            sent_at: datetime, success: bool) -> EmergencyAlertRecord: ...

    @abstractmethod
    def alerted_user_ids_since(self, since: datetime) -> Set[str]: ...

    @abstractmethod
    def list_recent_alerts(self, limit: int = 20) -> List[EmergencyAlertRecord]: ...

    @abstractmethod
    def add_notification_log(self, user_id: str, notification_type: str, sent_at: datetime,
                             success: bool) -> NotificationLogRecord: ...

    @abstractmethod
    def list_notification_logs(self, user_id: Optional[str] = None, limit: int = 50) -> List[NotificationLogRecord]:
        """Most recent first, optionally for one user."""

    # ---------------------- UNIT OF WORK ----------------------
    @abstractmethod
    def commit(self): ...

    @abstractmethod
    def rollback(self): ...

    def close(self):
        pass

    def ping(self) -> bool:
        return True

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.commit()
        except Exception:
            self.rollback()
            raise


class StoreFactory(ABC):
    """Hands out store handles. One handle per request or job run."""

    kind = "unknown"

    @abstractmethod
    def open(self) -> CheckInStore: ...

    @contextmanager
    def session(self):
        store = self.open()
        try:
            yield store
        finally:
            store.close()

    def dispose(self):
        pass
