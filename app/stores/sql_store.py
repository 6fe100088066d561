# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import functools
import json
import logging
from datetime import datetime
from typing import Optional, List, Set, Dict, Any

from sqlalchemy import or_, and_, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.database import build_engine, build_session_factory, create_tables
from app.models.user import User
from app.models.check_in import CheckIn
from app.models.emergency_alert import EmergencyAlert
from app.models.notification import NotificationLog
from app.schemas.records import (
    UserRecord,
    CheckInRecord,
    EmergencyAlertRecord,
    NotificationLogRecord,
)
from app.stores.base import CheckInStore, StoreFactory, UNSET
from app.utils.errors import PersistenceError, ValidationError
from app.utils.time_utils import to_naive_utc

logger = logging.getLogger(__name__)


def _db_call(func):
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"🛑 Store call {func.__name__} failed: {e}", exc_info=True)
            raise PersistenceError(f"Data store call failed: {func.__name__}") from e
    return wrapper


def _user_record(row: User) -> UserRecord:
    subscription = None
    if row.push_subscription:
        try:
            subscription = json.loads(row.push_subscription)
        except ValueError:
            logger.warning(f"⚠️ Unreadable push subscription for user {row.id}")
    return UserRecord(
        id=row.id,
        email=row.email,
        nickname=row.nickname or "",
        guardian_phone=row.guardian_phone,
        streak=row.streak or 0,
        last_check_in=row.last_check_in,
        push_subscription=subscription,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlStore(CheckInStore):
    """Store over a SQLAlchemy session. Timestamps are written as naive UTC."""

    def __init__(self, db: Session):
        self.db = db

    # ---------------------- USERS ----------------------
    @_db_call
    def get_user(self, user_id: str) -> Optional[UserRecord]:
        row = self.db.query(User).filter(User.id == user_id).first()
        return _user_record(row) if row else None

    @_db_call
    def list_users(self) -> List[UserRecord]:
        return [_user_record(row) for row in self.db.query(User).order_by(User.created_at).all()]

    @_db_call
    def create_user(self, user_id, email, nickname, guardian_phone=None, created_at=None) -> UserRecord:
        if self.db.query(User).filter(User.id == user_id).first():
            raise ValidationError(f"User already exists: {user_id}")
        row = User(
            id=user_id,
            email=email,
            nickname=nickname,
            guardian_phone=guardian_phone or None,
            streak=0,
            created_at=to_naive_utc(created_at) or datetime.utcnow(),
        )
        self.db.add(row)
        self.db.flush()
        return _user_record(row)

    @_db_call
    def update_user_settings(self, user_id, nickname=UNSET, guardian_phone=UNSET) -> Optional[UserRecord]:
        row = self.db.query(User).filter(User.id == user_id).first()
        if not row:
            return None
        if nickname is not UNSET:
            row.nickname = nickname
        if guardian_phone is not UNSET:
            row.guardian_phone = guardian_phone or None
        row.updated_at = datetime.utcnow()
        self.db.flush()
        return _user_record(row)

    @_db_call
    def set_push_subscription(self, user_id, subscription) -> bool:
        row = self.db.query(User).filter(User.id == user_id).first()
        if not row:
            return False
        row.push_subscription = json.dumps(subscription) if subscription else None
        self.db.flush()
        return True

    @_db_call
    def update_streak(self, user_id, expected_last_check_in, streak, last_check_in) -> bool:
        expected = to_naive_utc(expected_last_check_in)
        guard = User.last_check_in.is_(None) if expected is None else User.last_check_in == expected
        updated = (
            self.db.query(User)
            .filter(User.id == user_id, guard)
            .update(
                {
                    User.streak: streak,
                    User.last_check_in: to_naive_utc(last_check_in),
                    User.updated_at: datetime.utcnow(),
                },
                synchronize_session="fetch",
            )
        )
        return updated == 1

    @_db_call
    def find_unresponsive_users(self, cutoff, require_guardian=True) -> List[UserRecord]:
        query = self.db.query(User).filter(
            or_(User.last_check_in.is_(None), User.last_check_in < to_naive_utc(cutoff))
        )
        if require_guardian:
            query = query.filter(User.guardian_phone.isnot(None))
        rows = query.order_by(User.last_check_in.is_(None).desc(), User.last_check_in.asc()).all()
        records = [_user_record(row) for row in rows]
        if require_guardian:
            records = [r for r in records if r.has_guardian]
        return records

    @_db_call
    def users_with_push_subscription(self) -> List[UserRecord]:
        rows = self.db.query(User).filter(User.push_subscription.isnot(None)).all()
        return [_user_record(row) for row in rows]

    # ---------------------- CHECK-INS ----------------------
    @_db_call
    def add_check_in(self, user_id, response, responded_at, scheduled_at, is_missed=False) -> CheckInRecord:
        row = CheckIn(
            user_id=user_id,
            response=response,
            responded_at=to_naive_utc(responded_at),
            scheduled_at=to_naive_utc(scheduled_at),
            is_missed=is_missed,
            created_at=datetime.utcnow(),
        )
        self.db.add(row)
        self.db.flush()
        return CheckInRecord.model_validate(row)

    @_db_call
    def latest_check_in_since(self, user_id, since) -> Optional[CheckInRecord]:
        row = (
            self.db.query(CheckIn)
            .filter(
                CheckIn.user_id == user_id,
                CheckIn.is_missed == False,  # noqa: E712
                CheckIn.responded_at >= to_naive_utc(since),
            )
            .order_by(CheckIn.responded_at.desc(), CheckIn.id.desc())
            .first()
        )
        return CheckInRecord.model_validate(row) if row else None

    @_db_call
    def list_check_ins(self, user_id, limit=30, start=None, end=None) -> List[CheckInRecord]:
        query = self.db.query(CheckIn).filter(CheckIn.user_id == user_id)
        if start is not None:
            query = query.filter(CheckIn.scheduled_at >= to_naive_utc(start))
        if end is not None:
            query = query.filter(CheckIn.scheduled_at < to_naive_utc(end))
        rows = query.order_by(CheckIn.scheduled_at.desc(), CheckIn.id.desc()).limit(limit).all()
        return [CheckInRecord.model_validate(row) for row in rows]

    @_db_call
    def checked_in_user_ids_since(self, since) -> Set[str]:
        rows = (
            self.db.query(CheckIn.user_id)
            .filter(CheckIn.is_missed == False, CheckIn.responded_at >= to_naive_utc(since))  # noqa: E712
            .distinct()
            .all()
        )
        return {r.user_id for r in rows}

    @_db_call
    def user_ids_with_entry_between(self, start, end) -> Set[str]:
        rows = (
            self.db.query(CheckIn.user_id)
            .filter(and_(CheckIn.scheduled_at >= to_naive_utc(start), CheckIn.scheduled_at < to_naive_utc(end)))
            .distinct()
            .all()
        )
        return {r.user_id for r in rows}

    # ---------------------- ALERTS & NOTIFICATIONS ----------------------
    @_db_call
    def add_emergency_alert(self, user_id, guardian_phone, message, sent_at, success) -> EmergencyAlertRecord:
        row = EmergencyAlert(
            user_id=user_id,
            guardian_phone=guardian_phone,
            message=message,
            sent_at=to_naive_utc(sent_at),
            success=success,
        )
        self.db.add(row)
        self.db.flush()
        return EmergencyAlertRecord.model_validate(row)

    @_db_call
    def alerted_user_ids_since(self, since) -> Set[str]:
        rows = (
            self.db.query(EmergencyAlert.user_id)
            .filter(EmergencyAlert.sent_at >= to_naive_utc(since))
            .distinct()
            .all()
        )
        return {r.user_id for r in rows}

    @_db_call
    def list_recent_alerts(self, limit=20) -> List[EmergencyAlertRecord]:
        rows = (
            self.db.query(EmergencyAlert)
            .order_by(EmergencyAlert.sent_at.desc(), EmergencyAlert.id.desc())
            .limit(limit)
            .all()
        )
        return [EmergencyAlertRecord.model_validate(row) for row in rows]

    @_db_call
    def add_notification_log(self, user_id, notification_type, sent_at, success) -> NotificationLogRecord:
        row = NotificationLog(
            user_id=user_id,
            notification_type=notification_type,
            sent_at=to_naive_utc(sent_at),
            success=success,
        )
        self.db.add(row)
        self.db.flush()
        return NotificationLogRecord.model_validate(row)

    @_db_call
    def list_notification_logs(self, user_id=None, limit=50) -> List[NotificationLogRecord]:
        query = self.db.query(NotificationLog)
        if user_id is not None:
            query = query.filter(NotificationLog.user_id == user_id)
        rows = query.order_by(NotificationLog.sent_at.desc(), NotificationLog.id.desc()).limit(limit).all()
        return [NotificationLogRecord.model_validate(row) for row in rows]

    # ---------------------- UNIT OF WORK ----------------------
    @_db_call
    def commit(self):
        self.db.commit()

    def rollback(self):
        try:
            self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Rollback failed: {e}")

    def close(self):
        self.db.close()

    def ping(self) -> bool:
        try:
            self.db.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning(f"⚠️ Store ping failed: {e}")
            return False


class SqlStoreFactory(StoreFactory):
    kind = "sql"

    def __init__(self, database_url: str, create_schema: bool = True):
        self.engine = build_engine(database_url)
        self.session_factory = build_session_factory(self.engine)
        if create_schema:
            # Create DB tables in one go
            create_tables(self.engine)

    def open(self) -> SqlStore:
        return SqlStore(self.session_factory())

    def dispose(self):
        self.engine.dispose()
