# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

import copy
import json
import logging
import os
import threading
from datetime import datetime
from typing import Optional, List, Set, Dict, Any

from app.schemas.records import (
    UserRecord,
    CheckInRecord,
    EmergencyAlertRecord,
    NotificationLogRecord,
)
from app.stores.base import CheckInStore, StoreFactory, UNSET
from app.utils.errors import PersistenceError, ValidationError
from app.utils.time_utils import ensure_aware, utc_now

logger = logging.getLogger(__name__)

_MIN_TS = ensure_aware(datetime(1970, 1, 1))

# How long a handle waits for another handle's open write transaction
WRITE_LOCK_TIMEOUT_SECONDS = 10.0


def _empty_state() -> Dict[str, Any]:
    return {
        "users": {},
        "check_ins": [],
        "emergency_alerts": [],
        "notification_logs": [],
        "seq": {"check_ins": 0, "emergency_alerts": 0, "notification_logs": 0},
    }


class LocalDatabase:
    """
    Committed state of the local-only store, shared by every handle.

    The committed state is replaced as a whole on commit and never mutated in
    place, so readers can use it without locking. Only one handle at a time may
    hold an open write transaction (write_lock).
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self.write_lock = threading.Lock()
        self.state = self._load() if path and os.path.exists(path) else _empty_state()

    # ---------------------- FILE I/O ----------------------
    def _load(self) -> Dict[str, Any]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read local store {self.path}") from e

        state = _empty_state()
        state["users"] = {u["id"]: UserRecord.model_validate(u) for u in raw.get("users", [])}
        state["check_ins"] = [CheckInRecord.model_validate(c) for c in raw.get("check_ins", [])]
        state["emergency_alerts"] = [EmergencyAlertRecord.model_validate(a) for a in raw.get("emergency_alerts", [])]
        state["notification_logs"] = [NotificationLogRecord.model_validate(n) for n in raw.get("notification_logs", [])]
        state["seq"].update(raw.get("seq", {}))
        logger.info(f"📂 Loaded local store from {self.path} ({len(state['users'])} users)")
        return state

    def _dump(self, state: Dict[str, Any]):
        payload = {
            "users": [u.model_dump(mode="json") for u in state["users"].values()],
            "check_ins": [c.model_dump(mode="json") for c in state["check_ins"]],
            "emergency_alerts": [a.model_dump(mode="json") for a in state["emergency_alerts"]],
            "notification_logs": [n.model_dump(mode="json") for n in state["notification_logs"]],
            "seq": state["seq"],
        }
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write local store {self.path}") from e

    def publish(self, state: Dict[str, Any]):
        if self.path:
            self._dump(state)
        self.state = state


class LocalStore(CheckInStore):
    """
    Handle on the local-only store, selected when no DATABASE_URL is set.

    Reads see committed state. The first write takes the database's write lock
    and stages changes on a private copy until commit() publishes it or
    rollback() drops it, so one handle never sees or discards another
    handle's uncommitted writes.
    """

    def __init__(self, path: Optional[str] = None, database: Optional[LocalDatabase] = None):
        self._db = database or LocalDatabase(path)
        self._working: Optional[Dict[str, Any]] = None

    @property
    def path(self) -> Optional[str]:
        return self._db.path

    def _read(self) -> Dict[str, Any]:
        return self._working if self._working is not None else self._db.state

    def _write(self) -> Dict[str, Any]:
        if self._working is None:
            if not self._db.write_lock.acquire(timeout=WRITE_LOCK_TIMEOUT_SECONDS):
                raise PersistenceError("Local store is busy with another write")
            self._working = copy.deepcopy(self._db.state)
        return self._working

    def _next_id(self, state: Dict[str, Any], table: str) -> int:
        state["seq"][table] += 1
        return state["seq"][table]

    # ---------------------- USERS ----------------------
    def get_user(self, user_id) -> Optional[UserRecord]:
        user = self._read()["users"].get(user_id)
        return user.model_copy() if user else None

    def list_users(self) -> List[UserRecord]:
        return [u.model_copy() for u in self._read()["users"].values()]

    def create_user(self, user_id, email, nickname, guardian_phone=None, created_at=None) -> UserRecord:
        if user_id in self._read()["users"]:
            raise ValidationError(f"User already exists: {user_id}")
        state = self._write()
        now = utc_now()
        user = UserRecord(
            id=user_id,
            email=email,
            nickname=nickname,
            guardian_phone=guardian_phone or None,
            streak=0,
            created_at=ensure_aware(created_at) or now,
            updated_at=now,
        )
        state["users"][user_id] = user
        return user.model_copy()

    def update_user_settings(self, user_id, nickname=UNSET, guardian_phone=UNSET) -> Optional[UserRecord]:
        if user_id not in self._read()["users"]:
            return None
        state = self._write()
        changes = {"updated_at": utc_now()}
        if nickname is not UNSET:
            changes["nickname"] = nickname
        if guardian_phone is not UNSET:
            changes["guardian_phone"] = guardian_phone or None
        user = state["users"][user_id].model_copy(update=changes)
        state["users"][user_id] = user
        return user.model_copy()

    def set_push_subscription(self, user_id, subscription) -> bool:
        if user_id not in self._read()["users"]:
            return False
        state = self._write()
        state["users"][user_id] = state["users"][user_id].model_copy(update={"push_subscription": subscription or None})
        return True

    def update_streak(self, user_id, expected_last_check_in, streak, last_check_in) -> bool:
        state = self._write()
        user = state["users"].get(user_id)
        if not user or user.last_check_in != ensure_aware(expected_last_check_in):
            return False
        state["users"][user_id] = user.model_copy(update={
            "streak": streak,
            "last_check_in": ensure_aware(last_check_in),
            "updated_at": utc_now(),
        })
        return True

    def find_unresponsive_users(self, cutoff, require_guardian=True) -> List[UserRecord]:
        cutoff = ensure_aware(cutoff)
        users = [
            u for u in self._read()["users"].values()
            if u.last_check_in is None or u.last_check_in < cutoff
        ]
        if require_guardian:
            users = [u for u in users if u.has_guardian]
        users.sort(key=lambda u: (u.last_check_in is not None, u.last_check_in or _MIN_TS))
        return [u.model_copy() for u in users]

    def users_with_push_subscription(self) -> List[UserRecord]:
        return [u.model_copy() for u in self._read()["users"].values() if u.push_subscription]

    # ---------------------- CHECK-INS ----------------------
    def add_check_in(self, user_id, response, responded_at, scheduled_at, is_missed=False) -> CheckInRecord:
        state = self._write()
        record = CheckInRecord(
            id=self._next_id(state, "check_ins"),
            user_id=user_id,
            response=response,
            responded_at=responded_at,
            scheduled_at=scheduled_at,
            is_missed=is_missed,
            created_at=utc_now(),
        )
        state["check_ins"].append(record)
        return record.model_copy()

    def latest_check_in_since(self, user_id, since) -> Optional[CheckInRecord]:
        since = ensure_aware(since)
        rows = [
            c for c in self._read()["check_ins"]
            if c.user_id == user_id and not c.is_missed
            and c.responded_at is not None and c.responded_at >= since
        ]
        if not rows:
            return None
        return max(rows, key=lambda c: (c.responded_at, c.id)).model_copy()

    def list_check_ins(self, user_id, limit=30, start=None, end=None) -> List[CheckInRecord]:
        start, end = ensure_aware(start), ensure_aware(end)
        rows = [c for c in self._read()["check_ins"] if c.user_id == user_id]
        if start is not None:
            rows = [c for c in rows if c.scheduled_at >= start]
        if end is not None:
            rows = [c for c in rows if c.scheduled_at < end]
        rows.sort(key=lambda c: (c.scheduled_at, c.id), reverse=True)
        return [c.model_copy() for c in rows[:limit]]

    def checked_in_user_ids_since(self, since) -> Set[str]:
        since = ensure_aware(since)
        return {
            c.user_id for c in self._read()["check_ins"]
            if not c.is_missed and c.responded_at is not None and c.responded_at >= since
        }

    def user_ids_with_entry_between(self, start, end) -> Set[str]:
        start, end = ensure_aware(start), ensure_aware(end)
        return {c.user_id for c in self._read()["check_ins"] if start <= c.scheduled_at < end}

    # ---------------------- ALERTS & NOTIFICATIONS ----------------------
    def add_emergency_alert(self, user_id, guardian_phone, message, sent_at, success) -> EmergencyAlertRecord:
        state = self._write()
        record = EmergencyAlertRecord(
            id=self._next_id(state, "emergency_alerts"),
            user_id=user_id,
            guardian_phone=guardian_phone,
            message=message,
            sent_at=sent_at,
            success=success,
        )
        state["emergency_alerts"].append(record)
        return record.model_copy()

    def alerted_user_ids_since(self, since) -> Set[str]:
        since = ensure_aware(since)
        return {a.user_id for a in self._read()["emergency_alerts"] if a.sent_at >= since}

    def list_recent_alerts(self, limit=20) -> List[EmergencyAlertRecord]:
        rows = sorted(self._read()["emergency_alerts"], key=lambda a: (a.sent_at, a.id), reverse=True)
        return [a.model_copy() for a in rows[:limit]]

    def add_notification_log(self, user_id, notification_type, sent_at, success) -> NotificationLogRecord:
        state = self._write()
        record = NotificationLogRecord(
            id=self._next_id(state, "notification_logs"),
            user_id=user_id,
            notification_type=notification_type,
            sent_at=sent_at,
            success=success,
        )
        state["notification_logs"].append(record)
        return record.model_copy()

    def list_notification_logs(self, user_id=None, limit=50) -> List[NotificationLogRecord]:
        rows = [n for n in self._read()["notification_logs"] if user_id is None or n.user_id == user_id]
        rows.sort(key=lambda n: (n.sent_at, n.id), reverse=True)
        return [n.model_copy() for n in rows[:limit]]

    # ---------------------- UNIT OF WORK ----------------------
    def commit(self):
        if self._working is None:
            return
        try:
            self._db.publish(self._working)
        finally:
            self._working = None
            self._db.write_lock.release()

    def rollback(self):
        if self._working is None:
            return
        self._working = None
        self._db.write_lock.release()

    def close(self):
        # Uncommitted writes die with the handle
        self.rollback()


class LocalStoreFactory(StoreFactory):
    kind = "local"

    def __init__(self, path: Optional[str] = None):
        self.database = LocalDatabase(path)

    def open(self) -> LocalStore:
        return LocalStore(database=self.database)
