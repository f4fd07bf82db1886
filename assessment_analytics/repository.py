"""Activity storage and the activity statistics built on it, over sqlite3."""

from __future__ import annotations

import sqlite3
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import Activity, PaginationParams, SuspiciousActivity

_STORED_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL DEFAULT '',
    email TEXT NOT NULL DEFAULT '',
    role TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS assessments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL DEFAULT '',
    created_by_id INTEGER
);
CREATE TABLE IF NOT EXISTS attempts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    assessment_id INTEGER NOT NULL,
    started_at TEXT
);
CREATE TABLE IF NOT EXISTS activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    action TEXT NOT NULL DEFAULT '',
    assessment_id INTEGER,
    details TEXT NOT NULL DEFAULT '',
    ip_address TEXT NOT NULL DEFAULT '',
    user_agent TEXT NOT NULL DEFAULT '',
    timestamp TEXT
);
CREATE INDEX IF NOT EXISTS idx_activities_timestamp ON activities (timestamp);
CREATE TABLE IF NOT EXISTS suspicious_activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    attempt_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    assessment_id INTEGER NOT NULL,
    type TEXT NOT NULL DEFAULT '',
    details TEXT NOT NULL DEFAULT '',
    severity TEXT NOT NULL DEFAULT '',
    timestamp TEXT,
    created_at TEXT
);
"""

_ACTIVITY_COLUMNS = "id, user_id, action, assessment_id, details, ip_address, user_agent, timestamp"
_SUSPICIOUS_COLUMNS = "id, attempt_id, user_id, assessment_id, type, details, severity, timestamp, created_at"

_EVENT_TYPES = {
    "LOGIN": "USER_ACTIVITY",
    "ASSESSMENT_START": "ASSESSMENT_STARTED",
    "ASSESSMENT_SUBMIT": "ASSESSMENT_COMPLETED",
    "SUSPICIOUS_ACTIVITY": "SUSPICIOUS_ACTIVITY",
}


def create_schema(connection: sqlite3.Connection) -> None:
    """Create the tables the repository reads and writes, if missing."""
    connection.executescript(_SCHEMA)


def _to_stored(moment: datetime | None) -> str | None:
    if moment is None:
        return None
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return moment.strftime(_STORED_FORMAT)


def _from_stored(text: str | None) -> datetime | None:
    if text is None:
        return None
    return datetime.strptime(text, _STORED_FORMAT).replace(tzinfo=timezone.utc)


def _since(delta: timedelta) -> str:
    return _to_stored(datetime.now(timezone.utc) - delta)


def _filter_value(value: Any) -> str | None:
    if isinstance(value, datetime):
        return _to_stored(value)
    if isinstance(value, str) and value:
        return value
    return None


def _activity_from_row(row: tuple) -> Activity:
    id_, user_id, action, assessment_id, details, ip_address, user_agent, timestamp = row
    return Activity(
        id=id_,
        user_id=user_id,
        action=action,
        assessment_id=assessment_id,
        details=details,
        ip_address=ip_address,
        user_agent=user_agent,
        timestamp=_from_stored(timestamp),
    )


def _suspicious_from_row(row: tuple) -> SuspiciousActivity:
    id_, attempt_id, user_id, assessment_id, type_, details, severity, timestamp, created_at = row
    return SuspiciousActivity(
        id=id_,
        attempt_id=attempt_id,
        user_id=user_id,
        assessment_id=assessment_id,
        type=type_,
        details=details,
        severity=severity,
        timestamp=_from_stored(timestamp),
        created_at=_from_stored(created_at),
    )


class ActivityRepository:
    """Reads and writes activity records on a sqlite3 connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._conn = connection

    def _insert(self, activity: Activity) -> None:
        cursor = self._conn.execute(
            "INSERT INTO activities (user_id, action, assessment_id, details, ip_address, user_agent, timestamp)"
            " VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                activity.user_id,
                activity.action,
                activity.assessment_id,
                activity.details,
                activity.ip_address,
                activity.user_agent,
                _to_stored(activity.timestamp),
            ),
        )
        activity.id = cursor.lastrowid

    def create(self, activity: Activity) -> None:
        """Store the activity and set its id."""
        with self._conn:
            self._insert(activity)

    def bulk_create(self, activities: Iterable[Activity]) -> None:
        """Store all activities in one transaction, setting their ids."""
        with self._conn:
            for activity in activities:
                self._insert(activity)

    def _page_activities(
        self, where: list[str], args: list[Any], params: PaginationParams
    ) -> tuple[list[Activity], int]:
        condition = " AND ".join(where)
        (total,) = self._conn.execute(f"SELECT COUNT(*) FROM activities WHERE {condition}", args).fetchone()
        order = params.order_clause("timestamp DESC")
        rows = self._conn.execute(
            f"SELECT {_ACTIVITY_COLUMNS} FROM activities WHERE {condition} ORDER BY {order} LIMIT ? OFFSET ?",
            [*args, params.limit, params.offset],
        ).fetchall()
        return [_activity_from_row(row) for row in rows], total

    def find_by_user_id(self, user_id: int, params: PaginationParams) -> tuple[list[Activity], int]:
        """Return one page of a user's activities and the total, honouring "from"/"to" filters."""
        where = ["user_id = ?"]
        args: list[Any] = [user_id]
        for key, operator in (("from", ">="), ("to", "<=")):
            value = _filter_value((params.filters or {}).get(key))
            if value is not None:
                where.append(f"timestamp {operator} ?")
                args.append(value)
        return self._page_activities(where, args, params)

    def find_by_assessment_id(self, assessment_id: int, params: PaginationParams) -> tuple[list[Activity], int]:
        return self._page_activities(["assessment_id = ?"], [assessment_id], params)

    def find_suspicious_activity(
        self, user_id: int, attempt_id: int, params: PaginationParams
    ) -> tuple[list[SuspiciousActivity], int]:
        condition = "user_id = ? AND attempt_id = ?"
        args = [user_id, attempt_id]
        (total,) = self._conn.execute(
            f"SELECT COUNT(*) FROM suspicious_activities WHERE {condition}", args
        ).fetchone()
        order = params.order_clause("suspicious_activities.created_at DESC")
        rows = self._conn.execute(
            f"SELECT {_SUSPICIOUS_COLUMNS} FROM suspicious_activities WHERE {condition}"
            f" ORDER BY {order} LIMIT ? OFFSET ?",
            [*args, params.limit, params.offset],
        ).fetchall()
        return [_suspicious_from_row(row) for row in rows], total

    def get_daily_active_users(self, days: int) -> list[dict[str, Any]]:
        """Distinct users per calendar day (UTC) over the last ``days`` days."""
        rows = self._conn.execute(
            "SELECT DATE(timestamp) AS date, COUNT(DISTINCT user_id) AS count FROM activities"
            " WHERE timestamp >= ? GROUP BY DATE(timestamp) ORDER BY date",
            (_since(timedelta(days=days)),),
        ).fetchall()
        return [{"date": date, "count": count} for date, count in rows]

    def get_activity_by_hour(self) -> list[dict[str, Any]]:
        """Activity counts per hour of day over the last seven days."""
        rows = self._conn.execute(
            "SELECT CAST(strftime('%H', timestamp) AS INTEGER) AS hour, COUNT(*) AS count FROM activities"
            " WHERE timestamp >= ? GROUP BY hour ORDER BY hour",
            (_since(timedelta(days=7)),),
        ).fetchall()
        return [{"hour": hour, "count": count} for hour, count in rows]

    def get_activity_by_type(self) -> list[dict[str, Any]]:
        """Activity counts per action over the last thirty days, most frequent first."""
        rows = self._conn.execute(
            "SELECT action AS type, COUNT(*) AS count FROM activities"
            " WHERE timestamp >= ? GROUP BY action ORDER BY count DESC, type",
            (_since(timedelta(days=30)),),
        ).fetchall()
        return [{"type": type_, "count": count} for type_, count in rows]

    def _distinct_users_since(self, delta: timedelta) -> int:
        (count,) = self._conn.execute(
            "SELECT COUNT(DISTINCT user_id) FROM activities WHERE timestamp >= ?", (_since(delta),)
        ).fetchone()
        return count

    def get_total_active_users(self) -> int:
        """Distinct users with activity in the last thirty days."""
        return self._distinct_users_since(timedelta(days=30))

    def get_active_users(self, minutes: int) -> int:
        """Distinct users with activity in the last ``minutes`` minutes."""
        return self._distinct_users_since(timedelta(minutes=minutes))

    def count_by_period(self, days: int) -> int:
        (count,) = self._conn.execute(
            "SELECT COUNT(*) FROM activities WHERE timestamp >= ?", (_since(timedelta(days=days)),)
        ).fetchone()
        return count

    def get_recent_activity(self, hours: int) -> list[dict[str, Any]]:
        """Up to fifty timeline entries from the last ``hours`` hours, newest first."""
        columns = ", ".join(f"a.{name.strip()}" for name in _ACTIVITY_COLUMNS.split(","))
        rows = self._conn.execute(
            f"SELECT {columns}, u.name FROM activities a LEFT JOIN users u ON u.id = a.user_id"
            " WHERE a.timestamp >= ? ORDER BY a.timestamp DESC LIMIT 50",
            (_since(timedelta(hours=hours)),),
        ).fetchall()
        timeline = []
        for *activity_row, user_name in rows:
            activity = _activity_from_row(tuple(activity_row))
            item: dict[str, Any] = {
                "id": activity.id,
                "type": _EVENT_TYPES.get(activity.action, "OTHER"),
                "user": user_name or "",
                "userId": activity.user_id,
                "details": activity.details,
                "timestamp": activity.timestamp,
            }
            if activity.assessment_id is not None:
                item["assessmentId"] = activity.assessment_id
                item["assessment"] = f"Assessment {activity.assessment_id}"
            timeline.append(item)
        return timeline

    def get_trending(self) -> list[dict[str, Any]]:
        """The five assessments with the most activity in the last seven days."""
        rows = self._conn.execute(
            "SELECT a.assessment_id AS id, ass.title AS title, COUNT(*) AS activity_count"
            " FROM activities a JOIN assessments ass ON a.assessment_id = ass.id"
            " WHERE a.assessment_id IS NOT NULL AND a.timestamp >= ?"
            " GROUP BY a.assessment_id, ass.title ORDER BY activity_count DESC LIMIT 5",
            (_since(timedelta(days=7)),),
        ).fetchall()
        return [{"id": id_, "title": title, "activity_count": count} for id_, title, count in rows]