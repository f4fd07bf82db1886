"""Records handled by the analytics repository, service and handlers."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

_COLUMN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")
_DIRECTIONS = frozenset({"", "ASC", "DESC"})


def _iso(moment: datetime | None) -> str | None:
    return moment.isoformat() if moment is not None else None


@dataclass
class User:
    id: int = 0
    name: str = ""
    email: str = ""
    role: str = ""


@dataclass
class Activity:
    user_id: int = 0
    action: str = ""
    assessment_id: int | None = None
    details: str = ""
    ip_address: str = ""
    user_agent: str = ""
    timestamp: datetime | None = None
    id: int = 0
    user: User | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "action": self.action,
            "assessmentId": self.assessment_id,
            "details": self.details,
            "ipAddress": self.ip_address,
            "userAgent": self.user_agent,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class SuspiciousActivity:
    user_id: int = 0
    assessment_id: int = 0
    attempt_id: int = 0
    type: str = ""
    details: str = ""
    severity: str = ""
    timestamp: datetime | None = None
    id: int = 0
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "attemptId": self.attempt_id,
            "userId": self.user_id,
            "assessmentId": self.assessment_id,
            "type": self.type,
            "details": self.details,
            "severity": self.severity,
            "timestamp": _iso(self.timestamp),
            "createdAt": _iso(self.created_at),
        }


@dataclass
class SessionData:
    user_id: int = 0
    assessment_id: int = 0
    action: str = ""
    details: str = ""
    user_agent: str = ""
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "UserID": self.user_id,
            "AssessmentID": self.assessment_id,
            "Action": self.action,
            "Details": self.details,
            "UserAgent": self.user_agent,
            "Timestamp": _iso(self.timestamp),
        }


@dataclass
class PaginationParams:
    page: int = 0
    limit: int = 10
    offset: int = 0
    sort_by: str = ""
    sort_dir: str = ""
    filters: dict[str, Any] = field(default_factory=dict)

    def order_clause(self, default: str) -> str:
        """Return the ORDER BY expression, or the default when no sort column is set."""
        if not self.sort_by:
            return default
        if not _COLUMN.fullmatch(self.sort_by):
            raise ValueError(f"invalid sort column {self.sort_by!r}")
        direction = self.sort_dir.upper()
        if direction not in _DIRECTIONS:
            raise ValueError(f"invalid sort direction {self.sort_dir!r}")
        return f"{self.sort_by} {direction}".rstrip()