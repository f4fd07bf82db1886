"""Analytics built from the user, assessment, attempt and activity repositories."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Protocol

from .models import Activity, PaginationParams, SessionData, SuspiciousActivity

_LOGGER = logging.getLogger(__name__)


class _UserRepository(Protocol):
    def count_all(self) -> int: ...

    def get_user_stats(self) -> tuple[int, int]: ...

    def get_new_users_count(self, days: int) -> int: ...


class _AssessmentRepository(Protocol):
    def find_by_id(self, assessment_id: int) -> Any: ...

    def get_statistics(self) -> dict[str, Any]: ...


class _AttemptRepository(Protocol):
    def get_assessment_completion_rates(self) -> dict[str, Any]: ...

    def get_score_distribution(self) -> dict[str, Any]: ...

    def get_average_time_spent(self) -> dict[str, Any]: ...

    def get_most_challenging_assessments(self, limit: int) -> list[dict[str, Any]]: ...

    def get_most_successful_assessments(self, limit: int) -> list[dict[str, Any]]: ...

    def save_suspicious_activity(self, activity: SuspiciousActivity) -> None: ...

    def count_all(self) -> int: ...

    def count_by_period(self, days: int) -> int: ...

    def get_pass_rate(self) -> float: ...

    def count_recent_suspicious_activity(self, hours: int) -> int: ...


class _ActivityRepository(Protocol):
    def create(self, activity: Activity) -> None: ...

    def get_daily_active_users(self, days: int) -> list[dict[str, Any]]: ...

    def get_activity_by_hour(self) -> list[dict[str, Any]]: ...

    def get_activity_by_type(self) -> list[dict[str, Any]]: ...

    def get_total_active_users(self) -> int: ...

    def get_recent_activity(self, hours: int) -> list[dict[str, Any]]: ...

    def get_active_users(self, minutes: int) -> int: ...

    def find_suspicious_activity(
        self, user_id: int, attempt_id: int, params: PaginationParams
    ) -> tuple[list[SuspiciousActivity], int]: ...


class AnalyticsService:
    """Aggregates repository data into analytics and dashboard views.

    Repository errors are logged and propagated unchanged.
    """

    def __init__(
        self,
        user_repo: _UserRepository | None,
        assessment_repo: _AssessmentRepository | None,
        attempt_repo: _AttemptRepository | None,
        activity_repo: _ActivityRepository | None,
        log: logging.Logger | None = None,
    ) -> None:
        self._users = user_repo
        self._assessments = assessment_repo
        self._attempts = attempt_repo
        self._activities = activity_repo
        self._log = log or _LOGGER

    def _fetch(self, where: str, what: str, call, *args):
        try:
            return call(*args)
        except Exception as error:
            self._log.error("[AnalyticsService][%s] failed to get %s: %s", where, what, error)
            raise

    def get_user_activity_analytics(self) -> dict[str, Any]:
        where = "GetUserActivityAnalytics"
        daily = self._fetch(where, "daily active users", self._activities.get_daily_active_users, 7)
        by_hour = self._fetch(where, "activity by hour", self._activities.get_activity_by_hour)
        by_type = self._fetch(where, "activity by type", self._activities.get_activity_by_type)
        total_active = self._fetch(where, "total active users", self._activities.get_total_active_users)
        new_users = self._fetch(where, "new users last week", self._users.get_new_users_count, 7)
        return {
            "dailyActiveUsers": daily,
            "activityByHour": by_hour,
            "activityByType": by_type,
            "totalActiveUsers": total_active,
            "newUsersLastWeek": new_users,
        }

    def get_assessment_performance_analytics(self) -> dict[str, Any]:
        where = "GetAssessmentPerformanceAnalytics"
        attempts = self._attempts
        completion = self._fetch(
            where, "assessment completion rates", attempts.get_assessment_completion_rates
        )
        distribution = self._fetch(where, "score distribution", attempts.get_score_distribution)
        average_time = self._fetch(where, "average time spent", attempts.get_average_time_spent)
        challenging = self._fetch(
            where, "most challenging assessments", attempts.get_most_challenging_assessments, 2
        )
        successful = self._fetch(
            where, "most successful assessments", attempts.get_most_successful_assessments, 2
        )
        return {
            "assessmentCompletionRates": completion,
            "scoreDistribution": distribution,
            "averageTimeSpent": average_time,
            "mostChallenging": challenging,
            "mostSuccessful": successful,
        }

    def report_activity(self, activity: Activity) -> None:
        """Store the activity, stamping it with the current time if it has none."""
        if activity.timestamp is None:
            activity.timestamp = datetime.now()
        self._activities.create(activity)

    def track_assessment_session(self, session_data: SessionData) -> None:
        """Record a session event after checking that the assessment exists."""
        try:
            self._assessments.find_by_id(session_data.assessment_id)
        except Exception as error:
            self._log.error("[AnalyticsService][TrackAssessmentSession] assessment not found: %s", error)
            raise
        self._activities.create(
            Activity(
                user_id=session_data.user_id,
                action=session_data.action,
                assessment_id=session_data.assessment_id,
                details=session_data.details,
                user_agent=session_data.user_agent,
                timestamp=session_data.timestamp,
            )
        )

    def log_suspicious_activity(self, activity: SuspiciousActivity) -> None:
        """Store the event, stamping it with the current time if it has none."""
        if activity.timestamp is None:
            activity.timestamp = datetime.now()
        self._attempts.save_suspicious_activity(activity)

    def get_dashboard_summary(self) -> dict[str, Any]:
        where = "GetDashboardSummary"
        total_users = self._fetch(where, "total users", self._users.count_all)
        active_users, inactive_users = self._fetch(where, "user stats", self._users.get_user_stats)
        new_this_week = self._fetch(where, "new users this week", self._users.get_new_users_count, 7)
        stats = self._fetch(where, "assessment stats", self._assessments.get_statistics)
        total_attempts = self._fetch(where, "total attempts", self._attempts.count_all)
        attempts_this_week = self._fetch(where, "attempts this week", self._attempts.count_by_period, 7)
        pass_rate = self._fetch(where, "pass rate", self._attempts.get_pass_rate)
        users_online = self._fetch(where, "users online", self._activities.get_active_users, 15)
        recent_suspicious = self._fetch(
            where, "recent suspicious activity", self._attempts.count_recent_suspicious_activity, 24
        )
        return {
            "users": {
                "total": total_users,
                "active": active_users,
                "inactive": inactive_users,
                "newThisWeek": new_this_week,
            },
            "assessments": {
                "total": stats.get("totalAssessments"),
                "active": stats.get("activeAssessments"),
                "draft": stats.get("draftAssessments"),
                "expired": stats.get("expiredAssessments"),
                "newThisWeek": new_this_week,
            },
            "activity": {
                "assessmentAttempts": {
                    "total": total_attempts,
                    "thisWeek": attempts_this_week,
                    "passRate": pass_rate,
                },
                "usersOnline": users_online,
                "recentSuspiciousActivity": recent_suspicious,
            },
        }

    def get_activity_timeline(self) -> dict[str, Any]:
        timeline = self._fetch(
            "GetActivityTimeline", "recent activity", self._activities.get_recent_activity, 48
        )
        return {"timeline": timeline}

    def get_system_status(self) -> dict[str, Any]:
        """A fixed health report; no services are probed."""
        return {
            "status": "healthy",
            "services": {
                "database": "operational",
                "storage": "operational",
                "webcam": "operational",
                "ai": "operational",
            },
            "statistics": {
                "uptime": "15 days, 7 hours",
                "activeConnections": 56,
                "averageResponseTime": 124,
                "cpuUsage": 35.2,
                "memoryUsage": 42.8,
            },
            "lastChecked": datetime.now(),
        }

    def get_suspicious_activity(
        self, user_id: int, attempt_id: int, params: PaginationParams
    ) -> tuple[list[SuspiciousActivity], int]:
        return self._fetch(
            "GetSuspiciousActivity",
            "suspicious activities",
            self._activities.find_suspicious_activity,
            user_id,
            attempt_id,
            params,
        )