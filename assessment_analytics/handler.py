"""HTTP-level handlers for the analytics endpoints, independent of any web framework."""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any

from .models import Activity, PaginationParams, SessionData, SuspiciousActivity

_UINT32_MAX = 0xFFFFFFFF
_UINT64_MAX = 0xFFFFFFFFFFFFFFFF
_DIGITS = re.compile(r"[0-9]+")
_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)
_DECODER = json.JSONDecoder()

_SEVERITIES = {
    "TAB_SWITCHING": "HIGH",
    "MULTIPLE_FACES": "HIGH",
    "FACE_NOT_DETECTED": "MEDIUM",
    "LOOKING_AWAY": "MEDIUM",
}

_DEFAULT_PAGE = 0
_DEFAULT_LIMIT = 10
_DEFAULT_SORT_BY = "created_at"
_DEFAULT_SORT_DIR = "DESC"


@dataclass
class Request:
    """An incoming request: route variables, query, raw body and the caller's token claims."""

    method: str = "GET"
    path_params: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    claims: dict[str, Any] | None = None
    remote_addr: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def user_agent(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "user-agent":
                return value
        return ""


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    raise TypeError(f"cannot encode {type(value).__name__} as JSON")


@dataclass
class Response:
    """A response: status code and a JSON-encodable payload."""

    status: int
    payload: Any

    @property
    def body(self) -> bytes:
        return json.dumps(self.payload, default=_json_default).encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.body)


def _error(status: int, code: str, message: str) -> Response:
    return Response(status, {"status": code, "message": message})


def _bad_request(message: str) -> Response:
    return _error(400, "BAD_REQUEST", message)


def _server_error(message: str) -> Response:
    return _error(500, "ERROR", message)


def _unauthorized() -> Response:
    return _error(401, "UNAUTHORIZED", "User ID not found in context")


def _parse_uint32(text: Any) -> int:
    """Parse a decimal unsigned 32-bit integer; raise ValueError otherwise."""
    if not isinstance(text, str) or not _DIGITS.fullmatch(text):
        raise ValueError(f"invalid unsigned integer {text!r}")
    value = int(text)
    if value > _UINT32_MAX:
        raise ValueError(f"value out of range: {text!r}")
    return value


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid RFC 3339 timestamp {text!r}")
    year, month, day, hour, minute, second, fraction, offset = match.groups()
    micro = int((fraction or "0")[:6].ljust(6, "0"))
    if offset in ("Z", "z"):
        zone = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        zone = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[4:6])))
    return datetime(
        int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=zone
    )


def _decode_object(body: bytes | str) -> dict[str, Any]:
    """Decode the first JSON value of the body, which must be an object or null."""
    text = body.decode("utf-8") if isinstance(body, bytes) else body
    value, _ = _DECODER.raw_decode(text.lstrip())
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("request body is not a JSON object")
    return value


def _lookup(data: Mapping[str, Any], name: str) -> Any:
    if name in data:
        return data[name]
    folded = name.casefold()
    for key, value in data.items():
        if key.casefold() == folded:
            return value
    return None


def _string_field(data: Mapping[str, Any], name: str) -> str:
    value = _lookup(data, name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a string")
    return value


def _uint_field(data: Mapping[str, Any], name: str) -> int | None:
    value = _lookup(data, name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= _UINT64_MAX:
        raise ValueError(f"field {name!r} must be an unsigned integer")
    return value


def _time_field(data: Mapping[str, Any], name: str) -> datetime | None:
    value = _lookup(data, name)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"field {name!r} must be a timestamp string")
    return _parse_rfc3339(value)


def _claim(request: Request, key: str) -> tuple[bool, Any]:
    claims = request.claims or {}
    return (key in claims, claims.get(key))


def _query_int(query: dict[str, str], key: str, default: int, minimum: int) -> int:
    raw = query.pop(key, None)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return default
    return value if value >= minimum else default


def pagination_params_from_query(query: Mapping[str, str] | None) -> PaginationParams:
    """Build paging parameters from query values; other non-empty values become filters."""
    remaining = dict(query or {})
    page = _query_int(remaining, "page", _DEFAULT_PAGE, 0)
    limit = _query_int(remaining, "limit", _DEFAULT_LIMIT, 1)
    sort_by = remaining.pop("sortBy", "") or _DEFAULT_SORT_BY
    sort_dir = (remaining.pop("sortDir", "") or _DEFAULT_SORT_DIR).upper()
    filters = {key: value for key, value in remaining.items() if value}
    return PaginationParams(
        page=page,
        limit=limit,
        offset=page * limit,
        sort_by=sort_by,
        sort_dir=sort_dir,
        filters=filters,
    )


def _pagination_response(content: list[Any], total: int, params: PaginationParams) -> dict[str, Any]:
    return {
        "content": content,
        "totalElements": total,
        "totalPages": math.ceil(total / params.limit) if params.limit > 0 else 0,
        "page": params.page,
        "size": params.limit,
    }


def severity_for(event_type: str) -> str:
    """Severity assigned to a suspicious-activity event type."""
    return _SEVERITIES.get(event_type, "LOW")


class AnalyticsHandler:
    """Turns requests into analytics service calls and their results into responses."""

    def __init__(self, analytics_service: Any) -> None:
        self._service = analytics_service

    def _fetch(self, call: Callable[[], Any], failure: str) -> Response:
        try:
            result = call()
        except Exception:
            return _server_error(failure)
        return Response(200, result)

    def get_user_activity_analytics(self, request: Request) -> Response:
        return self._fetch(
            self._service.get_user_activity_analytics, "Failed to fetch user activity analytics"
        )

    def get_assessment_performance_analytics(self, request: Request) -> Response:
        return self._fetch(
            self._service.get_assessment_performance_analytics,
            "Failed to fetch assessment performance analytics",
        )

    def get_dashboard_summary(self, request: Request) -> Response:
        return self._fetch(self._service.get_dashboard_summary, "Failed to fetch dashboard summary")

    def get_activity_timeline(self, request: Request) -> Response:
        return self._fetch(self._service.get_activity_timeline, "Failed to fetch activity timeline")

    def get_system_status(self, request: Request) -> Response:
        return self._fetch(self._service.get_system_status, "Failed to fetch system status")

    def report_activity(self, request: Request) -> Response:
        present, user_id = _claim(request, "id")
        if not present:
            return _unauthorized()
        try:
            data = _decode_object(request.body)
            action = _string_field(data, "action")
            assessment_id = _uint_field(data, "assessmentId")
            details = _string_field(data, "details")
            timestamp = _time_field(data, "timestamp")
        except ValueError:
            return _bad_request("Invalid input")
        try:
            user = _parse_uint32(user_id)
        except ValueError:
            return _bad_request("Invalid user ID")

        activity = Activity(
            user_id=user,
            action=action,
            assessment_id=assessment_id,
            details=details,
            ip_address=request.remote_addr,
            user_agent=request.user_agent,
            timestamp=timestamp if timestamp is not None else datetime.now(),
        )
        try:
            self._service.report_activity(activity)
        except Exception:
            return _server_error("Failed to report activity")
        return Response(201, activity.to_dict())

    def track_assessment_session(self, request: Request) -> Response:
        present, user_id = _claim(request, "id")
        if not present:
            return _unauthorized()
        try:
            assessment_id = _parse_uint32(request.path_params.get("id", ""))
        except ValueError:
            return _bad_request("Invalid assessment ID")
        try:
            data = _decode_object(request.body)
            action = _string_field(data, "action")
            timestamp = _time_field(data, "timestamp")
            user_agent = _string_field(data, "userAgent")
            question_id = _uint_field(data, "questionId")
        except ValueError:
            return _bad_request("Invalid input")
        try:
            user = _parse_uint32(user_id)
        except ValueError:
            return _bad_request("Invalid user ID")

        session = SessionData(
            user_id=user,
            assessment_id=assessment_id,
            action=action,
            user_agent=user_agent,
            details=f"Question ID: {question_id}" if question_id is not None else "",
            timestamp=timestamp if timestamp is not None else datetime.now(),
        )
        try:
            self._service.track_assessment_session(session)
        except Exception:
            return _server_error("Failed to track assessment session")
        return Response(201, session.to_dict())

    def log_suspicious_activity(self, request: Request) -> Response:
        present, user_id = _claim(request, "userID")
        if not present:
            return _unauthorized()
        try:
            data = _decode_object(request.body)
            attempt_text = _string_field(data, "attemptID")
            assessment_text = _string_field(data, "assessmentId")
            event_type = _string_field(data, "type")
            details = _string_field(data, "details")
            timestamp_text = _string_field(data, "timestamp")
            _string_field(data, "userAgent")
            _string_field(data, "imageData")
        except ValueError:
            return _bad_request("Invalid input")
        try:
            assessment_id = _parse_uint32(assessment_text)
        except ValueError:
            return _bad_request("Invalid assessment ID")
        try:
            user = _parse_uint32(user_id)
        except ValueError:
            return _bad_request("Invalid user ID")
        try:
            attempt_id = _parse_uint32(attempt_text)
        except ValueError:
            return _bad_request("Invalid attempt ID")

        if timestamp_text:
            try:
                timestamp = _parse_rfc3339(timestamp_text)
            except ValueError:
                return _bad_request("Invalid timestamp format")
        else:
            timestamp = datetime.now()

        activity = SuspiciousActivity(
            attempt_id=attempt_id,
            user_id=user,
            assessment_id=assessment_id,
            type=event_type,
            details=details,
            timestamp=timestamp,
            severity=severity_for(event_type),
        )
        try:
            self._service.log_suspicious_activity(activity)
        except Exception:
            return _server_error("Failed to log suspicious activity")
        return Response(201, activity.to_dict())

    def get_suspicious_activity(self, request: Request) -> Response:
        try:
            user_id = _parse_uint32(request.path_params.get("userID", ""))
        except ValueError:
            return _bad_request("Invalid user ID")
        params = pagination_params_from_query(request.query)
        try:
            attempt_id = _parse_uint32(request.path_params.get("attemptID", ""))
        except ValueError:
            return _bad_request("Invalid assessment ID")
        try:
            activities, total = self._service.get_suspicious_activity(user_id, attempt_id, params)
        except Exception:
            return _server_error("Failed to fetch suspicious activity")
        content = [activity.to_dict() for activity in activities or []]
        return Response(200, _pagination_response(content, total, params))