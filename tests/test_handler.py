import json
from datetime import datetime, timezone

import pytest

from assessment_analytics.handler import (
    AnalyticsHandler,
    Request,
    Response,
    pagination_params_from_query,
    severity_for,
)
from assessment_analytics.models import PaginationParams, SuspiciousActivity


class FakeService:
    def __init__(self, results=None, errors=None, on_call=None):
        self.results = results or {}
        self.errors = errors or {}
        self.on_call = on_call or {}
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.on_call:
            self.on_call[name](*args)
        if name in self.errors:
            raise self.errors[name]
        return self.results.get(name)

    def get_user_activity_analytics(self):
        return self._call("get_user_activity_analytics")

    def get_assessment_performance_analytics(self):
        return self._call("get_assessment_performance_analytics")

    def report_activity(self, activity):
        return self._call("report_activity", activity)

    def track_assessment_session(self, session_data):
        return self._call("track_assessment_session", session_data)

    def log_suspicious_activity(self, activity):
        return self._call("log_suspicious_activity", activity)

    def get_dashboard_summary(self):
        return self._call("get_dashboard_summary")

    def get_activity_timeline(self):
        return self._call("get_activity_timeline")

    def get_system_status(self):
        return self._call("get_system_status")

    def get_suspicious_activity(self, user_id, attempt_id, params):
        return self._call("get_suspicious_activity", user_id, attempt_id, params)


def called(service, name):
    return [args for call_name, args in service.calls if call_name == name]


def body_of(payload):
    return json.dumps(payload).encode()


DEFAULT_PARAMS = PaginationParams(
    page=0, limit=10, offset=0, sort_by="created_at", sort_dir="DESC", filters={}
)


@pytest.mark.parametrize(
    "method_name, payload",
    [
        ("get_user_activity_analytics", {"daily": 100.0}),
        ("get_assessment_performance_analytics", {"performance": "good"}),
        ("get_dashboard_summary", {"totalUsers": 1000.0}),
        ("get_activity_timeline", {"timeline": ["event1"]}),
        ("get_system_status", {"status": "healthy"}),
    ],
)
def test_simple_endpoints_return_service_result(method_name, payload):
    service = FakeService(results={method_name: payload})
    response = getattr(AnalyticsHandler(service), method_name)(Request())
    assert response.status == 200
    assert response.json() == payload
    assert len(called(service, method_name)) == 1


@pytest.mark.parametrize(
    "method_name",
    [
        "get_user_activity_analytics",
        "get_assessment_performance_analytics",
        "get_dashboard_summary",
        "get_activity_timeline",
        "get_system_status",
    ],
)
def test_simple_endpoints_service_error(method_name):
    service = FakeService(errors={method_name: RuntimeError("service error")})
    response = getattr(AnalyticsHandler(service), method_name)(Request())
    assert response.status == 500
    assert response.json()["status"] == "ERROR"


def test_report_activity_created():
    def assign(activity):
        activity.id = 1

    service = FakeService(on_call={"report_activity": assign})
    request = Request(
        method="POST",
        body=body_of({"action": "VIEW_PAGE", "assessmentId": 1, "details": "View homepage"}),
        claims={"id": "123"},
        remote_addr="127.0.0.1:5000",
        headers={"User-Agent": "test-agent"},
    )
    response = AnalyticsHandler(service).report_activity(request)
    assert response.status == 201
    data = response.json()
    assert data["id"] == 1
    assert data["userId"] == 123
    assert data["assessmentId"] == 1
    (args,) = called(service, "report_activity")
    activity = args[0]
    assert activity.action == "VIEW_PAGE"
    assert activity.ip_address == "127.0.0.1:5000"
    assert activity.user_agent == "test-agent"
    assert activity.timestamp is not None


def test_report_activity_uses_given_timestamp():
    service = FakeService()
    request = Request(
        body=body_of({"action": "X", "timestamp": "2024-01-02T03:04:05Z"}), claims={"id": "7"}
    )
    response = AnalyticsHandler(service).report_activity(request)
    assert response.status == 201
    activity = called(service, "report_activity")[0][0]
    assert activity.timestamp == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_report_activity_without_claims_is_unauthorized():
    service = FakeService()
    response = AnalyticsHandler(service).report_activity(Request(body=body_of({"action": "TEST"})))
    assert response.status == 401
    assert called(service, "report_activity") == []


def test_report_activity_invalid_json():
    service = FakeService()
    request = Request(body=b'{"action":', claims={"id": "123"})
    response = AnalyticsHandler(service).report_activity(request)
    assert response.status == 400
    assert response.json()["message"] == "Invalid input"
    assert called(service, "report_activity") == []


def test_report_activity_invalid_user_id():
    service = FakeService()
    request = Request(body=body_of({"action": "TEST"}), claims={"id": "abc"})
    response = AnalyticsHandler(service).report_activity(request)
    assert response.status == 400
    assert response.json()["message"] == "Invalid user ID"


def test_report_activity_service_error():
    service = FakeService(errors={"report_activity": RuntimeError("report error")})
    request = Request(body=body_of({"action": "TEST"}), claims={"id": "123"})
    response = AnalyticsHandler(service).report_activity(request)
    assert response.status == 500
    assert len(called(service, "report_activity")) == 1


def test_track_assessment_session_created():
    service = FakeService()
    request = Request(
        method="POST",
        path_params={"id": "1"},
        body=body_of({"action": "SESSION_START", "userAgent": "test-agent"}),
        claims={"id": "123"},
    )
    response = AnalyticsHandler(service).track_assessment_session(request)
    assert response.status == 201
    data = response.json()
    assert data["Action"] == "SESSION_START"
    assert data["UserAgent"] == "test-agent"
    assert data["UserID"] == 123
    assert data["AssessmentID"] == 1
    session = called(service, "track_assessment_session")[0][0]
    assert (session.user_id, session.assessment_id) == (123, 1)


def test_track_assessment_session_question_details():
    service = FakeService()
    request = Request(
        path_params={"id": "4"},
        body=body_of({"action": "ANSWER", "questionId": 9}),
        claims={"id": "5"},
    )
    response = AnalyticsHandler(service).track_assessment_session(request)
    assert response.status == 201
    assert response.json()["Details"] == "Question ID: 9"


def test_track_assessment_session_invalid_id():
    service = FakeService()
    request = Request(
        path_params={"id": "invalid"}, body=b'{"action":"START"}', claims={"id": "123"}
    )
    response = AnalyticsHandler(service).track_assessment_session(request)
    assert response.status == 400
    assert called(service, "track_assessment_session") == []


def test_track_assessment_session_service_error():
    service = FakeService(errors={"track_assessment_session": RuntimeError("track error")})
    request = Request(path_params={"id": "1"}, body=body_of({"action": "START"}), claims={"id": "123"})
    response = AnalyticsHandler(service).track_assessment_session(request)
    assert response.status == 500


def test_log_suspicious_activity_created():
    def assign(activity):
        activity.id = 99

    service = FakeService(on_call={"log_suspicious_activity": assign})
    payload = {
        "attemptID": "100",
        "assessmentId": "1",
        "type": "TAB_SWITCH",
        "details": "Switched too many times",
        "timestamp": "2024-05-06T07:08:09+02:00",
    }
    request = Request(body=body_of(payload), claims={"userID": "123"})
    response = AnalyticsHandler(service).log_suspicious_activity(request)
    assert response.status == 201
    data = response.json()
    assert data["id"] == 99
    assert data["severity"] == "LOW"
    assert data["attemptId"] == 100
    assert data["userId"] == 123


def test_log_suspicious_activity_invalid_input():
    service = FakeService()
    request = Request(body=b'{"type":', claims={"userID": "123"})
    response = AnalyticsHandler(service).log_suspicious_activity(request)
    assert response.status == 400
    assert called(service, "log_suspicious_activity") == []


def test_log_suspicious_activity_invalid_timestamp():
    service = FakeService()
    payload = {"attemptID": "100", "assessmentId": "1", "type": "TEST", "timestamp": "invalid-date"}
    request = Request(body=body_of(payload), claims={"userID": "123"})
    response = AnalyticsHandler(service).log_suspicious_activity(request)
    assert response.status == 400
    assert response.json()["message"] == "Invalid timestamp format"
    assert called(service, "log_suspicious_activity") == []


def test_log_suspicious_activity_invalid_attempt_id():
    service = FakeService()
    payload = {"attemptID": "", "assessmentId": "1", "type": "TEST"}
    request = Request(body=body_of(payload), claims={"userID": "123"})
    response = AnalyticsHandler(service).log_suspicious_activity(request)
    assert response.status == 400
    assert response.json()["message"] == "Invalid attempt ID"


def test_log_suspicious_activity_service_error():
    service = FakeService(errors={"log_suspicious_activity": RuntimeError("log error")})
    payload = {"attemptID": "100", "assessmentId": "1", "type": "TEST"}
    request = Request(body=body_of(payload), claims={"userID": "123"})
    response = AnalyticsHandler(service).log_suspicious_activity(request)
    assert response.status == 500
    assert len(called(service, "log_suspicious_activity")) == 1


@pytest.mark.parametrize(
    "event_type, expected",
    [
        ("TAB_SWITCHING", "HIGH"),
        ("MULTIPLE_FACES", "HIGH"),
        ("FACE_NOT_DETECTED", "MEDIUM"),
        ("LOOKING_AWAY", "MEDIUM"),
        ("TAB_SWITCH", "LOW"),
        ("", "LOW"),
    ],
)
def test_severity_for(event_type, expected):
    assert severity_for(event_type) == expected


def test_get_suspicious_activity_paginated():
    activities = [SuspiciousActivity(id=1, user_id=1, attempt_id=10)]
    service = FakeService(results={"get_suspicious_activity": (activities, 1)})
    request = Request(path_params={"userID": "1", "attemptID": "10"})
    response = AnalyticsHandler(service).get_suspicious_activity(request)
    assert response.status == 200
    data = response.json()
    assert data["totalElements"] == 1
    assert len(data["content"]) == 1
    assert data["content"][0]["attemptId"] == 10
    assert called(service, "get_suspicious_activity") == [(1, 10, DEFAULT_PARAMS)]


def test_get_suspicious_activity_invalid_user_id():
    service = FakeService()
    request = Request(path_params={"userID": "invalid", "attemptID": "10"})
    response = AnalyticsHandler(service).get_suspicious_activity(request)
    assert response.status == 400
    assert called(service, "get_suspicious_activity") == []


def test_get_suspicious_activity_invalid_attempt_id():
    service = FakeService()
    request = Request(path_params={"userID": "1", "attemptID": "invalid"})
    response = AnalyticsHandler(service).get_suspicious_activity(request)
    assert response.status == 400
    assert called(service, "get_suspicious_activity") == []


def test_get_suspicious_activity_service_error():
    service = FakeService(errors={"get_suspicious_activity": RuntimeError("fetch error")})
    request = Request(path_params={"userID": "1", "attemptID": "10"})
    response = AnalyticsHandler(service).get_suspicious_activity(request)
    assert response.status == 500
    assert called(service, "get_suspicious_activity") == [(1, 10, DEFAULT_PARAMS)]


def test_pagination_params_defaults():
    assert pagination_params_from_query({}) == DEFAULT_PARAMS


def test_pagination_params_from_values():
    params = pagination_params_from_query(
        {"page": "2", "limit": "5", "sortBy": "timestamp", "sortDir": "asc", "type": "X"}
    )
    assert params == PaginationParams(
        page=2, limit=5, offset=10, sort_by="timestamp", sort_dir="ASC", filters={"type": "X"}
    )


def test_pagination_params_ignores_bad_numbers():
    params = pagination_params_from_query({"page": "-1", "limit": "abc"})
    assert (params.page, params.limit, params.offset) == (0, 10, 0)


def test_response_encodes_datetimes():
    moment = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    response = Response(200, {"at": moment})
    assert response.json() == {"at": "2024-01-01T12:00:00+00:00"}