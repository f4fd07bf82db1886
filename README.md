# assessment-analytics

Activity tracking and analytics for an online assessment service.
The package records user activity and suspicious proctoring events.
It summarises them into views for teachers and administrators.

## Installation

```
pip install .
```

To run the test suite, install the test extra:

```
pip install ".[test]"
pytest
```

## Modules

### `assessment_analytics.config`

Settings come from environment variables. A `.env` file in the working
directory is read first if one is present.

- `load()` returns a frozen `Config`. It holds `server` (`ServerConfig`),
  `database` (`DatabaseConfig`), `auth` (`AuthConfig`) and `log`
  (`LogConfig`).
- `PostgresConfig.from_env()` reads `DB_USER`, `DB_PORT`, `DB_PASSWORD`
  and `DB_NAME`. A variable that is not set becomes an empty string.
- `get_env`, `get_bool_env`, `get_int_env` and `get_duration_env` each
  read one variable. If the variable is missing or cannot be parsed, they
  return the default you pass.
- `parse_duration` reads durations such as `"300ms"`, `"1.5h"` or
  `"2h45m"`. The units are `ns`, `us`, `ms`, `s`, `m` and `h`. It returns
  a `timedelta` and raises `ValueError` if the text is malformed.

| Variable | Default |
| --- | --- |
| `SERVER_PORT` | `8080` |
| `SERVER_READ_TIMEOUT` | `15s` |
| `SERVER_WRITE_TIMEOUT` | `15s` |
| `DB_HOST` | `localhost` |
| `DB_PORT` | `5432` |
| `DB_USER` | `postgres` |
| `DB_NAME` | `secure_assessment` |
| `DB_SSL_MODE` | `disable` |
| `ACCESS_TOKEN_EXPIRY` | `30m` |
| `REFRESH_TOKEN_EXPIRY` | `168h` |
| `PASSWORD_RESET_EXPIRY` | `24h` |
| `LOG_LEVEL` | `info` |

`DB_PASSWORD` and `JWT_SECRET` have placeholder defaults. Set them
yourself.

### `assessment_analytics.models`

- The dataclasses are `User`, `Activity`, `SuspiciousActivity` and
  `SessionData`.
- `Activity`, `SuspiciousActivity` and `SessionData` each have a
  `to_dict()` method. It returns the record as a JSON-ready dictionary,
  with timestamps in ISO 8601 form.
- `PaginationParams` holds `page`, `limit`, `offset`, `sort_by`,
  `sort_dir` and `filters`.
- `PaginationParams.order_clause(default)` returns the `ORDER BY`
  expression, or `default` when no sort column is set.
  - It raises `ValueError` for a sort column that is not a plain or
    dotted identifier.
  - It also raises `ValueError` for a direction other than
    `ASC` or `DESC`.

### `assessment_analytics.repository`

`ActivityRepository` works on a `sqlite3` connection.
`create_schema(connection)` creates the tables it uses: `users`,
`assessments`, `attempts`, `activities` and `suspicious_activities`.
Timestamps are stored in UTC.

Storing activities:

- `create(activity)` stores one activity and sets its `id`.
- `bulk_create(activities)` stores several activities in one
  transaction.

Paged lookups return `(records, total)`:

- `find_by_user_id(user_id, params)` honours the `"from"` and `"to"`
  entries in `params.filters`.
- `find_by_assessment_id(assessment_id, params)`.
- `find_suspicious_activity(user_id, attempt_id, params)`.

Statistics:

| Method | Result |
| --- | --- |
| `get_daily_active_users(days)` | distinct users per day |
| `get_activity_by_hour()` | counts per hour of day, last 7 days |
| `get_activity_by_type()` | counts per action, last 30 days |
| `get_total_active_users()` | distinct users, last 30 days |
| `get_active_users(minutes)` | distinct users in the last `minutes` minutes |
| `count_by_period(days)` | number of activities |
| `get_trending()` | the five assessments with the most activity in the last 7 days |

`get_recent_activity(hours)` returns up to 50 timeline entries, newest
first. Each entry's `type` is derived from the action:

| Action | `type` |
| --- | --- |
| `LOGIN` | `USER_ACTIVITY` |
| `ASSESSMENT_START` | `ASSESSMENT_STARTED` |
| `ASSESSMENT_SUBMIT` | `ASSESSMENT_COMPLETED` |
| `SUSPICIOUS_ACTIVITY` | `SUSPICIOUS_ACTIVITY` |
| anything else | `OTHER` |

### `assessment_analytics.service`

`AnalyticsService(user_repo, assessment_repo, attempt_repo,
activity_repo, log=None)` combines four repositories into these views:

- `get_user_activity_analytics()`
- `get_assessment_performance_analytics()`
- `get_dashboard_summary()`
- `get_activity_timeline()`, which covers the last 48 hours
- `get_suspicious_activity(user_id, attempt_id, params)`

It also stores events:

- `report_activity`
- `track_assessment_session`, which first looks the assessment up
- `log_suspicious_activity`

If a repository raises, the error is logged and raised again unchanged.
`get_system_status()` returns a fixed health report. It does not probe
any service.

### `assessment_analytics.handler`

`AnalyticsHandler(analytics_service)` maps a `Request` to a `Response`.

- A `Request` carries the method, path parameters, query, raw body,
  token claims, remote address and headers.
- A `Response` carries a status code and a payload. `body` gives the
  payload as JSON bytes, and `json()` gives it decoded.

The status codes are:

- `400` for malformed input.
- `401` when the user id claim is missing. Reporting activity and
  tracking a session look for the `id` claim. Suspicious events look
  for the `userID` claim.
- `500` when the service fails.
- `201` when an event is recorded.

The helper functions are:

- `pagination_params_from_query(query)` builds `PaginationParams`.
  - The defaults are page `0`, limit `10`, `sortBy` `created_at` and
    `sortDir` `DESC`.
  - Any other query value that is not empty becomes a filter.
- `severity_for(event_type)` classifies proctoring events:
  - `TAB_SWITCHING` and `MULTIPLE_FACES` are `HIGH`.
  - `FACE_NOT_DETECTED` and `LOOKING_AWAY` are `MEDIUM`.
  - Every other event is `LOW`.

## Example

```python
import sqlite3
from datetime import datetime, timezone

from assessment_analytics.models import Activity, PaginationParams
from assessment_analytics.repository import ActivityRepository, create_schema

connection = sqlite3.connect(":memory:")
create_schema(connection)
repo = ActivityRepository(connection)

repo.create(Activity(user_id=1, action="LOGIN", details="User logged in",
                     timestamp=datetime.now(timezone.utc)))
activities, total = repo.find_by_user_id(1, PaginationParams(limit=10))
print(total, activities[0].action)   # 1 LOGIN
print(repo.get_activity_by_type())   # [{'type': 'LOGIN', 'count': 1}]
```

## What this package does not do

- It has no HTTP server, router, CORS setup or token verification.
  `AnalyticsHandler` works on `Request` objects that you build, and
  `Request.claims` must already hold verified claims.
- It has no repositories for users, assessments or attempts. You must
  give `AnalyticsService` objects that provide them.
  - The user repository needs `count_all`, `get_user_stats` and
    `get_new_users_count`.
  - The assessment repository needs `find_by_id` and `get_statistics`.
  - The attempt repository needs:
    - `get_assessment_completion_rates`
    - `get_score_distribution`
    - `get_average_time_spent`
    - `get_most_challenging_assessments`
    - `get_most_successful_assessments`
    - `save_suspicious_activity`
    - `count_all`
    - `count_by_period`
    - `get_pass_rate`
    - `count_recent_suspicious_activity`
- Storage is SQLite only, and no command-line program is installed.