"""
Query Builder - turns admin query-string parameters into store queries.

Responsibilities:
1. Pagination: page/limit default to 1/20 and must be positive integers
2. Sorting: sortBy is checked against a closed per-entity allow-list;
   anything else falls back to createdAt
3. Range filters: minScore/maxScore and startDate/endDate become
   inclusive bounds on a single field, absent bounds are left out
4. Search: case-insensitive substring match ORed across a fixed set of
   text fields and ANDed with the other conditions

Only malformed pagination is an error. Every other malformed value
(unparseable level, score or date) is dropped so a bad query string
never breaks the admin UI.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from quiz_admin.errors import ValidationError
from quiz_admin.logging_config import get_logger, log_with_context
from quiz_admin.models.game_session import COMPLETED

logger = get_logger("reports")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
DEFAULT_SORT_FIELD = "createdAt"

# Signed 64-bit range accepted by the database drivers
MAX_SQL_INT = 2 ** 63 - 1
MIN_SQL_INT = -(2 ** 63)

SESSIONS = "sessions"
STUDENTS = "students"

SORT_ALLOW_LIST = {
    SESSIONS: frozenset({"createdAt", "score", "percentage", "timeTakenSeconds", "level"}),
    STUDENTS: frozenset({"createdAt", "studentName", "studentId", "mobileNumber", "lastLoginAt"}),
}

SEARCH_FIELDS = {
    SESSIONS: ("studentName", "studentIdentifier", "mobileNumber", "email"),
    STUDENTS: ("studentName", "studentId", "mobileNumber", "email"),
}


@dataclass(frozen=True)
class Range:
    """Inclusive bounds on one field. A bound left as None is not applied."""
    gte: Any = None
    lte: Any = None


@dataclass(frozen=True)
class TextSearch:
    term: str
    fields: tuple


@dataclass
class StoreQuery:
    """A validated query ready for the record store."""
    conditions: dict = field(default_factory=dict)
    search: Optional[TextSearch] = None
    sort: list = field(default_factory=lambda: [(DEFAULT_SORT_FIELD, -1)])
    skip: int = 0
    limit: Optional[int] = None
    page: int = DEFAULT_PAGE


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_positive_int(value, name: str, default: int) -> int:
    """Parse a pagination value; raise ValidationError unless it is a positive integer."""
    if _is_blank(value):
        return default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(
            "Invalid {}: must be a positive integer".format(name),
            detail="{}={!r}".format(name, value),
        )
    if parsed < 1 or parsed > MAX_SQL_INT:
        raise ValidationError(
            "Invalid {}: must be a positive integer".format(name),
            detail="{}={!r}".format(name, value),
        )
    return parsed


def parse_pagination(page=None, limit=None):
    """
    Returns (page, limit, skip) with skip = (page - 1) * limit.
    """
    page = parse_positive_int(page, "page", DEFAULT_PAGE)
    limit = parse_positive_int(limit, "limit", DEFAULT_LIMIT)
    skip = (page - 1) * limit
    if skip > MAX_SQL_INT:
        raise ValidationError(
            "Invalid page: offset out of range",
            detail="page={} limit={}".format(page, limit),
        )
    return page, limit, skip


def parse_int(value) -> Optional[int]:
    """Lenient integer parsing for filters: returns None instead of raising."""
    if _is_blank(value):
        return None
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        log_with_context(logger, "DEBUG", "Ignoring non-integer filter value: {!r}".format(value))
        return None
    if not MIN_SQL_INT <= parsed <= MAX_SQL_INT:
        log_with_context(logger, "DEBUG", "Ignoring out-of-range filter value: {!r}".format(value))
        return None
    return parsed


def parse_timestamp(ts_str) -> Optional[datetime]:
    """
    Flexibly parse ISO 8601 dates/timestamps.
    Returns a timezone-naive UTC datetime to match stored values,
    or None if parsing fails.
    """
    if isinstance(ts_str, datetime):
        return ts_str.replace(tzinfo=None) if ts_str.tzinfo else ts_str
    if _is_blank(ts_str):
        return None
    try:
        ts_str = ts_str.strip()
        if ts_str.endswith("Z"):
            ts_str = ts_str[:-1] + "+00:00"
        dt = datetime.fromisoformat(ts_str)
        if dt.tzinfo is not None:
            dt = (dt - dt.utcoffset()).replace(tzinfo=None)
        return dt
    except (ValueError, TypeError, AttributeError):
        log_with_context(logger, "DEBUG", "Ignoring unparseable date filter: {!r}".format(ts_str))
        return None


def resolve_sort(entity: str, sort_by=None, sort_order=None):
    """
    Map sortBy/sortOrder onto an allowed (field, direction) pair.
    direction is 1 for ascending and -1 for descending.
    """
    allowed = SORT_ALLOW_LIST[entity]
    sort_field = sort_by if sort_by in allowed else DEFAULT_SORT_FIELD
    direction = 1 if sort_order == "asc" else -1
    return sort_field, direction


def build_range(lower=None, upper=None) -> Optional[Range]:
    if lower is None and upper is None:
        return None
    return Range(gte=lower, lte=upper)


def build_text_search(entity: str, term) -> Optional[TextSearch]:
    if _is_blank(term):
        return None
    return TextSearch(term=term.strip(), fields=SEARCH_FIELDS[entity])


def build_date_conditions(start_date=None, end_date=None) -> dict:
    created = build_range(parse_timestamp(start_date), parse_timestamp(end_date))
    return {"createdAt": created} if created else {}


def build_session_conditions(params: dict) -> dict:
    """Conditions shared by the session listing and the spreadsheet export."""
    conditions = {"status": COMPLETED}

    level = parse_int(params.get("level"))
    if level is not None:
        conditions["level"] = level

    student_id = params.get("studentId")
    if not _is_blank(student_id):
        conditions["userId"] = student_id.strip()

    score = build_range(parse_int(params.get("minScore")), parse_int(params.get("maxScore")))
    if score:
        conditions["score"] = score

    conditions.update(build_date_conditions(params.get("startDate"), params.get("endDate")))
    return conditions


def build_session_query(params: dict) -> StoreQuery:
    """Build the paginated completed-session listing query."""
    page, limit, skip = parse_pagination(params.get("page"), params.get("limit"))
    sort_field, direction = resolve_sort(SESSIONS, params.get("sortBy"), params.get("sortOrder"))
    return StoreQuery(
        conditions=build_session_conditions(params),
        search=build_text_search(SESSIONS, params.get("search")),
        sort=[(sort_field, direction)],
        skip=skip,
        limit=limit,
        page=page,
    )


def build_student_query(params: dict) -> StoreQuery:
    """Build the paginated active-student listing query."""
    page, limit, skip = parse_pagination(params.get("page"), params.get("limit"))
    sort_field, direction = resolve_sort(STUDENTS, params.get("sortBy"), params.get("sortOrder"))
    return StoreQuery(
        conditions={"role": "student", "isActive": True},
        search=build_text_search(STUDENTS, params.get("search")),
        sort=[(sort_field, direction)],
        skip=skip,
        limit=limit,
        page=page,
    )


def build_export_query(params: dict) -> StoreQuery:
    """Unpaginated completed-session query for the spreadsheet export, newest first."""
    return StoreQuery(
        conditions=build_session_conditions(params),
        sort=[(DEFAULT_SORT_FIELD, -1)],
    )
