"""
Report Assembler - joins sessions with their owners into display rows.

Display identity is resolved through ordered fallback chains: the value
asserted by the identity provider wins, then the self-reported profile
value, then the "N/A" sentinel. Rows keep the order the store returned
them in; nothing here re-sorts.
"""

import math
import time

from quiz_admin.errors import NotFoundError, ValidationError
from quiz_admin.logging_config import get_logger, log_with_context
from quiz_admin.services.aggregator import student_performance
from quiz_admin.services.query_builder import StoreQuery, build_date_conditions

logger = get_logger("reports")

NOT_AVAILABLE = "N/A"
RECENT_SESSION_COUNT = 10
EXPORT_TYPES = ("sessions", "students", "questions")


def _attr(name):
    return lambda record: getattr(record, name, None)


def first_present(*accessors, default=NOT_AVAILABLE):
    """
    Build a resolver that returns the first non-empty accessor value.

    Each accessor is called with the record in order; None and "" count
    as empty. When every accessor comes back empty the default is used.
    """
    def resolve(record):
        for accessor in accessors:
            value = accessor(record)
            if value is not None and value != "":
                return value
        return default
    return resolve


STUDENT_NAME_CHAIN = first_present(_attr("external_auth_display_name"), _attr("student_name"))
STUDENT_ID_CHAIN = first_present(_attr("student_id"))
CONTACT_CHAIN = first_present(_attr("external_auth_email"), _attr("mobile_number"))


def project_session(session) -> dict:
    """Flatten one session and its owning user into a display row."""
    user = session.user
    return {
        "id": str(session.id),
        "userId": str(session.user_id) if session.user_id else None,
        "studentName": STUDENT_NAME_CHAIN(user),
        "studentIdentifier": STUDENT_ID_CHAIN(user),
        "contact": CONTACT_CHAIN(user),
        "level": session.level,
        "score": session.score,
        "totalQuestions": session.total_questions,
        "percentage": session.percentage,
        "timeTakenSeconds": session.time_taken_seconds,
        "accuracy": session.accuracy,
        "averageTimePerQuestion": session.average_time_per_question,
        "startTime": session.start_time,
        "endTime": session.end_time,
        "status": session.status,
        "createdAt": session.created_at,
        "hasFeedback": isinstance(session.feedback_text, str) and session.feedback_text != "",
    }


def _pagination(query: StoreQuery, total: int) -> dict:
    return {
        "page": query.page,
        "limit": query.limit,
        "total": total,
        "pages": math.ceil(total / query.limit) if query.limit else 0,
    }


def list_sessions(store, query: StoreQuery) -> dict:
    start_time = time.time()
    sessions = store.find_many("sessions", query)
    total = store.count_matching("sessions", query.conditions, query.search)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Listed {} sessions (page {}, total {})".format(len(sessions), query.page, total),
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "items": [project_session(s) for s in sessions],
        "pagination": _pagination(query, total),
    }


def list_students(store, query: StoreQuery) -> dict:
    start_time = time.time()
    students = store.find_many("users", query)
    total = store.count_matching("users", query.conditions, query.search)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Listed {} students (page {}, total {})".format(len(students), query.page, total),
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "items": [s.to_dict() for s in students],
        "pagination": _pagination(query, total),
    }


def student_detail(store, user_id: str) -> dict:
    """A student's profile, latest sessions of any status, and performance summary."""
    student = store.find_one("users", user_id)
    if not student or student.role != "student" or not student.is_active:
        raise NotFoundError("Student not found", detail="user_id={}".format(user_id))

    recent = store.find_many("sessions", StoreQuery(
        conditions={"userId": student.id},
        sort=[("createdAt", -1)],
        limit=RECENT_SESSION_COUNT,
    ))

    return {
        "student": student.to_dict(),
        "sessions": [project_session(s) for s in recent],
        "performance": student_performance(store, student.id),
    }


def session_report(store, session_id: str) -> dict:
    """Drill-down view of one session with its per-question answers."""
    session = store.find_one("sessions", session_id)
    if not session:
        raise NotFoundError("Session not found", detail="session_id={}".format(session_id))

    row = project_session(session)
    row["feedbackText"] = session.feedback_text

    user = session.user
    student = None
    if user is not None:
        student = {
            "id": str(user.id),
            "studentName": user.student_name,
            "studentId": user.student_id,
            "mobileNumber": user.mobile_number,
        }

    log_with_context(logger, "INFO", "Session report assembled",
        context={"session_id": str(session.id), "user_id": str(session.user_id)})

    return {
        "session": row,
        "detailedAnswers": session.detailed_answers(),
        "student": student,
    }


def export_records(store, record_type, start_date=None, end_date=None) -> dict:
    """Raw record dump for offline analytics, newest first."""
    if record_type not in EXPORT_TYPES:
        raise ValidationError("Invalid export type",
                              detail="type must be one of: {}".format(", ".join(EXPORT_TYPES)))

    conditions = build_date_conditions(start_date, end_date)

    if record_type == "sessions":
        records = store.find_many("sessions", StoreQuery(conditions=conditions))
        data = [project_session(s) for s in records]
    elif record_type == "students":
        records = store.find_many("users", StoreQuery(conditions={"role": "student", **conditions}))
        data = [u.to_dict() for u in records]
    else:
        records = store.find_many("items", StoreQuery(
            conditions={"isActive": True, **conditions},
            sort=[("level", 1), ("usageCount", -1)],
        ))
        data = [i.to_dict() for i in records]

    log_with_context(logger, "INFO",
        "Exported {} {} records".format(len(data), record_type),
        extra_data={"type": record_type, "count": len(data)})

    return {"type": record_type, "count": len(data), "data": data}
