"""
Aggregator - dashboard counts and statistical summaries.

Computes:
1. Dashboard overview: active students/admins, completed sessions,
   active questions, plus sessions and new students in the last 7 days
2. Level statistics: completed sessions grouped by level, ascending
3. Per-student performance: one summary over a student's completed
   sessions, or None when there are none
4. Question statistics: usage and correct-answer rate of active items

Averages read the stored ``percentage`` and ``score`` fields as they
are; percentage is derived once when the quiz flow finalizes a session
and is not recomputed here.
"""

import time
from datetime import timedelta

from quiz_admin.database import utc_now
from quiz_admin.logging_config import get_logger, log_with_context
from quiz_admin.models.game_session import COMPLETED
from quiz_admin.services.query_builder import Range, StoreQuery

logger = get_logger("reports")

RECENT_WINDOW = timedelta(days=7)

LEVEL_REDUCERS = {
    "totalSessions": ("count", None),
    "averageScore": ("avg", "score"),
    "averagePercentage": ("avg", "percentage"),
    "totalQuestions": ("sum", "totalQuestions"),
    "totalCorrectAnswers": ("sum", "score"),
}

PERFORMANCE_REDUCERS = {
    "totalSessions": ("count", None),
    "totalQuestions": ("sum", "totalQuestions"),
    "totalCorrectAnswers": ("sum", "score"),
    "averageScore": ("avg", "score"),
    "averagePercentage": ("avg", "percentage"),
    "averageTime": ("avg", "timeTakenSeconds"),
    "bestScore": ("max", "score"),
    "bestPercentage": ("max", "percentage"),
}


def level_statistics(store) -> list:
    """Completed sessions grouped by level, one summary per level, ascending."""
    return store.aggregate_group("sessions", {"status": COMPLETED}, "level", LEVEL_REDUCERS)


def dashboard_overview(store, now=None) -> dict:
    start_time = time.time()
    since = (now or utc_now()) - RECENT_WINDOW

    overview = {
        "totalStudents": store.count_matching("users", {"role": "student", "isActive": True}),
        "totalAdmins": store.count_matching("users", {"role": "admin", "isActive": True}),
        "totalSessions": store.count_matching("sessions", {"status": COMPLETED}),
        "totalQuestions": store.count_matching("items", {"isActive": True}),
        "recentSessions": store.count_matching(
            "sessions", {"status": COMPLETED, "createdAt": Range(gte=since)}),
        "newStudents": store.count_matching(
            "users", {"role": "student", "createdAt": Range(gte=since)}),
    }
    level_stats = level_statistics(store)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Dashboard overview computed: {} sessions across {} levels".format(
            overview["totalSessions"], len(level_stats)),
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {"overview": overview, "levelStats": level_stats}


def student_performance(store, user_id: str):
    """
    Summary of one student's completed sessions.

    Returns None, not a zero-filled record, when the student has no
    completed sessions.
    """
    groups = store.aggregate_group(
        "sessions", {"userId": user_id, "status": COMPLETED}, None, PERFORMANCE_REDUCERS)
    return groups[0] if groups else None


def question_statistics(store, level=None) -> dict:
    conditions = {"isActive": True}
    if level is not None:
        conditions["level"] = level

    items = store.find_many("items", StoreQuery(conditions=conditions, sort=[("usageCount", -1)]))
    questions = [
        {
            "id": item.item_id,
            "name": item.name,
            "level": item.level,
            "usageCount": item.usage_count,
            "correctAnswerRate": item.correct_answer_rate,
        }
        for item in items
    ]

    total_usage = sum(q["usageCount"] or 0 for q in questions)
    average_rate = (
        sum(q["correctAnswerRate"] or 0 for q in questions) / len(questions)
        if questions else 0
    )

    return {
        "questions": questions,
        "summary": {
            "totalQuestions": len(questions),
            "totalUsage": total_usage,
            "averageCorrectRate": round(average_rate, 2),
        },
    }
