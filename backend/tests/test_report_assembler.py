import json
from datetime import timedelta
from types import SimpleNamespace

import pytest

from conftest import BASE_TIME
from quiz_admin.errors import NotFoundError, ValidationError
from quiz_admin.services.query_builder import build_session_query, build_student_query
from quiz_admin.services.report_assembler import (
    CONTACT_CHAIN,
    STUDENT_NAME_CHAIN,
    export_records,
    first_present,
    list_sessions,
    list_students,
    project_session,
    session_report,
    student_detail,
)


def test_first_present_takes_first_non_empty():
    resolve = first_present(lambda r: r.get("a"), lambda r: r.get("b"), default="none")
    assert resolve({"a": "x", "b": "y"}) == "x"
    assert resolve({"a": "", "b": "y"}) == "y"
    assert resolve({"a": None, "b": 0}) == 0
    assert resolve({}) == "none"


def test_identity_fallback_chains():
    external = SimpleNamespace(external_auth_display_name="Ext Name", student_name="Legacy",
                               external_auth_email="ext@example.com", mobile_number="123")
    legacy = SimpleNamespace(external_auth_display_name="", student_name="Legacy",
                             external_auth_email=None, mobile_number="123")
    blank = SimpleNamespace(external_auth_display_name=None, student_name=None,
                            external_auth_email=None, mobile_number="")

    assert STUDENT_NAME_CHAIN(external) == "Ext Name"
    assert STUDENT_NAME_CHAIN(legacy) == "Legacy"
    assert STUDENT_NAME_CHAIN(blank) == "N/A"
    assert STUDENT_NAME_CHAIN(None) == "N/A"
    assert CONTACT_CHAIN(external) == "ext@example.com"
    assert CONTACT_CHAIN(legacy) == "123"
    assert CONTACT_CHAIN(blank) == "N/A"


def test_project_session(make_user, make_session):
    user = make_user(student_name="Asha", student_id="S-1", mobile_number="555",
                     external_auth_email="asha@example.com")
    with_feedback = make_session(user, feedback_text="Great quiz", accuracy=None)
    without_feedback = make_session(user, feedback_text="")

    row = project_session(with_feedback)
    assert row["studentName"] == "Asha"
    assert row["studentIdentifier"] == "S-1"
    assert row["contact"] == "asha@example.com"
    assert row["hasFeedback"] is True
    assert row["accuracy"] is None
    assert (row["level"], row["score"], row["totalQuestions"], row["percentage"]) == (1, 8, 10, 80.0)

    assert project_session(without_feedback)["hasFeedback"] is False


def test_list_sessions_respects_sort_and_pages(store, make_user, make_session):
    user = make_user()
    for i, score in enumerate([3, 9, 5, 7, 1]):
        make_session(user, score=score, created_at=BASE_TIME + timedelta(minutes=i))

    query = build_session_query({"sortBy": "score", "sortOrder": "asc", "limit": "2", "page": "2"})
    page = list_sessions(store, query)

    assert [row["score"] for row in page["items"]] == [5, 7]
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}

    newest_first = list_sessions(store, build_session_query({}))
    assert [row["score"] for row in newest_first["items"]] == [1, 7, 5, 9, 3]


def test_score_range_matches_exact_bounds(store, make_user, make_session):
    user = make_user()
    for score in (5, 5, 6):
        make_session(user, score=score)

    page = list_sessions(store, build_session_query({"minScore": "5", "maxScore": "5"}))

    assert page["pagination"]["total"] == 2
    assert [row["score"] for row in page["items"]] == [5, 5]


def test_date_range_includes_both_bounds(store, make_user, make_session):
    user = make_user()
    second = timedelta(seconds=1)
    end = BASE_TIME + timedelta(days=2)
    for created in (BASE_TIME - second, BASE_TIME, BASE_TIME + timedelta(days=1), end, end + second):
        make_session(user, created_at=created)

    page = list_sessions(store, build_session_query({
        "startDate": BASE_TIME.isoformat(),
        "endDate": end.isoformat() + "Z",
    }))

    assert page["pagination"]["total"] == 3
    assert [row["createdAt"] for row in page["items"]] == [
        end, BASE_TIME + timedelta(days=1), BASE_TIME]


def test_list_sessions_excludes_incomplete_and_filters(store, make_user, make_session):
    alice = make_user(student_name="Alice Cooper")
    bob = make_user(student_name="Bob", external_auth_email="bob@Example.com")
    make_session(alice, level=1)
    make_session(alice, level=2)
    make_session(alice, level=2, status="abandoned")
    make_session(bob, level=2)

    assert list_sessions(store, build_session_query({}))["pagination"]["total"] == 3
    assert list_sessions(store, build_session_query({"level": "2"}))["pagination"]["total"] == 2
    assert list_sessions(store, build_session_query({"studentId": bob.id}))["pagination"]["total"] == 1

    by_name = list_sessions(store, build_session_query({"search": "aLiCe", "level": "2"}))
    assert by_name["pagination"]["total"] == 1
    assert by_name["items"][0]["studentName"] == "Alice Cooper"

    by_email = list_sessions(store, build_session_query({"search": "example.COM"}))
    assert by_email["pagination"]["total"] == 1

    wildcard = list_sessions(store, build_session_query({"search": "%"}))
    assert wildcard["pagination"]["total"] == 0


def test_list_students_active_only(store, make_user):
    make_user(student_name="Zed")
    make_user(student_name="Amy")
    make_user(student_name="Hidden", is_active=False)
    make_user(student_name="Admin", role="admin")

    page = list_students(store, build_student_query({"sortBy": "studentName", "sortOrder": "asc"}))

    assert [s["studentName"] for s in page["items"]] == ["Amy", "Zed"]
    assert page["pagination"]["total"] == 2


def test_student_detail(store, make_user, make_session):
    user = make_user()
    for i in range(12):
        make_session(user, created_at=BASE_TIME + timedelta(minutes=i))
    make_session(user, status="abandoned", created_at=BASE_TIME + timedelta(hours=1))

    detail = student_detail(store, user.id)

    assert detail["student"]["id"] == user.id
    assert len(detail["sessions"]) == 10
    assert detail["sessions"][0]["status"] == "abandoned"
    assert detail["performance"]["totalSessions"] == 12


@pytest.mark.parametrize("fields", [{"role": "admin"}, {"is_active": False}])
def test_student_detail_not_found(store, make_user, fields):
    user = make_user(**fields)
    with pytest.raises(NotFoundError):
        student_detail(store, user.id)
    with pytest.raises(NotFoundError):
        student_detail(store, "missing")


def test_session_report(store, make_user, make_session):
    user = make_user(student_name="Ravi", student_id="S-9", mobile_number="777")
    answers = [
        {"questionId": "Q1", "providedAnswer": "Stock", "correctAnswer": "Stock", "timeTakenSeconds": 4},
        {"questionId": "Q2", "providedAnswer": "Bond", "correctAnswer": "Fund", "correct": False,
         "timeTakenSeconds": 7},
    ]
    session = make_session(user, answers=json.dumps(answers), feedback_text="ok")

    report = session_report(store, session.id)

    assert report["session"]["id"] == session.id
    assert report["session"]["feedbackText"] == "ok"
    assert report["student"] == {"id": user.id, "studentName": "Ravi",
                                 "studentId": "S-9", "mobileNumber": "777"}
    assert [a["correct"] for a in report["detailedAnswers"]] == [True, False]
    assert report["detailedAnswers"][1]["timeTakenSeconds"] == 7

    with pytest.raises(NotFoundError):
        session_report(store, "missing")


def test_non_boolean_correct_flag_falls_back_to_comparison(store, make_user, make_session):
    answers = [
        {"questionId": "Q1", "providedAnswer": "Stock", "correctAnswer": "Stock", "correct": "false"},
        {"questionId": "Q2", "providedAnswer": "Bond", "correctAnswer": "Fund", "correct": "true"},
        {"questionId": "Q3", "providedAnswer": None, "correctAnswer": None, "correct": 1},
    ]
    session = make_session(make_user(), answers=json.dumps(answers))

    detailed = session_report(store, session.id)["detailedAnswers"]

    assert [a["correct"] for a in detailed] == [True, False, False]
    assert all(type(a["correct"]) is bool for a in detailed)


def test_export_records(store, make_user, make_session, make_item):
    user = make_user()
    make_session(user, status="abandoned")
    make_item("Q1", level=2, usage_count=1)
    make_item("Q2", level=1, usage_count=1)
    make_item("Q3", level=1, usage_count=5)

    sessions = export_records(store, "sessions")
    assert sessions["count"] == 1

    students = export_records(store, "students", "2030-01-01")
    assert students["count"] == 0

    questions = export_records(store, "questions")
    assert [q["id"] for q in questions["data"]] == ["Q3", "Q2", "Q1"]

    with pytest.raises(ValidationError):
        export_records(store, "passwords")
