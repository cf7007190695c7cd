"""
Dashboard API routes - overview counts and statistics.

Provides endpoints for:
- The admin dashboard overview (counts + level statistics)
- Question usage statistics
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from quiz_admin.services.aggregator import dashboard_overview, question_statistics
from quiz_admin.services.query_builder import parse_int
from quiz_admin.services.record_store import RecordStore, get_store

router = APIRouter(prefix="/api/admin")


@router.get("/dashboard")
def get_dashboard(store: RecordStore = Depends(get_store)):
    """Overview counts plus per-level statistics of completed sessions."""
    return {"success": True, "data": dashboard_overview(store)}


@router.get("/questions/stats")
def get_question_stats(
    level: Optional[str] = Query(None, description="Restrict to one level"),
    store: RecordStore = Depends(get_store)
):
    """Usage count and correct-answer rate of active questions, most used first."""
    return {"success": True, "data": question_statistics(store, parse_int(level))}
