"""
Session API routes - completed-session listing and drill-down report.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from quiz_admin.services.query_builder import build_session_query
from quiz_admin.services.record_store import RecordStore, get_store
from quiz_admin.services.report_assembler import list_sessions, session_report

router = APIRouter(prefix="/api/admin")


@router.get("/sessions")
def get_sessions(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description="Results per page (default 20)"),
    level: Optional[str] = Query(None, description="Filter by level"),
    studentId: Optional[str] = Query(None, description="Filter by owning user ID"),
    startDate: Optional[str] = Query(None, description="Created on or after (ISO 8601)"),
    endDate: Optional[str] = Query(None, description="Created on or before (ISO 8601)"),
    minScore: Optional[str] = Query(None, description="Minimum score, inclusive"),
    maxScore: Optional[str] = Query(None, description="Maximum score, inclusive"),
    sortBy: Optional[str] = Query(None, description="Sort field"),
    sortOrder: Optional[str] = Query(None, description="asc or desc"),
    search: Optional[str] = Query(None, description="Search student name/ID/mobile/email"),
    store: RecordStore = Depends(get_store)
):
    """List completed sessions with filtering, search, sorting and pagination."""
    query = build_session_query({
        "page": page,
        "limit": limit,
        "level": level,
        "studentId": studentId,
        "startDate": startDate,
        "endDate": endDate,
        "minScore": minScore,
        "maxScore": maxScore,
        "sortBy": sortBy,
        "sortOrder": sortOrder,
        "search": search,
    })
    return {"success": True, "data": list_sessions(store, query)}


@router.get("/sessions/{session_id}/report")
def get_session_report(session_id: str, store: RecordStore = Depends(get_store)):
    """One session with its per-question answers and the owning student."""
    return {"success": True, "data": session_report(store, session_id)}
