"""
Student API routes - listing and per-student drill-down.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from quiz_admin.services.query_builder import build_student_query
from quiz_admin.services.record_store import RecordStore, get_store
from quiz_admin.services.report_assembler import list_students, student_detail

router = APIRouter(prefix="/api/admin")


@router.get("/students")
def get_students(
    page: Optional[str] = Query(None, description="Page number (default 1)"),
    limit: Optional[str] = Query(None, description="Results per page (default 20)"),
    search: Optional[str] = Query(None, description="Search name/ID/mobile/email"),
    sortBy: Optional[str] = Query(None, description="Sort field"),
    sortOrder: Optional[str] = Query(None, description="asc or desc"),
    store: RecordStore = Depends(get_store)
):
    """List active students with search, sorting and pagination."""
    query = build_student_query({
        "page": page,
        "limit": limit,
        "search": search,
        "sortBy": sortBy,
        "sortOrder": sortOrder,
    })
    return {"success": True, "data": list_students(store, query)}


@router.get("/students/{user_id}")
def get_student(user_id: str, store: RecordStore = Depends(get_store)):
    """A student's profile, latest sessions and performance summary."""
    return {"success": True, "data": student_detail(store, user_id)}
