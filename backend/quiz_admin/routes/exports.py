"""
Export API routes - spreadsheet download and raw data export.

The performance export renders the complete workbook before responding,
so a failure produces a JSON error instead of a truncated download.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Response

from quiz_admin.services.exporter import (
    XLSX_MEDIA_TYPE, check_export_size, export_filename, render_performance_workbook
)
from quiz_admin.services.query_builder import build_export_query
from quiz_admin.services.record_store import RecordStore, get_store
from quiz_admin.services.report_assembler import export_records, project_session

router = APIRouter(prefix="/api/admin")


@router.get("/export/performance")
def export_performance(
    level: Optional[str] = Query(None, description="Filter by level"),
    studentId: Optional[str] = Query(None, description="Filter by owning user ID"),
    startDate: Optional[str] = Query(None, description="Created on or after (ISO 8601)"),
    endDate: Optional[str] = Query(None, description="Created on or before (ISO 8601)"),
    minScore: Optional[str] = Query(None, description="Minimum score, inclusive"),
    maxScore: Optional[str] = Query(None, description="Maximum score, inclusive"),
    store: RecordStore = Depends(get_store)
):
    """Download completed sessions as an XLSX workbook, newest first."""
    query = build_export_query({
        "level": level,
        "studentId": studentId,
        "startDate": startDate,
        "endDate": endDate,
        "minScore": minScore,
        "maxScore": maxScore,
    })
    check_export_size(store.count_matching("sessions", query.conditions))

    rows = [project_session(s) for s in store.find_many("sessions", query)]
    content = render_performance_workbook(rows)

    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="{}"'.format(export_filename())},
    )


@router.get("/export")
def export_data(
    type: Optional[str] = Query(None, description="sessions | students | questions"),
    startDate: Optional[str] = Query(None, description="Created on or after (ISO 8601)"),
    endDate: Optional[str] = Query(None, description="Created on or before (ISO 8601)"),
    store: RecordStore = Depends(get_store)
):
    """Raw JSON export of one record type for offline analytics."""
    return {"success": True, "data": export_records(store, type, startDate, endDate)}
