"""
Tabular Exporter - renders projected session rows as an XLSX workbook.

Layout of the "Student Performance" sheet:
1. Header row (bold, light-grey fill) with 13 fixed columns
2. One data row per session, in the order given
3. When there is at least one session: a blank row, then a
   SUMMARY STATISTICS label and four statistic rows, all bold with
   their own fill

The workbook is written to memory in full before any byte is handed
back; a failure anywhere raises ExportRenderError and the partial
document is dropped.
"""

import os
import time
from datetime import date
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from quiz_admin.errors import ExportRenderError, ValidationError
from quiz_admin.logging_config import get_logger, log_with_context

logger = get_logger("export")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
SHEET_TITLE = "Student Performance"
NOT_AVAILABLE = "N/A"

# Upper bound on rows rendered into a single in-memory workbook
EXPORT_MAX_ROWS = int(os.getenv("EXPORT_MAX_ROWS", "50000"))

# (header, row key, column width)
COLUMNS = [
    ("Student Name", "studentName", 20),
    ("Student ID", "studentIdentifier", 15),
    ("Mobile/Email", "contact", 25),
    ("Level", "level", 10),
    ("Score", "score", 10),
    ("Total Questions", "totalQuestions", 15),
    ("Percentage", "percentage", 12),
    ("Time Taken (s)", "timeTakenSeconds", 18),
    ("Accuracy (%)", "accuracy", 12),
    ("Avg Time/Question (s)", "averageTimePerQuestion", 20),
    ("Start Time", "startTime", 20),
    ("End Time", "endTime", 20),
    ("Feedback Provided", "hasFeedback", 15),
]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFE0E0E0", end_color="FFE0E0E0")
SUMMARY_FONT = Font(bold=True)
SUMMARY_FILL = PatternFill(fill_type="solid", start_color="FFF0F0F0", end_color="FFF0F0F0")

SUMMARY_LABEL = "SUMMARY STATISTICS"


def format_timestamp(value) -> str:
    """Locale-formatted date/time, or N/A when missing."""
    if value is None:
        return NOT_AVAILABLE
    return value.strftime("%c")


def export_filename(today: date = None) -> str:
    return "student_performance_{}.xlsx".format((today or date.today()).isoformat())


def check_export_size(total: int):
    """Refuse exports larger than EXPORT_MAX_ROWS before any rows are loaded."""
    if total > EXPORT_MAX_ROWS:
        raise ValidationError(
            "Export too large: narrow the filters",
            detail="{} sessions match, limit is {}".format(total, EXPORT_MAX_ROWS),
        )


def _mean(values) -> float:
    return sum(values) / len(values)


def summary_rows(rows: list) -> list:
    """The label row plus the four statistic rows; empty when there are no rows."""
    if not rows:
        return []
    average_score = _mean([r["score"] or 0 for r in rows])
    average_percentage = _mean([r["percentage"] or 0 for r in rows])
    average_time = _mean([r["timeTakenSeconds"] or 0 for r in rows])
    return [
        [SUMMARY_LABEL],
        ["Total Sessions", len(rows)],
        ["Average Score", "{:.2f}".format(average_score)],
        ["Average Percentage", "{:.2f}%".format(average_percentage)],
        ["Average Time (seconds)", "{:.2f}".format(average_time)],
    ]


def _data_row(row: dict) -> list:
    return [
        row["studentName"],
        row["studentIdentifier"],
        row["contact"],
        row["level"],
        row["score"],
        row["totalQuestions"],
        row["percentage"],
        row["timeTakenSeconds"],
        row.get("accuracy") or 0,
        row.get("averageTimePerQuestion") or 0,
        format_timestamp(row.get("startTime")),
        format_timestamp(row.get("endTime")),
        "Yes" if row.get("hasFeedback") else "No",
    ]


def _style_row(worksheet, row_idx, font, fill):
    for col_idx in range(1, len(COLUMNS) + 1):
        cell = worksheet.cell(row=row_idx, column=col_idx)
        cell.font = font
        cell.fill = fill


def build_workbook(rows: list) -> Workbook:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = SHEET_TITLE

    worksheet.append([header for header, _, _ in COLUMNS])
    for col_idx, (_, _, width) in enumerate(COLUMNS, 1):
        worksheet.column_dimensions[get_column_letter(col_idx)].width = width
    _style_row(worksheet, 1, HEADER_FONT, HEADER_FILL)

    for row in rows:
        worksheet.append(_data_row(row))

    summary = summary_rows(rows)
    if summary:
        worksheet.append([])
        for values in summary:
            worksheet.append(values)
            _style_row(worksheet, worksheet.max_row, SUMMARY_FONT, SUMMARY_FILL)

    return workbook


def render_performance_workbook(rows: list) -> bytes:
    """
    Serialize the performance workbook completely and return its bytes.

    Raises ExportRenderError on any failure; no partial document is ever
    returned.
    """
    start_time = time.time()
    try:
        workbook = build_workbook(rows)
        buffer = BytesIO()
        workbook.save(buffer)
        content = buffer.getvalue()
    except Exception as e:
        log_with_context(logger, "ERROR",
            "Failed to render performance workbook: {}".format(str(e)),
            extra_data={"rows": len(rows)}, exc_info=e)
        raise ExportRenderError("Failed to export student performance data", detail=str(e)) from e

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Rendered performance workbook with {} rows".format(len(rows)),
        extra_data={"duration_ms": round(duration_ms, 2), "rows": len(rows), "bytes": len(content)})
    return content
