from datetime import date, datetime
from io import BytesIO

import pytest
from openpyxl import load_workbook

from quiz_admin.errors import ExportRenderError, ValidationError
from quiz_admin.services import exporter
from quiz_admin.services.exporter import (
    COLUMNS,
    check_export_size,
    export_filename,
    render_performance_workbook,
)


def make_row(name, score, percentage, seconds, **overrides):
    row = {
        "studentName": name,
        "studentIdentifier": "S-" + name,
        "contact": name.lower() + "@example.com",
        "level": 1,
        "score": score,
        "totalQuestions": 10,
        "percentage": percentage,
        "timeTakenSeconds": seconds,
        "accuracy": percentage,
        "averageTimePerQuestion": seconds / 10,
        "startTime": datetime(2024, 3, 1, 9, 0, 0),
        "endTime": datetime(2024, 3, 1, 9, 5, 0),
        "hasFeedback": False,
    }
    row.update(overrides)
    return row


def open_sheet(content):
    workbook = load_workbook(BytesIO(content))
    return workbook["Student Performance"]


def row_values(sheet, row_idx):
    return [sheet.cell(row=row_idx, column=c).value for c in range(1, len(COLUMNS) + 1)]


def test_empty_export_is_header_only():
    sheet = open_sheet(render_performance_workbook([]))

    assert sheet.max_row == 1
    assert row_values(sheet, 1) == [
        "Student Name", "Student ID", "Mobile/Email", "Level", "Score", "Total Questions",
        "Percentage", "Time Taken (s)", "Accuracy (%)", "Avg Time/Question (s)",
        "Start Time", "End Time", "Feedback Provided",
    ]


def test_header_styling():
    sheet = open_sheet(render_performance_workbook([]))
    for col in range(1, len(COLUMNS) + 1):
        cell = sheet.cell(row=1, column=col)
        assert cell.font.bold
        assert cell.fill.fill_type == "solid"
        assert cell.fill.fgColor.rgb == "FFE0E0E0"


def test_rows_keep_input_order_and_summary_follows():
    rows = [
        make_row("Cara", 9, 90.0, 100),
        make_row("Abe", 6, 60.0, 200, hasFeedback=True),
        make_row("Bea", 4, 40.0, 301),
    ]
    sheet = open_sheet(render_performance_workbook(rows))

    assert sheet.max_row == 1 + 3 + 1 + 5
    assert [sheet.cell(row=r, column=1).value for r in (2, 3, 4)] == ["Cara", "Abe", "Bea"]
    assert row_values(sheet, 3)[12] == "Yes"
    assert row_values(sheet, 2)[12] == "No"

    assert all(v is None for v in row_values(sheet, 5))
    assert sheet.cell(row=6, column=1).value == "SUMMARY STATISTICS"
    assert [sheet.cell(row=r, column=1).value for r in range(7, 11)] == [
        "Total Sessions", "Average Score", "Average Percentage", "Average Time (seconds)",
    ]
    assert sheet.cell(row=7, column=2).value == 3
    assert float(sheet.cell(row=8, column=2).value) == pytest.approx((9 + 6 + 4) / 3, abs=0.005)
    assert sheet.cell(row=9, column=2).value == "63.33%"
    assert sheet.cell(row=10, column=2).value == "200.33"

    for r in range(6, 11):
        cell = sheet.cell(row=r, column=1)
        assert cell.font.bold
        assert cell.fill.fgColor.rgb == "FFF0F0F0"
    assert not sheet.cell(row=5, column=1).font.bold


def test_timestamps_and_missing_metrics():
    rows = [make_row("Dev", 5, 50.0, 60, startTime=None, endTime=None,
                     accuracy=None, averageTimePerQuestion=None)]
    sheet = open_sheet(render_performance_workbook(rows))

    values = row_values(sheet, 2)
    assert values[8] == 0
    assert values[9] == 0
    assert values[10] == "N/A"
    assert values[11] == "N/A"

    start = datetime(2024, 3, 1, 9, 0, 0)
    sheet = open_sheet(render_performance_workbook([make_row("Eve", 5, 50.0, 60)]))
    assert sheet.cell(row=2, column=11).value == start.strftime("%c")


def test_render_failure_raises_instead_of_partial_output(monkeypatch):
    def broken(rows):
        raise RuntimeError("disk full")

    monkeypatch.setattr(exporter, "build_workbook", broken)

    with pytest.raises(ExportRenderError) as excinfo:
        render_performance_workbook([make_row("Fay", 1, 10.0, 5)])
    assert excinfo.value.detail == "disk full"


def test_bad_row_raises_render_error():
    with pytest.raises(ExportRenderError):
        render_performance_workbook([{"studentName": "Incomplete"}])


def test_export_filename():
    assert export_filename(date(2024, 7, 4)) == "student_performance_2024-07-04.xlsx"


def test_export_size_guard(monkeypatch):
    monkeypatch.setattr(exporter, "EXPORT_MAX_ROWS", 2)
    check_export_size(2)
    with pytest.raises(ValidationError):
        check_export_size(3)
