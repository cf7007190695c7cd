"""
Quiz Admin Reporting Service - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Renders every error in the {success: false, message, error} envelope
5. Registers all admin API route handlers

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Reporting logic (query builder, record store, aggregator,
  report assembler, spreadsheet exporter)
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import os
import time
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from quiz_admin.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from quiz_admin.errors import ReportingError
from quiz_admin.routes import dashboard, students, sessions, exports, items
from quiz_admin.database import DATABASE_URL, create_tables

# Import all models so they are registered with Base.metadata
from quiz_admin.models import User, GameSession, FinancialItem  # noqa: F401

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="Quiz Admin Reporting Service",
    description=(
        "Admin reporting for the finance quiz: dashboard statistics, filtered "
        "session and student listings, drill-down reports and spreadsheet export."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Content-Disposition"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Generate a unique request ID for every HTTP request.

    The ID is stored in a context variable (so every log entry carries
    it), returned in the X-Request-ID header, and logged together with
    the request latency.
    """
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


def error_body(message: str, detail=None) -> dict:
    """Error envelope; the underlying detail is withheld in production."""
    body = {"success": False, "message": message}
    if ENVIRONMENT != "production":
        body["error"] = detail if detail is not None else message
    return body


@app.exception_handler(ReportingError)
async def reporting_error_handler(request: Request, exc: ReportingError):
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    log_with_context(logger, level,
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
        extra_data={"status_code": exc.status_code, "detail": exc.detail})
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    log_with_context(logger, "WARNING",
        f"Invalid payload on {request.method} {request.url.path}",
        extra_data={"errors": errors})
    body = error_body("Validation error", str(exc))
    body["errors"] = errors
    return JSONResponse(status_code=400, content=body)


app.include_router(dashboard.router, tags=["Dashboard"])
app.include_router(students.router, tags=["Students"])
app.include_router(sessions.router, tags=["Sessions"])
app.include_router(exports.router, tags=["Export"])
app.include_router(items.router, tags=["Questions"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "quiz-admin-reporting", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Quiz Admin Reporting Service",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "dashboard": "GET /api/admin/dashboard",
            "students": "GET /api/admin/students",
            "student_detail": "GET /api/admin/students/{user_id}",
            "sessions": "GET /api/admin/sessions",
            "session_report": "GET /api/admin/sessions/{session_id}/report",
            "export_performance": "GET /api/admin/export/performance",
            "export_data": "GET /api/admin/export?type=sessions|students|questions",
            "question_stats": "GET /api/admin/questions/stats",
            "add_question": "POST /api/admin/questions",
            "update_question": "PUT /api/admin/questions/{item_id}",
            "delete_question": "DELETE /api/admin/questions/{item_id}"
        }
    }
