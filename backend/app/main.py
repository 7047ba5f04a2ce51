"""
Institute Records Backend - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps application exceptions to JSON error responses
5. Registers the student and course routers plus a health check

The application follows a modular architecture:
- routes/: API endpoint handlers and request schemas
- models/: SQLAlchemy ORM models
- services/: Repository logic (students, courses, sequences)
- storage.py: Uploaded file storage
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from app.exceptions import BaseAppException
from app.routes import students, courses
from app.database import DATABASE_URL, create_tables

# Initialize structured logging before anything else
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite: creating tables directly")
    create_tables()

app = FastAPI(
    title="Institute Records Backend",
    description=(
        "Student record store for the institute dashboards: students, "
        "course enrollments, grade records and the course catalogue."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# In production, restrict origins to the dashboard domain.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Total-Count", "X-Page", "X-Per-Page"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Generate a request ID for every HTTP request.

    The ID is stored in a context variable (so every log entry carries it),
    returned in the X-Request-ID response header, and logged together with
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


@app.exception_handler(BaseAppException)
async def app_exception_handler(request: Request, exc: BaseAppException):
    """Render application exceptions as {"message", "error"} bodies."""
    level = "ERROR" if exc.status_code >= 500 else "WARNING"
    log_with_context(logger, level,
        f"{request.method} {request.url.path} failed: {exc.message}",
        extra_data={"code": exc.error_code.value, "status_code": exc.status_code, **exc.details})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    log_with_context(logger, "ERROR",
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


app.include_router(students.router, tags=["Students"])
app.include_router(courses.router, tags=["Courses"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "institute-records-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Institute Records Backend",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "students_list": "GET /api/students",
            "student_create": "POST /api/students",
            "student_stats": "GET /api/students/stats",
            "student_detail": "GET|PUT|DELETE /api/students/{key}",
            "student_status": "PATCH /api/students/{key}/status",
            "enroll": "POST /api/students/{key}/enrollments",
            "enrollment": "PUT|DELETE /api/students/{key}/enrollments/{courseId}",
            "grades": "POST /api/students/{key}/grades",
            "profile_picture": "PUT /api/students/{key}/profile-picture",
            "courses": "GET|POST /api/courses",
            "course_detail": "GET|PUT|DELETE /api/courses/{id}"
        }
    }
