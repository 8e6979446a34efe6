import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolhub.api.v1.assignments.router import student_router as student_assignments_router
from schoolhub.api.v1.assignments.router import teacher_router as teacher_assignments_router
from schoolhub.api.v1.attendance.router import student_router as student_attendance_router
from schoolhub.api.v1.attendance.router import teacher_router as teacher_attendance_router
from schoolhub.api.v1.auth.router import router as auth_router
from schoolhub.api.v1.classes.router import admin_router as admin_classes_router
from schoolhub.api.v1.classes.router import student_router as student_classes_router
from schoolhub.api.v1.classes.router import teacher_router as teacher_classes_router
from schoolhub.api.v1.courses.router import admin_router as admin_courses_router
from schoolhub.api.v1.courses.router import teacher_router as teacher_courses_router
from schoolhub.api.v1.dashboards.router import admin_router as admin_dashboard_router
from schoolhub.api.v1.dashboards.router import student_router as student_dashboard_router
from schoolhub.api.v1.dashboards.router import teacher_router as teacher_dashboard_router
from schoolhub.api.v1.navigation.router import router as navigation_router
from schoolhub.api.v1.settings.router import router as settings_router
from schoolhub.api.v1.users.router import students_router, teachers_router, users_router
from schoolhub.auth.guard import GuardRedirect
from schoolhub.core.config import settings
from schoolhub.core.logging import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.auto_create_tables:
        from schoolhub.db.schema_check import ensure_tables
        from schoolhub.db.session import engine

        created = await ensure_tables(engine)
        if created:
            logger.info("Created tables: %s", ", ".join(created))
    yield


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(GuardRedirect)
    async def guard_redirect_handler(request: Request, exc: GuardRedirect):
        return RedirectResponse(exc.target, status_code=status.HTTP_303_SEE_OTHER)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            return JSONResponse({"detail": "Page not found"}, status_code=status.HTTP_404_NOT_FOUND)
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Constraint violation on %s %s: %s", request.method, request.url.path, exc.orig)
        return JSONResponse(
            {"detail": "This record conflicts with an existing one"},
            status_code=status.HTTP_409_CONFLICT,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"detail": "Internal server error"},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="School Management System", lifespan=lifespan)

    # CORS: allow the browser frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_exception_handlers(app)

    # Routers
    app.include_router(navigation_router)
    app.include_router(auth_router)

    app.include_router(admin_dashboard_router)
    app.include_router(users_router)
    app.include_router(teachers_router)
    app.include_router(students_router)
    app.include_router(admin_classes_router)
    app.include_router(admin_courses_router)
    app.include_router(settings_router)

    app.include_router(teacher_dashboard_router)
    app.include_router(teacher_classes_router)
    app.include_router(teacher_courses_router)
    app.include_router(teacher_assignments_router)
    app.include_router(teacher_attendance_router)

    app.include_router(student_dashboard_router)
    app.include_router(student_classes_router)
    app.include_router(student_assignments_router)
    app.include_router(student_attendance_router)

    return app


app = create_app()
