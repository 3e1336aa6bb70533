from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.classrooms.router import router as classrooms_router
from app.api.v1.fees.router import router as fees_router
from app.api.v1.grades.router import router as grades_router
from app.api.v1.promotions.router import router as promotions_router
from app.api.v1.schedules.router import router as schedules_router
from app.api.v1.students.router import router as students_router
from app.core.config import settings
from app.core.logging_config import configure_logging
from app.db.session import create_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    yield


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="School Records Backend", lifespan=lifespan)

    # CORS: comma-separated CORS_ORIGINS, "*" allows any frontend
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(grades_router)
    app.include_router(promotions_router)
    app.include_router(classrooms_router)
    app.include_router(students_router)
    app.include_router(attendance_router)
    app.include_router(fees_router)
    app.include_router(schedules_router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn on APP_HOST:APP_PORT."""
    uvicorn.run("app.main:app", host=settings.app_host, port=settings.app_port, log_level=settings.log_level.lower())
