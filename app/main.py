import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.allocations.router import router as allocations_router
from app.api.v1.amenities.router import router as amenities_router
from app.api.v1.buildings.router import router as buildings_router
from app.api.v1.complaints.admin_router import router as admin_complaints_router
from app.api.v1.complaints.student_router import router as student_complaints_router
from app.api.v1.dashboard.router import router as dashboard_router
from app.api.v1.fee_settings.router import router as fee_settings_router
from app.api.v1.floors.router import router as floors_router
from app.api.v1.payments.admin_router import router as admin_payments_router
from app.api.v1.payments.student_router import router as student_payments_router
from app.api.v1.rooms.router import router as rooms_router
from app.api.v1.students.router import router as students_router
from app.api.v1.tenants.router import router as tenants_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.core.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    logger.info("Hostel management API starting")
    yield


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(message=str(exc.detail)).model_dump(),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(message=_validation_message(exc)).model_dump(),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(message="Internal server error").model_dump(),
        )


def create_app() -> FastAPI:
    app = FastAPI(title="Hostel Management Backend", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Routers
    app.include_router(tenants_router)
    app.include_router(students_router)
    app.include_router(buildings_router)
    app.include_router(floors_router)
    app.include_router(rooms_router)
    app.include_router(amenities_router)
    app.include_router(allocations_router)
    app.include_router(fee_settings_router)
    app.include_router(admin_payments_router)
    app.include_router(student_payments_router)
    app.include_router(student_complaints_router)
    app.include_router(admin_complaints_router)
    app.include_router(dashboard_router)

    return app


app = create_app()
