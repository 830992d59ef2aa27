"""taskledger - personal task tracking service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.config import constants, settings
from src.core.db_client import close_connection, init_db
from src.core.errors import (
    ErrorCode,
    ErrorResponse,
    ErrorSeverity,
    TaskLedgerError,
    classify_error_with_response,
    http_status_for,
)
from src.core.logging import configure_logfire, instrument_fastapi
from src.interface.categories_router import router as categories_router
from src.interface.tasks_router import router as tasks_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()

    await init_db()
    logger.info("Database initialized", extra={"db_path": settings.sqlite_db_path})

    yield

    # Shutdown
    await close_connection()


app = FastAPI(
    title="taskledger",
    description="Personal task tracking with derived progress and statistics",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(tasks_router)
app.include_router(categories_router)


@app.exception_handler(TaskLedgerError)
async def handle_task_error(request: Request, exc: TaskLedgerError) -> JSONResponse:
    """Map core errors to HTTP responses."""
    status_code = http_status_for(exc)
    response = classify_error_with_response(exc)
    log_level = logging.ERROR if status_code >= constants.HTTP_SERVER_ERROR else logging.INFO
    logger.log(
        log_level,
        "request_failed",
        extra={"path": request.url.path, "code": response.code, "error": str(exc)},
    )
    return JSONResponse(content=response.model_dump(mode="json"), status_code=status_code)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies and parameters as validation errors."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    response = ErrorResponse(
        code=ErrorCode.ERR_VALIDATION,
        message=f"Invalid request: {details}",
        severity=ErrorSeverity.LOW,
    )
    logger.info("request_invalid", extra={"path": request.url.path, "error": details})
    return JSONResponse(content=response.model_dump(mode="json"), status_code=constants.HTTP_BAD_REQUEST)


@app.get("/")
async def root() -> JSONResponse:
    """Service banner listing the main endpoints."""
    return JSONResponse(
        content={
            "message": "Todo API is running",
            "endpoints": {
                "getAllTodos": "GET /api/todos",
                "getTodoById": "GET /api/todos/:id",
                "createTodo": "POST /api/todos",
                "updateTodo": "PUT /api/todos/:id",
                "patchTodo": "PATCH /api/todos/:id",
                "deleteTodo": "DELETE /api/todos/:id",
                "bulkDelete": "DELETE /api/todos",
                "categories": "GET /api/categories",
                "daily": "GET /api/categories/daily/active",
                "stats": "GET /api/categories/stats/overview",
            },
        },
        status_code=constants.HTTP_OK,
    )


@app.get("/api/test")
async def api_test() -> JSONResponse:
    """Smoke-test endpoint."""
    return JSONResponse(content={"message": "Backend is working!"}, status_code=constants.HTTP_OK)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)
