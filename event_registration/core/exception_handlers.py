from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from event_registration.core.errors import DomainError, ErrorCode


def error_response(status_code: int, code: ErrorCode, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code.value, "message": message}},
    )


def _describe(error: dict) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Domain error on {} {}: {}", request.method, request.url.path, exc)
    else:
        logger.info("Rejected {} {}: {}", request.method, request.url.path, exc)
    return error_response(exc.status_code, exc.code, exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    message = "; ".join(_describe(error) for error in exc.errors())
    logger.info("Validation error on {} {}: {}", request.method, request.url.path, message)
    return error_response(status.HTTP_400_BAD_REQUEST, ErrorCode.VALIDATION_ERROR, message)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.opt(exception=exc).error("Database error on {} {}", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.DATABASE_ERROR,
        "A database error occurred",
    )


async def general_500_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.opt(exception=exc).error("Unhandled exception on {} {}", request.method, request.url.path)
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        ErrorCode.INTERNAL_ERROR,
        "Internal server error",
    )


EXCEPTION_HANDLERS = {
    DomainError: domain_error_handler,
    RequestValidationError: validation_error_handler,
    SQLAlchemyError: database_error_handler,
    Exception: general_500_exception_handler,
}


def register_exception_handlers(app: FastAPI) -> None:
    for exception_class, handler in EXCEPTION_HANDLERS.items():
        app.add_exception_handler(exception_class, handler)
