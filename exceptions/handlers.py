from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from exceptions.exceptions import (
    ErrorEmailAlreadyExists,
    ErrorInvalidUserId,
    ErrorUserNotFound,
    ErrorUserStore,
    ErrorUserValidation,
)

from loguru import logger

_ACTIONS = {
    "GET": "fetching users",
    "POST": "creating user",
    "PUT": "updating user",
    "DELETE": "deleting user",
}


def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message, **extra})


def _server_error(request: Request, exc: Exception) -> JSONResponse:
    action = _ACTIONS.get(request.method, "handling request")
    return _failure(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        f"Server error while {action}",
        error=str(exc),
    )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ErrorUserValidation)
    async def user_validation_handler(request: Request, exc: ErrorUserValidation):
        return _failure(status.HTTP_400_BAD_REQUEST, "Validation error", errors=exc.messages)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Malformed request on {request.url.path}: {exc.errors()}")
        errors = [error.get("msg", "Invalid request") for error in exc.errors()]
        return _failure(status.HTTP_400_BAD_REQUEST, "Validation error", errors=errors)

    @app.exception_handler(ErrorEmailAlreadyExists)
    async def email_exists_handler(request: Request, exc: ErrorEmailAlreadyExists):
        return _failure(status.HTTP_400_BAD_REQUEST, "Email already exists")

    @app.exception_handler(ErrorInvalidUserId)
    async def invalid_id_handler(request: Request, exc: ErrorInvalidUserId):
        logger.error(str(exc))
        return _failure(status.HTTP_400_BAD_REQUEST, "Invalid user ID format")

    @app.exception_handler(ErrorUserNotFound)
    async def not_found_handler(request: Request, exc: ErrorUserNotFound):
        return _failure(status.HTTP_404_NOT_FOUND, "User not found")

    @app.exception_handler(ErrorUserStore)
    async def store_error_handler(request: Request, exc: ErrorUserStore):
        return _server_error(request, exc)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.method} {request.url.path}")
        return _server_error(request, exc)
