"""
Error taxonomy shared by the services.

Each error is an HTTPException, so services raise them exactly where they
would raise a plain HTTPException, and FastAPI turns them into responses.
`kind` is a stable, machine-readable name for the failure.
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse


class AppError(HTTPException):
    status_code = 500
    kind = "error"

    def __init__(self, detail: str, headers: dict | None = None):
        super().__init__(status_code=self.status_code, detail=detail, headers=headers)


class BadRequest(AppError):
    status_code = 400
    kind = "bad_request"


class Unauthorized(AppError):
    status_code = 401
    kind = "unauthorized"

    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = 403
    kind = "forbidden"


class NotFound(AppError):
    status_code = 404
    kind = "not_found"


class Conflict(AppError):
    status_code = 409
    kind = "conflict"


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "kind": exc.kind},
        headers=exc.headers,
    )
