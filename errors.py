from typing import Any

from fastapi import HTTPException


class APIError(HTTPException):
    status_code = 500
    default_detail = "Internal server error."

    def __init__(self, detail: Any = None, headers: dict = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class ValidationError(APIError):
    status_code = 400
    default_detail = "Validation failed."


class Conflict(APIError):
    status_code = 400
    default_detail = "Resource already exists."


class Unauthorized(APIError):
    status_code = 401
    default_detail = "Not authenticated."

    def __init__(self, detail: Any = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(APIError):
    status_code = 403
    default_detail = "Forbidden."


class NotFound(APIError):
    status_code = 404
    default_detail = "Not found."


class UpstreamError(APIError):
    status_code = 500
    default_detail = "External service failure."


class InternalError(APIError):
    status_code = 500
