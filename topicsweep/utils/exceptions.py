from fastapi import HTTPException, status
from typing import Any, Optional


class APIException(HTTPException):
    """Flexible API Exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        detail = {"code": code, "message": message or "An error occurred"}
        if extra:
            detail.update(extra)
        super().__init__(status_code=status_code, detail=detail)


class BadRequestError(APIException):
    """400 Bad Request Error."""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST, code=code, message=message
        )


class UnprocessableError(APIException):
    """422 Unprocessable Entity, with optional structured detail."""

    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        extra: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=422,
            code=code,
            message=message,
            extra=extra,
        )


class ServerError(APIException):
    """500 Internal Server Error."""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            code=code,
            message=message,
        )
