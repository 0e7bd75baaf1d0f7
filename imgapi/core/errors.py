"""Symbolic error codes and the exception that carries them to the client."""

from enum import Enum


class ErrorCode(str, Enum):
    INVALID_PARAMETER = "InvalidParameter"
    RESOURCE_NOT_FOUND = "ResourceNotFound"
    INTERNAL_ERROR = "InternalError"
    UNAUTHORIZED = "UnauthorizedError"
    ACCOUNT_DOES_NOT_EXIST = "AccountDoesNotExist"
    INSUFFICIENT_SERVER_VERSION = "InsufficientServerVersion"

    @property
    def status(self) -> int:
        return _STATUS[self]


_STATUS = {
    ErrorCode.INVALID_PARAMETER: 422,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.INTERNAL_ERROR: 500,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.ACCOUNT_DOES_NOT_EXIST: 403,
    ErrorCode.INSUFFICIENT_SERVER_VERSION: 422,
}


class ImgApiError(Exception):
    """
    Terminal failure for the current request.

    Raised where the failure is detected; the application's exception
    handler turns it into a `{"code", "message"}` response.
    """

    def __init__(self, code: ErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    @property
    def status(self) -> int:
        return self.code.status

    def body(self) -> dict:
        return {"code": self.code.value, "message": self.message}
