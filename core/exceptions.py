from fastapi import status

from core.errors import ErrorCode, ErrorMessage


class AppException(Exception):
    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict | None = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details or {}


class ValidationError(AppException):
    def __init__(self, message: str, code: str = ErrorCode.VALIDATION_ERROR, details: dict | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, code, message, details)


class AuthError(AppException):
    def __init__(self, message: str = ErrorMessage.UNAUTHORIZED, code: str = ErrorCode.AUTH_UNAUTHORIZED):
        super().__init__(status.HTTP_401_UNAUTHORIZED, code, message)


class AdminAuthError(AppException):
    def __init__(self, message: str = ErrorMessage.ADMIN_UNAUTHORIZED):
        super().__init__(status.HTTP_401_UNAUTHORIZED, ErrorCode.ADMIN_UNAUTHORIZED, message)


class ConflictError(AppException):
    def __init__(self, message: str = ErrorMessage.USER_EXISTS, code: str = ErrorCode.USER_EXISTS):
        super().__init__(status.HTTP_409_CONFLICT, code, message)


class NotFoundError(AppException):
    def __init__(self, message: str, code: str = ErrorCode.NOT_FOUND):
        super().__init__(status.HTTP_404_NOT_FOUND, code, message)


class InsufficientBalanceError(AppException):
    def __init__(self, coin: str, requested, available):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            ErrorCode.INSUFFICIENT_BALANCE,
            ErrorMessage.INSUFFICIENT_BALANCE,
            {"coin": coin, "requested": str(requested), "available": str(available)},
        )
