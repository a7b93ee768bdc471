# buildledger/shared/exceptions.py
from fastapi import HTTPException, status


# Authentication & Authorization Exceptions
class UnlinkedProfileError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not linked to profile",
        )


class InactiveProfileError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated"
        )


class CronUnauthorizedError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )


# Resource Not Found Exceptions
class UserNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


class DepartmentNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="Department not found"
        )


class StageNotFoundError(HTTPException):
    def __init__(self) -> None:
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail="Stage not found"
        )


# Validation / Request Exceptions
class InvalidDataError(HTTPException):
    def __init__(self, message: str = "Invalid request data") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


class QueryFailedError(HTTPException):
    def __init__(self, message: str) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


# Integration Exceptions
class IntegrationConnectionError(HTTPException):
    def __init__(self, message: str = "Integration connection failed") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
        )


class IntegrationAuthenticationError(HTTPException):
    def __init__(self, message: str = "Integration authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class IntegrationTokenExpiredError(HTTPException):
    def __init__(self, message: str = "Integration token has expired") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=message)


class IntegrationConfigurationError(HTTPException):
    def __init__(self, message: str = "Xero credentials not configured") -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=message
        )


class SyncFailedError(HTTPException):
    def __init__(self, message: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Invoice sync failed: {message}",
        )
