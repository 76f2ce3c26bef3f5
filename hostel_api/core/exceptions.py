from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


class BaseAppException(HTTPException):
    """Application error rendered as {success: false, message, errors?}"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.errors = errors or []


class ValidationError(BaseAppException):
    def __init__(self, detail: str = "Validation Error", errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, errors=errors)


class UnauthorizedError(BaseAppException):
    """401 with a machine readable reason: missing, invalid, expired or inactive"""

    def __init__(self, detail: str = "Authentication failed", reason: str = "invalid"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )
        self.reason = reason


class ForbiddenError(BaseAppException):
    def __init__(self, detail: str = "Insufficient permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(BaseAppException):
    def __init__(self, detail: str = "Resource already exists", blocking_count: Optional[int] = None):
        errors = None
        if blocking_count is not None:
            errors = [{"field": "role", "message": detail, "code": "role_in_use", "count": blocking_count}]
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail, errors=errors)
        self.blocking_count = blocking_count


class TooManyRequestsError(BaseAppException):
    def __init__(self, detail: str = "Too many requests", retry_after: int = 60):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class InternalError(BaseAppException):
    def __init__(self, detail: str = "Internal Server Error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)
