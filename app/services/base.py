"""
Shared plumbing for services returning structured results
"""

from typing import List, Optional
from sqlmodel import Session
import structlog

from app.schemas.common import ApiResponse, ErrorCode

logger = structlog.get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ServiceError(Exception):
    """Expected failure raised inside a service and returned as a result at its boundary"""

    def __init__(self, error_code: ErrorCode, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.errors = errors or []

    def to_response(self) -> ApiResponse:
        return ApiResponse.fail(self.error_code, self.message, self.errors)


class BaseService:
    """Service bound to one request's database session"""

    def __init__(self, session: Session):
        self.session = session

    def _fail(self, error: ServiceError) -> ApiResponse:
        self.session.rollback()
        return error.to_response()

    def _internal_error(self, event: str, **context) -> ApiResponse:
        """Roll back, log the exception with context and hide its text from the caller"""
        self.session.rollback()
        logger.exception(event, **context)
        return ApiResponse.fail(ErrorCode.INTERNAL_ERROR, INTERNAL_ERROR_MESSAGE)
