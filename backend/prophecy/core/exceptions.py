from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

class ProphecyException(Exception):
    """Base exception for the prophecy engine"""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)

class ValidationError(ProphecyException):
    """Raised when feedback input is malformed"""
    def __init__(self, message: str = "Validation error"):
        super().__init__(message, status.HTTP_400_BAD_REQUEST)

class InsufficientDataError(ProphecyException):
    """Raised when an operation needs more historical records than the user has"""
    def __init__(self, message: str = "Not enough historical data", required: int = 0, available: int = 0):
        self.required = required
        self.available = available
        super().__init__(message, status.HTTP_422_UNPROCESSABLE_ENTITY)

class UpstreamUnavailableError(ProphecyException):
    """Raised when the analytics, feedback or calibration source fails"""
    def __init__(self, message: str = "Upstream data source unavailable", source: str = "unknown"):
        self.source = source
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)

class UnknownVariantError(ProphecyException):
    """Raised when a model variant name is not recognised"""
    def __init__(self, message: str = "Model variant not found"):
        super().__init__(message, status.HTTP_404_NOT_FOUND)

async def prophecy_exception_handler(request: Request, exc: ProphecyException):
    """Handle prophecy engine exceptions"""
    if exc.status_code >= 500:
        logger.error(f"Prophecy exception: {exc.message}")
    else:
        logger.warning(f"Prophecy exception: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message}
    )

async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handle SQLAlchemy database exceptions"""
    logger.error(f"Database error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred"}
    )

async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions"""
    logger.error(f"Unexpected error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )
