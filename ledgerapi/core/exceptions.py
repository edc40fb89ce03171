from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message


class AuthenticationError(BaseAPIException):
    """Authentication related errors"""
    def __init__(self, message: str = "Authentication failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="AUTH_001",
            message=message,
            details=details
        )


class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )


class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )


class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )


class DatabaseUnavailableError(BaseAPIException):
    """Database connection lost or timed out - the transaction was rolled back"""
    def __init__(self, message: str = "Database temporarily unavailable", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="DATABASE_UNAVAILABLE",
            message=message,
            details=details
        )


# ---------------------------------------------------------------------------
# Ledger business errors
#
# 모두 예상 가능한 업무 오류이며 원장 손상을 의미하지 않는다.
# 코드 값은 클라이언트(관리 콘솔)가 분기에 사용하므로 바꾸지 않는다.
# ---------------------------------------------------------------------------


class LedgerError(BaseAPIException):
    """Base class for recoverable ledger/business errors"""
    default_status = status.HTTP_400_BAD_REQUEST
    default_code = "LEDGER_ERROR"
    default_message = "Ledger operation failed"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            status_code=self.default_status,
            error_code=self.default_code,
            message=message or self.default_message,
            details=details
        )


class InvalidAmountError(LedgerError):
    default_code = "INVALID_AMOUNT"
    default_message = "Invalid amount"


class InvalidTransactionTypeError(LedgerError):
    default_code = "INVALID_TRANSACTION_TYPE"
    default_message = "Unknown ledger transaction type"


class ImmutableLedgerError(LedgerError):
    default_status = status.HTTP_409_CONFLICT
    default_code = "LEDGER_IMMUTABLE"
    default_message = "Ledger entries cannot be modified; post an offsetting entry instead"


class InsufficientBalanceError(LedgerError):
    default_code = "INSUFFICIENT_BALANCE"
    default_message = "Insufficient balance"


class OrderNotFoundError(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class OrderAlreadyProcessedError(LedgerError):
    default_status = status.HTTP_409_CONFLICT
    default_code = "ORDER_ALREADY_PROCESSED"
    default_message = "Order has already been processed"


class DuplicatePendingOrderError(LedgerError):
    default_status = status.HTTP_409_CONFLICT
    default_code = "DUPLICATE_PENDING_ORDER"
    default_message = "A pending order for this item already exists"


class InvalidPackageError(LedgerError):
    default_code = "INVALID_PACKAGE"
    default_message = "Invalid recharge package"


class PlanNotFoundError(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "PLAN_NOT_FOUND"
    default_message = "Membership plan not found or disabled"


class UserNotFoundError(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "USER_NOT_FOUND"
    default_message = "User not found"


class AgentProfileNotFoundError(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "AGENT_PROFILE_NOT_FOUND"
    default_message = "Agent profile not found"


class AgentProfileExistsError(LedgerError):
    default_status = status.HTTP_409_CONFLICT
    default_code = "AGENT_PROFILE_EXISTS"
    default_message = "Agent profile already exists"


class AgentNotActiveError(LedgerError):
    default_status = status.HTTP_403_FORBIDDEN
    default_code = "AGENT_NOT_ACTIVE"
    default_message = "Agent is not active"


class LevelNotFoundError(LedgerError):
    default_status = status.HTTP_404_NOT_FOUND
    default_code = "LEVEL_NOT_FOUND"
    default_message = "Agent level not found"


class InvalidRateError(LedgerError):
    default_code = "INVALID_RATE"
    default_message = "Sub-agent rate must be non-negative and lower than own commission rate"


class InvalidAgentStatusError(LedgerError):
    default_status = status.HTTP_409_CONFLICT
    default_code = "INVALID_AGENT_STATUS"
    default_message = "Agent profile is not in a state that allows this operation"


class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, resource: str = "Resource", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND",
            message=f"{resource} not found",
            details=details
        )
