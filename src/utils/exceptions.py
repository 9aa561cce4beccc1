"""
Custom exception classes for the application
"""
from decimal import Decimal
from typing import Any, Dict, Optional


class BrokerageServerError(Exception):
    """Base exception for all application errors"""
    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)

    def details(self) -> Dict[str, Any]:
        """Extra fields rendered next to the message in API responses"""
        return {}


class DatabaseError(BrokerageServerError):
    """Database-related errors"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(message, error_code="DB_ERROR")


class DatabaseConnectionError(DatabaseError):
    """Database connection errors"""
    def __init__(self, message: str = "Failed to connect to database", original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.error_code = "DB_CONNECTION_ERROR"


class DatabaseQueryError(DatabaseError):
    """Database query execution errors"""
    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message, original_error)
        self.error_code = "DB_QUERY_ERROR"


class ValidationError(BrokerageServerError):
    """Input validation errors"""
    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, error_code="VALIDATION_ERROR")

    def details(self) -> Dict[str, Any]:
        return {"field": self.field} if self.field else {}


class InvalidInputError(ValidationError):
    """Invalid input parameter errors"""
    def __init__(self, field: str, value: Any, reason: str):
        message = f"Invalid value for '{field}': {value}. {reason}"
        super().__init__(message, field)
        self.error_code = "INVALID_INPUT"


class AmountOutOfRangeError(ValidationError):
    """Amount outside the range accepted by an investment plan"""
    def __init__(self, amount: Decimal, min_amount: Decimal, max_amount: Decimal):
        self.amount = amount
        self.min_amount = min_amount
        self.max_amount = max_amount
        super().__init__(
            f"Investment amount must be between ${min_amount} and ${max_amount}",
            "amount"
        )
        self.error_code = "AMOUNT_OUT_OF_RANGE"

    def details(self) -> Dict[str, Any]:
        return {"min_amount": str(self.min_amount), "max_amount": str(self.max_amount)}


class NotFoundError(BrokerageServerError):
    """Resource not found errors"""
    def __init__(self, resource_type: str, resource_id: Optional[Any] = None):
        self.resource_type = resource_type
        self.resource_id = resource_id
        if resource_id is not None:
            message = f"{resource_type} with ID {resource_id} not found"
        else:
            message = f"{resource_type} not found"
        super().__init__(message, error_code="NOT_FOUND")


class PlanNotFoundError(NotFoundError):
    """Investment plan does not exist"""
    def __init__(self, plan_id: Optional[Any] = None):
        super().__init__("Investment plan", plan_id)
        self.error_code = "PLAN_NOT_FOUND"


class InsufficientFundsError(BrokerageServerError):
    """Wallet balance does not cover the requested debit"""
    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        super().__init__("Insufficient balance", error_code="INSUFFICIENT_FUNDS")

    def details(self) -> Dict[str, Any]:
        return {"required": f"{self.required:.2f}", "available": f"{self.available:.2f}"}


class NoSuchHoldingError(BrokerageServerError):
    """Sell attempted on an asset the user does not hold"""
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"You don't own any {symbol}", error_code="NO_SUCH_HOLDING")


class InsufficientHoldingsError(BrokerageServerError):
    """Sell quantity exceeds the held quantity"""
    def __init__(self, requested: Decimal, available: Decimal):
        self.requested = requested
        self.available = available
        super().__init__("Insufficient holdings", error_code="INSUFFICIENT_HOLDINGS")

    def details(self) -> Dict[str, Any]:
        return {"requested": str(self.requested), "available": str(self.available)}


class InvalidStateTransitionError(BrokerageServerError):
    """Requested status change is not allowed from the current status"""
    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        requested_status: Optional[str] = None
    ):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(message, error_code="INVALID_STATE_TRANSITION")

    def details(self) -> Dict[str, Any]:
        data = {}
        if self.current_status is not None:
            data["current_status"] = self.current_status
        if self.requested_status is not None:
            data["requested_status"] = self.requested_status
        return data


class AlreadyReviewedError(InvalidStateTransitionError):
    """Funds request has already left its reviewable state"""
    def __init__(self, resource_type: str, current_status: Optional[str] = None):
        super().__init__(f"{resource_type} already reviewed", current_status=current_status)
        self.error_code = "ALREADY_REVIEWED"


class AuthenticationError(ValidationError):
    """Missing, invalid or expired credentials"""
    def __init__(self, message: str):
        super().__init__(message, "auth")
        self.error_code = "AUTHENTICATION_ERROR"


class AccessDeniedError(ValidationError):
    """Authenticated caller lacks the role or permission for the operation"""
    def __init__(self, message: str):
        super().__init__(message, "auth")
        self.error_code = "ACCESS_DENIED"
