from decimal import Decimal
from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class InsufficientBalance(AppException):
    """Deduction would take a leave credit balance below zero."""
    def __init__(self, credit_type: str, available: Decimal, required: Decimal):
        self.credit_type = credit_type
        self.available = available
        self.required = required
        super().__init__(
            message=f"Insufficient {credit_type} balance: {available} available, {required} required",
            status_code=409,
            error_code="INSUFFICIENT_BALANCE",
            details={"credit_type": credit_type, "available": str(available), "required": str(required)}
        )

class Unauthorized(AppException):
    """Actor may not perform this action. Named to avoid confusion with HTTP 401; maps to 403."""
    def __init__(self, message: str = "Not permitted to perform this action"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="UNAUTHORIZED"
        )

class InvalidTransition(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=409,
            error_code="INVALID_TRANSITION",
            details=details
        )

class NotFound(AppException):
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} {entity_id} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )

class ValidationFailed(AppException):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=422,
            error_code="VALIDATION_FAILED",
            details=details
        )
