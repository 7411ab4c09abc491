from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Custom exception for not found errors"""
    def __init__(self, resource: str = "Resource"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=f"{resource} not found")

class ForbiddenError(HTTPException):
    """Custom exception for forbidden errors"""
    def __init__(self, detail: str = "Not authorized to access this resource"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class ValidationError(HTTPException):
    """Custom exception for validation errors"""
    def __init__(self, detail: str = "Validation failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class InsufficientCreditsError(HTTPException):
    """Raised when a user's active ledger rows cannot cover a deduction"""
    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail=f"Insufficient credits. User has {available} credits but needs {requested}"
        )

class WebhookSignatureError(HTTPException):
    """Raised when a Stripe webhook payload fails signature verification"""
    def __init__(self, detail: str = "Webhook signature verification failed"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

class WebhookPayloadError(HTTPException):
    """Raised when a webhook event lacks data the handler requires"""
    def __init__(self, detail: str = "Invalid webhook payload"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

