from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidStatusTransition(ServiceError):
    """Complaint status change not allowed from the current status."""

    def __init__(self, current: str, target: str) -> None:
        super().__init__(
            f"Cannot change complaint status from {current} to {target}",
            status.HTTP_400_BAD_REQUEST,
        )
        self.current = current
        self.target = target


class PaymentGatewayError(ServiceError):
    """Payment gateway could not be reached or rejected the request."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
