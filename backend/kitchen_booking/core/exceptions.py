# backend/kitchen_booking/core/exceptions.py
"""
Domain-specific exceptions for the kitchen booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.to_dict())


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message or "An error occurred processing your request",
            "code": self.code,
            "details": self.details if self.details else {},
        }


# Specific business exceptions


class AccessDeniedException(ForbiddenException):
    """Raised when a chef lacks an approved location-level booking grant."""

    def __init__(self, chef_id: str, location_id: str):
        super().__init__(
            message="AccessDenied: tier-2 application required",
            code="ACCESS_DENIED",
            details={"chef_id": chef_id, "location_id": location_id},
        )


class UnpaidOverstayPenaltiesException(ForbiddenException):
    """Raised when a chef with unresolved overstay penalties tries to book."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="Access denied. You have unpaid overstay penalties.",
            code="UNPAID_OVERSTAY_PENALTIES",
            details=details,
        )


class CapacityConflictException(ConflictException):
    """Raised when a slot filled up between the availability read and the write."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged = {"retryable": True}
        merged.update(details or {})
        super().__init__(
            message=message or "The selected time slot is no longer available",
            code="SLOT_NO_LONGER_AVAILABLE",
            details=merged,
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
