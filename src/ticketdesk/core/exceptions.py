"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.

Not every failure is an exception here: a ticket without a matching SLA
policy is simply exempt, and a balancer with no eligible agent returns None.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class InvalidStatusTransitionException(DomainException):
    """Raised when a ticket is asked to move to a status it cannot reach."""

    def __init__(self, ticket_id: str, current: str, target: str):
        self.ticket_id = ticket_id
        self.current = current
        self.target = target
        super().__init__(
            f"Ticket {ticket_id} cannot move from '{current}' to '{target}'",
            {"ticket_id": ticket_id, "current_status": current, "target_status": target}
        )


class AlertFetchException(RepositoryException):
    """A single ticket could not be loaded while processing an SLA alert."""

    def __init__(self, ticket_id: str, reason: str):
        self.ticket_id = ticket_id
        super().__init__(
            f"Could not load ticket {ticket_id} for SLA alert: {reason}",
            {"ticket_id": ticket_id}
        )


class NotificationDispatchException(ExternalServiceException):
    """A notification sender failed to hand the message to its transport."""

    def __init__(self, channel: str, message: str, details: Optional[dict] = None):
        self.channel = channel
        super().__init__(f"Notification channel '{channel}'", message, details)
