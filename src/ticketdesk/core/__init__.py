"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from ticketdesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    ValidationException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    InvalidStatusTransitionException,
    AlertFetchException,
    NotificationDispatchException,
)
from ticketdesk.core.clock import Clock, utc_now, as_utc, hours_between

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "ValidationException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "InvalidStatusTransitionException",
    "AlertFetchException",
    "NotificationDispatchException",
    "Clock",
    "utc_now",
    "as_utc",
    "hours_between",
]
