"""Errors raised along the contact submission flow."""
from __future__ import annotations

from typing import Optional


class ContactError(RuntimeError):
    """Base class for every failure of a contact submission."""


class ValidationError(ContactError):
    """A submitted field does not satisfy its contract (client-correctable)."""

    def __init__(self, field: str, code: str, message: str):
        super().__init__(message)
        self.field = field
        self.code = code
        self.message = message


class ConfigurationError(ContactError):
    """A required setting (the CRM API key) is missing."""


class ForwardingError(ContactError):
    """The CRM answered with a non-success response other than a duplicate."""

    def __init__(self, message: str, status_code: Optional[int] = None, crm_code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.crm_code = crm_code


class NetworkError(ContactError):
    """The CRM could not be reached or did not answer in time."""
