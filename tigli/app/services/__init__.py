"""
Services package - reusable business logic and utilities.

Helpers shared by the API and the landing pages, independent of blueprints.
"""

__all__ = [
    "crm",
    "request_utils",
    "validate",
]
