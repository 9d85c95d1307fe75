"""Client side of the contact form: state, advisory validation and submission."""
from .form import (
    ContactFormController,
    FieldStatus,
    FloorplanDownloadController,
    FormState,
    SubmissionOutcome,
    SubmissionState,
)

__all__ = [
    "ContactFormController",
    "FieldStatus",
    "FloorplanDownloadController",
    "FormState",
    "SubmissionOutcome",
    "SubmissionState",
]
