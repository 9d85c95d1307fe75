"""
Client-side contact form controller.

Keeps the form state and the per-field validation status, formats the phone
input and submits the form to ``/api/submit-form``. Validation here is only a
UX aid: it uses the same rules as the server, which validates again.
"""
from __future__ import annotations

import enum
import re
import threading
from dataclasses import dataclass, field, replace
from typing import Dict, Optional

import requests

from tigli.app.errors import ValidationError
from tigli.app.services.validate import (
    FIELDS,
    check_privacy,
    normalize_email,
    normalize_name,
    normalize_phone,
)

PHONE_PREFIX = "+39 "
DEFAULT_ENDPOINT = "/api/submit-form"
DEFAULT_REDIRECT_URL = "/richiesta-inviata"
DEFAULT_TIMEOUT_SECONDS = 10.0

SERVER_ERROR_MESSAGE = "Si è verificato un errore. Riprova."
CONNECTION_ERROR_MESSAGE = "Errore di connessione. Verifica la tua connessione e riprova."

# Per-field messages shown under the inputs, keyed by validation code
FIELD_MESSAGES = {
    "required": "Campo obbligatorio",
    "too_short": "Minimo 2 caratteri",
    "too_long": "Massimo 100 caratteri",
    "invalid_format": "Formato non valido",
    "invalid_prefix": "Deve iniziare con 3",
    "invalid_length": "Deve essere 10 cifre (3XX XXXXXXX)",
    "not_accepted": "Campo obbligatorio",
}

_PHONE_INPUT_STRIP = re.compile(r"[^0-9\s]")


class SubmissionState(enum.Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    INVALID = "invalid"
    VALID = "valid"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class FieldStatus:
    # None = not evaluated yet
    state: Optional[bool] = None
    message: str = ""


@dataclass
class FormState:
    name: str = ""
    phone: str = PHONE_PREFIX
    email: str = ""
    privacy: bool = False


@dataclass
class SubmissionOutcome:
    state: SubmissionState
    error: Optional[str] = None
    redirect_url: Optional[str] = None
    download_url: Optional[str] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.state is SubmissionState.SUCCEEDED


def _field_message(exc: ValidationError) -> str:
    return FIELD_MESSAGES.get(exc.code, FIELD_MESSAGES["invalid_format"])


def format_phone_input(value: str) -> str:
    """
    Applies the phone input mask: always ``+39 `` then digits and spaces.

    Removing the prefix resets the input to the bare prefix.
    """
    value = value or ""
    country = PHONE_PREFIX.strip()
    if not value.startswith(country):
        return PHONE_PREFIX
    rest = value[len(country):]
    if rest.startswith(" "):
        rest = rest[1:]
    return PHONE_PREFIX + _PHONE_INPUT_STRIP.sub("", rest)


class ContactFormController:
    """
    Form state, per-field validation and submission lifecycle.

    Lifecycle: ``IDLE -> VALIDATING -> (INVALID | VALID) -> SUBMITTING ->
    (SUCCEEDED | FAILED)``. An invalid attempt ends there; editing a field
    goes back to ``IDLE``. A failed submission surfaces its error and returns
    to ``IDLE``. Only one submission may be in flight at a time.
    """

    def __init__(
        self,
        base_url: str = "",
        endpoint: str = DEFAULT_ENDPOINT,
        session: Optional[requests.Session] = None,
        redirect_url: str = DEFAULT_REDIRECT_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.url = base_url.rstrip("/") + endpoint
        self.session = session or requests.Session()
        self.redirect_url = redirect_url
        self.timeout = timeout
        self.form = FormState()
        self.validation = {name: FieldStatus() for name in FIELDS}
        self.state = SubmissionState.IDLE
        self.last_error: Optional[str] = None
        self._in_flight = threading.Lock()

    @property
    def sending(self) -> bool:
        return self._in_flight.locked()

    # --- setters -----------------------------------------------------------

    def _edited(self):
        if not self.sending:
            self.state = SubmissionState.IDLE

    def set_name(self, value: str):
        self.form = replace(self.form, name=value or "")
        self._edited()

    def set_email(self, value: str):
        self.form = replace(self.form, email=value or "")
        self._edited()

    def set_phone(self, value: str):
        self.form = replace(self.form, phone=format_phone_input(value))
        self._edited()

    def set_privacy(self, accepted: bool):
        self.form = replace(self.form, privacy=bool(accepted))
        self._edited()

    def focus(self, field_name: str):
        """Clears the status of a field when the user goes back to it."""
        if field_name not in self.validation:
            raise KeyError(field_name)
        self.validation[field_name] = FieldStatus()

    def reset(self):
        self.form = FormState()
        self.validation = {name: FieldStatus() for name in FIELDS}
        self.state = SubmissionState.IDLE
        self.last_error = None

    # --- validation ----------------------------------------------------------

    def check_form(self) -> bool:
        """
        Evaluates all four fields independently and updates their statuses.

        Returns:
            True when every field is valid
        """
        checks = {
            "name": lambda: normalize_name(self.form.name),
            "email": lambda: normalize_email(self.form.email),
            "phone": lambda: normalize_phone(self.form.phone),
            "privacy": lambda: check_privacy(self.form.privacy),
        }
        is_valid = True
        for name, check in checks.items():
            try:
                check()
            except ValidationError as exc:
                self.validation[name] = FieldStatus(state=False, message=_field_message(exc))
                is_valid = False
            else:
                self.validation[name] = FieldStatus(state=True)
        return is_valid

    def field_errors(self) -> Dict[str, str]:
        return {
            name: status.message
            for name, status in self.validation.items()
            if status.state is False
        }

    def payload(self) -> dict:
        return {
            "name": self.form.name.strip(),
            "email": self.form.email.strip().lower(),
            "phone": self.form.phone.strip(),
            "privacy": self.form.privacy,
        }

    # --- submission ----------------------------------------------------------

    def submit(self) -> Optional[SubmissionOutcome]:
        """
        Validates and posts the form.

        Returns:
            SubmissionOutcome, or None when another submission is in flight
        """
        if not self._in_flight.acquire(blocking=False):
            return None
        try:
            self.state = SubmissionState.VALIDATING
            if not self.check_form():
                self.state = SubmissionState.INVALID
                return SubmissionOutcome(
                    state=SubmissionState.INVALID,
                    field_errors=self.field_errors(),
                )

            self.state = SubmissionState.VALID
            self.state = SubmissionState.SUBMITTING
            outcome = self._post()
        finally:
            self._in_flight.release()

        if outcome.succeeded:
            self.state = SubmissionState.SUCCEEDED
            self.last_error = None
            self.on_success(outcome)
        else:
            self.last_error = outcome.error
            self.state = SubmissionState.IDLE
        return outcome

    def _post(self) -> SubmissionOutcome:
        try:
            response = self.session.post(self.url, json=self.payload(), timeout=self.timeout)
            data = response.json()
        except (requests.exceptions.RequestException, ValueError):
            return SubmissionOutcome(state=SubmissionState.FAILED, error=CONNECTION_ERROR_MESSAGE)

        if not isinstance(data, dict):
            data = {}
        if response.ok and data.get("success"):
            return SubmissionOutcome(state=SubmissionState.SUCCEEDED, redirect_url=self.redirect_url)
        return SubmissionOutcome(
            state=SubmissionState.FAILED,
            error=data.get("error") or SERVER_ERROR_MESSAGE,
        )

    def on_success(self, outcome: SubmissionOutcome):
        """Hook for subclasses; the contact form simply redirects."""


class FloorplanDownloadController(ContactFormController):
    """
    Contact form gating the floor-plan download.

    On success the outcome carries the PDF URL instead of a redirect and the
    form goes back to its initial state.
    """

    def __init__(self, pdf_url: str, **kwargs):
        kwargs.setdefault("redirect_url", None)
        super().__init__(**kwargs)
        self.pdf_url = pdf_url

    def on_success(self, outcome: SubmissionOutcome):
        outcome.download_url = self.pdf_url
        outcome.redirect_url = None
        self.reset()
