"""
Forwarding of validated contacts to the Brevo contacts API.

Functions:
- build_contact_payload: Maps a ContactSubmission to a Brevo contact record
- forward_contact: Creates or updates the contact (upsert keyed by email)
- deliver_submission: Forwards and maps failures to a user-facing message
"""

import json
from dataclasses import dataclass
from typing import Optional

import requests
from flask import current_app

from ..errors import ConfigurationError, ForwardingError, NetworkError

DEFAULT_BREVO_API_URL = "https://api.brevo.com/v3/contacts"
DEFAULT_TIMEOUT_SECONDS = 8.0
DUPLICATE_CONTACT_CODE = "duplicate_parameter"

CONFIGURATION_ERROR_MESSAGE = "Configurazione non disponibile"
GENERIC_ERROR_MESSAGE = "Si è verificato un errore. Riprova più tardi."

# Brevo attribute names
FIRST_NAME_ATTRIBUTE = "FIRSTNAME"
LAST_NAME_ATTRIBUTE = "LASTNAME"
PHONE_ATTRIBUTE = "SMS"


@dataclass
class ForwardResult:
    status_code: int
    duplicate: bool = False


def build_contact_payload(submission):
    """
    Builds the Brevo contact record for a validated submission.

    ``updateEnabled`` makes Brevo update the contact when the email already
    exists instead of creating a new one.
    """
    return {
        "email": submission.email,
        "attributes": {
            FIRST_NAME_ATTRIBUTE: submission.first_name,
            LAST_NAME_ATTRIBUTE: submission.last_name,
            PHONE_ATTRIBUTE: submission.phone,
        },
        "updateEnabled": True,
    }


def resolve_api_key(api_key: Optional[str] = None) -> Optional[str]:
    """Returns the explicit key or BREVO_API_KEY from the app config, stripped."""
    if api_key is None:
        api_key = current_app.config.get("BREVO_API_KEY")
    if isinstance(api_key, str):
        api_key = api_key.strip()
    return api_key or None


def _parse_body(response) -> dict:
    text = response.text or ""
    if not text:
        return {}
    try:
        data = json.loads(text)
    except ValueError:
        current_app.logger.warning(
            "Risposta Brevo non interpretabile",
            extra={"event": "crm.unparseable_response", "status_code": response.status_code},
        )
        return {}
    return data if isinstance(data, dict) else {}


def forward_contact(submission, api_key=None, api_url=None, timeout=None, max_retries=None):
    """
    Sends the contact to Brevo and interprets the answer.

    A ``400`` reporting ``duplicate_parameter`` counts as success: the contact
    already exists. 4xx answers are never retried; 5xx answers and transport
    failures are retried up to ``max_retries`` times (CRM_MAX_RETRIES).

    Args:
        submission: Validated ContactSubmission
        api_key: Brevo API key; defaults to BREVO_API_KEY
        api_url: Contacts endpoint; defaults to BREVO_API_URL
        timeout: Seconds to wait for Brevo; defaults to CRM_TIMEOUT_SECONDS
        max_retries: Extra attempts after a 5xx or transport error

    Returns:
        ForwardResult

    Raises:
        ConfigurationError: the API key is missing (no request is made)
        ForwardingError: Brevo rejected the contact
        NetworkError: Brevo could not be reached
    """
    config = current_app.config
    api_key = resolve_api_key(api_key)
    if not api_key:
        raise ConfigurationError("BREVO_API_KEY is not configured")

    url = api_url or config.get("BREVO_API_URL") or DEFAULT_BREVO_API_URL
    if timeout is None:
        timeout = config.get("CRM_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)
    if max_retries is None:
        max_retries = config.get("CRM_MAX_RETRIES", 0)
    attempts = 1 + max(0, int(max_retries))

    payload = build_contact_payload(submission)
    headers = {
        "accept": "application/json",
        "content-type": "application/json",
        "api-key": api_key,
    }

    for attempt in range(1, attempts + 1):
        try:
            response = requests.post(url, json=payload, headers=headers, timeout=timeout)
        except requests.exceptions.RequestException as exc:
            current_app.logger.error(
                "Brevo non raggiungibile: %s", exc,
                extra={
                    "event": "crm.network_error",
                    "error_type": type(exc).__name__,
                    "attempt": attempt,
                },
            )
            if attempt < attempts:
                current_app.logger.info("Nuovo tentativo verso Brevo", extra={"event": "crm.retrying", "attempt": attempt})
                continue
            raise NetworkError(f"Brevo request failed: {exc}") from exc

        status = response.status_code
        if 200 <= status < 300:
            current_app.logger.info(
                "Contatto inviato a Brevo",
                extra={"event": "crm.forwarded", "status_code": status},
            )
            return ForwardResult(status_code=status)

        data = _parse_body(response)
        crm_code = data.get("code")
        if status == 400 and crm_code == DUPLICATE_CONTACT_CODE:
            current_app.logger.info(
                "Contatto già presente in Brevo, verrà aggiornato",
                extra={"event": "crm.duplicate_contact", "status_code": status},
            )
            return ForwardResult(status_code=status, duplicate=True)

        current_app.logger.error(
            "Brevo ha rifiutato il contatto: %s", data or status,
            extra={
                "event": "crm.rejected",
                "status_code": status,
                "crm_code": crm_code,
                "attempt": attempt,
            },
        )
        if status >= 500 and attempt < attempts:
            current_app.logger.info("Nuovo tentativo verso Brevo", extra={"event": "crm.retrying", "attempt": attempt})
            continue
        raise ForwardingError(
            data.get("message") or f"Brevo API error: {status}",
            status_code=status,
            crm_code=crm_code,
        )


def deliver_submission(submission):
    """
    Forwards a submission and maps any failure to a user-facing message.

    Details stay in the server logs; the caller only gets a generic text.

    Returns:
        None on success (duplicates included), error message otherwise
    """
    try:
        forward_contact(submission)
    except ConfigurationError:
        current_app.logger.error(
            "BREVO_API_KEY mancante nella configurazione",
            extra={"event": "contact.config_missing"},
        )
        return CONFIGURATION_ERROR_MESSAGE
    except (ForwardingError, NetworkError) as exc:
        current_app.logger.error(
            "Invio del contatto non riuscito: %s", exc,
            extra={"event": "contact.forward_failed", "error_type": type(exc).__name__},
        )
        return GENERIC_ERROR_MESSAGE
    return None
