"""Lead-capture endpoint: validates the contact form and forwards it to Brevo."""
from flask import jsonify, current_app, request

from . import api
from ..errors import ValidationError
from ..extensions import limiter
from ..services.crm import deliver_submission
from ..services.validate import validate_submission

INVALID_BODY_MESSAGE = "Dati non validi"
SUCCESS_MESSAGE = "Richiesta inviata con successo"


@api.errorhandler(429)
def handle_rate_limit(e):
    """Consistent JSON answers for rate-limited API calls."""
    retry_after = None
    try:
        headers = dict(e.get_headers()) if hasattr(e, "get_headers") else {}
        retry_after = headers.get("Retry-After")
    except (TypeError, ValueError):
        retry_after = None

    limit = getattr(e, "limit", None)
    if retry_after is None:
        try:
            retry_after = str(int(getattr(limit, "reset_at", 1))) if limit else "1"
        except (TypeError, ValueError):
            retry_after = "1"

    details = {"message": getattr(e, "description", "Too many requests.")}
    if limit:
        details["limit"] = str(limit)
    details["retry_after"] = retry_after

    response = jsonify(error="Too Many Requests", details=details)
    response.headers["Retry-After"] = retry_after
    return response, 429


@api.post("/submit-form")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_SUBMIT", "10 per hour"))
def submit_form():
    """Receives ``{name, email, phone, privacy}`` and creates or updates the Brevo contact."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(error=INVALID_BODY_MESSAGE), 400

    try:
        submission = validate_submission(data)
    except ValidationError as exc:
        current_app.logger.info(
            "Contatto rifiutato: %s", exc.message,
            extra={"event": "contact.validation_failed", "field": exc.field, "code": exc.code},
        )
        return jsonify(error=exc.message), 400

    delivery_error = deliver_submission(submission)
    if delivery_error:
        return jsonify(error=delivery_error), 500

    return jsonify(success=True, message=SUCCESS_MESSAGE), 200
