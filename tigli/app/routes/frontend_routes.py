"""Frontend routes - landing page, no-JS contact fallback and thank-you page."""
from flask import (
    current_app,
    request,
    redirect,
    send_from_directory,
    url_for,
    flash,
    get_flashed_messages,
    render_template,
)

from . import frontend
from ..extensions import limiter
from ..models import ContactSubmission
from ..services.crm import deliver_submission
from ..services.validate import validate_fields

CHECKBOX_ON_VALUES = {"on", "true", "1", "yes"}
FEEDBACK_CATEGORY = "contact-feedback"
# Hidden field of the form that gates the floor-plan PDF
FLOORPLAN_INTENT = "floorplan"


@frontend.get("/")
def serve_frontend():
    """Landing page with the contact form."""
    return render_template(
        "index.html",
        floorplan_pdf_url=current_app.config.get("FLOORPLAN_PDF_URL"),
    )


@frontend.get("/richiesta-inviata")
def thank_you():
    """Page shown after a successful request."""
    return send_from_directory(current_app.template_folder, "richiesta-inviata.html")


@frontend.post("/contact")
@limiter.limit(lambda: current_app.config.get("RATELIMIT_SUBMIT", "10 per hour"))
def contact_form_submit():
    """Handles the contact form when the browser posts it without JavaScript."""
    privacy_raw = (request.form.get("privacy") or "").strip().lower()
    payload = {
        "name": request.form.get("name"),
        "email": request.form.get("email"),
        "phone": request.form.get("phone"),
        # An HTML checkbox posts "on"; only an explicit tick counts
        "privacy": privacy_raw in CHECKBOX_ON_VALUES,
    }
    form_snapshot = {
        "name": (payload["name"] or "").strip(),
        "email": (payload["email"] or "").strip(),
        "phone": (payload["phone"] or "").strip(),
        "intent": (request.form.get("intent") or "").strip(),
    }

    values, errors = validate_fields(payload)
    if errors:
        messages = []
        for exc in errors.values():
            if exc.message not in messages:
                messages.append(exc.message)
        current_app.logger.info(
            "Modulo di contatto non valido",
            extra={"event": "contact.validation_failed", "fields": sorted(errors)},
        )
        flash(
            {
                "success": False,
                "message": "Non siamo riusciti a inviare la richiesta. Controlla i campi indicati e riprova.",
                "errors": messages,
                "form": form_snapshot,
                "status_code": 400,
            },
            FEEDBACK_CATEGORY,
        )
        return redirect(url_for("frontend.contact_feedback", status="error"))

    submission = ContactSubmission(
        name=values["name"],
        email=values["email"],
        phone=values["phone"],
        privacy_accepted=values["privacy"],
    )
    delivery_error = deliver_submission(submission)
    if delivery_error:
        flash(
            {
                "success": False,
                "message": delivery_error,
                "errors": [],
                "form": form_snapshot,
                "status_code": 500,
            },
            FEEDBACK_CATEGORY,
        )
        return redirect(url_for("frontend.contact_feedback", status="error"))

    pdf_url = current_app.config.get("FLOORPLAN_PDF_URL")
    if form_snapshot["intent"] == FLOORPLAN_INTENT and pdf_url:
        return redirect(pdf_url)
    return redirect(current_app.config.get("THANK_YOU_URL") or url_for("frontend.thank_you"))


@frontend.get("/contact/resultato")
def contact_feedback():
    """Shows the errors of a form submitted without JavaScript."""
    feedback = get_flashed_messages(category_filter=[FEEDBACK_CATEGORY])
    payload = feedback[-1] if feedback else None
    if not isinstance(payload, dict):
        return redirect(url_for("frontend.serve_frontend"))

    status_code = int(payload.get("status_code") or 200)
    return (
        render_template(
            "contact-result.html",
            success=bool(payload.get("success")),
            message=payload.get("message") or "",
            errors=list(payload.get("errors") or []),
            form=payload.get("form") or {},
        ),
        status_code,
    )
