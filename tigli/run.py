from .app import create_app
import click

from .app.errors import ValidationError
from .app.services.validate import validate_submission
from .client.form import ContactFormController

app = create_app()


@app.cli.command("check-contact")
@click.option("--name", default="", help="Nome e cognome.")
@click.option("--email", default="", help="Indirizzo e-mail.")
@click.option("--phone", default="", help="Numero di cellulare, in qualsiasi formato.")
@click.option("--privacy/--no-privacy", default=False, help="Privacy policy accettata.")
def check_contact(name, email, phone, privacy):
    """Validates a contact with the server rules and prints the normalized record."""
    try:
        submission = validate_submission(
            {"name": name, "email": email, "phone": phone, "privacy": privacy}
        )
    except ValidationError as exc:
        click.echo(f"{exc.field}: {exc.message}", err=True)
        raise SystemExit(1)

    click.echo(f"name:       {submission.name}")
    click.echo(f"first_name: {submission.first_name}")
    click.echo(f"last_name:  {submission.last_name}")
    click.echo(f"email:      {submission.email}")
    click.echo(f"phone:      {submission.phone}")


@app.cli.command("submit-contact")
@click.option("--url", "base_url", required=True, help="Base URL of a running instance.")
@click.option("--name", default="")
@click.option("--email", default="")
@click.option("--phone", default="")
@click.option("--privacy/--no-privacy", default=False)
def submit_contact(base_url, name, email, phone, privacy):
    """Fills in the contact form and submits it like the browser does."""
    controller = ContactFormController(base_url=base_url)
    controller.set_name(name)
    controller.set_email(email)
    controller.set_phone(phone if phone.startswith("+39") else f"+39 {phone}")
    controller.set_privacy(privacy)

    outcome = controller.submit()
    if outcome.field_errors:
        for field_name, message in outcome.field_errors.items():
            click.echo(f"{field_name}: {message}", err=True)
        raise SystemExit(1)
    if not outcome.succeeded:
        click.echo(outcome.error, err=True)
        raise SystemExit(1)
    click.echo(f"Richiesta inviata -> {outcome.redirect_url}")


if __name__ == "__main__":
    app.run(debug=True)
