"""
Validation and normalization rules for the contact form.

The same rules back the server-side submission handler (first failure wins)
and the client form controller (every field evaluated on its own). The module
is pure: no Flask, no network.
"""
import re

from ..errors import ValidationError
from ..models import ContactSubmission, split_name

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+393[0-9]{9}$")
PHONE_STRIP_PATTERN = re.compile(r"[^0-9+]")

COUNTRY_CODE = "39"
MOBILE_PREFIX = "3"
NATIONAL_NUMBER_LENGTH = 10
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100

FIELDS = ("name", "email", "phone", "privacy")

REQUIRED_MESSAGE = "Tutti i campi sono obbligatori"
NAME_LENGTH_MESSAGE = "Il nome deve essere tra 2 e 100 caratteri"
EMAIL_MESSAGE = "Formato email non valido"
PHONE_MESSAGE = "Numero di telefono non valido. Formato richiesto: +39 3XX XXXXXXX"
PRIVACY_MESSAGE = "Devi accettare la privacy policy"

__all__ = [
    "EMAIL_PATTERN",
    "PHONE_PATTERN",
    "FIELDS",
    "normalize_name",
    "normalize_email",
    "normalize_phone",
    "check_privacy",
    "split_name",
    "validate_submission",
    "validate_fields",
]


def _text(value):
    if value is None:
        return ""
    return str(value).strip()


def _is_missing(value):
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_name(value):
    """
    Trims a full name and checks its length.

    Raises:
        ValidationError: ``required`` when empty, ``too_short``/``too_long``
            when outside [2, 100] characters.
    """
    name = _text(value)
    if not name:
        raise ValidationError("name", "required", REQUIRED_MESSAGE)
    if len(name) < NAME_MIN_LENGTH:
        raise ValidationError("name", "too_short", NAME_LENGTH_MESSAGE)
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError("name", "too_long", NAME_LENGTH_MESSAGE)
    return name


def normalize_email(value):
    """Strips and lower-cases an email address, then checks the ``local@domain.tld`` shape."""
    email = _text(value).lower()
    if not email:
        raise ValidationError("email", "required", REQUIRED_MESSAGE)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("email", "invalid_format", EMAIL_MESSAGE)
    return email


def canonicalize_phone(value):
    """
    Rewrites a loosely formatted phone number into ``+<digits>`` form.

    Separators are dropped. Numbers without ``+`` lose a single leading ``0``
    and get the ``39`` country code unless they already start with it.
    No shape check happens here; see :func:`normalize_phone`.
    """
    cleaned = PHONE_STRIP_PATTERN.sub("", _text(value))
    if cleaned.startswith("+"):
        return cleaned
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]
    if not cleaned.startswith(COUNTRY_CODE):
        cleaned = COUNTRY_CODE + cleaned
    return "+" + cleaned


def normalize_phone(value):
    """
    Returns the canonical ``+393XXXXXXXXX`` form of an Italian mobile number.

    Lenient on separators, strict on the final shape: anything that does not
    end up as ``+39`` followed by ten digits starting with ``3`` is rejected.
    The error code tells which part is wrong (``required``,
    ``invalid_prefix``, ``invalid_length`` or ``invalid_format``).
    """
    phone = canonicalize_phone(value)
    if PHONE_PATTERN.match(phone):
        return phone

    prefix = "+" + COUNTRY_CODE
    if not phone.startswith(prefix):
        code = "invalid_format"
    else:
        national = phone[len(prefix):]
        if not national:
            code = "required"
        elif "+" in national:
            code = "invalid_format"
        elif not national.startswith(MOBILE_PREFIX):
            code = "invalid_prefix"
        elif len(national) != NATIONAL_NUMBER_LENGTH:
            code = "invalid_length"
        else:
            code = "invalid_format"
    raise ValidationError("phone", code, PHONE_MESSAGE)


def check_privacy(value):
    """Only the boolean ``True`` counts as acceptance; ``"true"`` does not."""
    if value is not True:
        raise ValidationError("privacy", "not_accepted", PRIVACY_MESSAGE)
    return True


_NORMALIZERS = {
    "name": normalize_name,
    "email": normalize_email,
    "phone": normalize_phone,
    "privacy": check_privacy,
}


def validate_submission(payload):
    """
    Authoritative server-side validation of a submitted contact.

    Fields are checked in order and the first failure is raised.

    Args:
        payload: Decoded JSON body (``name``, ``email``, ``phone``, ``privacy``)

    Returns:
        ContactSubmission with normalized values

    Raises:
        ValidationError: for the first field that fails
    """
    payload = payload or {}
    for field in ("name", "email", "phone"):
        if _is_missing(payload.get(field)):
            raise ValidationError(field, "required", REQUIRED_MESSAGE)

    name = normalize_name(payload.get("name"))
    email = normalize_email(payload.get("email"))
    phone = normalize_phone(payload.get("phone"))
    check_privacy(payload.get("privacy"))

    return ContactSubmission(name=name, email=email, phone=phone, privacy_accepted=True)


def validate_fields(payload):
    """
    Evaluates every field independently, as a form UI does.

    Returns:
        Tuple ``(values, errors)``: normalized values of the fields that
        passed and a ``{field: ValidationError}`` map of those that did not
    """
    payload = payload or {}
    values = {}
    errors = {}
    for field in FIELDS:
        try:
            values[field] = _NORMALIZERS[field](payload.get(field))
        except ValidationError as exc:
            errors[field] = exc
    return values, errors
