"""Contact submission entity."""
from dataclasses import dataclass


def split_name(name):
    """
    Splits a full name into ``(first_name, last_name)``.

    The first whitespace-separated token is the first name; the remaining
    tokens, joined with single spaces, form the last name.
    """
    parts = (name or "").split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


@dataclass(frozen=True)
class ContactSubmission:
    """
    A fully validated lead, built per request and never stored locally.

    Every field is already normalized: ``phone`` is in ``+393XXXXXXXXX`` form
    and ``email`` is lower-cased.
    """

    name: str
    email: str
    phone: str
    privacy_accepted: bool = True

    @property
    def first_name(self) -> str:
        return split_name(self.name)[0]

    @property
    def last_name(self) -> str:
        return split_name(self.name)[1]
