"""Field validation for profile values entered on the command line."""

import re

from .models import Profile, strip_label_markers

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

ENTER_A_VALID_STRING = "Please enter a valid string"
NOT_A_VALID_EMAIL = "Oops! That does not seem to be a valid email. Please verify"


def is_blank(value: str | None) -> bool:
    """Return whether ``value`` is missing or whitespace only.

    Example:
        >>> is_blank("  ")
        True
    """
    return not value or not value.strip()


def validate_profile_name(
    value: str, existing: list[Profile] | None = None, *, exclude_id: str | None = None
) -> str | None:
    """Return an error message for an unusable label, else ``None``.

    Labels already used by a profile in ``existing`` (other than
    ``exclude_id``) are rejected, ignoring case and status markers.
    """
    if is_blank(value):
        return ENTER_A_VALID_STRING
    wanted = strip_label_markers(value).lower()
    for profile in existing or []:
        if exclude_id is not None and profile.id == exclude_id:
            continue
        if profile.display_label.lower() == wanted:
            return f"Oops! Profile with the same name '{value.strip()}' already exists!"
    return None


def validate_user_name(value: str) -> str | None:
    if is_blank(value):
        return ENTER_A_VALID_STRING
    return None


def validate_email(value: str) -> str | None:
    """Return an error message for a malformed email, else ``None``.

    Example:
        >>> validate_email("a@x.com") is None
        True
        >>> validate_email("nope")
        'Oops! That does not seem to be a valid email. Please verify'
    """
    if not _EMAIL_RE.match(value or ""):
        return NOT_A_VALID_EMAIL
    return None


def validate_profile(profile: Profile) -> list[str]:
    """Return every problem with a stored profile's fields."""
    problems: list[str] = []
    if is_blank(profile.display_label):
        problems.append("Label is empty")
    if is_blank(profile.user_name):
        problems.append("User name is empty")
    if is_blank(profile.email):
        problems.append("Email is empty")
    else:
        email_error = validate_email(profile.email)
        if email_error:
            problems.append(email_error)
    return problems
