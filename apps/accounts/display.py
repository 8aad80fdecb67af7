"""Display name resolution for member profiles."""

DEFAULT_DISPLAY_NAME = 'User'


def email_local_part(email):
    """Return the part of an email address before '@', or the value itself."""
    if not email:
        return None
    at = email.find('@')
    return email[:at] if at > 0 else email


def resolve_display_name(*, username=None, full_name=None, email=None):
    """
    Pick the name to show for a member.

    Preference order: short handle, full name, email local part,
    then the literal 'User'.
    """
    for candidate in (username, full_name, email_local_part(email)):
        if candidate and candidate.strip():
            return candidate.strip()
    return DEFAULT_DISPLAY_NAME
