"""
Input validation helpers
"""
import re

# local@domain.tld: one '@', no whitespace, dot-separated domain with non-empty labels
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s.]+(\.[^@\s.]+)+$')


def normalize_email(email):
    """Strip and lower-case an email; non-strings become ''."""
    if not isinstance(email, str):
        return ''
    return email.strip().lower()


def validate_email(email):
    """Basic address-shape check."""
    if not email or not isinstance(email, str):
        return False
    return EMAIL_RE.match(email) is not None
