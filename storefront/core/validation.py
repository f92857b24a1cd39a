"""
Form validation rules with consistent error messaging.

Each validator returns an error message, or None when the value passes.
"""
import re

EMAIL_REGEX = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
URL_REGEX = re.compile(r'^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)/?$')
PHONE_REGEX = re.compile(r'^(\+91[\-\s]?)?[0]?(91)?[6789]\d{9}$')  # Indian mobile format


def validate_required(value, field_name='This field'):
    """Validate that a field is not empty"""
    if value is None or (isinstance(value, str) and value.strip() == ''):
        return f'{field_name} is required.'
    return None


def validate_email(email):
    if not email:
        return 'Email is required.'
    if not EMAIL_REGEX.match(str(email)):
        return 'Please enter a valid email address.'
    return None


def validate_price(price):
    """Validate that the value is a positive number"""
    try:
        num = float(price)
    except (TypeError, ValueError):
        return 'Price must be a positive number.'
    if num != num or num <= 0:  # NaN
        return 'Price must be a positive number.'
    return None


def validate_url(url):
    """Validate URL format. URLs are optional."""
    if not url:
        return None
    if not URL_REGEX.match(str(url)):
        return 'Please enter a valid URL (e.g. https://example.com).'
    return None


def validate_phone(phone):
    """Validate Indian phone number format. Optional by default."""
    if not phone:
        return None
    if not PHONE_REGEX.match(re.sub(r'\s', '', str(phone))):
        return 'Please enter a valid 10-digit phone number.'
    return None


def validate_length(value, min_length=None, max_length=None, field_name='Field'):
    """Validate trimmed string length. Empty values pass."""
    if not value:
        return None
    length = len(str(value).strip())
    if min_length and length < min_length:
        return f'{field_name} must be at least {min_length} characters long.'
    if max_length and length > max_length:
        return f'{field_name} cannot exceed {max_length} characters.'
    return None


def run_validators(value, validators):
    """Run several validators on one value and return the first error"""
    for validator in validators:
        error = validator(value)
        if error:
            return error
    return None


def collect_errors(checks):
    """
    Build a field -> error dict, dropping fields that passed.

    Args:
        checks: dict of field name -> error message or None
    """
    return {name: error for name, error in checks.items() if error}
