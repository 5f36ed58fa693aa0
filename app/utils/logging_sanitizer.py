"""
Logging Sanitizer Utility

Provides utilities to sanitize sensitive data before logging.
Credentials are always redacted; resident contact details (email, phone,
address) are masked so log lines stay useful without exposing them.
"""

from typing import Dict, Any


# Fields that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'secret',
    'token',
    'api_key',
    'apikey',
    'auth_token',
    'access_token',
    'refresh_token',
    'session_id',
    'csrf_token',
}

# Resident contact fields, masked rather than dropped
CONTACT_FIELDS = {
    'email',
    'recipient',
    'phone',
    'telefono',
    'address',
    'direccion',
}


def mask_contact(value: Any) -> Any:
    """
    Mask a contact value, keeping a hint of its shape.

    Example:
        >>> mask_contact('ana@example.com')
        'a***@example.com'
        >>> mask_contact('5551234567')
        '******4567'
    """
    if not isinstance(value, str) or not value:
        return value
    if '@' in value:
        local, _, domain = value.partition('@')
        return f"{local[:1]}***@{domain}"
    if len(value) <= 4:
        return '*' * len(value)
    return '*' * (len(value) - 4) + value[-4:]


def sanitize_dict(data: Dict[str, Any], redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Sanitize a dictionary by replacing sensitive field values with redaction text
    and masking contact fields.

    Args:
        data: Dictionary to sanitize
        redact_text: Text to use for redacted values (default: '[REDACTED]')

    Returns:
        Sanitized copy; the input is not modified
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        lowered = key.lower()
        if lowered in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        elif lowered in CONTACT_FIELDS:
            sanitized[key] = mask_contact(value)
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, redact_text)
        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_dict(item, redact_text) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            sanitized[key] = value

    return sanitized


def sanitize_exception_message(exception: Exception) -> str:
    """
    Sanitize exception messages to ensure they don't contain sensitive data.

    Args:
        exception: Exception to sanitize

    Returns:
        Sanitized exception message
    """
    message = str(exception)

    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"

    return message
