"""Redaction of secrets before logging."""

from typing import Any

SENSITIVE_KEYS = frozenset(
    {
        "key",
        "iv",
        "rawKey",
        "raw_key",
        "encryptedData",
        "content",
        "Authorization",
        "authorization",
        "jwt",
        "pinning_jwt",
        "JWT",
    }
)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result
