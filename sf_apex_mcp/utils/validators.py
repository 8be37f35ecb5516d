"""Input validation utilities for Apex class requests"""
import re

from sf_apex_mcp.utils.errors import ApexManagerError

APEX_STATUSES = ("Active", "Inactive")

_APEX_NAME_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9_]*$')
_API_VERSION_RE = re.compile(r'^\d{1,3}\.\d$')


class ValidationError(ApexManagerError):
    """Request rejected locally, before any remote call"""

    kind = "validation"


def validate_apex_class_name(name: str) -> bool:
    """
    Validate an Apex class name.

    Rules:
    - Must not be empty
    - Max 40 characters
    - Must start with a letter
    - Only letters, numbers, underscores
    - No consecutive underscores and no trailing underscore

    Raises:
        ValidationError: If validation fails
    """
    if not name:
        raise ValidationError("Class name cannot be empty")

    if len(name) > 40:
        raise ValidationError(f"Class name too long (max 40 chars): {name}")

    if not _APEX_NAME_RE.match(name):
        raise ValidationError(
            f"Class name must start with a letter and contain only letters, numbers, underscore: {name}"
        )

    if '__' in name or name.endswith('_'):
        raise ValidationError(
            f"Class name cannot contain consecutive underscores or end with an underscore: {name}"
        )

    return True


def validate_api_version(version: str) -> bool:
    """Validate an API version string such as "62.0"."""
    if not version or not _API_VERSION_RE.match(version):
        raise ValidationError(f"Invalid API version (expected e.g. 62.0): {version}")
    return True


def validate_apex_status(status: str) -> bool:
    if status not in APEX_STATUSES:
        raise ValidationError(
            f"Invalid status: {status} (expected one of {', '.join(APEX_STATUSES)})"
        )
    return True


def soql_quote(value: str) -> str:
    """
    Quote a value as a SOQL string literal.

    Backslashes and single quotes are escaped so the value cannot end the
    literal early.
    """
    escaped = value.replace('\\', '\\\\').replace("'", "\\'")
    return f"'{escaped}'"
