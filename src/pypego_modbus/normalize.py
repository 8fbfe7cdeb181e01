"""Normalize and validate property names: snake_case, kebab-case and camelCase are accepted."""

import re

from .errors import InvalidPropertyError

# Letters, digits, separators; must start with a letter
_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_\- ]*$")

# Boundary before an uppercase letter that follows a lowercase letter or digit (camelCase)
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")

_SEPARATORS = re.compile(r"[\s\-_]+")


def normalize_name(raw: str) -> str:
    """
    Normalize a property name to canonical snake_case.

    - "ambientTemperature", "Ambient-Temperature" and "ambient temperature"
      all become "ambient_temperature".
    - Repeated separators collapse; leading/trailing separators are dropped.

    Raises InvalidPropertyError for malformed names.
    """
    s = raw.strip()
    if not s:
        raise InvalidPropertyError(raw, "Property name cannot be empty")

    if not _NAME_PATTERN.match(s):
        raise InvalidPropertyError(raw, f"Malformed property name: {raw!r}")

    s = _CAMEL_BOUNDARY.sub("_", s)
    s = _SEPARATORS.sub("_", s).strip("_")
    return s.lower()
