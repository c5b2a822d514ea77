"""
Environment variable interpolation for stored configs.

A string value of the exact form ``{{ NAME }}`` is replaced with the value
of the environment variable ``NAME``. Anything else is left untouched.
"""

import re
from typing import Any, Mapping, Optional

from ...core.exceptions import ConfigError, EmptyEnvVar, MissingEnvVar

TEMPLATE_PATTERN = re.compile(r"^\{\{(.*)\}\}$", re.DOTALL)

# Fields that may legitimately resolve to an empty string
EMPTY_ALLOWED_FIELDS = frozenset({"password"})


def template_name(value: Any) -> Optional[str]:
    """Return the variable name if ``value`` is a template, else None."""
    if not isinstance(value, str):
        return None
    match = TEMPLATE_PATTERN.match(value)
    if match is None:
        return None
    return match.group(1).strip()


def is_template(value: Any) -> bool:
    return template_name(value) is not None


def interpolate(value: Any, env_vars: Mapping[str, str], allow_empty: bool = False) -> Any:
    """
    Recursively resolve templates in ``value``.

    Mappings and lists are rebuilt, never mutated in place.

    Raises:
        MissingEnvVar: If a referenced variable is not defined.
        EmptyEnvVar: If a referenced variable is empty and the field does
            not allow empty values.
    """
    if isinstance(value, Mapping):
        resolved = {}
        for key, item in value.items():
            try:
                resolved[key] = interpolate(item, env_vars, key in EMPTY_ALLOWED_FIELDS)
            except ConfigError as e:
                raise e.at(key)
        return resolved

    if isinstance(value, list):
        items = []
        for index, item in enumerate(value):
            try:
                items.append(interpolate(item, env_vars))
            except ConfigError as e:
                raise e.at(index)
        return items

    name = template_name(value)
    if name is None:
        return value

    if name not in env_vars:
        raise MissingEnvVar(f'no environment variable matching "{name}" found')
    resolved_value = env_vars[name]
    if not resolved_value and not allow_empty:
        raise EmptyEnvVar(f'environment variable matching "{name}" is empty')
    return resolved_value
