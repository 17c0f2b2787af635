from graphwire._internal.integrations.pydantic_settings import (
    SETTINGS_BASES,
    SETTINGS_RULE_FIELDS,
    is_settings_class,
    settings_rule_fields,
)

__all__ = [
    "SETTINGS_BASES",
    "SETTINGS_RULE_FIELDS",
    "is_settings_class",
    "settings_rule_fields",
]
