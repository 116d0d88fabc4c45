"""
Validation of locale-keyed translation maps.

A translation map looks like::

    {"en": {"name": "Color", "values": {...}}, "fr": {"name": "Couleur"}}
"""
from dataclasses import dataclass
from typing import Any, Optional

TYPE_CHECKS = {
    "string": lambda v: isinstance(v, str),
    "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
    "boolean": lambda v: isinstance(v, bool),
    "object": lambda v: isinstance(v, dict),
    "array": lambda v: isinstance(v, list),
}


@dataclass(frozen=True)
class CustomField:
    """Declared field of a translation bag."""
    key: str
    type: str = "string"
    required: bool = False


ATTRIBUTE_TRANSLATION_FIELDS = (
    CustomField("name"),
    CustomField("values", type="object"),
)


def check_custom_fields(
    bag: dict[str, Any],
    prefix: str,
    fields: tuple[CustomField, ...] | list[CustomField],
) -> list[str]:
    """
    Check a field bag against declared fields.

    Returns:
        Error messages, one per missing required field or mistyped field
    """
    errors = []
    for field in fields:
        path = f"{prefix}.{field.key}"
        if field.key not in bag or bag[field.key] is None:
            if field.required:
                errors.append(f"{path} manquant")
            continue
        check = TYPE_CHECKS.get(field.type)
        if check is not None and not check(bag[field.key]):
            errors.append(f"{path} doit être de type {field.type}")
    return errors


def validate_translation(
    document: dict[str, Any],
    default_lang: str,
    fields: Optional[tuple[CustomField, ...]] = ATTRIBUTE_TRANSLATION_FIELDS,
    key: str = "translation",
) -> list[str]:
    """
    Validate (and normalize) the translation map stored under `key`.

    A missing or empty map is replaced in place by `{default_lang: {}}`.
    Every non-empty bag needs a `name`.

    Returns:
        Ordered list of error messages; empty when the map is valid
    """
    translation = document.get(key)
    if translation is None:
        translation = document[key] = {}
    if not isinstance(translation, dict):
        return [f"{key} doit être de type object"]

    if not translation:
        translation[default_lang] = {}

    errors: list[str] = []
    for lang, bag in translation.items():
        if not isinstance(bag, dict):
            errors.append(f"{key}.{lang} doit être de type object")
            continue
        if not bag:
            continue
        if "name" not in bag:
            errors.append("name manquant")
        if fields:
            errors.extend(check_custom_fields(bag, f"{key}.{lang}", fields))
    return errors
