"""
Validation rules expressed as data.

Each rule is a small frozen dataclass tagged with ``kind``. Form schemas are
tuples of rules, and :func:`evaluate` interprets them against a nested mapping
of form values. Field paths are dotted (``"location.postcode"``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Type

from ..errors import FieldError, ValidationError

_MISSING = object()

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def resolve_path(values: Mapping[str, Any], path: str) -> Any:
    """Return the value at a dotted path, or a sentinel when absent."""
    current: Any = values
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return _MISSING
    return current


def _is_blank(value: Any) -> bool:
    if value is _MISSING or value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class Required:
    field: str
    message: str
    kind: Literal["required"] = "required"


@dataclass(frozen=True)
class MinLength:
    field: str
    length: int
    message: str
    kind: Literal["min_length"] = "min_length"


@dataclass(frozen=True)
class Matches:
    """Regex match on the stripped value. Blank values pass unless ``required``."""

    field: str
    pattern: str
    message: str
    required: bool = False
    kind: Literal["matches"] = "matches"


@dataclass(frozen=True)
class EmailAddress:
    field: str
    message: str
    kind: Literal["email"] = "email"


@dataclass(frozen=True)
class OneOf:
    field: str
    choices: Tuple[str, ...]
    message: str
    kind: Literal["one_of"] = "one_of"


@dataclass(frozen=True)
class IntRange:
    field: str
    message: str
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    kind: Literal["int_range"] = "int_range"


@dataclass(frozen=True)
class AnyTrue:
    """At least one entry of the mapping at ``field`` has a truthy ``key``."""

    field: str
    key: str
    message: str
    kind: Literal["any_true"] = "any_true"


@dataclass(frozen=True)
class RequiredWhen:
    """Every entry of the mapping at ``field`` whose ``flag`` is truthy has ``keys`` filled."""

    field: str
    flag: str
    keys: Tuple[str, ...]
    message: str
    kind: Literal["required_when"] = "required_when"


@dataclass(frozen=True)
class FileConstraint:
    """Optional attachment limits. Accepts dicts with ``size``/``content_type`` or file-like objects."""

    field: str
    max_bytes: int
    content_types: Tuple[str, ...]
    size_message: str
    type_message: str
    kind: Literal["file"] = "file"


Rule = Any  # union of the dataclasses above


def _check_required(rule: Required, values: Mapping[str, Any]) -> List[FieldError]:
    if _is_blank(resolve_path(values, rule.field)):
        return [FieldError(rule.field, rule.message)]
    return []


def _check_min_length(rule: MinLength, values: Mapping[str, Any]) -> List[FieldError]:
    value = resolve_path(values, rule.field)
    text = "" if _is_blank(value) else str(value).strip()
    if len(text) < rule.length:
        return [FieldError(rule.field, rule.message)]
    return []


def _check_matches(rule: Matches, values: Mapping[str, Any]) -> List[FieldError]:
    value = resolve_path(values, rule.field)
    if _is_blank(value):
        return [FieldError(rule.field, rule.message)] if rule.required else []
    if not re.fullmatch(rule.pattern, str(value).strip()):
        return [FieldError(rule.field, rule.message)]
    return []


def _check_email(rule: EmailAddress, values: Mapping[str, Any]) -> List[FieldError]:
    value = resolve_path(values, rule.field)
    if _is_blank(value):
        return []
    if not EMAIL_PATTERN.match(str(value).strip()):
        return [FieldError(rule.field, rule.message)]
    return []


def _check_one_of(rule: OneOf, values: Mapping[str, Any]) -> List[FieldError]:
    if resolve_path(values, rule.field) not in rule.choices:
        return [FieldError(rule.field, rule.message)]
    return []


def _check_int_range(rule: IntRange, values: Mapping[str, Any]) -> List[FieldError]:
    value = resolve_path(values, rule.field)
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return [FieldError(rule.field, rule.message)]
    if isinstance(value, float) and not value.is_integer():
        return [FieldError(rule.field, rule.message)]
    if rule.minimum is not None and number < rule.minimum:
        return [FieldError(rule.field, rule.message)]
    if rule.maximum is not None and number > rule.maximum:
        return [FieldError(rule.field, rule.message)]
    return []


def _check_any_true(rule: AnyTrue, values: Mapping[str, Any]) -> List[FieldError]:
    entries = resolve_path(values, rule.field)
    if isinstance(entries, Mapping) and any(
        isinstance(entry, Mapping) and entry.get(rule.key) for entry in entries.values()
    ):
        return []
    return [FieldError(rule.field, rule.message)]


def _check_required_when(rule: RequiredWhen, values: Mapping[str, Any]) -> List[FieldError]:
    entries = resolve_path(values, rule.field)
    if not isinstance(entries, Mapping):
        return []
    errors: List[FieldError] = []
    for name, entry in entries.items():
        if not isinstance(entry, Mapping) or not entry.get(rule.flag):
            continue
        if any(_is_blank(entry.get(key)) for key in rule.keys):
            errors.append(FieldError(f"{rule.field}.{name}", rule.message))
    return errors


def _file_size(value: Any) -> Optional[int]:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return len(value)
    size = value.get("size") if isinstance(value, Mapping) else getattr(value, "size", None)
    return int(size) if size is not None else None


def _file_type(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        return value.get("content_type")
    return getattr(value, "content_type", None)


def _check_file(rule: FileConstraint, values: Mapping[str, Any]) -> List[FieldError]:
    value = resolve_path(values, rule.field)
    if value is _MISSING or value is None:
        return []
    try:
        size = _file_size(value)
    except (TypeError, ValueError):
        return [FieldError(rule.field, rule.size_message)]
    # Zero-byte placeholders mean "no file chosen".
    if size == 0:
        return []
    errors: List[FieldError] = []
    if size is not None and size > rule.max_bytes:
        errors.append(FieldError(rule.field, rule.size_message))
    content_type = _file_type(value)
    if content_type is not None and content_type not in rule.content_types:
        errors.append(FieldError(rule.field, rule.type_message))
    return errors


_INTERPRETERS: Dict[Type[Any], Callable[[Any, Mapping[str, Any]], List[FieldError]]] = {
    Required: _check_required,
    MinLength: _check_min_length,
    Matches: _check_matches,
    EmailAddress: _check_email,
    OneOf: _check_one_of,
    IntRange: _check_int_range,
    AnyTrue: _check_any_true,
    RequiredWhen: _check_required_when,
    FileConstraint: _check_file,
}


def evaluate(rules: Iterable[Rule], values: Mapping[str, Any]) -> List[FieldError]:
    """Run every rule and collect failures. Only the first failure per field is kept."""
    errors: List[FieldError] = []
    seen: set[str] = set()
    for rule in rules:
        checker = _INTERPRETERS.get(type(rule))
        if checker is None:
            raise TypeError(f"Unsupported validation rule: {rule!r}")
        for error in checker(rule, values):
            if error.field in seen:
                continue
            seen.add(error.field)
            errors.append(error)
    return errors


def validate(rules: Iterable[Rule], values: Mapping[str, Any]) -> None:
    errors = evaluate(rules, values)
    if errors:
        raise ValidationError(errors)


__all__ = [
    "AnyTrue",
    "EMAIL_PATTERN",
    "EmailAddress",
    "FileConstraint",
    "IntRange",
    "Matches",
    "MinLength",
    "OneOf",
    "Required",
    "RequiredWhen",
    "Rule",
    "evaluate",
    "resolve_path",
    "validate",
]
