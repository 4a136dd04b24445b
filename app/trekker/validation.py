"""
Declarative payload parsing shared by the admin CRUD services.

A module lists its editable columns as Field objects; parse_fields() turns a
JSON/form payload into column values plus a list of human readable errors.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.trekker.text import normalize_rich_html
from app.trekker.utils import clean_str, parse_bool, parse_float, parse_int


@dataclass(frozen=True)
class Field:
    name: str
    kind: str = "str"
    required: bool = False
    label: str | None = None
    max_length: int | None = None
    min_value: float | None = None
    max_value: float | None = None
    choices: tuple[str, ...] | None = None
    default: Any = None

    @property
    def display(self) -> str:
        return self.label or self.name.replace("_", " ").capitalize()


def _convert(field: Field, raw: Any) -> tuple[Any, str | None]:
    if field.kind == "bool":
        return parse_bool(raw, default=bool(field.default)), None
    if field.kind == "int":
        value = parse_int(raw)
        if value is None and clean_str(raw) is not None:
            return None, f"{field.display} must be a whole number."
        return value, None
    if field.kind == "float":
        value = parse_float(raw)
        if value is None and clean_str(raw) is not None:
            return None, f"{field.display} must be a number."
        return value, None
    if field.kind == "rich":
        return normalize_rich_html(raw if isinstance(raw, str) else clean_str(raw)), None
    value = clean_str(raw)
    if field.kind == "url" and value and not (value.startswith(("http://", "https://", "/"))):
        return None, f"{field.display} must be an http(s) URL or a site path."
    return value, None


def parse_fields(fields: list[Field], payload: dict[str, Any], *, partial: bool = False) -> tuple[dict[str, Any], list[str]]:
    """
    Build column values from payload. With partial=True (updates) only keys
    present in the payload are read; required fields may not be blanked.
    """
    values: dict[str, Any] = {}
    errors: list[str] = []
    for f in fields:
        if partial and f.name not in payload:
            continue
        value, err = _convert(f, payload.get(f.name))
        if err:
            errors.append(err)
            continue
        if value is None:
            if f.required:
                errors.append(f"{f.display} is required.")
                continue
            if f.default is not None and not partial:
                value = f.default
        if value is not None:
            if f.max_length is not None and isinstance(value, str) and len(value) > f.max_length:
                errors.append(f"{f.display} must be at most {f.max_length} characters.")
                continue
            if f.min_value is not None and isinstance(value, (int, float)) and not isinstance(value, bool) and value < f.min_value:
                errors.append(f"{f.display} must be at least {f.min_value:g}.")
                continue
            if f.max_value is not None and isinstance(value, (int, float)) and not isinstance(value, bool) and value > f.max_value:
                errors.append(f"{f.display} must be at most {f.max_value:g}.")
                continue
            if f.choices is not None and value not in f.choices:
                errors.append(f"{f.display} must be one of: {', '.join(f.choices)}")
                continue
        values[f.name] = value
    return values, errors


def parse_object_list(
    raw: Any,
    label: str,
    keys: tuple[str, ...],
    *,
    required: tuple[str, ...] = (),
    choices: dict[str, tuple[str, ...]] | None = None,
) -> tuple[list[dict[str, Any]], list[str]]:
    """
    Validate a JSON list of objects such as [{heading, description}, ...].

    Only the listed keys are kept; string values are stripped. A missing or
    null list is an empty list.
    """
    if raw is None or raw == "":
        return [], []
    if not isinstance(raw, list):
        return [], [f"{label} must be a list."]
    items: list[dict[str, Any]] = []
    errors: list[str] = []
    for n, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            errors.append(f"{label} item {n} must be an object with {', '.join(keys)}.")
            continue
        item = {}
        for k in keys:
            v = entry.get(k)
            item[k] = v.strip() if isinstance(v, str) else v
        missing = [k for k in required if not item.get(k)]
        if missing:
            errors.append(f"{label} item {n} is missing {', '.join(missing)}.")
            continue
        bad = [k for k, allowed in (choices or {}).items() if item.get(k) and item[k] not in allowed]
        if bad:
            errors.append(f"{label} item {n} has an invalid {bad[0]}: must be one of {', '.join(choices[bad[0]])}.")
            continue
        items.append(item)
    return items, errors
