import math
import re
from typing import Any

from apiforms.models import FieldDescriptor, Schema, SchemaKind
from apiforms.services.json_service import compact_dumps, default_value, parse_json

# Schemas standing in for ad hoc fields, which have none of their own.
CUSTOM_FIELD_SCHEMAS = {
    "string": Schema(type="string"),
    "number": Schema(type="number"),
    "boolean": Schema(type="boolean"),
    "email": Schema(type="string", format="email"),
    "date": Schema(type="string", format="date"),
}

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

_ABSENT = object()


# ─── Input coercion ──────────────────────────────────────────────────────────

def parse_number(raw: Any, integer: bool) -> int | float | None:
    """Read a number the way a numeric input does.

    Integers keep only the leading integer digits, which truncates toward
    zero. Anything unreadable yields None.
    """
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return None
        return math.trunc(raw) if integer else raw
    text = str(raw)
    if integer:
        match = _INT_PREFIX.match(text)
        return int(match.group(1)) if match else None
    match = _FLOAT_PREFIX.match(text)
    if not match:
        return None
    number = float(match.group(1))
    if not math.isfinite(number):
        return None
    return int(number) if number.is_integer() else number


def _checkbox_state(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "on", "1", "yes")
    return bool(raw)


def _array_from_text(raw: Any) -> Any:
    if not isinstance(raw, str):
        return raw
    try:
        parsed = parse_json(raw)
    except ValueError:
        return raw
    return parsed if isinstance(parsed, list) else raw


def coerce_input(prop: Schema | None, raw: Any) -> Any:
    if prop is None:
        return raw
    kind = prop.kind
    if kind in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        number = parse_number(raw, integer=kind is SchemaKind.INTEGER)
        return _ABSENT if number is None else number
    if kind is SchemaKind.BOOLEAN:
        return _checkbox_state(raw)
    if kind is SchemaKind.ARRAY:
        return _array_from_text(raw)
    return "" if raw is None else raw


def schema_for_key(schema: Schema, key: str) -> Schema | None:
    if key in schema.properties:
        return schema.properties[key]
    head, sep, rest = key.partition(".")
    parent = schema.properties.get(head)
    if sep and parent is not None and parent.kind is SchemaKind.OBJECT:
        return schema_for_key(parent, rest)
    return None


# ─── Rendering ───────────────────────────────────────────────────────────────

def lookup_value(value: dict[str, Any], key: str) -> Any:
    """Read a dotted key, as a flat entry or through nested mappings."""
    if key in value:
        return value[key]
    head, sep, rest = key.partition(".")
    if sep and isinstance(value.get(head), dict):
        return lookup_value(value[head], rest)
    return None


def _string_widget(prop: Schema) -> str:
    if prop.format == "textarea" or (prop.max_length or 0) > 100:
        return "textarea"
    if prop.format in ("email", "password"):
        return prop.format
    return "text"


def describe_field(
    key: str, prop: Schema, value: dict[str, Any], required: bool = False
) -> FieldDescriptor:
    current = lookup_value(value, key)
    field = FieldDescriptor(
        key=key,
        label=prop.title or key,
        widget="text",
        required=required,
        description=prop.description,
        placeholder=prop.description or f"Enter {key}",
        value="" if current is None else current,
    )
    kind = prop.kind

    if kind is SchemaKind.STRING:
        if prop.enum:
            field.widget = "select"
            field.options = list(prop.enum)
            field.placeholder = f"Select {key}"
        else:
            field.widget = _string_widget(prop)
    elif kind in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        field.widget = "number"
        field.minimum = prop.minimum
        field.maximum = prop.maximum
        field.step = "1" if kind is SchemaKind.INTEGER else "any"
        field.value = current
    elif kind is SchemaKind.BOOLEAN:
        field.widget = "checkbox"
        field.value = bool(current)
    elif kind is SchemaKind.OBJECT:
        field.widget = "group"
        field.placeholder = None
        field.value = None
        field.children = [
            describe_field(f"{key}.{child}", child_prop, value, child in prop.required)
            for child, child_prop in prop.properties.items()
        ]
    elif kind is SchemaKind.ARRAY:
        field.widget = "json"
        field.placeholder = f'Enter {key} as JSON array (e.g., ["item1", "item2"])'
        if current is not None and not isinstance(current, str):
            field.value = compact_dumps(current)
    return field


def render_form(
    schema: Schema,
    value: dict[str, Any],
    custom_fields: dict[str, str] | None = None,
) -> list[FieldDescriptor]:
    fields = [
        describe_field(key, prop, value, key in schema.required)
        for key, prop in schema.properties.items()
    ]
    for key, kind in (custom_fields or {}).items():
        field = describe_field(key, CUSTOM_FIELD_SCHEMAS[kind], value)
        if kind == "date":
            field.widget = "date"
        field.custom = True
        fields.append(field)
    return fields


# ─── Editing ─────────────────────────────────────────────────────────────────

def apply_field(
    value: dict[str, Any],
    key: str,
    new_value: Any,
    schema: Schema,
    custom_fields: dict[str, str] | None = None,
) -> dict[str, Any]:
    prop = schema_for_key(schema, key)
    if prop is None and custom_fields and key in custom_fields:
        prop = CUSTOM_FIELD_SCHEMAS[custom_fields[key]]
    return _assign(value, key, coerce_input(prop, new_value))


def _assign(value: dict[str, Any], key: str, coerced: Any) -> dict[str, Any]:
    # Writes into a nested mapping when the JSON text already holds one there
    updated = dict(value)
    head, sep, rest = key.partition(".")
    if sep and key not in value and isinstance(value.get(head), dict):
        updated[head] = _assign(value[head], rest, coerced)
    elif coerced is _ABSENT:
        updated.pop(key, None)
    else:
        updated[key] = coerced
    return updated


def add_custom_field(
    value: dict[str, Any], custom_fields: dict[str, str], key: str, kind: str
) -> tuple[dict[str, Any], dict[str, str]]:
    key = key.strip()
    if not key:
        raise ValueError("Field name must not be empty")
    if kind not in CUSTOM_FIELD_SCHEMAS:
        raise ValueError(f"Unsupported field type: {kind}")
    fields = {**custom_fields, key: kind}
    updated = {**value, key: default_value(CUSTOM_FIELD_SCHEMAS[kind])}
    return updated, fields


def rename_field(
    value: dict[str, Any], custom_fields: dict[str, str], old_key: str, new_key: str
) -> tuple[dict[str, Any], dict[str, str]]:
    new_key = new_key.strip()
    if not new_key:
        raise ValueError("Field name must not be empty")
    if old_key == new_key:
        return dict(value), dict(custom_fields)
    updated = dict(value)
    if old_key in updated:
        updated[new_key] = updated.pop(old_key)
    fields = dict(custom_fields)
    if old_key in fields:
        fields[new_key] = fields.pop(old_key)
    return updated, fields


def remove_field(
    value: dict[str, Any], custom_fields: dict[str, str], key: str
) -> tuple[dict[str, Any], dict[str, str]]:
    updated = {k: v for k, v in value.items() if k != key}
    fields = {k: v for k, v in custom_fields.items() if k != key}
    return updated, fields
