import json
import math
from typing import Any

from apiforms.models import JsonTemplate, JsonValidation, Schema, SchemaKind

TEMPLATE_LABELS = {
    "minimal": "Minimal (Required Only)",
    "complete": "Complete (All Fields)",
    "example": "Example (Sample Data)",
}


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name}")


def _parse_float(raw: str) -> int | float:
    # 1.0 and 1e5 are the integers 1 and 100000
    return canonical_numbers(float(raw))


def parse_json(text: str) -> Any:
    # NaN and Infinity are not JSON, even though the json module accepts them
    try:
        return json.loads(
            text, parse_constant=_reject_constant, parse_float=_parse_float
        )
    except RecursionError:
        raise ValueError("JSON nesting is too deep") from None


def canonical_numbers(value: Any) -> Any:
    """Integral floats become ints, so 1.0 serializes as 1. Non-finite floats
    become None, which serializes as null."""
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer() and abs(value) < 1e21:
            return int(value)
        return value
    if isinstance(value, dict):
        return {key: canonical_numbers(item) for key, item in value.items()}
    if isinstance(value, list):
        return [canonical_numbers(item) for item in value]
    return value


def compact_dumps(value: Any) -> str:
    return json.dumps(canonical_numbers(value), separators=(",", ":"), ensure_ascii=False)


def pretty_dumps(value: Any) -> str:
    return json.dumps(canonical_numbers(value), indent=2, ensure_ascii=False)


def validate_json(text: str) -> JsonValidation:
    """Check ``text`` for JSON syntax.

    Blank text counts as valid. The reported character count is that of the
    compact re-serialization, so insignificant whitespace in the input does
    not change it.
    """
    if not text or not text.strip():
        return JsonValidation(valid=True, char_count=0)
    try:
        parsed = parse_json(text)
        compact = compact_dumps(parsed)
    except RecursionError:
        return JsonValidation(valid=False, error="JSON nesting is too deep")
    except ValueError as exc:
        return JsonValidation(valid=False, error=str(exc) or "Invalid JSON")
    return JsonValidation(valid=True, parsed_value=parsed, char_count=len(compact))


def format_json(text: str) -> str:
    result = validate_json(text)
    if not result.valid or not text.strip():
        return text
    return pretty_dumps(result.parsed_value)


# ─── Templates ───────────────────────────────────────────────────────────────

def default_value(prop: Schema | None) -> Any:
    kind = prop.kind if prop is not None else SchemaKind.UNKNOWN
    if kind is SchemaKind.STRING:
        return prop.enum[0] if prop.enum else ""
    if kind in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        return prop.minimum or 0
    if kind is SchemaKind.BOOLEAN:
        return False
    if kind is SchemaKind.ARRAY:
        return []
    if kind is SchemaKind.OBJECT:
        return {}
    return ""


def _example_string(name: str, prop: Schema) -> str:
    if prop.enum:
        return prop.enum[0]
    if prop.format == "email" or "email" in name:
        return "user@example.com"
    if prop.format == "date":
        return "2024-01-01"
    if prop.format == "date-time":
        return "2024-01-01T12:00:00Z"
    if "name" in name:
        return "John Doe"
    if "title" in name:
        return "Sample Title"
    if "description" in name:
        return "This is a sample description"
    if "url" in name:
        return "https://example.com"
    if "phone" in name:
        return "+1-555-123-4567"
    return "Sample text"


def _example_number(name: str, prop: Schema) -> int | float:
    if "age" in name:
        return 25
    if "price" in name or "cost" in name:
        return 99.99
    if "count" in name or "quantity" in name:
        return 10
    return prop.minimum or 42


def example_value(key: str, prop: Schema | None) -> Any:
    if prop is None:
        return "sample"
    name = key.lower()
    kind = prop.kind
    if kind is SchemaKind.STRING:
        return _example_string(name, prop)
    if kind in (SchemaKind.NUMBER, SchemaKind.INTEGER):
        return _example_number(name, prop)
    if kind is SchemaKind.BOOLEAN:
        return True
    if kind is SchemaKind.ARRAY:
        return ["item1", "item2"]
    if kind is SchemaKind.OBJECT:
        return {"key": "value"}
    return "sample"


def generate_templates(schema: Schema) -> list[JsonTemplate]:
    """Canned payloads for ``schema``: minimal (when anything is required),
    complete and example, in that order. A schema that declares no
    properties at all gets none."""
    if "properties" not in schema.model_fields_set:
        return []
    templates = []
    if schema.required:
        templates.append(
            JsonTemplate(
                name="minimal",
                label=TEMPLATE_LABELS["minimal"],
                data={
                    name: default_value(schema.properties.get(name))
                    for name in schema.required
                },
            )
        )
    templates.append(
        JsonTemplate(
            name="complete",
            label=TEMPLATE_LABELS["complete"],
            data={key: default_value(prop) for key, prop in schema.properties.items()},
        )
    )
    templates.append(
        JsonTemplate(
            name="example",
            label=TEMPLATE_LABELS["example"],
            data={key: example_value(key, prop) for key, prop in schema.properties.items()},
        )
    )
    return templates
