from typing import Any

from apiforms.models import (
    ApiResponse,
    Endpoint,
    FormView,
    JsonValidation,
    Schema,
    SpecDocument,
)
from apiforms.services import form_service
from apiforms.services.json_service import (
    format_json,
    generate_templates,
    pretty_dumps,
    validate_json,
)


class TemplateNotFoundError(LookupError):
    pass


class FormSession:
    """Request payload being edited for one endpoint.

    ``value`` is the single source of truth. ``text`` mirrors it as JSON;
    form edits rewrite the text, and text edits replace the value only when
    the text parses to a JSON object. Invalid text never touches the value.
    """

    def __init__(self, endpoint: Endpoint) -> None:
        self.endpoint = endpoint
        self.value: dict[str, Any] = {}
        self.text = pretty_dumps(self.value)
        self.last_edited = "form"
        self.custom_fields: dict[str, str] = {}
        self.last_response: ApiResponse | None = None

    @property
    def schema(self) -> Schema:
        return self.endpoint.schema_

    def _form_edited(self) -> None:
        self.text = pretty_dumps(self.value)
        self.last_edited = "form"

    def edit_field(self, key: str, new_value: Any) -> None:
        self.value = form_service.apply_field(
            self.value, key, new_value, self.schema, self.custom_fields
        )
        self._form_edited()

    def add_field(self, key: str, kind: str) -> None:
        self.value, self.custom_fields = form_service.add_custom_field(
            self.value, self.custom_fields, key, kind
        )
        self._form_edited()

    def rename_field(self, old_key: str, new_key: str) -> None:
        self.value, self.custom_fields = form_service.rename_field(
            self.value, self.custom_fields, old_key, new_key
        )
        self._form_edited()

    def remove_field(self, key: str) -> None:
        self.value, self.custom_fields = form_service.remove_field(
            self.value, self.custom_fields, key
        )
        self._form_edited()

    def edit_text(self, text: str) -> JsonValidation:
        self.text = text
        self.last_edited = "json"
        result = validate_json(text)
        if result.valid and isinstance(result.parsed_value, dict):
            self.value = result.parsed_value
        return result

    def format_text(self) -> None:
        self.text = format_json(self.text)

    def apply_template(self, name: str) -> None:
        for template in generate_templates(self.schema):
            if template.name == name:
                self.edit_text(pretty_dumps(template.data))
                return
        raise TemplateNotFoundError(name)

    def reset(self) -> None:
        self.value = {}
        self.custom_fields = {}
        self.last_response = None
        self._form_edited()

    def view(self) -> FormView:
        return FormView(
            endpoint=self.endpoint,
            fields=form_service.render_form(self.schema, self.value, self.custom_fields),
            value=self.value,
            text=self.text,
            last_edited=self.last_edited,
            validation=validate_json(self.text),
            templates=generate_templates(self.schema),
        )


class Workspace:
    """The loaded spec, its endpoints and one form session per endpoint."""

    def __init__(self) -> None:
        self.spec: SpecDocument | None = None
        self.endpoints: list[Endpoint] = []
        self._sessions: dict[str, FormSession] = {}

    @property
    def base_url(self) -> str:
        return (self.spec.base_url or "") if self.spec else ""

    def replace(self, spec: SpecDocument, endpoints: list[Endpoint]) -> None:
        self.spec = spec
        self.endpoints = endpoints
        self._sessions = {}

    def clear(self) -> None:
        self.spec = None
        self.endpoints = []
        self._sessions = {}

    def get_endpoint(self, endpoint_id: str) -> Endpoint | None:
        for endpoint in self.endpoints:
            if endpoint.id == endpoint_id:
                return endpoint
        return None

    def session(self, endpoint_id: str) -> FormSession | None:
        if endpoint_id not in self._sessions:
            endpoint = self.get_endpoint(endpoint_id)
            if endpoint is None:
                return None
            self._sessions[endpoint_id] = FormSession(endpoint)
        return self._sessions[endpoint_id]
