from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, RootModel, field_validator, model_serializer

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]


# ─── Auth ────────────────────────────────────────────────────────────────────

class NoAuth(BaseModel):
    type: Literal["none"] = "none"


class BearerAuth(BaseModel):
    type: Literal["bearer"] = "bearer"
    token: str = Field(default="", alias="bearerToken")

    model_config = {"populate_by_name": True}


class ApiKeyParams(BaseModel):
    key: str
    value: str = ""
    location: Literal["header", "query"] = "header"


class ApiKeyAuth(BaseModel):
    type: Literal["apikey"] = "apikey"
    api_key: ApiKeyParams = Field(alias="apiKey")

    model_config = {"populate_by_name": True}


class BasicCredentials(BaseModel):
    username: str = ""
    password: str = ""


class BasicAuth(BaseModel):
    type: Literal["basic"] = "basic"
    basic_auth: BasicCredentials = Field(alias="basicAuth")

    model_config = {"populate_by_name": True}


AuthConfig = Annotated[
    NoAuth | BearerAuth | ApiKeyAuth | BasicAuth, Field(discriminator="type")
]


class AuthConfigPayload(RootModel[AuthConfig]):
    pass


class AuthConfigPublic(BaseModel):
    type: str
    api_key_name: str | None = None
    api_key_location: str | None = None
    username: str | None = None
    has_token: bool = False
    has_password: bool = False

    @classmethod
    def from_config(cls, config: BaseModel) -> "AuthConfigPublic":
        if isinstance(config, BearerAuth):
            return cls(type=config.type, has_token=bool(config.token))
        if isinstance(config, ApiKeyAuth):
            return cls(
                type=config.type,
                api_key_name=config.api_key.key,
                api_key_location=config.api_key.location,
                has_token=bool(config.api_key.value),
            )
        if isinstance(config, BasicAuth):
            return cls(
                type=config.type,
                username=config.basic_auth.username,
                has_password=bool(config.basic_auth.password),
            )
        return cls(type="none")


# ─── Schema ──────────────────────────────────────────────────────────────────

class SchemaKind(str, Enum):
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"
    UNKNOWN = "unknown"


class Schema(BaseModel):
    """A JSON Schema fragment, narrowed to the keywords forms care about.

    Keywords not modeled here are kept as extra fields so a schema survives
    a round trip through the API unchanged.
    """

    type: str | None = None
    properties: dict[str, "Schema"] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    enum: list[Any] | None = None
    format: str | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    max_length: int | None = Field(default=None, alias="maxLength")
    title: str | None = None
    description: str | None = None
    items: "Schema | None" = None

    model_config = {"populate_by_name": True, "extra": "allow"}

    @field_validator("type", mode="before")
    @classmethod
    def _first_concrete_type(cls, value: Any) -> Any:
        # OpenAPI 3.1 allows ["string", "null"]
        if isinstance(value, list):
            concrete = [t for t in value if isinstance(t, str) and t != "null"]
            return concrete[0] if concrete else None
        return value if isinstance(value, str) else None

    # Keywords of the wrong JSON type are dropped rather than rejected
    @field_validator("format", "title", "description", mode="before")
    @classmethod
    def _text_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, str) else None

    @field_validator("enum", mode="before")
    @classmethod
    def _enum_list(cls, value: Any) -> Any:
        return value if isinstance(value, list) else None

    @field_validator("minimum", "maximum", mode="before")
    @classmethod
    def _number_or_none(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("max_length", mode="before")
    @classmethod
    def _int_or_none(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value

    @field_validator("properties", mode="before")
    @classmethod
    def _drop_boolean_schemas(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return {}
        return {str(k): v for k, v in value.items() if isinstance(v, (dict, Schema))}

    @field_validator("required", mode="before")
    @classmethod
    def _required_list(cls, value: Any) -> Any:
        # Swagger 2.0 documents sometimes put `required: true` on a property
        if not isinstance(value, list):
            return []
        return [name for name in value if isinstance(name, str)]

    @field_validator("items", mode="before")
    @classmethod
    def _single_items_schema(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, Schema)) else None

    @property
    def kind(self) -> SchemaKind:
        if self.type is None:
            return SchemaKind.OBJECT if self.properties else SchemaKind.UNKNOWN
        try:
            return SchemaKind(self.type)
        except ValueError:
            return SchemaKind.UNKNOWN

    @model_serializer(mode="wrap")
    def _omit_empty(self, handler) -> dict[str, Any]:
        data = handler(self)
        result = {}
        for key, value in data.items():
            if value is None:
                continue
            if key == "required" and not value:
                continue
            if key == "properties" and not value and self.type != "object":
                continue
            result[key] = value
        return result


def empty_object_schema(**extra: Any) -> Schema:
    return Schema(type="object", properties={}, **extra)


# ─── Spec ────────────────────────────────────────────────────────────────────

class Endpoint(BaseModel):
    id: str
    path: str
    method: HttpMethod
    summary: str | None = None
    description: str | None = None
    schema_: Schema = Field(alias="schema")

    model_config = {"populate_by_name": True}


class SpecDocument(BaseModel):
    title: str
    version: str
    description: str | None = None
    base_url: str | None = None
    raw: dict
    source_url: str
    loaded_at: str


class LoadedSpec(BaseModel):
    title: str
    version: str
    description: str | None = None
    base_url: str | None = None
    source_url: str
    loaded_at: str
    endpoints: list[Endpoint]


class SpecLoadRequest(BaseModel):
    url: str | None = None
    base_url: str | None = None


# ─── Forms ───────────────────────────────────────────────────────────────────

Widget = Literal[
    "text",
    "textarea",
    "email",
    "password",
    "number",
    "checkbox",
    "select",
    "json",
    "group",
    "date",
]

CustomFieldKind = Literal["string", "number", "boolean", "email", "date"]


class FieldDescriptor(BaseModel):
    key: str
    label: str
    widget: Widget
    required: bool = False
    description: str | None = None
    placeholder: str | None = None
    options: list[Any] | None = None
    minimum: int | float | None = None
    maximum: int | float | None = None
    step: str | None = None
    value: Any = None
    custom: bool = False
    children: list["FieldDescriptor"] = []


class JsonValidation(BaseModel):
    valid: bool
    error: str | None = None
    parsed_value: Any = Field(default=None, alias="parsedValue")
    char_count: int | None = Field(default=None, alias="charCount")

    model_config = {"populate_by_name": True}


class JsonTemplate(BaseModel):
    name: Literal["minimal", "complete", "example"]
    label: str
    data: dict[str, Any]


class FormView(BaseModel):
    endpoint: Endpoint
    fields: list[FieldDescriptor]
    value: dict[str, Any]
    text: str
    last_edited: Literal["form", "json"]
    validation: JsonValidation
    templates: list[JsonTemplate]


class JsonTextRequest(BaseModel):
    text: str = ""


class TemplatesRequest(BaseModel):
    schema_: Schema = Field(alias="schema")

    model_config = {"populate_by_name": True}


class EndpointRef(BaseModel):
    endpoint_id: str


class FieldUpdateRequest(EndpointRef):
    key: str
    value: Any = None


class AddFieldRequest(EndpointRef):
    key: str
    kind: CustomFieldKind = "string"


class RenameFieldRequest(EndpointRef):
    old_key: str
    new_key: str


class SessionJsonRequest(EndpointRef):
    text: str = ""


class TemplateApplyRequest(EndpointRef):
    name: str


# ─── Requests ────────────────────────────────────────────────────────────────

class SendRequest(EndpointRef):
    value: dict[str, Any] | None = None


class ApiResponse(BaseModel):
    status: int
    status_text: str = Field(alias="statusText")
    data: Any = None
    headers: dict[str, str] = {}

    model_config = {"populate_by_name": True}
