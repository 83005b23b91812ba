from fastapi import APIRouter

from apiforms.models import JsonTemplate, JsonTextRequest, JsonValidation, TemplatesRequest
from apiforms.services.json_service import format_json, generate_templates, validate_json

router = APIRouter(prefix="/api/json", tags=["json"])


@router.post("/validate", response_model=JsonValidation)
async def validate(body: JsonTextRequest):
    return validate_json(body.text)


@router.post("/format")
async def format_text(body: JsonTextRequest):
    result = validate_json(body.text)
    return {"text": format_json(body.text), "valid": result.valid}


@router.post("/templates", response_model=list[JsonTemplate])
async def templates(body: TemplatesRequest):
    return generate_templates(body.schema_)
