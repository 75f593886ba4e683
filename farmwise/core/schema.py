# farmwise/core/schema.py

"""
The contract between FarmWise and the inference service.

Requests are described by ``InferenceRequest`` and turned into the wire dict by ``encode``.
Responses come back as untyped text and must go through ``decode`` before anything trusts
their shape: decoding returns a ``Decoded`` value carrying either the validated object or a
``SchemaViolation``, and never a half-accepted payload.
"""

import json
from dataclasses import dataclass
from typing import Annotated, Any, List, Literal, Optional

from langchain_core.utils.json import parse_json_markdown
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import SchemaViolation
from .models import AnalysisResult, CropRecommendation, HistoryItem

JSON_MIME_TYPE = "application/json"


# --- Outbound request shapes ---

class InlineData(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    data: str = Field(description="Base64 payload, without the data URI prefix.")
    mime_type: str = Field(alias="mimeType")


class Part(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: Optional[str] = None
    inline_data: Optional[InlineData] = Field(default=None, alias="inlineData")


class Content(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    parts: List[Part]


class GenerationConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    response_mime_type: Optional[str] = Field(default=None, alias="responseMimeType")
    response_schema: Optional[dict] = Field(default=None, alias="responseSchema")
    system_instruction: Optional[str] = Field(default=None, alias="systemInstruction")


class InferenceRequest(BaseModel):
    """A fully specified call to the inference service."""
    model_config = ConfigDict(frozen=True)

    intent: Literal["analyze", "recommend", "converse"]
    model: str
    parts: List[Part] = []
    history: List[Content] = []
    config: Optional[GenerationConfig] = None

    @property
    def expects_json(self) -> bool:
        return self.config is not None and self.config.response_schema is not None


def encode(request: InferenceRequest) -> dict:
    """Serializes a request into the service's wire format."""
    if request.intent == "converse":
        contents = [c.model_dump(by_alias=True, exclude_none=True) for c in request.history]
    else:
        contents = [p.model_dump(by_alias=True, exclude_none=True) for p in request.parts]
    wire = {"model": request.model, "contents": contents}
    if request.config is not None:
        wire["config"] = request.config.model_dump(by_alias=True, exclude_none=True)
    return wire


# --- Inbound response shapes ---

ANALYSIS_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "healthScore": {"type": "INTEGER"},
        "quality": {"type": "STRING"},
        "nutrients": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "label": {"type": "STRING"},
                    "value": {"type": "INTEGER"},
                },
                "required": ["label", "value"],
            },
        },
        "recommendations": {"type": "ARRAY", "items": {"type": "STRING"}},
        "description": {"type": "STRING"},
    },
    "required": ["healthScore", "quality", "nutrients", "recommendations", "description"],
}

RECOMMENDATIONS_RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING"},
            "suitability": {"type": "STRING"},
            "duration": {"type": "STRING"},
            "reason": {"type": "STRING"},
            "difficulty": {"type": "STRING", "enum": ["Easy", "Moderate", "Challenging"]},
        },
        "required": ["name", "suitability", "duration", "reason", "difficulty"],
    },
}


@dataclass(frozen=True)
class ResponseShape:
    """What a response must look like: the schema sent upstream and the validator applied locally."""
    name: str
    response_schema: dict
    adapter: TypeAdapter


ANALYSIS = ResponseShape("analysis", ANALYSIS_RESPONSE_SCHEMA, TypeAdapter(AnalysisResult))
RECOMMENDATIONS = ResponseShape(
    "recommendations",
    RECOMMENDATIONS_RESPONSE_SCHEMA,
    TypeAdapter(Annotated[List[CropRecommendation], Field(min_length=1)]),
)


@dataclass(frozen=True)
class Decoded:
    """Tagged outcome of decoding: exactly one of value / error is meaningful."""
    value: Any = None
    error: Optional[SchemaViolation] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(p) for p in first["loc"]) or "<root>"
    return f"{exc.error_count()} error(s), first at {location}: {first['msg']}"


def decode(raw: Optional[str], shape: ResponseShape) -> Decoded:
    """Parses raw response text and validates it against ``shape`` as a whole."""
    try:
        # strict parse: truncated JSON is a violation, never repaired
        payload = parse_json_markdown(raw or "", parser=json.loads)
    except json.JSONDecodeError as e:
        return Decoded(error=SchemaViolation(f"{shape.name}: response is not valid JSON ({e.msg})"))

    try:
        value = shape.adapter.validate_python(payload)
    except ValidationError as e:
        return Decoded(error=SchemaViolation(f"{shape.name}: {_describe(e)}"))
    return Decoded(value=value)


def decode_history_data(history_type: str, data: Any) -> Decoded:
    """Re-validates the ``data`` of a persisted history entry against the shape its type implies."""
    shape = RECOMMENDATIONS if history_type == "planner" else ANALYSIS
    try:
        return Decoded(value=shape.adapter.validate_python(data))
    except ValidationError as e:
        return Decoded(error=SchemaViolation(f"{shape.name}: {_describe(e)}"))


def history_item_from_dict(data: dict) -> HistoryItem:
    """Builds a HistoryItem whose ``data`` has been checked against its ``type``."""
    decoded = decode_history_data(data.get("type"), data.get("data"))
    return HistoryItem(**{**data, "data": decoded.unwrap()})
