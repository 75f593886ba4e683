# farmwise/core/request_builder.py

import base64
import binascii
import re
from typing import Optional, Sequence

from langchain_core.prompts import PromptTemplate

from .config import settings
from .errors import InvalidInput
from .models import ChatTurn
from .schema import (
    ANALYSIS,
    JSON_MIME_TYPE,
    RECOMMENDATIONS,
    Content,
    GenerationConfig,
    InferenceRequest,
    InlineData,
    Part,
)

# The image formats Gemini accepts as inline data
SUPPORTED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic", "image/heif")

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<payload>.+)$", re.DOTALL)

ANALYSIS_PROMPTS = {
    "soil": (
        "Analyze this soil. Provide: healthScore (0-100), quality name, nutrients "
        "(Nitrogen, Phosphorus, Potassium as percentages), 3 specific recommendations, "
        "and a detailed description. Return as pure JSON."
    ),
    "crop": (
        "Analyze this plant/crop. Provide: healthScore (0-100), health status quality, "
        "growth stage nutrients (Health, Vitality, Moisture as percentages), 3 care tips, "
        "and a description. Return as pure JSON."
    ),
}

PLANNER_PROMPT = PromptTemplate.from_template(
    """Provide 3-5 crop recommendations for the {season} season.
For each crop, provide: name, suitability description, typical duration (e.g. "90-120 days"),
the scientific reason why it's suitable, and difficulty level ('Easy', 'Moderate', or 'Challenging').
Return the response as a pure JSON array."""
)

ADVISOR_SYSTEM_INSTRUCTION = (
    "You are FarmWise Advisor. Expert in modern agriculture, soil enrichment, pest management, "
    "and govt policies. Provide structured, visual, and highly helpful responses for farmers."
)


def to_data_uri(image_bytes: bytes, mime_type: str) -> str:
    """Encodes raw image bytes the way the capture flow hands them over."""
    return f"data:{mime_type};base64,{base64.b64encode(image_bytes).decode('ascii')}"


def split_data_uri(image: Optional[str]) -> InlineData:
    """Extracts the base64 payload and its declared media type from a data URI."""
    if not image or not isinstance(image, str):
        raise InvalidInput("An image is required for analysis.")

    match = _DATA_URI_RE.match(image.strip())
    if not match:
        raise InvalidInput("Image must be a base64 data URI (data:<mime>;base64,<payload>).")

    mime_type = match.group("mime").lower()
    if mime_type not in SUPPORTED_IMAGE_TYPES:
        raise InvalidInput(f"Unsupported image type '{mime_type}'.")

    payload = match.group("payload").strip()
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInput("Image payload is not valid base64.")

    return InlineData(data=payload, mime_type=mime_type)


class RequestBuilder:
    """Turns a FarmWise intent into a complete InferenceRequest."""

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.model_name

    def analyze(self, image: Optional[str], kind: str) -> InferenceRequest:
        if kind not in ANALYSIS_PROMPTS:
            raise InvalidInput(f"Unknown analysis kind '{kind}'.")
        inline = split_data_uri(image)
        return InferenceRequest(
            intent="analyze",
            model=self.model,
            parts=[Part(inline_data=inline), Part(text=ANALYSIS_PROMPTS[kind])],
            config=GenerationConfig(
                response_mime_type=JSON_MIME_TYPE,
                response_schema=ANALYSIS.response_schema,
            ),
        )

    def recommend(self, season: str) -> InferenceRequest:
        if not season or not season.strip():
            raise InvalidInput("A season is required for planting recommendations.")
        return InferenceRequest(
            intent="recommend",
            model=self.model,
            parts=[Part(text=PLANNER_PROMPT.format(season=season.strip()))],
            config=GenerationConfig(
                response_mime_type=JSON_MIME_TYPE,
                response_schema=RECOMMENDATIONS.response_schema,
            ),
        )

    def converse(self, message: str, history: Sequence[ChatTurn] = ()) -> InferenceRequest:
        """
        Builds a chat request. ``history`` is the transcript before ``message``, supplied by
        the session; pending, empty and failed turns are left out.
        """
        if not message or not message.strip():
            raise InvalidInput("Chat message must not be empty.")

        contents = [
            Content(role=turn.role, parts=[Part(text=turn.text)])
            for turn in history
            if turn.text and not turn.failed
        ]
        contents.append(Content(role="user", parts=[Part(text=message)]))
        return InferenceRequest(
            intent="converse",
            model=self.model,
            history=contents,
            config=GenerationConfig(system_instruction=ADVISOR_SYSTEM_INSTRUCTION),
        )
