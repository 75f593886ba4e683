# farmwise/core/inference_client.py

import base64
from typing import Iterator, List, Optional, Tuple

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import settings
from .errors import TransportFailure
from .schema import InferenceRequest, Part

# What the SDK raises for a call that did not complete. StreamError is a RuntimeError in httpx.
TRANSPORT_ERRORS = (genai_errors.APIError, httpx.HTTPError, httpx.StreamError)


class GeminiClient:
    """
    Runs InferenceRequests against Gemini through the google-genai SDK.

    Every call carries an HTTP timeout of ``settings.inference_timeout_seconds``; a timeout, a
    network error, a non-success status or an error raised mid-stream all surface as
    TransportFailure.
    """

    def __init__(self, client=None, timeout_seconds: Optional[float] = None):
        self.timeout_seconds = timeout_seconds or settings.inference_timeout_seconds
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not settings.api_key:
                raise TransportFailure("No Gemini API key configured. Add GEMINI_API_KEY to your .env file.")
            self._client = genai.Client(
                api_key=settings.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout_seconds * 1000)),
            )
            print(f"---GEMINI CLIENT: Initialized (timeout {self.timeout_seconds:.0f}s)---")
        return self._client

    def generate(self, request: InferenceRequest) -> str:
        """Single-shot call; returns the raw response text for the Schema Contract Layer to decode."""
        contents, config = _to_sdk(request)
        print(f"---GEMINI CLIENT: generate_content ({request.intent}) with {request.model}---")
        try:
            response = self.client.models.generate_content(
                model=request.model, contents=contents, config=config
            )
            return response.text or ""
        except TransportFailure:
            raise
        except Exception as e:
            raise _transport_failure(e) from e

    def stream(self, request: InferenceRequest) -> Iterator[str]:
        """Streaming call; yields text fragments in production order."""
        contents, config = _to_sdk(request)
        print(f"---GEMINI CLIENT: generate_content_stream ({request.intent}) with {request.model}---")
        try:
            for chunk in self.client.models.generate_content_stream(
                model=request.model, contents=contents, config=config
            ):
                if chunk.text:
                    yield chunk.text
        except TransportFailure:
            raise
        except Exception as e:
            raise _transport_failure(e) from e


def _transport_failure(e: Exception) -> TransportFailure:
    """Anything the SDK raises ends the call; only the diagnostic differs."""
    if not isinstance(e, TRANSPORT_ERRORS):
        print(f"---GEMINI CLIENT: Unexpected {type(e).__name__} from the SDK, treated as a transport failure---")
    return TransportFailure(f"{type(e).__name__}: {e}")


def _to_sdk_part(part: Part) -> types.Part:
    if part.inline_data is not None:
        return types.Part.from_bytes(
            data=base64.b64decode(part.inline_data.data),
            mime_type=part.inline_data.mime_type,
        )
    return types.Part.from_text(text=part.text or "")


def _to_sdk(request: InferenceRequest) -> Tuple[List, Optional[types.GenerateContentConfig]]:
    if request.intent == "converse":
        contents = [
            types.Content(role=c.role, parts=[_to_sdk_part(p) for p in c.parts])
            for c in request.history
        ]
    else:
        contents = [_to_sdk_part(p) for p in request.parts]

    config = None
    if request.config is not None:
        config = types.GenerateContentConfig(
            response_mime_type=request.config.response_mime_type,
            response_schema=request.config.response_schema,
            system_instruction=request.config.system_instruction,
        )
    return contents, config
