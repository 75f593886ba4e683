import httpx
import pytest
from google.genai import types

from farmwise.core.config import settings
from farmwise.core.errors import TransportFailure
from farmwise.core.inference_client import GeminiClient
from farmwise.core.models import ChatTurn
from farmwise.core.request_builder import ADVISOR_SYSTEM_INSTRUCTION, RequestBuilder, to_data_uri

IMAGE_BYTES = b"\x89PNG-leaf"


class FakeChunk:
    def __init__(self, text):
        self.text = text


class FakeModels:
    """Stands in for genai.Client().models and records the SDK-level arguments."""
    def __init__(self, text="{}", chunks=(), error=None, stream_error=None):
        self.text = text
        self.chunks = list(chunks)
        self.error = error
        self.stream_error = stream_error
        self.calls = []

    def generate_content(self, model, contents, config=None):
        self.calls.append((model, contents, config))
        if self.error:
            raise self.error
        return FakeChunk(self.text)

    def generate_content_stream(self, model, contents, config=None):
        self.calls.append((model, contents, config))
        for chunk in self.chunks:
            yield FakeChunk(chunk)
        if self.stream_error:
            raise self.stream_error


class FakeGenaiClient:
    def __init__(self, models):
        self.models = models


def make_client(**kwargs):
    models = FakeModels(**kwargs)
    return GeminiClient(client=FakeGenaiClient(models)), models


def test_generate_sends_inline_image_and_schema():
    client, models = make_client(text='{"healthScore": 90}')
    request = RequestBuilder(model="gemini-test").analyze(to_data_uri(IMAGE_BYTES, "image/png"), "crop")

    assert client.generate(request) == '{"healthScore": 90}'

    model, contents, config = models.calls[0]
    assert model == "gemini-test"
    assert isinstance(contents[0], types.Part)
    assert contents[0].inline_data.data == IMAGE_BYTES
    assert contents[0].inline_data.mime_type == "image/png"
    assert "Analyze this plant/crop" in contents[1].text
    assert config.response_mime_type == "application/json"
    assert config.response_schema is not None


def test_generate_returns_empty_text_for_empty_response():
    client, _ = make_client(text=None)
    assert client.generate(RequestBuilder().recommend("Autumn")) == ""


@pytest.mark.parametrize("error", [
    httpx.ConnectError("connection refused"),
    httpx.ReadTimeout("timed out"),
])
def test_generate_maps_transport_errors(error):
    client, _ = make_client(error=error)
    with pytest.raises(TransportFailure):
        client.generate(RequestBuilder().recommend("Autumn"))


def test_stream_yields_fragments_in_order_and_skips_empty_chunks():
    client, models = make_client(chunks=["Use ", None, "", "neem oil."])
    history = [ChatTurn(role="user", text="Hi"), ChatTurn(role="model", text="Hello!")]
    request = RequestBuilder().converse("Best pest control?", history)

    assert list(client.stream(request)) == ["Use ", "neem oil."]

    _, contents, config = models.calls[0]
    assert [c.role for c in contents] == ["user", "model", "user"]
    assert contents[-1].parts[0].text == "Best pest control?"
    assert config.system_instruction == ADVISOR_SYSTEM_INSTRUCTION


def test_stream_error_after_first_fragment_is_transport_failure():
    client, _ = make_client(chunks=["Use "], stream_error=httpx.RemoteProtocolError("peer closed"))
    fragments = client.stream(RequestBuilder().converse("Best pest control?"))

    assert next(fragments) == "Use "
    with pytest.raises(TransportFailure):
        next(fragments)


def test_missing_api_key_is_transport_failure(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "google_api_key", None)

    with pytest.raises(TransportFailure):
        GeminiClient().generate(RequestBuilder().recommend("Spring"))


def test_timeout_defaults_to_settings():
    assert GeminiClient(client=object()).timeout_seconds == settings.inference_timeout_seconds
    assert GeminiClient(client=object(), timeout_seconds=5).timeout_seconds == 5


def test_stream_closed_mid_stream_is_transport_failure():
    client, _ = make_client(chunks=["Use "], stream_error=httpx.StreamClosed())
    fragments = client.stream(RequestBuilder().converse("Best pest control?"))

    assert next(fragments) == "Use "
    with pytest.raises(TransportFailure):
        next(fragments)


def test_unexpected_sdk_error_is_transport_failure():
    client, _ = make_client(error=ValueError("could not parse response"))
    with pytest.raises(TransportFailure) as info:
        client.generate(RequestBuilder().recommend("Autumn"))
    assert "ValueError" in str(info.value)
