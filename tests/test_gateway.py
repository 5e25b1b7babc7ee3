import pytest

from conftest import FakeGateway, JPEG_BYTES
from errors import GatewayError, InvalidImageFormat
from services.gateway import (
    IMAGE_MIME, MockGateway, build_recipe_prompt, decode_image, get_gateway, parse_ingredient_lines,
)
from services.gemini import GeminiGateway


@pytest.mark.parametrize("bad", ["", "hola", "data:text/plain;base64,aGk=", "data:image/png", "data:image/png;base64,@@@"])
def test_recognize_rejects_non_images_before_calling_model(bad):
    gw = FakeGateway(image_reply="sal")
    with pytest.raises(InvalidImageFormat):
        gw.recognize(bad)
    assert gw.image_calls == []


def test_recognize_sends_decoded_bytes_as_jpeg(image_uri):
    gw = FakeGateway(image_reply="sal")
    gw.recognize(image_uri)
    prompt, data, mime = gw.image_calls[0]
    assert data == JPEG_BYTES
    assert mime == IMAGE_MIME == "image/jpeg"
    assert "español" in prompt


def test_decode_image_accepts_png_uri():
    assert decode_image("data:image/png;base64,aGk=") == b"hi"


def test_parse_lines_keeps_order_and_duplicates():
    raw = "  2 tomates \n\n- sal\n   \n2 tomates\naceite"
    assert [i.name for i in parse_ingredient_lines(raw)] == ["2 tomates", "sal", "2 tomates", "aceite"]


def test_parse_lines_empty_response():
    assert parse_ingredient_lines("") == []
    assert parse_ingredient_lines(None) == []


def test_generate_returns_raw_text_and_embeds_names():
    gw = FakeGateway(recipe_reply="texto libre sin formato")
    assert gw.generate(["huevo", "papa"]) == "texto libre sin formato"
    assert "huevo, papa" in gw.text_calls[0]
    assert "Ingredientes complementarios" in gw.text_calls[0]


def test_build_recipe_prompt_lists_names_twice():
    assert build_recipe_prompt(["sal", "ajo"]).count("sal, ajo") == 2


def test_gateway_errors_propagate(image_uri):
    with pytest.raises(GatewayError):
        FakeGateway(fail_image=True).recognize(image_uri)
    with pytest.raises(GatewayError):
        FakeGateway(fail_text=True).generate(["sal"])


def test_get_gateway_providers():
    assert isinstance(get_gateway("mock"), MockGateway)
    assert isinstance(get_gateway("gemini"), GeminiGateway)
    with pytest.raises(ValueError):
        get_gateway("openai")


def test_mock_gateway_recognizes(image_uri):
    names = [i.name for i in MockGateway().recognize(image_uri)]
    assert names == ["2 huevos", "1 tomate", "sal", "aceite"]


class _Response:
    def __init__(self, text):
        self.text = text


class _Models:
    def __init__(self, reply=None, exc=None):
        self.reply = reply
        self.exc = exc
        self.calls = []

    def generate_content(self, model, contents):
        self.calls.append((model, contents))
        if self.exc:
            raise self.exc
        return _Response(self.reply)


class _Client:
    def __init__(self, models):
        self.models = models


def test_gemini_missing_key_fails_at_request_time(image_uri):
    gw = GeminiGateway(api_key="")
    with pytest.raises(GatewayError):
        gw.recognize(image_uri)


def test_gemini_wraps_sdk_errors():
    gw = GeminiGateway(api_key="k", client=_Client(_Models(exc=ConnectionError("boom"))))
    with pytest.raises(GatewayError) as info:
        gw.generate(["sal"])
    assert isinstance(info.value.__cause__, ConnectionError)


def test_gemini_sends_model_and_parses(image_uri):
    models = _Models(reply="- huevo\nleche")
    gw = GeminiGateway(api_key="k", model="gemini-test", client=_Client(models))
    assert [i.name for i in gw.recognize(image_uri)] == ["huevo", "leche"]
    model, contents = models.calls[0]
    assert model == "gemini-test"
    assert len(contents) == 2


def test_gemini_none_text_is_empty():
    gw = GeminiGateway(api_key="k", client=_Client(_Models(reply=None)))
    assert gw.generate(["sal"]) == ""


def test_line_wrapped_base64_is_rejected():
    import base64
    wrapped = base64.encodebytes(b"x" * 100).decode("ascii")
    assert "\n" in wrapped
    with pytest.raises(InvalidImageFormat):
        decode_image("data:image/jpeg;base64," + wrapped)
