import os

os.environ.setdefault("AI_PROVIDER", "mock")

import base64
import threading

import pytest

from errors import GatewayError
from services.gateway import AIGateway

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
IMAGE_URI = "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode("ascii")


class FakeGateway(AIGateway):
    """Records calls instead of talking to a model."""

    name = "fake"

    def __init__(self, image_reply="", recipe_reply="## Receta", fail_image=False, fail_text=False):
        self.image_reply = image_reply
        self.recipe_reply = recipe_reply
        self.fail_image = fail_image
        self.fail_text = fail_text
        self.image_calls = []
        self.text_calls = []
        self.release = None
        self.entered = threading.Event()

    def _ask_image(self, prompt, data, mime_type):
        self.image_calls.append((prompt, data, mime_type))
        if self.fail_image:
            raise GatewayError("quota exceeded")
        return self.image_reply

    def _ask_text(self, prompt):
        self.text_calls.append(prompt)
        self.entered.set()
        if self.release is not None:
            self.release.wait(5)
        if self.fail_text:
            raise GatewayError("model overloaded")
        return self.recipe_reply


@pytest.fixture
def image_uri():
    return IMAGE_URI


@pytest.fixture
def gateway():
    return FakeGateway(image_reply="2 tomates\n\n- sal")


@pytest.fixture
def client(gateway):
    import app as app_module
    app_module.app.config["TESTING"] = True
    app_module.app.config["GATEWAY"] = gateway
    app_module.registry.clear()
    with app_module.app.test_client() as c:
        yield c
    app_module.registry.clear()
