import os
import logging

from google import genai
from google.genai import types

from errors import GatewayError
from services.gateway import AIGateway

log = logging.getLogger(__name__)

GEMINI_KEY = os.getenv("GEMINI_API_KEY")
DEFAULT_MODEL = "gemini-2.5-flash"


class GeminiGateway(AIGateway):
    name = "gemini"

    def __init__(self, api_key: str | None = None, model: str | None = None, client=None):
        self.api_key = api_key if api_key is not None else GEMINI_KEY
        self.model = model or os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
        self._client = client
        if not self.api_key and client is None:
            log.warning("GEMINI_API_KEY not set. Recognition and recipe generation will fail.")

    @property
    def client(self):
        if self._client is None:
            if not self.api_key:
                raise GatewayError("GEMINI_API_KEY not set")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def _call(self, contents) -> str:
        client = self.client
        try:
            response = client.models.generate_content(model=self.model, contents=contents)
        except Exception as e:
            log.error("Gemini request failed: %s", e)
            raise GatewayError(str(e)) from e
        return response.text or ""

    def _ask_image(self, prompt, data, mime_type):
        return self._call([prompt, types.Part.from_bytes(data=data, mime_type=mime_type)])

    def _ask_text(self, prompt):
        return self._call(prompt)
