import base64
import binascii
import logging
import os

from errors import InvalidImageFormat
from schemas.dto import Ingredient

log = logging.getLogger(__name__)

IMAGE_MIME = "image/jpeg"

RECOGNIZE_PROMPT = (
    "Identifica los ingredientes de cocina en esta imagen. Proporciona solo los nombres "
    "de los ingredientes en español, sin información adicional. Por ejemplo: aceite, "
    "azúcar, sal, tomates, espinaca, etc. Cuando identifiques un packaging, ignora las "
    "imágenes del packaging y solo lee cuál es el ingrediente que contiene. No incluyas "
    "ningún detalle adicional, solo el nombre del ingrediente. Si identificas que hay más "
    "de un ingrediente de la misma clase, indica la cantidad de cada uno. Por ejemplo: "
    "2 aceites, 1 azúcar, 1 sal, 1 tomate, 1 espinaca, etc. Siempre coloca la cantidad "
    "antes del nombre del ingrediente. Si no se encuentras el ingrediente, no lo identifiques."
)

GENERATE_TEMPLATE = """
Crea una receta utilizando SOLO los siguientes ingredientes detectados: {names}.

La receta debe seguir este formato:

## [Nombre de la Receta]

**Ingredientes:**
- [Lista de ingredientes con cantidades, SOLO usando los ingredientes proporcionados]

**Ingredientes complementarios (no incluidos en la lista principal):**
- [Lista de ingredientes adicionales sugeridos que no están en la lista principal, si los hay]

**Instrucciones:**
1. [Paso 1]
2. [Paso 2]
...

La receta debe ser creativa, sabrosa y fácil de seguir. Puedes utilizar todos o algunos de los ingredientes de la lista {names}.

IMPORTANTE:
1. NO incluyas ingredientes que no estén en la lista proporcionada en la sección principal de "Ingredientes".
2. Si crees que faltan ingredientes esenciales (como sal, aceite, etc.), menciónalos SOLO en la sección "Ingredientes complementarios".
3. En la sección "Ingredientes complementarios", explica claramente que estos ingredientes no están en la lista principal y son sugerencias para mejorar la receta.
4. Si la receta requiere ingredientes que no están en la lista proporcionada, asegúrate de mencionarlo claramente en la sección de "Ingredientes complementarios".
"""


def build_recipe_prompt(names: list[str]) -> str:
    return GENERATE_TEMPLATE.format(names=", ".join(names))


def decode_image(image_encoded: str) -> bytes:
    """Validate a data URI and return the raw image bytes.

    Stricter than a prefix check: the payload must be single-line base64
    with correct padding, so line-wrapped output (base64.encodebytes) is
    rejected with InvalidImageFormat.
    """
    if not isinstance(image_encoded, str) or not image_encoded.startswith("data:image"):
        raise InvalidImageFormat("Formato de imagen no válido")
    _, sep, payload = image_encoded.partition(",")
    if not sep or not payload:
        raise InvalidImageFormat("Formato de imagen no válido")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageFormat("Formato de imagen no válido") from e


def parse_ingredient_lines(text: str | None) -> list[Ingredient]:
    out = []
    for line in (text or "").split("\n"):
        line = line.strip()
        if not line:
            continue
        if line.startswith("- "):
            line = line[2:].strip()
        if line:
            out.append(Ingredient(name=line))
    return out


class AIGateway:
    """Two request/response calls to a generative model.

    Subclasses implement _ask_image and _ask_text; validation and
    post-processing live here so every provider behaves the same.
    """

    name = "base"

    def recognize(self, image_encoded: str) -> list[Ingredient]:
        data = decode_image(image_encoded)
        text = self._ask_image(RECOGNIZE_PROMPT, data, IMAGE_MIME)
        ingredients = parse_ingredient_lines(text)
        log.info("Ingredientes reconocidos: %s", [i.name for i in ingredients])
        return ingredients

    def generate(self, ingredient_names: list[str]) -> str:
        recipe = self._ask_text(build_recipe_prompt(list(ingredient_names)))
        log.info("Receta generada (%d caracteres)", len(recipe))
        return recipe

    def _ask_image(self, prompt: str, data: bytes, mime_type: str) -> str:
        raise NotImplementedError

    def _ask_text(self, prompt: str) -> str:
        raise NotImplementedError


MOCK_RECIPE = """## Tortilla sencilla

**Ingredientes:**
- 2 huevos
- 1 tomate

**Ingredientes complementarios (no incluidos en la lista principal):**
- Sal y aceite, sugeridos para mejorar la receta.

**Instrucciones:**
1. Bate los huevos.
2. Corta el tomate en cubos y mézclalo con los huevos.
3. Cocina la mezcla en una sartén caliente."""


class MockGateway(AIGateway):
    """Offline provider for local development; answers are canned."""

    name = "mock"

    def _ask_image(self, prompt, data, mime_type):
        return "2 huevos\n1 tomate\nsal\naceite"

    def _ask_text(self, prompt):
        return MOCK_RECIPE


def get_gateway(provider: str | None = None) -> AIGateway:
    provider = (provider or os.getenv("AI_PROVIDER", "gemini")).lower()
    if provider == "mock":
        return MockGateway()
    if provider == "gemini":
        from services.gemini import GeminiGateway
        return GeminiGateway()
    raise ValueError(f"unknown AI provider: {provider}")
