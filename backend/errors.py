class KitchenError(Exception):
    """Base class for errors raised by the ingredient/recipe workflow."""


class InvalidImageFormat(KitchenError):
    """The payload handed to recognition is not an encoded image."""


class GatewayError(KitchenError):
    """The generative model call failed (network, quota, model-side)."""


class IngredientValidationError(KitchenError):
    """An ingredient without a usable name."""
