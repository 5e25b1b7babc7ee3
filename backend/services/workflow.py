import logging
import threading
from typing import Callable, Optional

from errors import GatewayError, InvalidImageFormat
from models import IngredientStore, Phase, WorkflowState
from schemas.dto import Ingredient, WorkflowStateOut
from services.formatter import format_recipe
from services.gateway import AIGateway

log = logging.getLogger(__name__)


def _log_notify(message: str, category: str):
    log.info("[%s] %s", category, message)


class WorkflowController:
    """
    Drives one user's upload -> recognize -> edit -> generate sequence.

    Recognition and generation share a single in-flight slot: while one
    of them runs, a generate request is dropped (not queued, not an error)
    and an upload is ignored.
    """

    def __init__(self, gateway: AIGateway, notify: Optional[Callable[[str, str], None]] = None):
        self.gateway = gateway
        self.notify = notify or _log_notify
        self.state = WorkflowState()
        self._in_flight = threading.Lock()

    @property
    def ingredients(self) -> IngredientStore:
        return self.state.ingredients

    @property
    def loading(self) -> bool:
        return self.state.loading

    def upload_image(self, image_encoded: str) -> bool:
        if not self._in_flight.acquire(blocking=False):
            log.info("Upload ignored: a request is already in flight")
            return False
        try:
            st = self.state
            st.image = image_encoded
            st.ingredients.clear()
            st.recipe = None
            st.error = None
            st.phase = Phase.RECOGNIZING
            try:
                recognized = self.gateway.recognize(image_encoded)
            except (InvalidImageFormat, GatewayError) as e:
                log.error("Error al reconocer ingredientes: %s", e)
                st.error = f"Error al reconocer ingredientes: {e}"
                st.phase = Phase.ERROR
                self.notify("No se pudieron reconocer los ingredientes. Por favor, intenta de nuevo.", "error")
                return True
            st.ingredients.replace_all(recognized)
            st.phase = Phase.READY_TO_EDIT
            self.notify("Ingredientes reconocidos correctamente.", "success")
            return True
        finally:
            self._in_flight.release()

    def add_ingredient(self, ingredient: Ingredient) -> bool:
        return self.state.ingredients.add(ingredient)

    def update_ingredient(self, index: int, new_value: Ingredient):
        self.state.ingredients.update(index, new_value)

    def remove_ingredient(self, index: int) -> Ingredient:
        return self.state.ingredients.remove(index)

    def generate_recipe(self) -> bool:
        if not self._in_flight.acquire(blocking=False):
            log.info("Generation dropped: a request is already in flight")
            return False
        try:
            st = self.state
            names = st.ingredients.names()
            if not names:
                log.warning("Generation skipped: no ingredients")
                return False
            st.error = None
            st.phase = Phase.GENERATING
            try:
                recipe = self.gateway.generate(names)
            except GatewayError as e:
                log.error("Error al generar la receta: %s", e)
                st.error = f"Error al generar la receta: {e}"
                st.phase = Phase.ERROR
                self.notify("No se pudo generar la receta. Por favor, intenta de nuevo.", "error")
                return True
            st.recipe = recipe
            st.phase = Phase.DONE
            self.notify("Receta generada correctamente.", "success")
            return True
        finally:
            self._in_flight.release()

    def recipe_tree(self):
        if self.state.recipe is None:
            return []
        return format_recipe(self.state.recipe)

    def snapshot(self) -> WorkflowStateOut:
        st = self.state
        return WorkflowStateOut(
            phase=st.phase.value,
            loading=st.loading,
            has_image=st.image is not None,
            ingredients=st.ingredients.to_list(),
            recipe=st.recipe,
            error=st.error,
        )
