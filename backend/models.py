import enum
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from errors import IngredientValidationError
from schemas.dto import Ingredient

log = logging.getLogger(__name__)


class IngredientStore:
    """Ordered, index-addressed list of ingredients.

    Positions are the only identity: remove() shifts later entries down,
    so callers must not hold on to indices across a removal.
    """

    def __init__(self, items: Iterable[Ingredient] = ()):
        self._items: list[Ingredient] = list(items)

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))

    def __getitem__(self, index: int) -> Ingredient:
        return self._items[self._check(index)]

    def _check(self, index: int) -> int:
        if not 0 <= index < len(self._items):
            raise IndexError(f"no ingredient at index {index}")
        return index

    @staticmethod
    def _validate(ingredient: Ingredient):
        if not (ingredient.name or "").strip():
            raise IngredientValidationError("ingredient name is required")

    def add(self, ingredient: Ingredient) -> bool:
        try:
            self._validate(ingredient)
        except IngredientValidationError:
            log.debug("ignoring ingredient with blank name")
            return False
        self._items.append(ingredient)
        return True

    def update(self, index: int, new_value: Ingredient):
        self._check(index)
        self._validate(new_value)
        self._items[index] = new_value

    def remove(self, index: int) -> Ingredient:
        return self._items.pop(self._check(index))

    def replace_all(self, items: Iterable[Ingredient]):
        self._items = list(items)

    def clear(self):
        self._items = []

    def names(self) -> list[str]:
        return [i.name for i in self._items]

    def to_list(self) -> list[Ingredient]:
        return list(self._items)


class Phase(str, enum.Enum):
    IDLE = "idle"
    RECOGNIZING = "recognizing"
    READY_TO_EDIT = "ready_to_edit"
    GENERATING = "generating"
    DONE = "done"
    ERROR = "error"


@dataclass
class WorkflowState:
    image: Optional[str] = None
    ingredients: IngredientStore = field(default_factory=IngredientStore)
    recipe: Optional[str] = None
    phase: Phase = Phase.IDLE
    error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self.phase in (Phase.RECOGNIZING, Phase.GENERATING)


class SessionRegistry:
    """In-memory map of session id -> per-session object.

    Nothing is persisted; once max_sessions is reached the least recently
    used session is evicted.
    """

    def __init__(self, max_sessions: int = 1000):
        self.max_sessions = max_sessions
        self._lock = threading.Lock()
        self._sessions: OrderedDict = OrderedDict()

    def get_or_create(self, sid: str, factory: Callable):
        with self._lock:
            obj = self._sessions.get(sid)
            if obj is None:
                obj = factory()
                self._sessions[sid] = obj
                while len(self._sessions) > self.max_sessions:
                    old, _ = self._sessions.popitem(last=False)
                    log.info("Evicted session %s", old)
            else:
                self._sessions.move_to_end(sid)
            return obj

    def discard(self, sid: str):
        with self._lock:
            self._sessions.pop(sid, None)

    def clear(self):
        with self._lock:
            self._sessions.clear()

    def __len__(self):
        with self._lock:
            return len(self._sessions)
