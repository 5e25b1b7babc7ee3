from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional, Union


class Ingredient(BaseModel):
    name: str
    quantity: Optional[str] = None
    weight: Optional[str] = None
    info: Optional[str] = None


class IngredientIn(BaseModel):
    # name may be blank here: the store decides whether to keep it
    name: str = ""
    quantity: Optional[str] = None
    weight: Optional[str] = None
    info: Optional[str] = None

    @field_validator("quantity", "weight", "info")
    @classmethod
    def blank_to_none(cls, v):
        if v is None:
            return None
        v = v.strip()
        return v or None

    def to_ingredient(self) -> Ingredient:
        return Ingredient(**self.model_dump())


class RecognizeRequest(BaseModel):
    image: str = Field(min_length=1)


class FormatRequest(BaseModel):
    text: str = ""


# --- Render tree ---

class Span(BaseModel):
    text: str
    bold: bool = False


class ListItem(BaseModel):
    kind: Literal["list_item"] = "list_item"
    spans: List[Span]


class NumberedStep(BaseModel):
    kind: Literal["numbered_step"] = "numbered_step"
    spans: List[Span]


class Paragraph(BaseModel):
    kind: Literal["paragraph"] = "paragraph"
    spans: List[Span]


Line = Union[ListItem, NumberedStep, Paragraph]


class TitleBlock(BaseModel):
    kind: Literal["title"] = "title"
    text: str


class SectionBlock(BaseModel):
    kind: Literal["section"] = "section"
    label: str
    lines: List[Line]


class ContentBlock(BaseModel):
    kind: Literal["content"] = "content"
    lines: List[Line]


Block = Union[TitleBlock, SectionBlock, ContentBlock]


# --- Responses ---

class WorkflowStateOut(BaseModel):
    phase: str
    loading: bool
    has_image: bool
    ingredients: List[Ingredient]
    recipe: Optional[str] = None
    error: Optional[str] = None


class RecipeOut(BaseModel):
    recipe: Optional[str] = None
    blocks: List[Block]
