"""Data models and schemas for SmartChef.

Defines Pydantic models for request/response validation and domain objects.
All models use Pydantic v2 for strict validation; the same classes double as the
output schemas handed to the model provider.

Persisted JSON (``user_input``, ``nutrition_info`` and the preferences row) uses
camelCase keys; models accept either spelling on input.
"""

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from smartchef.utils.logger import logger


DEFAULT_DISCLAIMER = (
    "Nutritional information is AI-estimated and may not be accurate. "
    "Consult a nutritionist for precise data."
)


def parse_json_field(value: Any, default: Any) -> Any:
    """Decode a JSON column that may arrive as text, a decoded object, or null.

    Undecodable text falls back to ``default`` (logged), so one bad row does not
    hide the rest of a user's collection.
    """
    if value is None:
        return default
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Failed to parse JSON column value: {e}")
            return default
        return default if parsed is None else parsed
    return value


def _strip_blank_entries(value: Any) -> Any:
    """Trim string entries and drop blank ones; leave non-strings for the schema to reject."""
    if not isinstance(value, list):
        return value
    cleaned = []
    for item in value:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        cleaned.append(item)
    return cleaned


class RecipeRequest(BaseModel):
    """Parameters of one recipe generation request (stored on the recipe as ``user_input``)."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    ingredients: Annotated[
        str,
        Field(min_length=1, max_length=2000, description="Comma-separated list of available ingredients"),
    ]
    cuisine: Annotated[Optional[str], Field(None, max_length=100, description="Desired cuisine, e.g. Italian")]
    meal_type: Annotated[Optional[str], Field(None, max_length=100, description="breakfast, lunch, dinner, ...")]
    dietary_restrictions: Annotated[
        Optional[str], Field(None, max_length=300, description="e.g. vegan, keto, gluten-free")
    ]
    language: Annotated[Optional[str], Field(None, max_length=50, description="Output language, English if unset")]
    surprise_me: Annotated[bool, Field(False, description="Favor novelty over cuisine/meal type adherence")]
    max_cooking_time_minutes: Annotated[
        Optional[int], Field(None, gt=0, le=1440, description="Soft ceiling on total cooking time")
    ]

    @field_validator("cuisine", "meal_type", "dietary_restrictions", "language", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class GeneratedRecipe(BaseModel):
    """Output schema for recipe text generation."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Annotated[str, Field(min_length=1, max_length=200, description="The title of the generated recipe")]
    ingredients: Annotated[
        List[str],
        Field(min_length=1, max_length=100, description="Ingredients required for the recipe, with quantities"),
    ]
    instructions: Annotated[
        List[str],
        Field(min_length=1, max_length=100, description="Step-by-step instructions for preparing the recipe"),
    ]

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def drop_blank_entries(cls, value: Any) -> Any:
        return _strip_blank_entries(value)


class NutritionInfo(BaseModel):
    """Output schema for nutrition analysis. Purely advisory."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    estimated_calories: Annotated[
        float, Field(ge=0, description="Estimated calories, per serving or for the whole dish")
    ]
    calorie_basis: Annotated[
        Optional[str], Field(None, max_length=100, description="What the calorie figure covers, e.g. 'per serving'")
    ]
    protein_grams: Annotated[float, Field(ge=0, description="Estimated grams of protein")]
    carbs_grams: Annotated[float, Field(ge=0, description="Estimated grams of carbohydrates")]
    fat_grams: Annotated[float, Field(ge=0, description="Estimated grams of fat")]
    health_tips: Annotated[List[str], Field(max_length=10, description="2-3 concise, actionable health tips")]
    disclaimer: Annotated[str, Field(DEFAULT_DISCLAIMER, description="AI-estimate disclaimer")]

    @field_validator("health_tips", mode="before")
    @classmethod
    def drop_blank_tips(cls, value: Any) -> Any:
        return _strip_blank_entries(value)

    @field_validator("disclaimer", mode="before")
    @classmethod
    def default_disclaimer(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_DISCLAIMER
        return value


class NutritionRequest(BaseModel):
    """Input schema for nutrition analysis."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: Annotated[str, Field(min_length=1, max_length=200)]
    ingredients: Annotated[List[str], Field(min_length=1, max_length=100)]
    instructions: Annotated[List[str], Field(min_length=1, max_length=100)]


class QuestionRequest(BaseModel):
    """Input schema for a single recipe question."""

    model_config = ConfigDict(str_strip_whitespace=True)

    recipe: Annotated[str, Field(min_length=1, max_length=20000, description="Recipe serialized as plain text")]
    question: Annotated[str, Field(min_length=1, max_length=1000)]


class QuestionAnswer(BaseModel):
    """Output schema for a recipe question."""

    model_config = ConfigDict(str_strip_whitespace=True)

    answer: Annotated[str, Field(min_length=1, description="Concise, helpful answer to the question")]


class ImageRequest(BaseModel):
    """Input schema for recipe image synthesis."""

    model_config = ConfigDict(str_strip_whitespace=True)

    recipe_title: Annotated[str, Field(min_length=1, max_length=200)]


class DetectedIngredients(BaseModel):
    """Output schema for ingredient detection.

    An empty ``ingredients`` list is a valid outcome ("nothing recognizable in the photo").
    Names are trimmed, lower-cased and de-duplicated preserving order.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    ingredients: Annotated[
        List[str], Field(default_factory=list, max_length=50, description="Distinct ingredient names")
    ]
    confidence_scores: Annotated[
        Optional[dict[str, float]],
        Field(None, description="Optional confidence per ingredient (0.0 <= score <= 1.0)"),
    ]
    image_description: Annotated[Optional[str], Field(None, max_length=500)]

    @field_validator("ingredients", mode="before")
    @classmethod
    def normalize_ingredients(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        seen = []
        for item in value:
            if not isinstance(item, str):
                raise ValueError("ingredients must be strings")
            name = item.strip().lower()
            if name and name not in seen:
                seen.append(name)
        return seen

    @field_validator("confidence_scores", mode="before")
    @classmethod
    def validate_confidence_scores(cls, value: Any) -> Any:
        """Validate confidence scores: each value must be 0.0 <= score <= 1.0."""
        if value is None:
            return None
        if not isinstance(value, dict):
            raise ValueError("confidence_scores must be a dictionary")

        validated = {}
        for ingredient, score in value.items():
            try:
                f = float(score)
            except (ValueError, TypeError):
                raise ValueError(f"Confidence score must be numeric for {ingredient}")
            if not (0.0 <= f <= 1.0):
                raise ValueError(f"Confidence score must be 0.0 <= score <= 1.0, got {f} for {ingredient}")
            validated[str(ingredient).strip().lower()] = f
        return validated


class CookingChallenge(BaseModel):
    """Output schema for a weekly cooking challenge."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    title: Annotated[str, Field(min_length=1, max_length=200, description="Catchy challenge title")]
    description: Annotated[str, Field(min_length=1, max_length=2000, description="Goal, theme and creative prompt")]
    constraints: Annotated[
        List[str], Field(min_length=1, max_length=6, description="2-4 specific, actionable rules")
    ]
    example_dish: Annotated[Optional[str], Field(None, max_length=200, description="Optional inspiring example")]


class UserPreferences(BaseModel):
    """Per-user default generation preferences (one row per user)."""

    model_config = ConfigDict(str_strip_whitespace=True, alias_generator=to_camel, populate_by_name=True)

    cuisine: Optional[str] = None
    meal_type: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    language: Optional[str] = None


class EnrichmentState(str, Enum):
    """Lifecycle of an optional, set-once recipe field."""

    PENDING = "pending"
    READY = "ready"


class Recipe(BaseModel):
    """Persisted recipe owned by one user.

    Immutable value object: the store replaces an entry with an updated copy
    instead of mutating it. ``image_url`` and ``nutrition_info`` start pending and
    are filled in by enrichment after the record is created.
    """

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(min_length=1, description="Identifier assigned by the persistence layer")]
    user_id: Optional[str] = None
    title: str
    ingredients: List[str] = Field(default_factory=list)
    instructions: List[str] = Field(default_factory=list)
    user_input: Optional[RecipeRequest] = None
    image_url: Optional[str] = None
    nutrition_info: Optional[NutritionInfo] = None
    is_favorite: bool = False
    created_at: datetime

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, value: Any) -> Any:
        # Backends may hand back integer or UUID keys
        return value if value is None or isinstance(value, str) else str(value)

    @field_validator("ingredients", "instructions", mode="before")
    @classmethod
    def decode_list_column(cls, value: Any) -> Any:
        return parse_json_field(value, [])

    @field_validator("user_input", "nutrition_info", mode="before")
    @classmethod
    def decode_object_column(cls, value: Any) -> Any:
        return parse_json_field(value, None)

    @field_validator("is_favorite", mode="before")
    @classmethod
    def null_is_not_favorite(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_row(cls, row: dict) -> "Recipe":
        """Build a recipe from a persistence row (snake_case columns)."""
        return cls.model_validate(row)

    @property
    def image_state(self) -> EnrichmentState:
        return EnrichmentState.READY if self.image_url else EnrichmentState.PENDING

    @property
    def nutrition_state(self) -> EnrichmentState:
        return EnrichmentState.READY if self.nutrition_info is not None else EnrichmentState.PENDING

    def to_markdown(self) -> str:
        """Render the recipe (and any enrichment present) as Markdown."""
        lines = [f"# {self.title}", ""]
        if self.is_favorite:
            lines += ["*★ Favorite*", ""]
        lines.append("## Ingredients")
        lines += [f"- {item}" for item in self.ingredients]
        lines += ["", "## Instructions"]
        lines += [f"{idx}. {step}" for idx, step in enumerate(self.instructions, start=1)]
        if self.nutrition_info:
            info = self.nutrition_info
            basis = f" ({info.calorie_basis})" if info.calorie_basis else ""
            lines += [
                "",
                "## Nutrition (estimate)",
                f"- Calories: {info.estimated_calories:g}{basis}",
                f"- Protein: {info.protein_grams:g} g",
                f"- Carbs: {info.carbs_grams:g} g",
                f"- Fat: {info.fat_grams:g} g",
            ]
            lines += [f"- Tip: {tip}" for tip in info.health_tips]
            lines += ["", f"*{info.disclaimer}*"]
        return "\n".join(lines)


class ChatMessage(BaseModel):
    """One entry in a chat transcript."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    sender: Literal["user", "bot"]
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
