"""Unit tests for Pydantic models.

Tests cover:
- RecipeRequest validation and camelCase persistence format
- GeneratedRecipe / NutritionInfo output schemas
- DetectedIngredients normalization
- Recipe rows with JSON text columns and enrichment state
"""

import json
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from smartchef.models.models import (
    DEFAULT_DISCLAIMER,
    ChatMessage,
    CookingChallenge,
    DetectedIngredients,
    EnrichmentState,
    GeneratedRecipe,
    NutritionInfo,
    Recipe,
    RecipeRequest,
    UserPreferences,
    parse_json_field,
)


def recipe_row(**overrides):
    row = {
        "id": "r-1",
        "user_id": "u-1",
        "title": "Pancakes",
        "ingredients": json.dumps(["2 eggs", "1 cup flour"]),
        "instructions": json.dumps(["Whisk", "Fry"]),
        "user_input": json.dumps({"ingredients": "eggs, flour", "mealType": "breakfast", "surpriseMe": False}),
        "image_url": None,
        "nutrition_info": None,
        "is_favorite": False,
        "created_at": "2025-01-01T10:00:00+00:00",
    }
    row.update(overrides)
    return row


class TestRecipeRequest:
    """Test RecipeRequest validation."""

    def test_minimal_request(self):
        """Only ingredients are required."""
        request = RecipeRequest(ingredients="eggs, flour, milk")
        assert request.ingredients == "eggs, flour, milk"
        assert request.surprise_me is False
        assert request.cuisine is None

    def test_blank_ingredients_rejected(self):
        """Whitespace-only ingredients fail validation."""
        with pytest.raises(ValidationError):
            RecipeRequest(ingredients="   ")

    def test_blank_optional_fields_become_none(self):
        """Empty optional strings normalize to absent."""
        request = RecipeRequest(ingredients="rice", cuisine="  ", language="")
        assert request.cuisine is None
        assert request.language is None

    def test_accepts_camel_case_keys(self):
        """Stored user_input uses camelCase keys."""
        request = RecipeRequest.model_validate(
            {"ingredients": "rice", "mealType": "dinner", "dietaryRestrictions": "vegan", "maxCookingTimeMinutes": 30}
        )
        assert request.meal_type == "dinner"
        assert request.dietary_restrictions == "vegan"
        assert request.max_cooking_time_minutes == 30

    def test_dumps_camel_case(self):
        """Persisted form uses camelCase keys."""
        data = RecipeRequest(ingredients="rice", meal_type="lunch", surprise_me=True).model_dump(
            by_alias=True, exclude_none=True
        )
        assert data == {"ingredients": "rice", "mealType": "lunch", "surpriseMe": True}

    @pytest.mark.parametrize("minutes", [0, -5, 2000])
    def test_cooking_time_bounds(self, minutes):
        """Cooking time must be positive and at most a day."""
        with pytest.raises(ValidationError):
            RecipeRequest(ingredients="rice", max_cooking_time_minutes=minutes)


class TestGeneratedRecipe:
    """Test the recipe text output schema."""

    def test_blank_entries_are_dropped(self):
        """Blank list entries are repaired away, the rest trimmed."""
        recipe = GeneratedRecipe(title=" Pancakes ", ingredients=["2 eggs", "  ", ""], instructions=[" Whisk "])
        assert recipe.title == "Pancakes"
        assert recipe.ingredients == ["2 eggs"]
        assert recipe.instructions == ["Whisk"]

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            GeneratedRecipe(title="", ingredients=["egg"], instructions=["cook"])

    def test_no_instructions_rejected(self):
        """A recipe without steps is non-conforming."""
        with pytest.raises(ValidationError):
            GeneratedRecipe(title="Toast", ingredients=["bread"], instructions=["  "])

    def test_non_string_entries_rejected(self):
        with pytest.raises(ValidationError):
            GeneratedRecipe(title="Toast", ingredients=[{"name": "bread"}], instructions=["toast"])


class TestNutritionInfo:
    """Test nutrition output schema."""

    def test_default_disclaimer(self):
        """Missing or blank disclaimer falls back to the standard one."""
        info = NutritionInfo(estimated_calories=350, protein_grams=12, carbs_grams=40, fat_grams=14, health_tips=[])
        assert info.disclaimer == DEFAULT_DISCLAIMER

        info = NutritionInfo.model_validate(
            {
                "estimatedCalories": 350,
                "proteinGrams": 12,
                "carbsGrams": 40,
                "fatGrams": 14,
                "healthTips": ["Use whole wheat flour"],
                "disclaimer": " ",
            }
        )
        assert info.disclaimer == DEFAULT_DISCLAIMER
        assert info.health_tips == ["Use whole wheat flour"]

    def test_negative_values_rejected(self):
        with pytest.raises(ValidationError):
            NutritionInfo(estimated_calories=-1, protein_grams=1, carbs_grams=1, fat_grams=1, health_tips=[])


class TestDetectedIngredients:
    """Test ingredient detection output normalization."""

    def test_names_are_distinct_lowercase_in_order(self):
        result = DetectedIngredients(ingredients=["Tomato", "basil", "tomato ", "", "Onion"])
        assert result.ingredients == ["tomato", "basil", "onion"]

    def test_empty_is_valid(self):
        """No ingredients found is a valid outcome."""
        assert DetectedIngredients(ingredients=[]).ingredients == []
        assert DetectedIngredients.model_validate({"ingredients": None}).ingredients == []

    def test_confidence_scores_out_of_range(self):
        with pytest.raises(ValidationError):
            DetectedIngredients(ingredients=["egg"], confidence_scores={"egg": 1.5})

    def test_confidence_keys_normalized(self):
        result = DetectedIngredients(ingredients=["Egg"], confidence_scores={" Egg": "0.9"})
        assert result.confidence_scores == {"egg": 0.9}


class TestRecipe:
    """Test persisted recipe rows."""

    def test_from_row_decodes_json_text_columns(self):
        recipe = Recipe.from_row(recipe_row())

        assert recipe.ingredients == ["2 eggs", "1 cup flour"]
        assert recipe.instructions == ["Whisk", "Fry"]
        assert recipe.user_input.meal_type == "breakfast"
        assert recipe.created_at == datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)

    def test_from_row_accepts_decoded_columns(self):
        """Supabase returns jsonb columns already decoded."""
        recipe = Recipe.from_row(recipe_row(ingredients=["egg"], instructions=["boil"], user_input={"ingredients": "egg"}))
        assert recipe.ingredients == ["egg"]
        assert recipe.user_input.ingredients == "egg"

    def test_undecodable_json_falls_back_to_defaults(self):
        recipe = Recipe.from_row(recipe_row(ingredients="[not json", user_input="{oops"))
        assert recipe.ingredients == []
        assert recipe.user_input is None

    def test_null_favorite_and_integer_id(self):
        recipe = Recipe.from_row(recipe_row(id=42, is_favorite=None))
        assert recipe.id == "42"
        assert recipe.is_favorite is False

    def test_naive_timestamp_assumed_utc(self):
        recipe = Recipe.from_row(recipe_row(created_at="2025-01-01T10:00:00"))
        assert recipe.created_at.tzinfo == timezone.utc

    def test_enrichment_states(self):
        recipe = Recipe.from_row(recipe_row())
        assert recipe.image_state == EnrichmentState.PENDING
        assert recipe.nutrition_state == EnrichmentState.PENDING

        nutrition = {"estimatedCalories": 300, "proteinGrams": 10, "carbsGrams": 30, "fatGrams": 12, "healthTips": []}
        enriched = Recipe.from_row(recipe_row(image_url="data:image/png;base64,AAAA", nutrition_info=json.dumps(nutrition)))
        assert enriched.image_state == EnrichmentState.READY
        assert enriched.nutrition_state == EnrichmentState.READY
        assert enriched.nutrition_info.estimated_calories == 300

    def test_recipe_is_immutable(self):
        recipe = Recipe.from_row(recipe_row())
        with pytest.raises(ValidationError):
            recipe.is_favorite = True

    def test_markdown(self):
        recipe = Recipe.from_row(recipe_row(is_favorite=True))
        markdown = recipe.to_markdown()
        assert markdown.startswith("# Pancakes")
        assert "- 2 eggs" in markdown
        assert "2. Fry" in markdown
        assert "Favorite" in markdown


class TestMiscModels:
    """Preferences, challenge and chat message models."""

    def test_preferences_camel_case_round_trip(self):
        prefs = UserPreferences.model_validate({"cuisine": "Thai", "mealType": "dinner"})
        assert prefs.meal_type == "dinner"
        assert prefs.model_dump(by_alias=True) == {
            "cuisine": "Thai",
            "mealType": "dinner",
            "dietaryRestrictions": None,
            "language": None,
        }

    def test_challenge_requires_constraints(self):
        with pytest.raises(ValidationError):
            CookingChallenge(title="Pantry Raid", description="Cook from the pantry", constraints=[])

    def test_chat_message_defaults(self):
        message = ChatMessage(sender="user", text="Hi")
        assert message.id
        assert message.created_at.tzinfo is not None

    def test_parse_json_field(self):
        assert parse_json_field(None, []) == []
        assert parse_json_field('["a"]', []) == ["a"]
        assert parse_json_field("null", {}) == {}
        assert parse_json_field(["a"], []) == ["a"]
        assert parse_json_field("{bad", "fallback") == "fallback"
