"""Unit tests for prompt rendering."""

from smartchef.models.models import NutritionRequest, QuestionRequest, RecipeRequest
from smartchef.prompts.prompts import (
    build_challenge_prompt,
    build_image_prompt,
    build_nutrition_prompt,
    build_question_prompt,
    build_recipe_prompt,
    get_detection_prompt,
    get_recipe_instructions,
)


class TestRecipePrompt:
    """Standard vs. surprise mode rendering."""

    def test_standard_mode_adheres_to_cuisine_and_meal_type(self):
        prompt = build_recipe_prompt(RecipeRequest(ingredients="eggs, flour", cuisine="French", meal_type="breakfast"))

        assert "Ingredients: eggs, flour" in prompt
        assert "Cuisine: French (stay faithful" in prompt
        assert "Meal Type: breakfast" in prompt
        assert "SURPRISE" not in prompt

    def test_standard_mode_without_preferences(self):
        prompt = build_recipe_prompt(RecipeRequest(ingredients="rice"))
        assert "Choose whichever cuisine" in prompt

    def test_surprise_mode_treats_preferences_as_inspiration(self):
        prompt = build_recipe_prompt(RecipeRequest(ingredients="rice", cuisine="Thai", surprise_me=True))

        assert "SURPRISE MODE" in prompt
        assert "Loose inspiration only" in prompt
        assert "Thai" in prompt
        assert "stay faithful" not in prompt

    def test_dietary_restrictions_are_strict_in_both_modes(self):
        for surprise in (False, True):
            prompt = build_recipe_prompt(
                RecipeRequest(ingredients="pasta", dietary_restrictions="vegan", surprise_me=surprise)
            )
            assert "Dietary Restrictions (STRICT): vegan" in prompt

    def test_time_limit_and_language(self):
        prompt = build_recipe_prompt(
            RecipeRequest(ingredients="chicken", max_cooking_time_minutes=20, language="Spanish")
        )
        assert "20 minutes" in prompt
        assert "in Spanish" in prompt

    def test_language_defaults_to_english(self):
        assert "in English" in build_recipe_prompt(RecipeRequest(ingredients="rice"))

    def test_instructions_describe_output_contract(self):
        instructions = get_recipe_instructions()
        assert "`title`" in instructions
        assert "HARD constraints" in instructions


class TestOtherPrompts:
    def test_nutrition_prompt_lists_recipe(self):
        prompt = build_nutrition_prompt(
            NutritionRequest(title="Pancakes", ingredients=["2 eggs"], instructions=["Whisk", "Fry"])
        )
        assert "Recipe Title: Pancakes" in prompt
        assert "- 2 eggs" in prompt
        assert "2. Fry" in prompt

    def test_question_prompt(self):
        prompt = build_question_prompt(QuestionRequest(recipe="Title: Soup", question="Can I freeze it?"))
        assert "Title: Soup" in prompt
        assert "Can I freeze it?" in prompt

    def test_image_prompt_mentions_title(self):
        assert "'Lemon Tart'" in build_image_prompt("Lemon Tart")

    def test_detection_prompt_requests_json(self):
        prompt = get_detection_prompt()
        assert "ingredients" in prompt
        assert "JSON" in prompt

    def test_challenge_prompt(self):
        assert "challenge" in build_challenge_prompt()
