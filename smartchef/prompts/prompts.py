"""Prompt templates for SmartChef's model capabilities.

Each capability has a static system instruction (the model's role and output
contract) and a builder that renders the per-request prompt from a validated
request model. Recipe prompts come in two modes: standard (adhere to the
requested cuisine and meal type) and surprise (treat them as loose inspiration
and favor novelty). Dietary restrictions are strict in both modes.
"""

from smartchef.models.models import NutritionRequest, QuestionRequest, RecipeRequest


def get_recipe_instructions() -> str:
    """System instructions for the recipe writer."""
    return """You are SmartChef, a recipe generation AI for home cooks.

## Output Contract
Return a single recipe with:
- `title`: a short, appetizing recipe name
- `ingredients`: one entry per ingredient, each with a quantity (e.g. "2 eggs", "1 cup flour")
- `instructions`: ordered, concise steps; one action per step, no numbering in the text

## Rules
- Build the recipe around the ingredients the user has. You may add common pantry staples
  (salt, pepper, oil, water, basic spices) without mentioning it.
- Dietary restrictions are HARD constraints. Never include an ingredient that violates them,
  not even as an optional garnish.
- A maximum cooking time is a SOFT constraint: choose techniques and steps that fit it, and
  prefer quick methods when it is short.
- Write every field in the requested language. Use English when no language is requested.
"""


def _get_standard_section(request: RecipeRequest) -> str:
    lines = []
    if request.cuisine:
        lines.append(f"Cuisine: {request.cuisine} (stay faithful to this cuisine)")
    if request.meal_type:
        lines.append(f"Meal Type: {request.meal_type} (the dish must suit this meal)")
    if not lines:
        lines.append("Choose whichever cuisine and meal type make the best use of the ingredients.")
    return "\n".join(lines)


def _get_surprise_section(request: RecipeRequest) -> str:
    lines = [
        "SURPRISE MODE: Be inventive. Prefer an unexpected but delicious combination, an unusual",
        "technique, or a fusion of traditions over the obvious dish these ingredients suggest.",
    ]
    if request.cuisine or request.meal_type:
        hints = ", ".join(
            part for part in (request.cuisine, request.meal_type) if part
        )
        lines.append(f"Loose inspiration only (you may depart from it): {hints}")
    return "\n".join(lines)


def build_recipe_prompt(request: RecipeRequest) -> str:
    """Render the per-request recipe prompt.

    Args:
        request: Validated generation request.

    Returns:
        Prompt text for the recipe writer.
    """
    language = request.language or "English"
    sections = [
        f"Generate the entire recipe (title, ingredients list, and instructions) in {language}.",
        "",
        f"Ingredients: {request.ingredients}",
        "",
        _get_surprise_section(request) if request.surprise_me else _get_standard_section(request),
    ]
    if request.dietary_restrictions:
        sections += ["", f"Dietary Restrictions (STRICT): {request.dietary_restrictions}"]
    if request.max_cooking_time_minutes:
        sections += [
            "",
            f"Time Limit: aim for a total of {request.max_cooking_time_minutes} minutes or less, "
            "and reflect it in the chosen steps.",
        ]
    return "\n".join(sections)


def get_nutrition_instructions() -> str:
    """System instructions for the nutrition analyst."""
    return """You are a nutritional analysis AI. Estimate the nutrition of the recipe you are given.

- Estimates must be reasonable for the ingredients and quantities listed.
- For calories, state in `calorieBasis` whether the figure is per serving (assume 2-4 servings
  based on the ingredients) or for the entire dish.
- Give 2-3 concise health tips that are actionable or informative.
- Include a brief disclaimer that these are AI-generated estimates, not professional advice.
"""


def build_nutrition_prompt(request: NutritionRequest) -> str:
    """Render the nutrition analysis prompt for one recipe."""
    ingredients = "\n".join(f"- {item}" for item in request.ingredients)
    instructions = "\n".join(f"{idx}. {step}" for idx, step in enumerate(request.instructions, start=1))
    return f"""Recipe Title: {request.title}

Ingredients:
{ingredients}

Instructions:
{instructions}
"""


def get_answer_instructions() -> str:
    """System instructions for the recipe Q&A assistant."""
    return """You are a helpful AI assistant that answers questions about a single recipe.
Answer concisely and practically. If the question is unrelated to cooking or the recipe,
say so briefly and steer back to the recipe. Do not invent steps the recipe does not contain
unless the user asks for a variation.
"""


def build_question_prompt(request: QuestionRequest) -> str:
    """Render the Q&A prompt from the serialized recipe and the question."""
    return f"""Here is the recipe:
{request.recipe}

Here is the question:
{request.question}
"""


def build_image_prompt(recipe_title: str) -> str:
    """Render the image synthesis prompt for a recipe card."""
    return (
        f"Photorealistic image for a recipe card: '{recipe_title}'. "
        "Vibrant, appetizing, well-lit, high-quality, food-focused, delicious, and inviting."
    )


def get_detection_prompt() -> str:
    """Prompt for ingredient detection from a photo (JSON response)."""
    return (
        "You are an expert at identifying food ingredients from images. "
        "List all visible food ingredients, focusing on common cooking ingredients. "
        "If the same ingredient appears several times, list it once. "
        'Be concise in naming (e.g. "onion" instead of "a large red onion"). '
        "Return ONLY valid JSON with an 'ingredients' list (strings), a 'confidence_scores' dict "
        "mapping each ingredient to a confidence between 0.0 and 1.0, and a short "
        "'image_description'. If no food ingredients are clearly identifiable, return an empty "
        'ingredients list. Example: {"ingredients": ["tomato", "basil"], '
        '"confidence_scores": {"tomato": 0.95, "basil": 0.88}, "image_description": "Tomatoes and basil on a board"}'
    )


def get_challenge_instructions() -> str:
    """System instructions for the weekly cooking challenge generator."""
    return """You generate exciting weekly cooking challenges for a community of home cooks.
Your goal is to inspire creativity, learning, and fun in the kitchen.

Consider themes like:
- Ingredient limitations (3-ingredient meals, single-color dishes, one seasonal ingredient)
- Technique focus (a classic sauce, fermentation, creative plating)
- Cuisine exploration (a region you've never cooked from, fusing two cuisines)
- Pantry raids (only what is already at home, no shopping)
- Creative twists on classics (deconstructed lasagna, savory cupcakes)
- Time-based challenges (a dish ready in under 20 minutes)
- Diet-specific challenges (a gourmet vegan main course)

Output a catchy title, an engaging description, 2-4 clear constraints, and optionally an
example dish. Challenges must be achievable with standard home kitchen equipment.
The tone is enthusiastic and encouraging.
"""


def build_challenge_prompt() -> str:
    """Render the challenge request (no user input; every call should differ)."""
    return "Generate a new, distinct cooking challenge for this week."
