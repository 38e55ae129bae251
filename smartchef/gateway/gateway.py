"""Generation Gateway: one async request/response function per AI capability.

Capabilities:
- generate_recipe_text(): ingredients + preferences → title, ingredients, instructions
- analyze_nutrition(): recipe text → calorie/macro estimate with health tips
- answer_question(): serialized recipe + question → answer (single turn)
- generate_cooking_challenge(): → weekly challenge
- generate_image(): recipe title → data URI (see vision.py)
- detect_ingredients(): photo data URI → distinct ingredient names (see vision.py)

Every capability follows the same contract:
1. Validate input against a Pydantic schema (ValidationFailure, no network call)
2. Render the prompt and invoke the hosted model, bounded by a timeout
3. Validate the output against a Pydantic schema (GenerationFailure if it does not conform)

No capability retries. Retrying is an explicit, caller-initiated re-invocation.

Structured text capabilities run through an agno Agent (Gemini model with
``output_schema``). A fresh Agent is built per call, so concurrent calls never
share run state.
"""

from typing import Any, Optional, Sequence, Type

from agno.agent import Agent
from agno.models.google import Gemini
from pydantic import BaseModel

from smartchef.gateway.calls import bounded
from smartchef.gateway.parsing import validate_input, validate_output
from smartchef.gateway.vision import VisionClient
from smartchef.models.models import (
    CookingChallenge,
    DetectedIngredients,
    GeneratedRecipe,
    NutritionInfo,
    NutritionRequest,
    QuestionAnswer,
    QuestionRequest,
    RecipeRequest,
)
from smartchef.prompts.prompts import (
    build_challenge_prompt,
    build_nutrition_prompt,
    build_question_prompt,
    build_recipe_prompt,
    get_answer_instructions,
    get_challenge_instructions,
    get_nutrition_instructions,
    get_recipe_instructions,
)
from smartchef.utils.config import config
from smartchef.utils.errors import GenerationFailure
from smartchef.utils.logger import logger


class GenerationGateway:
    """Stateless translator between typed requests and hosted-model calls."""

    def __init__(self, api_key: Optional[str] = None, vision: Optional[VisionClient] = None) -> None:
        """Initialize the gateway.

        Args:
            api_key: Gemini API key. Defaults to GEMINI_API_KEY.
            vision: Client for image synthesis and photo analysis. Built from api_key if omitted.
        """
        self.api_key = api_key or config.GEMINI_API_KEY
        self.vision = vision or VisionClient(api_key=self.api_key)

    def _build_agent(
        self,
        name: str,
        instructions: str,
        output_schema: Type[BaseModel],
        temperature: Optional[float] = None,
    ) -> Agent:
        return Agent(
            name=name,
            model=Gemini(
                id=config.GEMINI_MODEL,
                api_key=self.api_key,
                temperature=config.TEMPERATURE if temperature is None else temperature,
                max_output_tokens=config.MAX_OUTPUT_TOKENS,
            ),
            instructions=instructions,
            output_schema=output_schema,
            retries=0,  # retry policy belongs to the caller
        )

    async def _run_structured(self, capability: str, agent: Agent, prompt: str, schema: Type[BaseModel]) -> Any:
        logger.debug(f"{capability}: invoking {config.GEMINI_MODEL}", extra={"capability": capability})
        run_output = await bounded(capability, agent.arun(input=prompt), config.GENERATION_TIMEOUT_SECONDS)

        status = getattr(run_output, "status", None)
        if status is not None and str(getattr(status, "value", status)).lower() == "error":
            raise GenerationFailure(capability, str(getattr(run_output, "content", None) or "model run failed"))

        return validate_output(capability, getattr(run_output, "content", None), schema)

    async def generate_recipe_text(self, request: RecipeRequest | dict) -> GeneratedRecipe:
        """Write a recipe for the given ingredients and preferences.

        Args:
            request: RecipeRequest or a mapping with the same fields.

        Returns:
            Validated GeneratedRecipe.

        Raises:
            ValidationFailure: If the request is malformed (e.g. blank ingredients).
            GenerationFailure: On provider error, timeout or non-conforming output.
        """
        request = validate_input(RecipeRequest, request)
        capability = "Recipe generation"
        logger.info(
            f"{capability}: ingredients='{request.ingredients[:80]}' surprise={request.surprise_me}",
            extra={"capability": capability},
        )
        agent = self._build_agent("SmartChef Recipe Writer", get_recipe_instructions(), GeneratedRecipe)
        recipe = await self._run_structured(capability, agent, build_recipe_prompt(request), GeneratedRecipe)
        logger.info(f"✓ {capability}: '{recipe.title}'", extra={"capability": capability})
        return recipe

    async def analyze_nutrition(
        self, title: str, ingredients: Sequence[str], instructions: Sequence[str]
    ) -> NutritionInfo:
        """Estimate calories, macros and health tips for a recipe.

        Raises:
            ValidationFailure: If any recipe field is missing or blank.
            GenerationFailure: On provider error, timeout or non-conforming output.
        """
        request = validate_input(
            NutritionRequest,
            {"title": title, "ingredients": list(ingredients), "instructions": list(instructions)},
        )
        capability = "Nutrition analysis"
        agent = self._build_agent("SmartChef Nutrition Analyst", get_nutrition_instructions(), NutritionInfo)
        return await self._run_structured(capability, agent, build_nutrition_prompt(request), NutritionInfo)

    async def answer_question(self, recipe: str, question: str) -> str:
        """Answer one question about a recipe serialized as plain text.

        Raises:
            ValidationFailure: If recipe text or question is blank.
            GenerationFailure: On provider error, timeout or non-conforming output.
        """
        request = validate_input(QuestionRequest, {"recipe": recipe, "question": question})
        capability = "Recipe question"
        agent = self._build_agent("SmartChef Recipe Assistant", get_answer_instructions(), QuestionAnswer)
        result = await self._run_structured(capability, agent, build_question_prompt(request), QuestionAnswer)
        return result.answer

    async def generate_cooking_challenge(self) -> CookingChallenge:
        """Generate a weekly cooking challenge."""
        capability = "Cooking challenge"
        agent = self._build_agent(
            "SmartChef Challenge Designer",
            get_challenge_instructions(),
            CookingChallenge,
            temperature=config.CHALLENGE_TEMPERATURE,
        )
        return await self._run_structured(capability, agent, build_challenge_prompt(), CookingChallenge)

    async def generate_image(self, recipe_title: str) -> str:
        """Synthesize an illustrative image; returns a self-contained data URI."""
        return await self.vision.generate_image(recipe_title)

    async def detect_ingredients(self, photo_data_uri: str) -> DetectedIngredients:
        """Detect distinct ingredient names in a photo (possibly none)."""
        return await self.vision.detect_ingredients(photo_data_uri)
