"""Image synthesis and photo analysis via the Gemini API (google-genai).

- generate_image(): recipe title → image returned as a data URI
- detect_ingredients(): photo data URI → distinct ingredient names

Both calls use the synchronous SDK client, run in a worker thread and bounded
by IMAGE_TIMEOUT_SECONDS.
"""

from typing import Any, Optional

from google import genai
from google.genai import types

from smartchef.gateway.calls import bounded_sync
from smartchef.gateway.parsing import validate_input, validate_output
from smartchef.models.models import DetectedIngredients, ImageRequest
from smartchef.prompts.prompts import build_image_prompt, get_detection_prompt
from smartchef.utils.config import config
from smartchef.utils.errors import GenerationFailure
from smartchef.utils.images import prepare_photo, to_data_uri
from smartchef.utils.logger import logger


IMAGE_SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_LOW_AND_ABOVE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
    )
]


def extract_inline_image(response: Any) -> Optional[tuple[bytes | str, str]]:
    """Return (data, mime_type) of the first inline image part, or None."""
    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                return inline.data, getattr(inline, "mime_type", None) or "image/png"
    return None


def block_reason(response: Any) -> Optional[str]:
    """Describe why the provider refused to answer, if it did."""
    feedback = getattr(response, "prompt_feedback", None)
    reason = getattr(feedback, "block_reason", None)
    if reason:
        return f"blocked by provider ({getattr(reason, 'value', reason)})"
    for candidate in getattr(response, "candidates", None) or []:
        finish = getattr(candidate, "finish_reason", None)
        if finish is not None and str(getattr(finish, "value", finish)).upper() == "SAFETY":
            return "blocked by provider safety filters"
    return None


def filter_by_confidence(result: DetectedIngredients) -> DetectedIngredients:
    """Drop ingredients below MIN_INGREDIENT_CONFIDENCE when the model reported scores.

    Ingredients missing from a reported score map count as 0.0.
    """
    if not result.confidence_scores:
        return result

    scores = result.confidence_scores
    kept = [
        ingredient
        for ingredient in result.ingredients
        if scores.get(ingredient, 0.0) >= config.MIN_INGREDIENT_CONFIDENCE
    ]
    if len(kept) < len(result.ingredients):
        logger.info(
            f"Filtered {len(result.ingredients) - len(kept)} ingredient(s) below confidence "
            f"threshold {config.MIN_INGREDIENT_CONFIDENCE}"
        )
    return DetectedIngredients(
        ingredients=kept,
        confidence_scores={ingredient: scores[ingredient] for ingredient in kept if ingredient in scores},
        image_description=result.image_description,
    )


class VisionClient:
    """Thin wrapper around ``genai.Client`` for the image capabilities."""

    def __init__(self, api_key: Optional[str] = None, client: Optional[Any] = None) -> None:
        self.api_key = api_key or config.GEMINI_API_KEY
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate_image(self, recipe_title: str) -> str:
        """Synthesize a recipe card image.

        Args:
            recipe_title: Title of the recipe to illustrate.

        Returns:
            ``data:<mimetype>;base64,<data>`` URI.

        Raises:
            ValidationFailure: If the title is blank.
            GenerationFailure: On provider error, timeout, safety block or a response without media.
        """
        request = validate_input(ImageRequest, {"recipe_title": recipe_title})
        capability = "Image generation"
        prompt = build_image_prompt(request.recipe_title)

        def _call():
            return self.client.models.generate_content(
                model=config.IMAGE_GENERATION_MODEL,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                    safety_settings=IMAGE_SAFETY_SETTINGS,
                ),
            )

        response = await bounded_sync(capability, _call, config.IMAGE_TIMEOUT_SECONDS)

        image = extract_inline_image(response)
        if image is None:
            reason = block_reason(response) or "provider returned no image"
            logger.warning(f"{capability}: {reason}", extra={"capability": capability})
            raise GenerationFailure(capability, reason)

        data, mime_type = image
        if isinstance(data, str):
            # Already base64 encoded
            return f"data:{mime_type};base64,{data}"
        logger.info(f"✓ {capability}: {len(data) / 1024:.1f}KB {mime_type}", extra={"capability": capability})
        return to_data_uri(data, mime_type)

    async def detect_ingredients(self, photo_data_uri: str) -> DetectedIngredients:
        """Detect distinct ingredient names in a photo.

        An empty result is valid and is returned, not raised.

        Raises:
            ValidationFailure: If the photo is not a supported, size-limited image data URI.
            GenerationFailure: On provider error, timeout, safety block or malformed output.
        """
        mime_type, image_bytes = prepare_photo(photo_data_uri)
        capability = "Ingredient detection"

        def _call():
            return self.client.models.generate_content(
                model=config.IMAGE_DETECTION_MODEL,
                contents=[
                    get_detection_prompt(),
                    types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                ],
                config=types.GenerateContentConfig(response_mime_type="application/json"),
            )

        response = await bounded_sync(capability, _call, config.IMAGE_TIMEOUT_SECONDS)

        reason = block_reason(response)
        if reason:
            raise GenerationFailure(capability, reason)

        result = filter_by_confidence(validate_output(capability, getattr(response, "text", None), DetectedIngredients))
        logger.info(f"✓ {capability}: {len(result.ingredients)} ingredient(s)", extra={"capability": capability})
        return result
