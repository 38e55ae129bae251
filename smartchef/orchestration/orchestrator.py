"""Generation Orchestrator: text → persist → enrich.

Pipeline for one generate() call:

    idle → generating_text → persisting → enriching_nutrition → enriching_image → done
                  ↓               ↓
                failed          failed (draft kept)

1. Generate recipe text. Failure → failed, nothing persisted.
2. Persist the base record through the Store. Failure → failed; the generated
   draft stays on the run so callers can still show it.
3. Return the persisted Recipe to the caller.
4. In a background task, enrich: nutrition then image (or both concurrently when
   ENRICH_CONCURRENTLY is set). Each stage writes only its own field, through the
   Store, keyed by the recipe's own id. A stage failure is logged and reported as
   a notice; it never fails the run and never touches the base record.

Enrichment results can only land on the recipe they were produced for: the
displayed recipe is always re-read from the Store by id, so a late result from
an earlier run cannot overwrite a newer recipe.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from smartchef.gateway.gateway import GenerationGateway
from smartchef.gateway.parsing import validate_input
from smartchef.models.models import GeneratedRecipe, Recipe, RecipeRequest
from smartchef.store.recipe_store import RecipeStore
from smartchef.utils.config import config
from smartchef.utils.errors import (
    GenerationFailure,
    OrchestrationFailure,
    RecipeNotFound,
    SmartChefError,
)
from smartchef.utils.logger import logger
from smartchef.utils.notices import Notice, NoticeLevel, Notifier, log_notifier


class GenerationState(str, Enum):
    IDLE = "idle"
    GENERATING_TEXT = "generating_text"
    PERSISTING = "persisting"
    ENRICHING_NUTRITION = "enriching_nutrition"
    ENRICHING_IMAGE = "enriching_image"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GenerationRun:
    """Progress of one generate() call."""

    generation: int
    request: Optional[RecipeRequest] = None
    state: GenerationState = GenerationState.IDLE
    draft: Optional[GeneratedRecipe] = None
    recipe_id: Optional[str] = None
    error: Optional[SmartChefError] = None
    enrichment_errors: list[SmartChefError] = field(default_factory=list)

    def advance(self, state: GenerationState) -> None:
        logger.debug(
            f"Generation #{self.generation}: {self.state.value} → {state.value}",
            extra={"generation": self.generation, "recipe_id": self.recipe_id},
        )
        self.state = state


class GenerationOrchestrator:
    """Drives recipe generation and background enrichment."""

    def __init__(
        self,
        gateway: GenerationGateway,
        store: RecipeStore,
        notifier: Optional[Notifier] = None,
        enrich_concurrently: Optional[bool] = None,
        enable_nutrition: Optional[bool] = None,
        enable_image: Optional[bool] = None,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.notify: Notifier = notifier or log_notifier
        self.enrich_concurrently = (
            config.ENRICH_CONCURRENTLY if enrich_concurrently is None else enrich_concurrently
        )
        self.enable_nutrition = config.ENABLE_NUTRITION_ANALYSIS if enable_nutrition is None else enable_nutrition
        self.enable_image = config.ENABLE_IMAGE_GENERATION if enable_image is None else enable_image

        self.current_run: Optional[GenerationRun] = None
        self.displayed_recipe_id: Optional[str] = None
        self._generation = 0
        self._pending: dict[str, asyncio.Task] = {}

    @property
    def displayed_recipe(self) -> Optional[Recipe]:
        """The recipe currently on display, always read fresh from the Store."""
        if self.displayed_recipe_id is None:
            return None
        return self.store.get(self.displayed_recipe_id)

    def show(self, recipe_id: Optional[str]) -> None:
        """Switch the displayed recipe (e.g. when the user opens one from history)."""
        self.displayed_recipe_id = recipe_id

    async def generate(self, request: RecipeRequest | dict) -> Recipe:
        """Generate, persist and (in the background) enrich one recipe.

        Args:
            request: RecipeRequest or a mapping with the same fields.

        Returns:
            The persisted Recipe, before enrichment.

        Raises:
            ValidationFailure: If the request is malformed (no network call is made).
            OrchestrationFailure: If text generation or persistence fails. ``stage`` says
                which; ``draft`` carries the generated text when persistence failed.
        """
        request = validate_input(RecipeRequest, request)

        self._generation += 1
        run = GenerationRun(generation=self._generation, request=request)
        self.current_run = run
        log_extra = {"generation": run.generation}

        run.advance(GenerationState.GENERATING_TEXT)
        try:
            run.draft = await self.gateway.generate_recipe_text(request)
        except GenerationFailure as e:
            self._fail_run(run, e, "Error Generating Recipe")
            raise OrchestrationFailure(GenerationState.GENERATING_TEXT.value, e) from e

        run.advance(GenerationState.PERSISTING)
        try:
            recipe = await self.store.save(run.draft, request)
        except SmartChefError as e:
            # Store already reported the failure; the draft stays available
            run.error = e
            run.advance(GenerationState.FAILED)
            logger.error(f"Persisting generated recipe failed: {e.message}", extra=log_extra)
            raise OrchestrationFailure(GenerationState.PERSISTING.value, e, draft=run.draft) from e

        run.recipe_id = recipe.id
        self.displayed_recipe_id = recipe.id
        logger.info(
            f"Generation #{run.generation} persisted '{recipe.title}'",
            extra={**log_extra, "recipe_id": recipe.id},
        )
        self.notify(Notice("Recipe Generated!", f'Successfully generated "{recipe.title}".', NoticeLevel.SUCCESS))

        self._schedule_enrichment(run, recipe)
        return recipe

    def _fail_run(self, run: GenerationRun, error: SmartChefError, title: str) -> None:
        run.error = error
        run.advance(GenerationState.FAILED)
        logger.error(f"Generation #{run.generation} failed: {error.message}", extra={"generation": run.generation})
        self.notify(Notice(title, error.message, NoticeLevel.ERROR))

    def _schedule_enrichment(self, run: GenerationRun, recipe: Recipe) -> None:
        stages_needed = (self.enable_nutrition and recipe.nutrition_info is None) or (
            self.enable_image and not recipe.image_url
        )
        if not stages_needed:
            run.advance(GenerationState.DONE)
            return

        task = asyncio.ensure_future(self._enrich(run, recipe))
        self._pending[recipe.id] = task

        def _forget(done: asyncio.Task, recipe_id: str = recipe.id) -> None:
            if self._pending.get(recipe_id) is done:
                del self._pending[recipe_id]

        task.add_done_callback(_forget)

    async def _enrich(self, run: GenerationRun, recipe: Recipe) -> None:
        if self.enrich_concurrently:
            await asyncio.gather(self._enrich_nutrition(run, recipe), self._enrich_image(run, recipe))
        else:
            await self._enrich_nutrition(run, recipe)
            await self._enrich_image(run, recipe)
        run.advance(GenerationState.DONE)
        logger.info(
            f"Generation #{run.generation} enrichment finished "
            f"({len(run.enrichment_errors)} stage failure(s))",
            extra={"generation": run.generation, "recipe_id": recipe.id},
        )

    async def _enrich_nutrition(self, run: GenerationRun, recipe: Recipe) -> None:
        if not self.enable_nutrition or recipe.nutrition_info is not None:
            return
        if not self.enrich_concurrently:
            run.advance(GenerationState.ENRICHING_NUTRITION)
        try:
            info = await self.gateway.analyze_nutrition(recipe.title, recipe.ingredients, recipe.instructions)
            await self.store.update_nutrition(recipe.id, info)
        except SmartChefError as e:
            self._stage_failed(run, recipe, "Nutrition Analysis Failed", e)

    async def _enrich_image(self, run: GenerationRun, recipe: Recipe) -> None:
        if not self.enable_image or recipe.image_url:
            return
        if not self.enrich_concurrently:
            run.advance(GenerationState.ENRICHING_IMAGE)
        try:
            image_url = await self.gateway.generate_image(recipe.title)
            await self.store.update_image(recipe.id, image_url)
        except SmartChefError as e:
            self._stage_failed(run, recipe, "Image Generation Failed", e)

    def _stage_failed(self, run: GenerationRun, recipe: Recipe, title: str, error: SmartChefError) -> None:
        run.enrichment_errors.append(error)
        logger.warning(
            f"{title} for '{recipe.title}': {error.message}",
            extra={"generation": run.generation, "recipe_id": recipe.id},
        )
        self.notify(Notice(title, error.message, NoticeLevel.ERROR))

    async def enrich(self, recipe_id: str) -> Recipe:
        """Run the missing enrichment stages for an existing recipe and wait for them.

        Stages whose field is already set are skipped. Stage failures are reported
        as notices, like background enrichment.

        Raises:
            RecipeNotFound: If the recipe is not in the Store.
        """
        recipe = self.store.get(recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)

        pending = self._pending.get(recipe_id)
        if pending is not None:
            await pending
            recipe = self.store.get(recipe_id) or recipe

        self._generation += 1
        # Resumption runs carry no draft; the stored text is already durable
        run = GenerationRun(generation=self._generation, request=recipe.user_input, recipe_id=recipe.id)
        self._schedule_enrichment(run, recipe)
        task = self._pending.get(recipe_id)
        if task is not None:
            await task
        return self.store.get(recipe_id) or recipe

    async def drain(self) -> None:
        """Wait until all background enrichment has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending.values()))
