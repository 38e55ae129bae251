"""Recipe Store: in-memory cache of the current user's recipes, mirrored to a backend.

Read model:
- recipes: collection in memory (newest first)
- history: all recipes sorted by created_at, newest first
- favorites: recipes with is_favorite, same order
- preferences: the user's default generation preferences, if any

Write model (every mutation is remote-first):
1. Resolve the current identity (AuthFailure if there is none)
2. Write to the backend, filtered by id and owner
3. Only after the write succeeds, replace the in-memory entry with an updated copy

A failed write leaves memory unchanged, is kept on ``store.error`` and is
reported through the notifier before being raised. Mutations are serialized by
one asyncio.Lock; reads never wait.
"""

import asyncio
from typing import Callable, Optional

from pydantic import ValidationError

from smartchef.models.models import GeneratedRecipe, NutritionInfo, Recipe, RecipeRequest, UserPreferences
from smartchef.store.backends import RecipeBackend
from smartchef.store.identity import AuthEvent, IdentityProvider
from smartchef.utils.errors import (
    AuthFailure,
    PersistenceFailure,
    RecipeNotFound,
    SmartChefError,
    ValidationFailure,
    safe_execute_sync,
)
from smartchef.utils.logger import logger
from smartchef.utils.notices import Notice, NoticeLevel, Notifier, log_notifier


StoreListener = Callable[[], None]


def _newest_first(recipes: list[Recipe]) -> list[Recipe]:
    return sorted(recipes, key=lambda recipe: recipe.created_at, reverse=True)


class RecipeStore:
    """Client-side cache and persistence mediator for one user's recipes."""

    def __init__(
        self,
        backend: RecipeBackend,
        identity: IdentityProvider,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.backend = backend
        self.identity = identity
        self.notify: Notifier = notifier or log_notifier
        self.preferences: Optional[UserPreferences] = None
        self.error: Optional[SmartChefError] = None
        self.loading = False
        self._recipes: list[Recipe] = []
        self._lock = asyncio.Lock()
        self._listeners: list[StoreListener] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._unsubscribe_auth: Optional[Callable[[], None]] = None
        self._refresh_tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Reads (pure, synchronous)
    # ------------------------------------------------------------------

    @property
    def recipes(self) -> list[Recipe]:
        return list(self._recipes)

    @property
    def history(self) -> list[Recipe]:
        return _newest_first(self._recipes)

    @property
    def favorites(self) -> list[Recipe]:
        return _newest_first([recipe for recipe in self._recipes if recipe.is_favorite])

    def get(self, recipe_id: str) -> Optional[Recipe]:
        """Look up a recipe in memory by id."""
        for recipe in self._recipes:
            if recipe.id == recipe_id:
                return recipe
        return None

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Call ``listener()`` after every change to memory; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _changed(self) -> None:
        for listener in list(self._listeners):
            safe_execute_sync(listener, "Store listener", log_level="error")

    def _fail(self, error: SmartChefError, title: str) -> SmartChefError:
        self.error = error
        self.notify(Notice(title, error.message, NoticeLevel.ERROR))
        return error

    async def _require_user(self, action: str) -> str:
        user_id = await self.identity.current_user_id()
        if not user_id:
            raise self._fail(AuthFailure(f"You must be logged in to {action}."), "Authentication Error")
        return user_id

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_rows(rows: list[dict]) -> list[Recipe]:
        recipes = []
        for row in rows:
            try:
                recipes.append(Recipe.from_row(row))
            except ValidationError as e:
                logger.error(f"Skipping malformed recipe row {row.get('id')}: {e.error_count()} error(s)")
        return recipes

    async def fetch_all(self) -> list[Recipe]:
        """Load the current user's recipes and preferences, replacing memory wholesale.

        Without an identity the collection is emptied and no error is raised.

        Raises:
            PersistenceFailure: If the backend read fails. Memory is left intact.
        """
        user_id = await self.identity.current_user_id()
        async with self._lock:
            if not user_id:
                self._reset()
                return []

            self.loading = True
            try:
                rows = await self.backend.list_recipes(user_id)
                prefs_row = await self.backend.get_preferences(user_id)
            except PersistenceFailure as e:
                raise self._fail(e, "Error Fetching Recipes")
            finally:
                self.loading = False

            self._recipes = _newest_first(self._parse_rows(rows))
            self.preferences = UserPreferences.model_validate(prefs_row) if prefs_row else None
            self.error = None

        logger.info(f"Loaded {len(self._recipes)} recipe(s)", extra={"user_id": user_id})
        self._changed()
        return self.recipes

    def _reset(self) -> None:
        self._recipes = []
        self.preferences = None
        self.error = None
        self._changed()

    def clear(self) -> None:
        """Drop everything held in memory (e.g. on sign-out)."""
        self._reset()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def save(
        self,
        core: GeneratedRecipe,
        user_input: RecipeRequest,
        nutrition_info: Optional[NutritionInfo] = None,
    ) -> Recipe:
        """Persist a newly generated recipe and put it at the front of memory.

        The backend assigns ``id`` and ``created_at``; ``is_favorite`` starts False.

        Raises:
            AuthFailure: Without a signed-in user.
            PersistenceFailure: If the insert fails. Memory is unchanged.
        """
        user_id = await self._require_user("save a recipe")
        row = {
            "user_id": user_id,
            "title": core.title,
            "ingredients": list(core.ingredients),
            "instructions": list(core.instructions),
            "is_favorite": False,
            "user_input": user_input.model_dump(by_alias=True, exclude_none=True),
            "nutrition_info": nutrition_info.model_dump(by_alias=True) if nutrition_info else None,
        }

        async with self._lock:
            try:
                stored = await self.backend.insert_recipe(row)
                recipe = Recipe.from_row(stored)
            except PersistenceFailure as e:
                raise self._fail(e, "Failed to Save Recipe")
            except ValidationError as e:
                raise self._fail(
                    PersistenceFailure(f"Saving recipe failed: unexpected row returned ({e.error_count()} error(s))"),
                    "Failed to Save Recipe",
                ) from e

            self._recipes = [recipe] + [r for r in self._recipes if r.id != recipe.id]

        logger.info(f"Saved recipe '{recipe.title}'", extra={"recipe_id": recipe.id, "user_id": user_id})
        self._changed()
        return recipe

    async def _update(
        self,
        recipe_id: str,
        action: str,
        failure_title: str,
        fields_for: Callable[[Recipe], dict],
    ) -> Recipe:
        user_id = await self._require_user(action)
        async with self._lock:
            current = self.get(recipe_id)
            if current is None:
                raise self._fail(RecipeNotFound(recipe_id), failure_title)

            try:
                row = await self.backend.update_recipe(recipe_id, user_id, fields_for(current))
            except PersistenceFailure as e:
                raise self._fail(e, failure_title)
            if row is None:
                raise self._fail(RecipeNotFound(recipe_id), failure_title)

            updated = Recipe.from_row(row)
            self._recipes = [updated if r.id == recipe_id else r for r in self._recipes]

        self._changed()
        return updated

    async def toggle_favorite(self, recipe_id: str) -> Recipe:
        """Flip ``is_favorite`` on one recipe.

        Raises:
            AuthFailure: Without a signed-in user.
            RecipeNotFound: If the id is unknown or not owned by the user.
            PersistenceFailure: If the update fails. Memory is unchanged.
        """
        recipe = await self._update(
            recipe_id,
            "change favorites",
            "Failed to Update Favorite",
            lambda current: {"is_favorite": not current.is_favorite},
        )
        title = "Added to Favorites" if recipe.is_favorite else "Removed from Favorites"
        self.notify(Notice(title, f'"{recipe.title}" updated.', NoticeLevel.SUCCESS))
        return recipe

    async def update_image(self, recipe_id: str, image_url: str) -> Recipe:
        """Attach an image (data URI or URL) to a recipe."""
        if not image_url or not image_url.strip():
            raise ValidationFailure("image_url", "must not be empty")
        return await self._update(
            recipe_id, "update images", "Failed to Update Image", lambda _: {"image_url": image_url}
        )

    async def update_nutrition(self, recipe_id: str, nutrition_info: NutritionInfo) -> Recipe:
        """Attach a nutrition estimate to a recipe."""
        payload = nutrition_info.model_dump(by_alias=True)
        return await self._update(
            recipe_id, "update nutrition", "Failed to Update Nutrition", lambda _: {"nutrition_info": payload}
        )

    async def remove(self, recipe_id: str) -> None:
        """Delete one recipe remotely, then from memory.

        Raises:
            AuthFailure: Without a signed-in user.
            RecipeNotFound: If the id is unknown or not owned by the user.
            PersistenceFailure: If the delete fails. Memory is unchanged.
        """
        user_id = await self._require_user("remove recipes")
        async with self._lock:
            current = self.get(recipe_id)
            if current is None:
                raise self._fail(RecipeNotFound(recipe_id), "Failed to Remove Recipe")
            try:
                deleted = await self.backend.delete_recipe(recipe_id, user_id)
            except PersistenceFailure as e:
                raise self._fail(e, "Failed to Remove Recipe")
            if not deleted:
                raise self._fail(RecipeNotFound(recipe_id), "Failed to Remove Recipe")

            self._recipes = [r for r in self._recipes if r.id != recipe_id]

        self.notify(Notice("Recipe Removed", f'"{current.title}" removed.', NoticeLevel.SUCCESS))
        self._changed()

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------

    async def get_preferences(self) -> Optional[UserPreferences]:
        """Read the user's preferences from the backend (None when signed out or unset)."""
        user_id = await self.identity.current_user_id()
        if not user_id:
            self.preferences = None
            return None
        try:
            row = await self.backend.get_preferences(user_id)
        except PersistenceFailure as e:
            raise self._fail(e, "Error Fetching Preferences")
        self.preferences = UserPreferences.model_validate(row) if row else None
        return self.preferences

    async def save_preferences(self, preferences: UserPreferences | dict) -> UserPreferences:
        """Upsert the user's preferences (one row per user)."""
        try:
            prefs = UserPreferences.model_validate(preferences)
        except ValidationError as e:
            first = e.errors()[0]
            raise ValidationFailure(".".join(str(p) for p in first["loc"]) or "preferences", first["msg"]) from e

        user_id = await self._require_user("save preferences")
        async with self._lock:
            try:
                await self.backend.upsert_preferences(user_id, prefs.model_dump(by_alias=True))
            except PersistenceFailure as e:
                raise self._fail(e, "Failed to Save Preferences")
            self.preferences = prefs

        self.notify(Notice("Preferences Saved", "Your preferences have been updated.", NoticeLevel.SUCCESS))
        self._changed()
        return prefs

    # ------------------------------------------------------------------
    # Identity wiring
    # ------------------------------------------------------------------

    def attach_identity(self, identity: Optional[IdentityProvider] = None) -> None:
        """Follow auth changes: reload on SIGNED_IN / USER_UPDATED, clear on SIGNED_OUT.

        Must be called from the event loop that owns the store. Auth callbacks
        arriving on other threads are handed back to that loop.
        """
        self.detach_identity()
        if identity is not None:
            self.identity = identity
        self._loop = asyncio.get_running_loop()
        self._unsubscribe_auth = self.identity.on_auth_change(self._dispatch_auth_event)

    def detach_identity(self) -> None:
        if self._unsubscribe_auth is not None:
            self._unsubscribe_auth()
            self._unsubscribe_auth = None

    def _dispatch_auth_event(self, event: AuthEvent) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._handle_auth_event(event)
        else:
            self._loop.call_soon_threadsafe(self._handle_auth_event, event)

    def _handle_auth_event(self, event: AuthEvent) -> None:
        logger.info(f"Auth state changed: {event.value}")
        if event == AuthEvent.SIGNED_OUT:
            self.clear()
            return
        task = asyncio.ensure_future(self._refresh())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh(self) -> None:
        try:
            await self.fetch_all()
        except PersistenceFailure as e:
            # Already recorded on store.error and notified
            logger.warning(f"Reload after auth change failed: {e.message}")

    async def settle(self) -> None:
        """Wait for reloads triggered by auth changes."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks))
