"""Unit tests for application wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from smartchef.app.factory import initialize_app
from smartchef.models.models import GeneratedRecipe
from smartchef.store.backends import SqliteRecipeBackend
from smartchef.store.identity import StaticIdentityProvider
from smartchef.utils.errors import GenerationFailure


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.generate_recipe_text = AsyncMock(
        return_value=GeneratedRecipe(title="Omelette", ingredients=["3 eggs"], instructions=["Beat", "Cook"])
    )
    gateway.analyze_nutrition = AsyncMock(side_effect=GenerationFailure("Nutrition analysis", "unavailable"))
    gateway.generate_image = AsyncMock(return_value="data:image/png;base64,AAAA")
    gateway.answer_question = AsyncMock(return_value="About 5 minutes.")
    return gateway


class TestInitializeApp:
    @pytest.mark.asyncio
    async def test_wires_components(self, tmp_path, gateway):
        backend = SqliteRecipeBackend(db_file=str(tmp_path / "app.db"))
        identity = StaticIdentityProvider("user-1")

        app = await initialize_app(backend=backend, identity=identity, gateway=gateway)

        assert app.store.backend is backend
        assert app.store.identity is identity
        assert app.orchestrator.store is app.store
        assert app.gateway is gateway
        assert app.tracing_db is None
        assert app.store.recipes == []
        await app.aclose()

    @pytest.mark.asyncio
    async def test_chat_follows_displayed_recipe(self, tmp_path, gateway):
        app = await initialize_app(
            backend=SqliteRecipeBackend(db_file=str(tmp_path / "app.db")),
            identity=StaticIdentityProvider("user-1"),
            gateway=gateway,
        )

        recipe = await app.orchestrator.generate({"ingredients": "eggs"})
        session = app.chat()
        await session.ask("How long?")

        assert session.recipe.id == recipe.id
        assert app.chat() is session
        assert len(session.messages) == 2
        await app.aclose()

    @pytest.mark.asyncio
    async def test_auth_changes_reach_store(self, tmp_path, gateway):
        backend = SqliteRecipeBackend(db_file=str(tmp_path / "app.db"))
        identity = StaticIdentityProvider("user-1")
        app = await initialize_app(backend=backend, identity=identity, gateway=gateway)
        await app.orchestrator.generate({"ingredients": "eggs"})
        await app.orchestrator.drain()

        identity.sign_out()
        assert app.store.recipes == []

        identity.sign_in("user-1")
        await app.store.settle()
        assert [r.title for r in app.store.recipes] == ["Omelette"]
        await app.aclose()
