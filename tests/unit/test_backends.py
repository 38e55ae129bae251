"""Unit tests for the persistence backends.

SQLite runs against a temporary database file; Supabase uses a mocked client
whose query builder returns itself.
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from smartchef.models.models import Recipe
from smartchef.store.backends import SqliteRecipeBackend, SupabaseRecipeBackend
from smartchef.utils.errors import PersistenceFailure


def recipe_row(user_id="user-1", title="Pancakes"):
    return {
        "user_id": user_id,
        "title": title,
        "ingredients": ["2 eggs", "1 cup flour"],
        "instructions": ["Whisk", "Fry"],
        "user_input": {"ingredients": "eggs, flour", "mealType": "breakfast"},
        "is_favorite": False,
    }


@pytest.fixture
def sqlite_backend(tmp_path):
    return SqliteRecipeBackend(db_file=str(tmp_path / "data" / "recipes.db"))


class TestSqliteRecipes:
    """Recipe rows in SQLite."""

    @pytest.mark.asyncio
    async def test_insert_assigns_id_and_created_at(self, sqlite_backend):
        row = await sqlite_backend.insert_recipe(recipe_row())

        assert row["id"]
        assert row["created_at"]
        assert row["is_favorite"] is False

        recipe = Recipe.from_row(row)
        assert recipe.ingredients == ["2 eggs", "1 cup flour"]
        assert recipe.user_input.meal_type == "breakfast"
        assert recipe.nutrition_info is None

    @pytest.mark.asyncio
    async def test_list_is_per_user_newest_first(self, sqlite_backend):
        first = await sqlite_backend.insert_recipe(recipe_row(title="First"))
        second = await sqlite_backend.insert_recipe(recipe_row(title="Second"))
        await sqlite_backend.insert_recipe(recipe_row(user_id="someone-else", title="Other"))

        rows = await sqlite_backend.list_recipes("user-1")

        assert [row["id"] for row in rows] == [second["id"], first["id"]]

    @pytest.mark.asyncio
    async def test_update_filters_by_owner(self, sqlite_backend):
        row = await sqlite_backend.insert_recipe(recipe_row())

        assert await sqlite_backend.update_recipe(row["id"], "intruder", {"is_favorite": True}) is None

        updated = await sqlite_backend.update_recipe(row["id"], "user-1", {"is_favorite": True})
        assert updated["is_favorite"] is True

    @pytest.mark.asyncio
    async def test_update_json_column(self, sqlite_backend):
        row = await sqlite_backend.insert_recipe(recipe_row())
        nutrition = {"estimatedCalories": 300, "proteinGrams": 10, "carbsGrams": 40, "fatGrams": 9, "healthTips": []}

        updated = await sqlite_backend.update_recipe(row["id"], "user-1", {"nutrition_info": nutrition})

        assert Recipe.from_row(updated).nutrition_info.estimated_calories == 300

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, sqlite_backend):
        assert await sqlite_backend.update_recipe("missing", "user-1", {"title": "x"}) is None

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_columns(self, sqlite_backend):
        with pytest.raises(PersistenceFailure, match="unknown column"):
            await sqlite_backend.update_recipe("id", "user-1", {"user_id": "someone-else"})

    @pytest.mark.asyncio
    async def test_delete(self, sqlite_backend):
        row = await sqlite_backend.insert_recipe(recipe_row())

        assert await sqlite_backend.delete_recipe(row["id"], "intruder") is False
        assert await sqlite_backend.delete_recipe(row["id"], "user-1") is True
        assert await sqlite_backend.list_recipes("user-1") == []

    def test_invalid_table_name(self, tmp_path):
        with pytest.raises(ValueError):
            SqliteRecipeBackend(db_file=str(tmp_path / "x.db"), recipes_table="recipes; DROP TABLE x")


class TestSqlitePreferences:
    """One preference row per user."""

    @pytest.mark.asyncio
    async def test_missing_preferences(self, sqlite_backend):
        assert await sqlite_backend.get_preferences("user-1") is None

    @pytest.mark.asyncio
    async def test_upsert_replaces_row(self, sqlite_backend):
        await sqlite_backend.upsert_preferences("user-1", {"cuisine": "Italian", "mealType": "dinner"})
        row = await sqlite_backend.upsert_preferences("user-1", {"cuisine": "Thai"})

        assert row["cuisine"] == "Thai"
        assert row["mealType"] is None
        assert (await sqlite_backend.get_preferences("user-1"))["cuisine"] == "Thai"


@pytest.fixture
def supabase():
    """Mock supabase client; every query builder method returns the same builder."""
    query = MagicMock()
    for method in ("select", "eq", "order", "insert", "update", "delete", "maybe_single", "upsert"):
        getattr(query, method).return_value = query
    query.execute.return_value = SimpleNamespace(data=[])
    client = MagicMock()
    client.table.return_value = query
    client.query = query
    return client


class TestSupabaseBackend:
    """Query shapes against the supabase client."""

    @pytest.mark.asyncio
    async def test_list_recipes(self, supabase):
        supabase.query.execute.return_value = SimpleNamespace(data=[{"id": "r1"}])
        backend = SupabaseRecipeBackend(supabase, recipes_table="recipes")

        rows = await backend.list_recipes("user-1")

        assert rows == [{"id": "r1"}]
        supabase.table.assert_called_with("recipes")
        supabase.query.eq.assert_called_with("user_id", "user-1")
        supabase.query.order.assert_called_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_insert_without_returned_row(self, supabase):
        backend = SupabaseRecipeBackend(supabase)

        with pytest.raises(PersistenceFailure, match="no row returned"):
            await backend.insert_recipe(recipe_row())

    @pytest.mark.asyncio
    async def test_update_filters_by_id_and_owner(self, supabase):
        supabase.query.execute.return_value = SimpleNamespace(data=[{"id": "r1", "is_favorite": True}])
        backend = SupabaseRecipeBackend(supabase)

        row = await backend.update_recipe("r1", "user-1", {"is_favorite": True})

        assert row["is_favorite"] is True
        supabase.query.update.assert_called_with({"is_favorite": True})
        supabase.query.eq.assert_any_call("id", "r1")
        supabase.query.eq.assert_any_call("user_id", "user-1")

    @pytest.mark.asyncio
    async def test_update_nothing_matched(self, supabase):
        backend = SupabaseRecipeBackend(supabase)
        assert await backend.update_recipe("r1", "user-1", {"is_favorite": True}) is None

    @pytest.mark.asyncio
    async def test_delete_reports_match(self, supabase):
        backend = SupabaseRecipeBackend(supabase)
        assert await backend.delete_recipe("r1", "user-1") is False

        supabase.query.execute.return_value = SimpleNamespace(data=[{"id": "r1"}])
        assert await backend.delete_recipe("r1", "user-1") is True

    @pytest.mark.asyncio
    async def test_missing_preferences(self, supabase):
        supabase.query.execute.return_value = None
        backend = SupabaseRecipeBackend(supabase)

        assert await backend.get_preferences("user-1") is None

    @pytest.mark.asyncio
    async def test_upsert_preferences(self, supabase):
        backend = SupabaseRecipeBackend(supabase)

        row = await backend.upsert_preferences("user-1", {"cuisine": "Thai"})

        assert row == {"cuisine": "Thai", "user_id": "user-1"}
        supabase.query.upsert.assert_called_with({"cuisine": "Thai", "user_id": "user-1"}, on_conflict="user_id")

    @pytest.mark.asyncio
    async def test_client_error_becomes_persistence_failure(self, supabase):
        supabase.query.execute.side_effect = RuntimeError("connection reset")
        backend = SupabaseRecipeBackend(supabase)

        with pytest.raises(PersistenceFailure, match="connection reset"):
            await backend.list_recipes("user-1")
