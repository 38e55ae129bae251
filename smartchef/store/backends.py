"""Persistence backends for recipes and user preferences.

Two implementations of ``RecipeBackend``:
- SupabaseRecipeBackend: hosted Postgres through the supabase client (production)
- SqliteRecipeBackend: local SQLite file, JSON stored as text (development, tests)

Backends exchange plain row dicts with snake_case recipe columns. Preference
rows use camelCase columns (``mealType``, ``dietaryRestrictions``) to match
existing data. Every mutating call filters by owner as well as primary key.
Both SDKs are synchronous, so calls run in a worker thread.
"""

import asyncio
import json
import re
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Optional, Protocol

from supabase import Client

from smartchef.utils.config import config
from smartchef.utils.errors import PersistenceFailure
from smartchef.utils.logger import logger


RECIPE_COLUMNS = (
    "id",
    "user_id",
    "title",
    "ingredients",
    "instructions",
    "user_input",
    "image_url",
    "nutrition_info",
    "is_favorite",
    "created_at",
)
JSON_COLUMNS = ("ingredients", "instructions", "user_input", "nutrition_info")
UPDATABLE_COLUMNS = ("title", "ingredients", "instructions", "image_url", "nutrition_info", "is_favorite")
PREFERENCE_COLUMNS = ("cuisine", "mealType", "dietaryRestrictions", "language")

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecipeBackend(Protocol):
    """Operations the Recipe Store needs from a persistence service."""

    async def list_recipes(self, user_id: str) -> list[dict]:
        """Return the user's recipe rows, newest first."""

    async def insert_recipe(self, row: dict) -> dict:
        """Insert one row; return it with ``id`` and ``created_at`` assigned."""

    async def update_recipe(self, recipe_id: str, user_id: str, fields: dict) -> Optional[dict]:
        """Update the row matching id AND owner; return it, or None if nothing matched."""

    async def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        """Delete the row matching id AND owner; return whether a row was deleted."""

    async def get_preferences(self, user_id: str) -> Optional[dict]:
        """Return the user's preference row, or None."""

    async def upsert_preferences(self, user_id: str, prefs: dict) -> dict:
        """Insert or replace the user's preference row."""


async def _run(operation: str, func: Callable[[], Any]) -> Any:
    """Run a blocking backend call in a thread, mapping errors to PersistenceFailure."""
    try:
        return await asyncio.to_thread(func)
    except PersistenceFailure:
        raise
    except Exception as e:
        logger.error(f"{operation} failed: {e}")
        raise PersistenceFailure(f"{operation} failed: {e}") from e


# ============================================================================
# Supabase
# ============================================================================


class SupabaseRecipeBackend:
    """RecipeBackend over Supabase tables (``recipes``, ``user_preferences``)."""

    def __init__(
        self,
        client: Client,
        recipes_table: Optional[str] = None,
        preferences_table: Optional[str] = None,
    ) -> None:
        self.client = client
        self.recipes_table = recipes_table or config.RECIPES_TABLE
        self.preferences_table = preferences_table or config.PREFERENCES_TABLE

    async def list_recipes(self, user_id: str) -> list[dict]:
        def _query():
            return (
                self.client.table(self.recipes_table)
                .select("*")
                .eq("user_id", user_id)
                .order("created_at", desc=True)
                .execute()
            )

        response = await _run("Fetching recipes", _query)
        return list(response.data or [])

    async def insert_recipe(self, row: dict) -> dict:
        def _query():
            return self.client.table(self.recipes_table).insert(row).execute()

        response = await _run("Saving recipe", _query)
        if not response.data:
            raise PersistenceFailure("Saving recipe failed: no row returned")
        return response.data[0]

    async def update_recipe(self, recipe_id: str, user_id: str, fields: dict) -> Optional[dict]:
        def _query():
            return (
                self.client.table(self.recipes_table)
                .update(fields)
                .eq("id", recipe_id)
                .eq("user_id", user_id)
                .execute()
            )

        response = await _run("Updating recipe", _query)
        return response.data[0] if response.data else None

    async def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        def _query():
            return (
                self.client.table(self.recipes_table)
                .delete()
                .eq("id", recipe_id)
                .eq("user_id", user_id)
                .execute()
            )

        response = await _run("Removing recipe", _query)
        return bool(response.data)

    async def get_preferences(self, user_id: str) -> Optional[dict]:
        def _query():
            return (
                self.client.table(self.preferences_table)
                .select("*")
                .eq("user_id", user_id)
                .maybe_single()
                .execute()
            )

        response = await _run("Fetching preferences", _query)
        # maybe_single() yields no response at all when the row is missing
        return response.data if response is not None else None

    async def upsert_preferences(self, user_id: str, prefs: dict) -> dict:
        row = {**prefs, "user_id": user_id}

        def _query():
            return self.client.table(self.preferences_table).upsert(row, on_conflict="user_id").execute()

        response = await _run("Saving preferences", _query)
        return response.data[0] if response.data else row


# ============================================================================
# SQLite
# ============================================================================


class SqliteRecipeBackend:
    """RecipeBackend over a local SQLite file.

    Ids are random UUIDs, ``created_at`` is an ISO-8601 UTC timestamp, list and
    object columns are JSON text. A fresh connection is opened per call so the
    backend can be used from worker threads.
    """

    def __init__(
        self,
        db_file: Optional[str] = None,
        recipes_table: Optional[str] = None,
        preferences_table: Optional[str] = None,
    ) -> None:
        self.db_file = db_file or config.DATABASE_FILE
        self.recipes_table = recipes_table or config.RECIPES_TABLE
        self.preferences_table = preferences_table or config.PREFERENCES_TABLE
        for name in (self.recipes_table, self.preferences_table):
            if not _IDENTIFIER_RE.match(name):
                raise ValueError(f"Invalid table name: {name!r}")

        Path(self.db_file).parent.mkdir(parents=True, exist_ok=True)
        self._create_schema()
        logger.debug(f"SQLite backend ready: {self.db_file}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_file)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_schema(self) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    f"""CREATE TABLE IF NOT EXISTS {self.recipes_table} (
                        id TEXT PRIMARY KEY,
                        user_id TEXT NOT NULL,
                        title TEXT NOT NULL,
                        ingredients TEXT NOT NULL DEFAULT '[]',
                        instructions TEXT NOT NULL DEFAULT '[]',
                        user_input TEXT,
                        image_url TEXT,
                        nutrition_info TEXT,
                        is_favorite INTEGER NOT NULL DEFAULT 0,
                        created_at TEXT NOT NULL
                    )"""
                )
                conn.execute(
                    f"CREATE INDEX IF NOT EXISTS idx_{self.recipes_table}_user "
                    f"ON {self.recipes_table} (user_id, created_at)"
                )
                conn.execute(
                    f"""CREATE TABLE IF NOT EXISTS {self.preferences_table} (
                        user_id TEXT PRIMARY KEY,
                        cuisine TEXT,
                        mealType TEXT,
                        dietaryRestrictions TEXT,
                        language TEXT
                    )"""
                )
        finally:
            conn.close()

    @staticmethod
    def _encode(column: str, value: Any) -> Any:
        if column in JSON_COLUMNS:
            return None if value is None else json.dumps(value)
        if column == "is_favorite":
            return 1 if value else 0
        return value

    @staticmethod
    def _decode(row: sqlite3.Row) -> dict:
        data = dict(row)
        if "is_favorite" in data:
            data["is_favorite"] = bool(data["is_favorite"])
        # JSON columns stay as text; Recipe.from_row decodes them
        return data

    def _fetch_recipe(self, conn: sqlite3.Connection, recipe_id: str, user_id: str) -> Optional[dict]:
        row = conn.execute(
            f"SELECT * FROM {self.recipes_table} WHERE id = ? AND user_id = ?",
            (recipe_id, user_id),
        ).fetchone()
        return self._decode(row) if row else None

    async def list_recipes(self, user_id: str) -> list[dict]:
        def _query():
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT * FROM {self.recipes_table} WHERE user_id = ? "
                    "ORDER BY created_at DESC, rowid DESC",
                    (user_id,),
                ).fetchall()
                return [self._decode(row) for row in rows]
            finally:
                conn.close()

        return await _run("Fetching recipes", _query)

    async def insert_recipe(self, row: dict) -> dict:
        record = {column: row.get(column) for column in RECIPE_COLUMNS}
        record["id"] = record["id"] or str(uuid.uuid4())
        record["created_at"] = record["created_at"] or datetime.now(timezone.utc).isoformat()
        record["is_favorite"] = bool(record["is_favorite"])
        if record["ingredients"] is None:
            record["ingredients"] = []
        if record["instructions"] is None:
            record["instructions"] = []

        def _query():
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        f"INSERT INTO {self.recipes_table} ({', '.join(RECIPE_COLUMNS)}) "
                        f"VALUES ({', '.join('?' for _ in RECIPE_COLUMNS)})",
                        [self._encode(column, record[column]) for column in RECIPE_COLUMNS],
                    )
                return self._fetch_recipe(conn, record["id"], record["user_id"])
            finally:
                conn.close()

        return await _run("Saving recipe", _query)

    async def update_recipe(self, recipe_id: str, user_id: str, fields: dict) -> Optional[dict]:
        unknown = set(fields) - set(UPDATABLE_COLUMNS)
        if unknown:
            raise PersistenceFailure(f"Updating recipe failed: unknown column(s) {sorted(unknown)}")
        if not fields:
            raise PersistenceFailure("Updating recipe failed: nothing to update")

        columns = list(fields)

        def _query():
            conn = self._connect()
            try:
                with conn:
                    cursor = conn.execute(
                        f"UPDATE {self.recipes_table} SET {', '.join(f'{c} = ?' for c in columns)} "
                        "WHERE id = ? AND user_id = ?",
                        [self._encode(c, fields[c]) for c in columns] + [recipe_id, user_id],
                    )
                if cursor.rowcount == 0:
                    return None
                return self._fetch_recipe(conn, recipe_id, user_id)
            finally:
                conn.close()

        return await _run("Updating recipe", _query)

    async def delete_recipe(self, recipe_id: str, user_id: str) -> bool:
        def _query():
            conn = self._connect()
            try:
                with conn:
                    cursor = conn.execute(
                        f"DELETE FROM {self.recipes_table} WHERE id = ? AND user_id = ?",
                        (recipe_id, user_id),
                    )
                return cursor.rowcount > 0
            finally:
                conn.close()

        return await _run("Removing recipe", _query)

    async def get_preferences(self, user_id: str) -> Optional[dict]:
        def _query():
            conn = self._connect()
            try:
                row = conn.execute(
                    f"SELECT * FROM {self.preferences_table} WHERE user_id = ?", (user_id,)
                ).fetchone()
                return dict(row) if row else None
            finally:
                conn.close()

        return await _run("Fetching preferences", _query)

    async def upsert_preferences(self, user_id: str, prefs: dict) -> dict:
        values = [prefs.get(column) for column in PREFERENCE_COLUMNS]

        def _query():
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        f"INSERT INTO {self.preferences_table} (user_id, {', '.join(PREFERENCE_COLUMNS)}) "
                        f"VALUES (?, {', '.join('?' for _ in PREFERENCE_COLUMNS)}) "
                        f"ON CONFLICT(user_id) DO UPDATE SET "
                        f"{', '.join(f'{c} = excluded.{c}' for c in PREFERENCE_COLUMNS)}",
                        [user_id] + values,
                    )
                row = conn.execute(
                    f"SELECT * FROM {self.preferences_table} WHERE user_id = ?", (user_id,)
                ).fetchone()
                return dict(row)
            finally:
                conn.close()

        return await _run("Saving preferences", _query)
