"""Application factory: wires configuration into a ready-to-use SmartChef instance.

Initialization order:
1. Tracing (optional, non-fatal)
2. Persistence backend (Supabase when SUPABASE_URL is set, local SQLite otherwise)
3. Identity provider (Supabase auth session, or a static local user)
4. Generation gateway (Gemini)
5. Recipe store and orchestrator, then the initial load of the user's recipes
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from supabase import create_client

from smartchef.chat.session import ChatSession
from smartchef.gateway.gateway import GenerationGateway
from smartchef.models.models import Recipe
from smartchef.orchestration.orchestrator import GenerationOrchestrator
from smartchef.store.backends import RecipeBackend, SqliteRecipeBackend, SupabaseRecipeBackend
from smartchef.store.identity import IdentityProvider, StaticIdentityProvider, SupabaseIdentityProvider
from smartchef.store.recipe_store import RecipeStore
from smartchef.utils.config import config
from smartchef.utils.logger import logger
from smartchef.utils.notices import NoticeCollector
from smartchef.utils.tracing import initialize_tracing


@dataclass
class SmartChefApp:
    """Container for the wired components of one running application."""

    gateway: GenerationGateway
    store: RecipeStore
    orchestrator: GenerationOrchestrator
    identity: IdentityProvider
    notices: NoticeCollector
    tracing_db: Optional[Any] = None
    _chat: Optional[ChatSession] = field(default=None, repr=False)

    def chat(self, recipe: Optional[Recipe] = None) -> ChatSession:
        """Chat session bound to ``recipe`` (default: the displayed recipe)."""
        recipe = recipe or self.orchestrator.displayed_recipe
        if self._chat is None:
            self._chat = ChatSession(self.gateway, recipe)
        else:
            self._chat.reset(recipe)
        return self._chat

    async def aclose(self) -> None:
        """Finish background enrichment and stop following auth changes."""
        await self.orchestrator.drain()
        self.store.detach_identity()


async def _initialize_tracing_db():
    logger.info("Step 1/5: Initializing tracing...")
    tracing_db = await initialize_tracing()
    if tracing_db:
        logger.info("✓ Tracing initialized with dedicated database")
    else:
        logger.info("✓ Tracing disabled or not available")
    return tracing_db


def _configure_backend(supabase_client) -> RecipeBackend:
    logger.info("Step 2/5: Configuring persistence backend...")
    if supabase_client is not None:
        logger.info(f"Using Supabase: {config.SUPABASE_URL}")
        backend = SupabaseRecipeBackend(supabase_client)
    else:
        logger.info(f"Using SQLite database: {config.DATABASE_FILE}")
        backend = SqliteRecipeBackend()
    logger.info("✓ Persistence backend configured")
    return backend


async def _configure_identity(supabase_client) -> IdentityProvider:
    logger.info("Step 3/5: Resolving identity...")
    if supabase_client is not None:
        identity = SupabaseIdentityProvider(supabase_client)
        user_id = await identity.bootstrap()
        if user_id:
            logger.info("✓ Supabase session active", extra={"user_id": user_id})
        else:
            logger.warning("No Supabase session: recipes cannot be saved until a user signs in")
        return identity

    logger.info(f"✓ Local user: {config.LOCAL_USER_ID}")
    return StaticIdentityProvider(config.LOCAL_USER_ID)


async def initialize_app(
    backend: Optional[RecipeBackend] = None,
    identity: Optional[IdentityProvider] = None,
    gateway: Optional[GenerationGateway] = None,
    load: bool = True,
) -> SmartChefApp:
    """Build and start the application.

    Args:
        backend: Persistence backend override (tests, custom deployments).
        identity: Identity provider override.
        gateway: Gateway override.
        load: If True, load the current user's recipes before returning.

    Returns:
        SmartChefApp with every component wired.

    Raises:
        PersistenceFailure: If the initial load fails.
        AuthFailure: If configured Supabase credentials are rejected.
    """
    logger.info("=== Initializing SmartChef ===")

    tracing_db = await _initialize_tracing_db()

    supabase_client = None
    if config.use_supabase and (backend is None or identity is None):
        supabase_client = create_client(config.SUPABASE_URL, config.SUPABASE_KEY)

    backend = backend or _configure_backend(supabase_client)
    identity = identity or await _configure_identity(supabase_client)

    logger.info("Step 4/5: Configuring generation gateway...")
    gateway = gateway or GenerationGateway()
    logger.info(f"✓ Gateway ready (text: {config.GEMINI_MODEL}, image: {config.IMAGE_GENERATION_MODEL})")

    logger.info("Step 5/5: Starting recipe store...")
    notices = NoticeCollector()
    store = RecipeStore(backend, identity, notifier=notices)
    store.attach_identity()
    orchestrator = GenerationOrchestrator(gateway, store, notifier=notices)
    if load:
        await store.fetch_all()
    logger.info(f"✓ Store ready ({len(store.recipes)} recipe(s))")

    logger.info("=== SmartChef initialization complete ===")
    return SmartChefApp(
        gateway=gateway,
        store=store,
        orchestrator=orchestrator,
        identity=identity,
        notices=notices,
        tracing_db=tracing_db,
    )
