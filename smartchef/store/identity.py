"""Identity providers: who the current user is, and when that changes.

The store only needs two things from authentication:
- current_user_id(): the signed-in user's id, or None
- on_auth_change(callback): notification on SIGNED_IN / SIGNED_OUT / USER_UPDATED

Sign-up, password reset and social login are outside this package.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from smartchef.utils.config import config
from smartchef.utils.errors import AuthFailure
from smartchef.utils.logger import logger


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"


AuthListener = Callable[[AuthEvent], None]


class IdentityProvider(Protocol):
    async def current_user_id(self) -> Optional[str]:
        """Return the signed-in user's id, or None."""

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""


class StaticIdentityProvider:
    """In-process identity for local use and tests."""

    def __init__(self, user_id: Optional[str] = None) -> None:
        self._user_id = user_id
        self._listeners: list[AuthListener] = []

    async def current_user_id(self) -> Optional[str]:
        return self._user_id

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: AuthEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def sign_in(self, user_id: str) -> None:
        event = AuthEvent.USER_UPDATED if self._user_id == user_id else AuthEvent.SIGNED_IN
        self._user_id = user_id
        self._emit(event)

    def sign_out(self) -> None:
        self._user_id = None
        self._emit(AuthEvent.SIGNED_OUT)


class SupabaseIdentityProvider:
    """Identity from a Supabase auth session."""

    def __init__(self, client: Any) -> None:
        self.client = client

    async def sign_in_with_password(self, email: str, password: str) -> str:
        """Start a password session; returns the user id.

        Raises:
            AuthFailure: If Supabase rejects the credentials.
        """

        def _sign_in():
            return self.client.auth.sign_in_with_password({"email": email, "password": password})

        try:
            response = await asyncio.to_thread(_sign_in)
        except Exception as e:
            logger.error(f"Supabase sign-in failed: {e}")
            raise AuthFailure(f"Sign-in failed: {e}") from e

        user = getattr(response, "user", None)
        if user is None:
            raise AuthFailure("Sign-in failed: no user returned")
        logger.info("Signed in to Supabase", extra={"user_id": user.id})
        return user.id

    async def bootstrap(self) -> Optional[str]:
        """Sign in with SUPABASE_EMAIL / SUPABASE_PASSWORD when both are configured."""
        if config.SUPABASE_EMAIL and config.SUPABASE_PASSWORD:
            return await self.sign_in_with_password(config.SUPABASE_EMAIL, config.SUPABASE_PASSWORD)
        return await self.current_user_id()

    async def current_user_id(self) -> Optional[str]:
        try:
            response = await asyncio.to_thread(self.client.auth.get_user)
        except Exception as e:
            # No session (or an expired one) is "not signed in"
            logger.debug(f"No Supabase session: {e}")
            return None
        user = getattr(response, "user", None) if response is not None else None
        return getattr(user, "id", None)

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        def _listener(event: Any, session: Any) -> None:
            try:
                auth_event = AuthEvent(str(getattr(event, "value", event)))
            except ValueError:
                # TOKEN_REFRESHED, PASSWORD_RECOVERY, ... do not change the user
                return
            callback(auth_event)

        subscription = self.client.auth.on_auth_state_change(_listener)
        return subscription.unsubscribe
