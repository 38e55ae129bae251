"""Unit tests for identity providers."""

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from smartchef.store import identity as identity_module
from smartchef.store.identity import AuthEvent, StaticIdentityProvider, SupabaseIdentityProvider
from smartchef.utils.errors import AuthFailure


class TestStaticIdentityProvider:
    @pytest.mark.asyncio
    async def test_current_user(self):
        provider = StaticIdentityProvider("user-1")
        assert await provider.current_user_id() == "user-1"

    @pytest.mark.asyncio
    async def test_events(self):
        provider = StaticIdentityProvider()
        events = []
        unsubscribe = provider.on_auth_change(events.append)

        provider.sign_in("user-1")
        provider.sign_in("user-1")
        provider.sign_out()
        unsubscribe()
        provider.sign_in("user-2")

        assert events == [AuthEvent.SIGNED_IN, AuthEvent.USER_UPDATED, AuthEvent.SIGNED_OUT]
        assert await provider.current_user_id() == "user-2"


class TestSupabaseIdentityProvider:
    @pytest.mark.asyncio
    async def test_current_user_id(self):
        client = MagicMock()
        client.auth.get_user.return_value = SimpleNamespace(user=SimpleNamespace(id="user-1"))

        assert await SupabaseIdentityProvider(client).current_user_id() == "user-1"

    @pytest.mark.asyncio
    async def test_no_session_is_signed_out(self):
        client = MagicMock()
        client.auth.get_user.side_effect = RuntimeError("Auth session missing")

        assert await SupabaseIdentityProvider(client).current_user_id() is None

    @pytest.mark.asyncio
    async def test_sign_in_rejected(self):
        client = MagicMock()
        client.auth.sign_in_with_password.side_effect = RuntimeError("Invalid login credentials")

        with pytest.raises(AuthFailure, match="Invalid login credentials"):
            await SupabaseIdentityProvider(client).sign_in_with_password("a@b.c", "wrong")

    @pytest.mark.asyncio
    async def test_bootstrap_signs_in_with_configured_credentials(self, monkeypatch):
        monkeypatch.setattr(identity_module.config, "SUPABASE_EMAIL", "chef@example.com")
        monkeypatch.setattr(identity_module.config, "SUPABASE_PASSWORD", "secret")
        client = MagicMock()
        client.auth.sign_in_with_password.return_value = SimpleNamespace(user=SimpleNamespace(id="user-9"))

        assert await SupabaseIdentityProvider(client).bootstrap() == "user-9"
        client.auth.sign_in_with_password.assert_called_once_with({"email": "chef@example.com", "password": "secret"})

    def test_auth_events_are_translated(self):
        client = MagicMock()
        captured = {}
        subscription = SimpleNamespace(unsubscribe=MagicMock())

        def register(listener):
            captured["listener"] = listener
            return subscription

        client.auth.on_auth_state_change.side_effect = register
        events = []

        unsubscribe = SupabaseIdentityProvider(client).on_auth_change(events.append)
        captured["listener"]("SIGNED_IN", None)
        captured["listener"]("TOKEN_REFRESHED", None)
        captured["listener"](SimpleNamespace(value="SIGNED_OUT"), None)
        unsubscribe()

        assert events == [AuthEvent.SIGNED_IN, AuthEvent.SIGNED_OUT]
        subscription.unsubscribe.assert_called_once()
