"""Shared fixtures: test settings, a Flask client and fake upstream services."""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest

import app as app_module
import config
import gemini
import supabase_rest

WEBHOOK_SECRET = "whsec_test_secret"
USER = {"id": "0b6c1e8e-1111-4c1a-9a55-3f1d2b7c0001", "email": "ada@example.com"}
TOKEN = "good-token"


@pytest.fixture(autouse=True)
def settings(monkeypatch):
    monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
    monkeypatch.setattr(config, "STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr(config, "STRIPE_PRICE_ID", "price_lifetime")
    monkeypatch.setattr(config, "STRIPE_WEBHOOK_SECRET", WEBHOOK_SECRET)
    monkeypatch.setattr(config, "APP_URL", "https://conceptai.test")
    monkeypatch.setattr(config, "GEMINI_MODEL", "gemini-test")


@pytest.fixture
def client():
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TOKEN}"}


class ProfileStore:
    """In-memory stand-in for the user_profiles table."""

    def __init__(self):
        self.rows = {}
        self.updates = []
        self.paid = []
        self.fail = False

    def get_profile(self, access_token, user_id):
        if self.fail:
            raise supabase_rest.SupabaseError("boom")
        return self.rows.get(user_id)

    def update_profile(self, access_token, user_id, fields):
        if self.fail:
            raise supabase_rest.SupabaseError("boom")
        self.updates.append((user_id, fields))
        self.rows.setdefault(user_id, {"id": user_id}).update(fields)

    def mark_paid(self, user_id):
        if self.fail:
            raise supabase_rest.SupabaseError("boom")
        self.paid.append(user_id)
        self.rows.setdefault(user_id, {"id": user_id})["has_paid"] = True


@pytest.fixture
def store(monkeypatch):
    store = ProfileStore()
    store.rows[USER["id"]] = {
        "id": USER["id"],
        "has_paid": False,
        "gemini_key_verified": False,
        "gemini_api_key": None,
    }

    def get_user(access_token):
        return dict(USER) if access_token == TOKEN else None

    monkeypatch.setattr(supabase_rest, "get_user", get_user)
    monkeypatch.setattr(supabase_rest, "get_profile", store.get_profile)
    monkeypatch.setattr(supabase_rest, "update_profile", store.update_profile)
    monkeypatch.setattr(supabase_rest, "mark_paid", store.mark_paid)
    return store


class FakeGemini:
    """Replaces google.genai.Client; records every prompt it receives."""

    def __init__(self, text="An explanation.", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def __call__(self, api_key):
        self.api_key = api_key
        return self

    @property
    def models(self):
        return self

    def generate_content(self, model, contents, **kwargs):
        self.calls.append({"api_key": self.api_key, "model": model, "contents": contents})
        if self.error:
            raise self.error

        return SimpleNamespace(text=self.text)


@pytest.fixture
def fake_gemini(monkeypatch):
    fake = FakeGemini()
    monkeypatch.setattr(gemini.genai, "Client", fake)
    return fake


def stripe_signature(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp=None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def checkout_event(user_id=USER["id"], event_type="checkout.session.completed") -> bytes:
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": event_type,
        "data": {
            "object": {
                "id": "cs_test_1",
                "object": "checkout.session",
                "client_reference_id": user_id,
                "payment_status": "paid",
                "status": "complete",
            }
        },
    }).encode()
