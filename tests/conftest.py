import hashlib
import hmac
import json
import os
import time
from typing import Any, Dict, Generator, List, Optional

# Avant tout import de l'app: pas de Redis en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from fastapi.testclient import TestClient

from donation_relay.app import create_app
from donation_relay.config import Settings
from donation_relay.errors import EnrichmentLookupError, GatewayError
from donation_relay.notifications import NotificationComposer, NotificationMessage, SendResult
from donation_relay.webhooks.dispatcher import WebhookDispatcher

WEBHOOK_SECRET = "whsec_test_secret"
INTERNAL = ("ops@example.org", "board@example.org")


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)
        elif "/functional/" in nodeid:
            item.add_marker(pytest.mark.functional)


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature valide pour `payload` (schéma v1)."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def make_event(event_type: str, obj: Dict[str, Any], event_id: str = "evt_test_1") -> Dict[str, Any]:
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}


class FakeTransport:
    """Enregistre les messages; `fail_kinds` => SendResult en échec, `raise_kinds` => exception."""

    def __init__(self):
        self.sent: List[NotificationMessage] = []
        self.fail_kinds = set()
        self.raise_kinds = set()

    async def send(self, message: NotificationMessage) -> SendResult:
        self.sent.append(message)
        if message.kind in self.raise_kinds:
            raise RuntimeError(f"{message.kind} transport down")
        if message.kind in self.fail_kinds:
            return SendResult(kind=message.kind, ok=False, error="SendGrid HTTP 500")
        return SendResult(kind=message.kind, ok=True, status_code=202)

    def by_kind(self, kind: str) -> List[NotificationMessage]:
        return [m for m in self.sent if m.kind == kind]


class FakeGateway:
    """Remplace StripeGateway: lookups configurables, créations enregistrées."""

    def __init__(self):
        self.subscriptions: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Optional[str]] = {}
        self.failing_lookups = set()
        self.calls: List[tuple] = []
        self.fail_creations = False

    # lookups
    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        self.calls.append(("retrieve_subscription", subscription_id))
        if "subscription" in self.failing_lookups or subscription_id not in self.subscriptions:
            raise EnrichmentLookupError(f"subscription {subscription_id}: No such subscription")
        return self.subscriptions[subscription_id]

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]:
        self.calls.append(("retrieve_customer_email", customer_id))
        if "customer" in self.failing_lookups:
            raise EnrichmentLookupError(f"customer {customer_id}: No such customer")
        return self.customers.get(customer_id)

    # créations
    def _record(self, name: str, params: Dict[str, Any]) -> None:
        self.calls.append((name, params))
        if self.fail_creations:
            raise GatewayError("Your card was declined.")

    def create_checkout_session(self, **params):
        self._record("create_checkout_session", params)
        return {"id": "cs_test_123", "url": "https://checkout.stripe.test/cs_test_123"}

    def create_payment_intent(self, **params):
        self._record("create_payment_intent", params)
        return {"id": "pi_test_123", "client_secret": "pi_test_123_secret_abc"}

    def create_customer(self, **params):
        self._record("create_customer", params)
        return {"id": "cus_test_123"}

    def create_setup_intent(self, **params):
        self._record("create_setup_intent", params)
        return {"id": "seti_test_123", "client_secret": "seti_test_123_secret_abc"}

    def attach_payment_method(self, payment_method_id, customer_id):
        self._record("attach_payment_method", {"payment_method": payment_method_id, "customer": customer_id})

    def set_default_payment_method(self, customer_id, payment_method_id):
        self._record("set_default_payment_method", {"customer": customer_id, "payment_method": payment_method_id})

    def create_subscription(self, **params):
        self._record("create_subscription", params)
        return {"id": "sub_test_123", "status": "active"}

    def call_names(self) -> List[str]:
        return [c[0] for c in self.calls]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret=WEBHOOK_SECRET,
        sendgrid_api_key="SG.test",
        frontend_base_url="https://donate.example.org",
        internal_emails=INTERNAL,
        environment="development",
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def composer(settings) -> NotificationComposer:
    return NotificationComposer.from_settings(settings)


@pytest.fixture
def dispatcher(composer, fake_transport, fake_gateway) -> WebhookDispatcher:
    return WebhookDispatcher(composer=composer, transport=fake_transport, lookup=fake_gateway)


@pytest.fixture
def app(settings, fake_gateway, dispatcher):
    application = create_app(settings)
    application.state.gateway = fake_gateway
    application.state.dispatcher = dispatcher
    return application


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


@pytest.fixture
def post_webhook(client):
    """Poste un événement signé (ou non) sur /webhook avec le body brut exact."""

    def _post(event: Dict[str, Any], signature: Optional[str] = "auto", raw: Optional[bytes] = None):
        body = raw if raw is not None else json.dumps(event).encode("utf-8")
        headers = {"Content-Type": "application/json"}
        if signature == "auto":
            headers["Stripe-Signature"] = sign(body)
        elif signature is not None:
            headers["Stripe-Signature"] = signature
        return client.post("/webhook", content=body, headers=headers)

    return _post
