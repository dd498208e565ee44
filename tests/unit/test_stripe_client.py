import json
import time

import pytest
import stripe

from donation_relay.errors import AuthenticityError, EnrichmentLookupError, GatewayError
from donation_relay.payments.stripe_client import StripeGateway, verify_event
from conftest import WEBHOOK_SECRET, make_event, sign


def _payload(event=None) -> bytes:
    return json.dumps(event or make_event("payment_intent.succeeded", {"id": "pi_1", "amount": 2550})).encode("utf-8")


# --- verify_event ---
def test_verify_event_valid_signature():
    payload = _payload()
    event = verify_event(payload, sign(payload), WEBHOOK_SECRET)
    assert event["type"] == "payment_intent.succeeded"
    assert event["data"]["object"]["amount"] == 2550


def test_verify_event_uses_raw_bytes():
    # Même JSON, autre sérialisation: la signature ne correspond plus
    payload = _payload()
    reserialized = json.dumps(json.loads(payload), indent=2).encode("utf-8")
    with pytest.raises(AuthenticityError):
        verify_event(reserialized, sign(payload), WEBHOOK_SECRET)


def test_verify_event_wrong_secret():
    payload = _payload()
    with pytest.raises(AuthenticityError):
        verify_event(payload, sign(payload, secret="whsec_other"), WEBHOOK_SECRET)


@pytest.mark.parametrize("header", [None, ""])
def test_verify_event_missing_header(header):
    with pytest.raises(AuthenticityError) as exc:
        verify_event(_payload(), header, WEBHOOK_SECRET)
    assert "stripe-signature" in exc.value.message


def test_verify_event_malformed_header():
    with pytest.raises(AuthenticityError):
        verify_event(_payload(), "garbage", WEBHOOK_SECRET)


def test_verify_event_stale_timestamp():
    payload = _payload()
    stale = sign(payload, timestamp=int(time.time()) - 3600)
    with pytest.raises(AuthenticityError):
        verify_event(payload, stale, WEBHOOK_SECRET, tolerance=300)


def test_verify_event_without_configured_secret():
    payload = _payload()
    with pytest.raises(AuthenticityError):
        verify_event(payload, sign(payload), "")


def test_verify_event_signed_non_object_json():
    payload = b"[1, 2, 3]"
    with pytest.raises(AuthenticityError):
        verify_event(payload, sign(payload), WEBHOOK_SECRET)


# --- StripeGateway ---
def test_retrieve_subscription_normalizes(monkeypatch):
    seen = {}

    def fake_retrieve(sub_id, **kwargs):
        seen["id"] = sub_id
        seen["api_key"] = kwargs.get("api_key")
        return {"id": sub_id, "customer": "cus_1", "metadata": {"donor_name": "Ada"}}

    monkeypatch.setattr(stripe.Subscription, "retrieve", fake_retrieve)
    sub = StripeGateway("sk_test_abc").retrieve_subscription("sub_1")
    assert sub == {"metadata": {"donor_name": "Ada"}, "customer": "cus_1"}
    assert seen == {"id": "sub_1", "api_key": "sk_test_abc"}


def test_retrieve_subscription_with_expanded_customer(monkeypatch):
    monkeypatch.setattr(
        stripe.Subscription,
        "retrieve",
        lambda sub_id, **kw: {"customer": {"id": "cus_9", "email": "x@example.com"}, "metadata": None},
    )
    assert StripeGateway("sk_test_abc").retrieve_subscription("sub_1") == {"metadata": {}, "customer": "cus_9"}


def test_retrieve_subscription_error_becomes_lookup_error(monkeypatch):
    def boom(sub_id, **kwargs):
        raise stripe.InvalidRequestError("No such subscription: 'sub_x'", "id")

    monkeypatch.setattr(stripe.Subscription, "retrieve", boom)
    with pytest.raises(EnrichmentLookupError) as exc:
        StripeGateway("sk_test_abc").retrieve_subscription("sub_x")
    assert "sub_x" in exc.value.message


def test_retrieve_customer_email(monkeypatch):
    monkeypatch.setattr(stripe.Customer, "retrieve", lambda cus_id, **kw: {"id": cus_id, "email": "ada@example.com"})
    assert StripeGateway("sk_test_abc").retrieve_customer_email("cus_1") == "ada@example.com"


def test_lookup_without_key_raises_lookup_error():
    with pytest.raises(EnrichmentLookupError):
        StripeGateway("").retrieve_customer_email("cus_1")


def test_create_payment_intent_passes_api_key(monkeypatch):
    seen = {}

    def fake_create(**params):
        seen.update(params)
        return {"id": "pi_1", "client_secret": "pi_1_secret"}

    monkeypatch.setattr(stripe.PaymentIntent, "create", fake_create)
    out = StripeGateway("sk_test_abc").create_payment_intent(amount=1061, currency="usd")
    assert out == {"id": "pi_1", "client_secret": "pi_1_secret"}
    assert seen["api_key"] == "sk_test_abc"
    assert seen["amount"] == 1061


def test_create_error_becomes_gateway_error(monkeypatch):
    def declined(**params):
        raise stripe.CardError("Your card was declined.", "card", "card_declined")

    monkeypatch.setattr(stripe.PaymentIntent, "create", declined)
    with pytest.raises(GatewayError) as exc:
        StripeGateway("sk_test_abc").create_payment_intent(amount=1000, currency="usd")
    assert exc.value.status_code == 400
    assert exc.value.message == "Your card was declined."


def test_create_without_key_raises_gateway_error():
    with pytest.raises(GatewayError):
        StripeGateway("").create_customer(email="a@example.com")


def test_set_default_payment_method(monkeypatch):
    seen = {}

    def fake_modify(customer_id, **params):
        seen["customer"] = customer_id
        seen.update(params)
        return {"id": customer_id}

    monkeypatch.setattr(stripe.Customer, "modify", fake_modify)
    StripeGateway("sk_test_abc").set_default_payment_method("cus_1", "pm_1")
    assert seen["customer"] == "cus_1"
    assert seen["invoice_settings"] == {"default_payment_method": "pm_1"}
