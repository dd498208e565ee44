import pytest


def _params(fake_gateway, name):
    return next(params for call, params in fake_gateway.calls if call == name)


def test_create_payment_intent_recomputes_total(client, fake_gateway):
    resp = client.post(
        "/create-payment-intent",
        json={
            "amountCents": 5,
            "currency": "usd",
            "donorEmail": "ada@example.com",
            "donorName": "Ada Lovelace",
            "coverFees": True,
            "metadata": {"base_amount_cents": 1000, "newsletter_opt_in": False},
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"clientSecret": "pi_test_123_secret_abc"}
    params = _params(fake_gateway, "create_payment_intent")
    assert params["amount"] == 1061
    assert params["metadata"]["subscribeToNewsletter"] == "No"


def test_create_payment_intent_without_amount_is_400(client, fake_gateway):
    resp = client.post("/create-payment-intent", json={"currency": "usd"})
    assert resp.status_code == 400
    assert "message" in resp.json()["error"]
    assert fake_gateway.calls == []


def test_create_payment_intent_negative_base_is_400(client):
    resp = client.post("/create-payment-intent", json={"metadata": {"base_amount_cents": -100}})
    # base <= 0 => repli sur amountCents, absent ici
    assert resp.status_code == 400


@pytest.mark.parametrize("base", ["1000.9", "inf", "1e400"])
def test_create_payment_intent_rejects_non_integral_base(client, fake_gateway, base):
    resp = client.post("/create-payment-intent", json={"amountCents": 1000, "metadata": {"base_amount_cents": base}})
    assert resp.status_code == 400
    assert "base_amount_cents" in resp.json()["error"]["message"]
    assert fake_gateway.calls == []


def test_create_payment_intent_processor_error(client, fake_gateway):
    fake_gateway.fail_creations = True
    resp = client.post("/create-payment-intent", json={"amountCents": 1000})
    assert resp.status_code == 400
    assert resp.json() == {"error": {"message": "Your card was declined."}}


def test_invalid_body_is_400_not_422(client):
    resp = client.post("/create-subscription", json={"customerId": "cus_1"})
    assert resp.status_code == 400
    assert "paymentMethodId" in resp.json()["error"]["message"]


def test_create_setup_intent(client, fake_gateway):
    resp = client.post("/create-setup-intent", json={"donorEmail": "ada@example.com"})
    assert resp.status_code == 200
    assert resp.json() == {"clientSecret": "seti_test_123_secret_abc", "customerId": "cus_test_123"}


def test_create_subscription(client, fake_gateway):
    resp = client.post(
        "/create-subscription",
        json={
            "customerId": "cus_1",
            "paymentMethodId": "pm_1",
            "amountCents": 2000,
            "currency": "usd",
            "interval": "month",
            "metadata": {"first_name": "Ada", "last_name": "Lovelace"},
        },
    )
    assert resp.status_code == 200
    assert resp.json() == {"subscriptionId": "sub_test_123", "status": "active"}
    assert fake_gateway.call_names() == ["attach_payment_method", "set_default_payment_method", "create_subscription"]


def test_create_checkout_session(client, fake_gateway):
    resp = client.post(
        "/create-checkout-session",
        json={"amount": 5000, "frequency": "monthly", "donorInfo": {"firstName": "Ada", "lastName": "Lovelace"}},
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": "cs_test_123", "url": "https://checkout.stripe.test/cs_test_123"}
    params = _params(fake_gateway, "create_checkout_session")
    assert params["success_url"] == "https://donate.example.org/thank-you.html?name=Ada%20Lovelace&amount=50.00"
    assert "customer_email" not in params


def test_create_checkout_session_error_legacy_shape(client, fake_gateway):
    fake_gateway.fail_creations = True
    resp = client.post("/create-checkout-session", json={"amount": 5000, "donorInfo": {}})
    assert resp.status_code == 500
    assert resp.json() == {"error": "Your card was declined."}
