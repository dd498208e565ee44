"""
Cas d'usage 'payments': prépare les paramètres Stripe et délègue au StripeGateway.
"""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict
from urllib.parse import quote

from donation_relay.errors import AmountValidationError, GatewayError
from donation_relay.payments import metadata as meta
from donation_relay.payments.fees import compute_gross_cents
from donation_relay.payments.schemas import (
    CheckoutSessionRequest,
    PaymentIntentRequest,
    SetupIntentRequest,
    SubscriptionRequest,
)
from donation_relay.payments.stripe_client import StripeGateway

logger = logging.getLogger(__name__)

SETUP_INTENT_PAYMENT_METHODS = ["card", "link", "us_bank_account"]
# Plafond Stripe pour un montant USD (999 999,99 $)
MAX_AMOUNT_CENTS = 99_999_999


def _dollars(amount_cents: int) -> str:
    dollars, cents = divmod(int(amount_cents), 100)
    return f"{dollars}.{cents:02d}"


def create_checkout_session(
    gateway: StripeGateway,
    body: CheckoutSessionRequest,
    *,
    frontend_base_url: str,
    currency: str = "usd",
) -> Dict[str, Any]:
    """
    Ancien flux Stripe Checkout (page hébergée).
    - mode "subscription" si frequency == "monthly", sinon "payment"
    - success_url: /thank-you.html?name=<nom encodé>&amount=<dollars>
    Erreurs: GatewayError 500 avec corps {"error": "..."} (contrat historique du front)
    """
    monthly = body.frequency == "monthly"
    info = body.donor_info
    donor_name = info.full_name
    product_data: Dict[str, Any] = {"name": "Monthly Donation" if monthly else "One-Time Donation"}
    if info.dedication_text:
        product_data["description"] = info.dedication_text
    price_data: Dict[str, Any] = {
        "currency": currency,
        "product_data": product_data,
        "unit_amount": body.amount,
    }
    if monthly:
        price_data["recurring"] = {"interval": "month"}

    params: Dict[str, Any] = {
        "payment_method_types": ["card"],
        "mode": "subscription" if monthly else "payment",
        "line_items": [{"price_data": price_data, "quantity": 1}],
        "success_url": (
            f"{frontend_base_url}/thank-you.html?name={quote(donor_name, safe='')}&amount={_dollars(body.amount)}"
        ),
        "cancel_url": f"{frontend_base_url}/donation-cancelled",
        "metadata": meta.checkout_metadata(donor_name, info.model_dump(by_alias=True), body.frequency),
    }
    if info.donor_email:
        params["customer_email"] = info.donor_email
    try:
        session = gateway.create_checkout_session(**params)
    except GatewayError as e:
        raise GatewayError(e.message, status_code=500, legacy_body=True) from e
    logger.info("payments.checkout_session created id=%s mode=%s", session.get("id"), params["mode"])
    return {"id": session.get("id"), "url": session.get("url")}


def _parse_base_cents(raw_base: Any) -> int:
    """
    metadata.base_amount_cents tel qu'envoyé par le front (nombre ou chaîne).
    - absent / vide => 0 (repli sur amountCents)
    - non numérique, non fini ou non entier => AmountValidationError (jamais tronqué)
    """
    if raw_base is None or raw_base == "":
        return 0
    if isinstance(raw_base, bool):
        raise AmountValidationError(f"base_amount_cents invalide: {raw_base!r}")
    try:
        value = Decimal(str(raw_base).strip())
    except (InvalidOperation, ValueError) as e:
        raise AmountValidationError(f"base_amount_cents invalide: {raw_base!r}") from e
    if not value.is_finite() or value != value.to_integral_value():
        raise AmountValidationError(f"base_amount_cents doit être un entier (reçu: {raw_base!r})")
    if value > MAX_AMOUNT_CENTS:
        raise AmountValidationError(f"base_amount_cents dépasse le maximum autorisé ({MAX_AMOUNT_CENTS})")
    return int(value)


def resolve_payment_intent_total(body: PaymentIntentRequest) -> int:
    """
    Montant à débiter: recalculé côté serveur depuis metadata.base_amount_cents
    (le client ne peut pas imposer le total); sinon amountCents tel quel.
    """
    base = _parse_base_cents(body.metadata.get("base_amount_cents"))
    if base > 0:
        return compute_gross_cents(base, body.cover_fees)
    if body.amount_cents is None:
        raise AmountValidationError("amountCents ou metadata.base_amount_cents requis")
    return compute_gross_cents(body.amount_cents, False)


def create_payment_intent(gateway: StripeGateway, body: PaymentIntentRequest) -> Dict[str, Any]:
    total_cents = resolve_payment_intent_total(body)
    params: Dict[str, Any] = {
        "amount": total_cents,
        "currency": body.currency,
        "automatic_payment_methods": {"enabled": True},
        "metadata": meta.intent_metadata(body.donor_name, body.metadata, "one_time"),
    }
    if body.donor_email:
        params["receipt_email"] = body.donor_email
    pi = gateway.create_payment_intent(**params)
    logger.info("payments.payment_intent created id=%s amount=%s cover_fees=%s", pi.get("id"), total_cents, body.cover_fees)
    return {"clientSecret": pi.get("client_secret")}


def create_setup_intent(gateway: StripeGateway, body: SetupIntentRequest) -> Dict[str, Any]:
    """Début du flux mensuel: client Stripe + SetupIntent pour enregistrer le moyen de paiement."""
    customer_params: Dict[str, Any] = {}
    if body.donor_email:
        customer_params["email"] = body.donor_email
    customer = gateway.create_customer(**customer_params)
    si = gateway.create_setup_intent(customer=customer["id"], payment_method_types=SETUP_INTENT_PAYMENT_METHODS)
    logger.info("payments.setup_intent created customer=%s", customer["id"])
    return {"clientSecret": si.get("client_secret"), "customerId": customer["id"]}


def create_subscription(gateway: StripeGateway, body: SubscriptionRequest) -> Dict[str, Any]:
    """
    Attache le moyen de paiement, le définit par défaut, puis crée l'abonnement.
    Les métadonnées donateur sont posées sur l'abonnement: les factures n'en portent pas.
    """
    gateway.attach_payment_method(body.payment_method_id, body.customer_id)
    gateway.set_default_payment_method(body.customer_id, body.payment_method_id)
    donor_name = meta.subscription_donor_name(body.metadata)
    sub = gateway.create_subscription(
        customer=body.customer_id,
        items=[
            {
                "price_data": {
                    "currency": body.currency,
                    "product_data": {"name": "Monthly Donation"},
                    "recurring": {"interval": body.interval},
                    "unit_amount": body.amount_cents,
                }
            }
        ],
        metadata=meta.intent_metadata(donor_name, body.metadata, "monthly"),
        expand=["latest_invoice.payment_intent"],
    )
    logger.info("payments.subscription created id=%s status=%s", sub.get("id"), sub.get("status"))
    return {"subscriptionId": sub.get("id"), "status": sub.get("status")}
