"""
Adaptateur Stripe: centralise les appels et la vérification des webhooks.

La clé secrète est portée par l'instance (issue de Settings) et passée à chaque
appel via `api_key=`: aucun état global `stripe.api_key` n'est modifié.
"""
import json
import logging
from typing import Any, Callable, Dict, Optional

import stripe

from donation_relay.config import Settings
from donation_relay.errors import AuthenticityError, EnrichmentLookupError, GatewayError

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str) -> Any:
    # Objets Stripe (attributs) ou dicts (tests, anciennes versions du SDK)
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _as_dict(obj: Any) -> Dict[str, Any]:
    if not obj:
        return {}
    if isinstance(obj, dict):
        return dict(obj)
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def _error_message(e: Exception) -> str:
    return getattr(e, "user_message", None) or str(e) or type(e).__name__


def verify_event(payload: bytes, sig_header: Optional[str], secret: str, tolerance: int = 300) -> Dict[str, Any]:
    """
    Vérifie la signature Stripe sur le body BRUT puis décode le JSON.
    - payload: octets exacts reçus (jamais un body re-sérialisé)
    - sig_header: en-tête Stripe-Signature ("t=...,v1=...")
    Retour: l'événement sous forme de dict JSON.
    Erreurs: AuthenticityError (secret absent, en-tête absent/malformé, signature invalide,
    horodatage hors tolérance, payload non JSON).
    """
    if not secret:
        raise AuthenticityError("STRIPE_WEBHOOK_SECRET manquant")
    if not sig_header:
        raise AuthenticityError("No stripe-signature header value was provided.")
    try:
        text = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AuthenticityError("Invalid payload encoding") from e
    try:
        stripe.WebhookSignature.verify_header(text, sig_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise AuthenticityError(_error_message(e)) from e
    try:
        event = json.loads(text)
    except ValueError as e:
        raise AuthenticityError("Invalid payload") from e
    if not isinstance(event, dict):
        raise AuthenticityError("Invalid payload")
    return event


class StripeGateway:
    """
    Passerelle vers les API Stripe utilisées par le relais:
    - créations (Checkout Session, PaymentIntent, SetupIntent, Subscription) -> GatewayError
    - lookups d'enrichissement (abonnement, client) -> EnrichmentLookupError
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "StripeGateway":
        return cls(api_key=settings.stripe_secret_key)

    def _require_key(self, error_cls=GatewayError) -> None:
        if not self.api_key:
            raise error_cls("STRIPE_SECRET_KEY manquant")

    def _create(self, fn: Callable[..., Any], *args: Any, **params: Any) -> Any:
        self._require_key()
        try:
            return fn(*args, api_key=self.api_key, **params)
        except stripe.StripeError as e:
            raise GatewayError(_error_message(e)) from e

    # --- Créations ---
    def create_checkout_session(self, **params: Any) -> Dict[str, Any]:
        session = self._create(stripe.checkout.Session.create, **params)
        return {"id": _field(session, "id"), "url": _field(session, "url")}

    def create_payment_intent(self, **params: Any) -> Dict[str, Any]:
        pi = self._create(stripe.PaymentIntent.create, **params)
        return {"id": _field(pi, "id"), "client_secret": _field(pi, "client_secret")}

    def create_customer(self, **params: Any) -> Dict[str, Any]:
        customer = self._create(stripe.Customer.create, **params)
        return {"id": _field(customer, "id")}

    def create_setup_intent(self, **params: Any) -> Dict[str, Any]:
        si = self._create(stripe.SetupIntent.create, **params)
        return {"id": _field(si, "id"), "client_secret": _field(si, "client_secret")}

    def attach_payment_method(self, payment_method_id: str, customer_id: str) -> None:
        self._create(stripe.PaymentMethod.attach, payment_method_id, customer=customer_id)

    def set_default_payment_method(self, customer_id: str, payment_method_id: str) -> None:
        self._create(
            stripe.Customer.modify,
            customer_id,
            invoice_settings={"default_payment_method": payment_method_id},
        )

    def create_subscription(self, **params: Any) -> Dict[str, Any]:
        sub = self._create(stripe.Subscription.create, **params)
        return {"id": _field(sub, "id"), "status": _field(sub, "status")}

    # --- Lookups (webhook facture) ---
    def retrieve_subscription(self, subscription_id: str) -> Dict[str, Any]:
        """Retourne {"metadata": {...}, "customer": "<cus_id>" | None}."""
        self._require_key(EnrichmentLookupError)
        try:
            sub = stripe.Subscription.retrieve(subscription_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise EnrichmentLookupError(f"subscription {subscription_id}: {_error_message(e)}") from e
        customer = _field(sub, "customer")
        customer_id = _field(customer, "id") if customer is not None and not isinstance(customer, str) else customer
        return {"metadata": _as_dict(_field(sub, "metadata")), "customer": customer_id or None}

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]:
        self._require_key(EnrichmentLookupError)
        try:
            customer = stripe.Customer.retrieve(customer_id, api_key=self.api_key)
        except stripe.StripeError as e:
            raise EnrichmentLookupError(f"customer {customer_id}: {_error_message(e)}") from e
        return _field(customer, "email") or None
