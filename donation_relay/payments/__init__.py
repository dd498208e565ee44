"""
Module 'payments' (feature-first): point d'entrée public.
Réunit calcul des frais, métadonnées donateur, client Stripe et cas d'usage de création.
"""

from .fees import compute_gross_cents
from .metadata import intent_metadata, checkout_metadata, newsletter_flag
from .stripe_client import StripeGateway, verify_event
from .service import (
    create_checkout_session,
    create_payment_intent,
    create_setup_intent,
    create_subscription,
    resolve_payment_intent_total,
)

__all__ = [
    # fees
    "compute_gross_cents",
    # metadata
    "intent_metadata",
    "checkout_metadata",
    "newsletter_flag",
    # stripe
    "StripeGateway",
    "verify_event",
    # services
    "create_checkout_session",
    "create_payment_intent",
    "create_setup_intent",
    "create_subscription",
    "resolve_payment_intent_total",
]
