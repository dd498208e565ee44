import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from donation_relay.config import Settings
from donation_relay.errors import AuthenticityError
from donation_relay.payments import service as payments_service
from donation_relay.payments import stripe_client
from donation_relay.payments.schemas import (
    CheckoutSessionRequest,
    PaymentIntentRequest,
    SetupIntentRequest,
    SubscriptionRequest,
)
from donation_relay.payments.stripe_client import StripeGateway
from donation_relay.utils.rate_limit import optional_rate_limit
from donation_relay.webhooks.dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Donations"])

creation_rate_limit = Depends(optional_rate_limit(times=10, seconds=60))


# Dépendances: objets construits une fois dans create_app() et posés sur app.state
def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return request.app.state.dispatcher


# module donation_relay.payments.views
@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    settings: Settings = Depends(get_settings),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    """
    Webhook Stripe: vérifie la signature sur le body brut puis dispatch l'événement.
    - 400 "Webhook Error: ..." si la signature est invalide (aucun effet de bord)
    - 200 vide une fois la classification et les envois tentés (même en cas d'échec e-mail)
    - 500 vide sur erreur inattendue (détail uniquement dans les logs)
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        raw_event = stripe_client.verify_event(
            payload,
            sig_header,
            settings.stripe_webhook_secret,
            settings.stripe_webhook_tolerance,
        )
    except AuthenticityError as e:
        logger.warning("webhook.signature verification failed: %s", e.message)
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)

    logger.info("webhook.received type=%s id=%s", raw_event.get("type"), raw_event.get("id"))
    try:
        await dispatcher.dispatch(raw_event)
    except Exception:
        logger.exception("webhook.handler error id=%s", raw_event.get("id"))
        return Response(status_code=500)
    return Response(status_code=200)


@router.post("/create-checkout-session", dependencies=[creation_rate_limit])
def create_checkout_session(
    body: CheckoutSessionRequest,
    settings: Settings = Depends(get_settings),
    gateway: StripeGateway = Depends(get_gateway),
) -> Dict[str, Any]:
    """Ancien flux Checkout hébergé: renvoie {id, url}; 500 {error} en cas d'échec."""
    return payments_service.create_checkout_session(
        gateway,
        body,
        frontend_base_url=settings.frontend_base_url,
        currency=settings.currency,
    )


@router.post("/create-payment-intent", dependencies=[creation_rate_limit])
def create_payment_intent(body: PaymentIntentRequest, gateway: StripeGateway = Depends(get_gateway)) -> Dict[str, Any]:
    """Don ponctuel (Elements): renvoie {clientSecret}; total recalculé côté serveur."""
    return payments_service.create_payment_intent(gateway, body)


@router.post("/create-setup-intent", dependencies=[creation_rate_limit])
def create_setup_intent(body: SetupIntentRequest, gateway: StripeGateway = Depends(get_gateway)) -> Dict[str, Any]:
    return payments_service.create_setup_intent(gateway, body)


@router.post("/create-subscription", dependencies=[creation_rate_limit])
def create_subscription(body: SubscriptionRequest, gateway: StripeGateway = Depends(get_gateway)) -> Dict[str, Any]:
    return payments_service.create_subscription(gateway, body)
