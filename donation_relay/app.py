# module donation_relay.app
from typing import Optional

from fastapi import FastAPI

from donation_relay.app_setup.exceptions import register_exception_handlers
from donation_relay.app_setup.lifespan import lifespan
from donation_relay.app_setup.middlewares import (
    register_cors_middleware,
    register_request_logging_middleware,
    register_security_middleware,
)
from donation_relay.app_setup.routers import register_routers
from donation_relay.app_setup.routes import register_routes
from donation_relay.config import Settings
from donation_relay.notifications import NotificationComposer, SendGridTransport
from donation_relay.payments.stripe_client import StripeGateway
from donation_relay.webhooks.dispatcher import WebhookDispatcher


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Crée et configure l'instance FastAPI du relais de dons.
    Étapes et ordre:
      1) Settings (explicites ou lus depuis l'environnement) + collaborateurs
         (StripeGateway, NotificationComposer, SendGridTransport, WebhookDispatcher)
         posés sur app.state, injectés dans les vues via Depends.
      2) middlewares: logs de requêtes, en-têtes de sécurité, puis CORS (ajouté en dernier
         pour s'exécuter en premier, préflights compris).
      3) gestionnaires d'exceptions, route de liveness, routers.
    """
    settings = settings or Settings.from_env()
    app = FastAPI(title="Donation Relay", lifespan=lifespan)

    gateway = StripeGateway.from_settings(settings)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.dispatcher = WebhookDispatcher(
        composer=NotificationComposer.from_settings(settings),
        transport=SendGridTransport.from_settings(settings),
        lookup=gateway,
    )

    register_request_logging_middleware(app)
    register_security_middleware(app)
    register_cors_middleware(app, settings)
    register_exception_handlers(app)
    register_routes(app)
    register_routers(app)
    return app


# App globale
app = create_app()
