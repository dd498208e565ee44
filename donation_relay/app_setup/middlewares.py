"""
Middlewares transverses de l'application.
- register_request_logging_middleware: trace "METHOD path ← Origin" (préflights compris)
- register_security_middleware: en-têtes de sécurité de base sur toutes les réponses
- register_cors_middleware: liste blanche d'origines; les en-têtes demandés en préflight
  sont renvoyés tels quels (allow_headers=["*"])
Notes:
- L'ordre d'ajout est important: CORS est ajouté en dernier pour s'exécuter en premier.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from donation_relay.config import Settings

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE", "OPTIONS"]


def register_request_logging_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info("%s %s  ← Origin: %s", request.method, request.url.path, request.headers.get("origin") or "n/a")
        return await call_next(request)


def register_security_middleware(app: FastAPI) -> None:
    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response


def register_cors_middleware(app: FastAPI, settings: Settings) -> None:
    """
    Origines autorisées: settings.cors_origins (CORS_ORIGINS).
    - Requêtes sans en-tête Origin: servies normalement
    - Préflight d'une origine hors liste: 400, sans en-têtes Access-Control-*
    """
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
    )
