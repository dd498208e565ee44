"""
Registre central des routers (dons + health).
"""
from fastapi import FastAPI

from donation_relay.health.router import router as health_router
from donation_relay.payments import views as payments_views


def register_routers(app: FastAPI) -> None:
    app.include_router(payments_views.router)
    app.include_router(health_router)
