from fastapi import APIRouter, Request

from donation_relay.utils.rate_limit import rate_limit_health_info

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
def health_root(request: Request):
    """État de configuration (présence des secrets uniquement, jamais leurs valeurs)."""
    settings = request.app.state.settings
    return {
        "ok": True,
        "stripe_configured": bool(settings.stripe_secret_key),
        "webhook_secret_configured": bool(settings.stripe_webhook_secret),
        "email_enabled": settings.email_enabled,
        "email_sandbox": settings.email_sandbox,
        "internal_recipients": len(settings.internal_emails),
        "rate_limit": rate_limit_health_info(request),
    }
