# module donation_relay.config
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du relais de dons.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise les secrets (Stripe, SendGrid), les destinataires internes et la liste CORS
- Construit un objet Settings immuable, créé une seule fois au démarrage et
  transmis explicitement (app.state.settings) aux vues et au dispatcher
"""

DEFAULT_FRONTEND_BASE_URL = "https://gray-bay-02034850f.2.azurestaticapps.net"
DEFAULT_FROM_EMAIL = "bridgesdonations@bridgestowork.org"
DEFAULT_ORG_NAME = "Bridges to Work"
DEFAULT_CORS_ORIGINS = (
    "https://gray-bay-02034850f.2.azurestaticapps.net",  # prod SWA
    "https://donate.bridgestowork.org",  # prod domaine
    "https://gentle-water-04760d20f.1.azurestaticapps.net",  # SWA de test
    "http://localhost:8080",
    "http://127.0.0.1:8080",
    "http://localhost:8081",
    "http://127.0.0.1:8081",
    "http://localhost:5500",
)


def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")


def split_csv(raw: str) -> List[str]:
    """Découpe une liste séparée par des virgules (trim, entrées vides retirées)."""
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def _int_env(name: str, default: int) -> int:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return int(raw) if raw else default
    except ValueError:
        raise ValueError(f"{name} doit être un entier (reçu: {raw!r})")


def _float_env(name: str, default: float) -> float:
    raw = _clean_env(os.getenv(name) or "")
    try:
        return float(raw) if raw else default
    except ValueError:
        raise ValueError(f"{name} doit être un nombre (reçu: {raw!r})")


@dataclass(frozen=True)
class Settings:
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300
    sendgrid_api_key: str = ""
    frontend_base_url: str = DEFAULT_FRONTEND_BASE_URL
    internal_emails: Tuple[str, ...] = ()
    from_email: str = DEFAULT_FROM_EMAIL
    org_name: str = DEFAULT_ORG_NAME
    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    port: int = 4242
    environment: str = "development"
    email_timeout_sec: float = 10.0
    currency: str = field(default="usd")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def email_sandbox(self) -> bool:
        """Hors production, SendGrid reçoit sandbox_mode (aucune livraison réelle)."""
        return not self.is_production

    @property
    def email_enabled(self) -> bool:
        return bool(self.sendgrid_api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Lit l'environnement (déjà enrichi par .env) et retourne un Settings.
        - APP_ENV prioritaire, NODE_ENV accepté pour compatibilité des déploiements existants
        - FRONTEND_BASE_URL sans slash final
        """
        frontend = _clean_env(os.getenv("FRONTEND_BASE_URL") or "") or DEFAULT_FRONTEND_BASE_URL
        origins = split_csv(_clean_env(os.getenv("CORS_ORIGINS") or ""))
        return cls(
            stripe_secret_key=_clean_env(os.getenv("STRIPE_SECRET_KEY") or ""),
            stripe_webhook_secret=_clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or ""),
            stripe_webhook_tolerance=_int_env("STRIPE_WEBHOOK_TOLERANCE", 300),
            sendgrid_api_key=_clean_env(os.getenv("SENDGRID_API_KEY") or ""),
            frontend_base_url=frontend.rstrip("/"),
            internal_emails=tuple(split_csv(os.getenv("INTERNAL_EMAILS") or "")),
            from_email=_clean_env(os.getenv("NOTIFY_FROM_EMAIL") or "") or DEFAULT_FROM_EMAIL,
            org_name=_clean_env(os.getenv("ORG_NAME") or "") or DEFAULT_ORG_NAME,
            cors_origins=tuple(origins) if origins else DEFAULT_CORS_ORIGINS,
            port=_int_env("PORT", 4242),
            environment=_clean_env(os.getenv("APP_ENV") or os.getenv("NODE_ENV") or "development"),
            email_timeout_sec=_float_env("EMAIL_TIMEOUT_SEC", 10.0),
        )
