"""
Transport e-mail: API SendGrid v3 (mail/send) via httpx.

Chaque envoi retourne un SendResult explicite; les erreurs réseau et les
réponses HTTP >= 400 deviennent un NotificationSendError journalisé, jamais
une exception remontée au dispatcher.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from donation_relay.config import Settings
from donation_relay.errors import NotificationSendError
from donation_relay.notifications.models import NotificationMessage, SendResult

logger = logging.getLogger(__name__)

SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


def build_sendgrid_payload(message: NotificationMessage) -> Dict[str, Any]:
    """
    Payload v3: un seul "personalization" avec tous les destinataires (comme sgMail.send
    avec `to` multiple), et mail_settings.sandbox_mode hors production.
    """
    payload: Dict[str, Any] = {
        "personalizations": [{"to": [{"email": r} for r in message.recipients]}],
        "from": {"email": message.sender},
        "subject": message.subject,
        "content": [{"type": "text/html", "value": message.body_html}],
    }
    if message.sandbox:
        payload["mail_settings"] = {"sandbox_mode": {"enable": True}}
    return payload


class SendGridTransport:
    def __init__(
        self,
        api_key: str,
        timeout: float = 10.0,
        api_url: str = SENDGRID_API_URL,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ValueError("SENDGRID_API_KEY est requis")
        self.api_key = api_key
        self.timeout = timeout
        self.api_url = api_url
        # Injection possible d'un httpx.MockTransport (tests)
        self._http_transport = http_transport

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["SendGridTransport"]:
        """None si aucune clé SendGrid: les envois sont alors ignorés (log)."""
        if not settings.email_enabled:
            return None
        return cls(api_key=settings.sendgrid_api_key, timeout=settings.email_timeout_sec)

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport) as client:
                resp = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NotificationSendError(f"{type(e).__name__}: {e}") from e
        if resp.status_code >= 400:
            raise NotificationSendError(f"SendGrid HTTP {resp.status_code}", response_body=resp.text)
        return resp

    async def send(self, message: NotificationMessage) -> SendResult:
        try:
            resp = await self._post(build_sendgrid_payload(message))
        except NotificationSendError as e:
            logger.error(
                "notifications.send failed kind=%s recipients=%s error=%s body=%s",
                message.kind,
                len(message.recipients),
                e.message,
                e.response_body,
            )
            return SendResult(kind=message.kind, ok=False, error=e.message)
        logger.info(
            "notifications.send ok kind=%s recipients=%s status=%s sandbox=%s",
            message.kind,
            len(message.recipients),
            resp.status_code,
            message.sandbox,
        )
        return SendResult(kind=message.kind, ok=True, status_code=resp.status_code)
