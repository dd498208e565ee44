"""
Dispatcher du webhook Stripe.

Entrée: événement déjà vérifié (dict JSON). Étapes:
  1) classification (webhooks.events.parse_webhook_event)
  2) extraction d'un DonationEvent (avec lookups abonnement/client pour les factures)
  3) composition des messages donateur + interne
  4) envois concurrents, chacun avec son SendResult; un échec n'empêche pas l'autre

Pas de déduplication: une même livraison rejouée produit de nouveaux envois.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol

from starlette.concurrency import run_in_threadpool

from donation_relay.errors import EnrichmentLookupError
from donation_relay.notifications import NotificationComposer, NotificationMessage, SendResult
from donation_relay.webhooks.events import (
    CheckoutSessionCompleted,
    DonationEvent,
    IgnoredEvent,
    InvoicePaymentSucceeded,
    PaymentIntentSucceeded,
    parse_webhook_event,
)

logger = logging.getLogger(__name__)


class SubscriptionLookup(Protocol):
    def retrieve_subscription(self, subscription_id: str) -> Mapping[str, Any]: ...

    def retrieve_customer_email(self, customer_id: str) -> Optional[str]: ...


class MessageTransport(Protocol):
    async def send(self, message: NotificationMessage) -> SendResult: ...


@dataclass
class DispatchReport:
    """Résultat observable d'une livraison (utilisé par les logs et les tests)."""

    event_type: str
    event_id: str = ""
    outcome: str = "ignored"  # ignored | skipped_invoice_payment | notified
    donation: Optional[DonationEvent] = None
    results: List[SendResult] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)


class WebhookDispatcher:
    def __init__(
        self,
        composer: NotificationComposer,
        transport: Optional[MessageTransport],
        lookup: SubscriptionLookup,
    ):
        self.composer = composer
        self.transport = transport
        self.lookup = lookup

    async def dispatch(self, raw_event: Mapping[str, Any]) -> DispatchReport:
        event = parse_webhook_event(raw_event)
        report = DispatchReport(event_type=event.type, event_id=event.id)

        if isinstance(event, IgnoredEvent):
            logger.info("webhook.ignored type=%s id=%s", event.type, event.id)
            return report

        if isinstance(event, PaymentIntentSucceeded) and event.belongs_to_invoice:
            # Notifié par invoice.payment_succeeded (évite le double envoi)
            logger.info("webhook.skip payment_intent=%s invoice=%s", event.object.id, event.object.invoice_id)
            report.outcome = "skipped_invoice_payment"
            return report

        if isinstance(event, InvoicePaymentSucceeded):
            donation = await self._invoice_donation(event)
        else:
            donation = event.to_donation()

        report.outcome = "notified"
        report.donation = donation
        report.results = await self.notify(donation)
        logger.info(
            "webhook.handled type=%s id=%s amount=%s frequency=%s sent=%s failed=%s",
            event.type,
            event.id,
            donation.amount_cents,
            donation.frequency,
            report.attempted - report.failed,
            report.failed,
        )
        return report

    async def _invoice_donation(self, event: InvoicePaymentSucceeded) -> DonationEvent:
        """
        Les factures ne portent ni nom ni dédicace: on relit l'abonnement, puis le client
        si aucun e-mail n'est connu. Un lookup en échec n'interrompt jamais la notification.
        """
        invoice = event.object
        donor_email = invoice.customer_email or None
        metadata: Mapping[str, Any] = {}
        subscription_id = invoice.subscription_id
        if subscription_id:
            try:
                sub = await run_in_threadpool(self.lookup.retrieve_subscription, subscription_id)
            except EnrichmentLookupError as e:
                logger.warning("webhook.enrichment subscription failed invoice=%s: %s", invoice.id, e.message)
                sub = None
            if sub is not None:
                metadata = sub.get("metadata") or {}
                customer_id = sub.get("customer")
                if not donor_email and customer_id:
                    try:
                        donor_email = await run_in_threadpool(self.lookup.retrieve_customer_email, customer_id)
                    except EnrichmentLookupError as e:
                        logger.warning("webhook.enrichment customer failed invoice=%s: %s", invoice.id, e.message)
        return event.to_donation(metadata=metadata, donor_email=donor_email)

    async def notify(self, donation: DonationEvent) -> List[SendResult]:
        messages = [
            m
            for m in (
                self.composer.compose_donor_message(donation),
                self.composer.compose_internal_message(donation),
            )
            if m is not None
        ]
        if not messages:
            return []
        if self.transport is None:
            logger.info("webhook.notify skipped: SENDGRID_API_KEY absent (%s message(s))", len(messages))
            return []
        # Les deux envois partent ensemble et sont attendus avant la réponse HTTP
        return list(await asyncio.gather(*(self._send(m) for m in messages)))

    async def _send(self, message: NotificationMessage) -> SendResult:
        try:
            return await self.transport.send(message)
        except Exception as e:
            # Un transport défaillant ne doit pas faire échouer l'autre message
            logger.exception("webhook.notify %s message failed", message.kind)
            return SendResult(kind=message.kind, ok=False, error=f"{type(e).__name__}: {e}")
