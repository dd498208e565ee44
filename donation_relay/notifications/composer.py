"""
Composition des e-mails de dons (donateur + équipe interne).

- Le montant est toujours rendu depuis les cents entiers: 2550 -> "$25.50"
- Les valeurs saisies par le donateur sont échappées avant interpolation HTML
- Le composer ne fait aucun envoi: il pose seulement `sandbox` sur le message,
  le transport décide de la livraison réelle
"""
from html import escape
from typing import Iterable, Optional, Tuple

from donation_relay.config import Settings
from donation_relay.notifications.models import NotificationMessage
from donation_relay.webhooks.events import DonationEvent


def format_amount(amount_cents: int) -> str:
    """Montant en dollars, deux décimales, sans passer par un float."""
    sign = "-" if amount_cents < 0 else ""
    dollars, cents = divmod(abs(int(amount_cents)), 100)
    return f"{sign}${dollars}.{cents:02d}"


def newsletter_label(value: Optional[str]) -> str:
    # Seule la valeur exacte "Yes" vaut opt-in
    return "Yes" if value == "Yes" else "No"


def _p(label: str, value: str) -> str:
    return f"<p><strong>{label}:</strong> {value}</p>"


class NotificationComposer:
    """
    Construit les NotificationMessage à partir d'un DonationEvent.
    Paramètres figés au démarrage (expéditeur, destinataires internes, sandbox).
    """

    def __init__(
        self,
        sender: str,
        internal_recipients: Iterable[str] = (),
        org_name: str = "Bridges to Work",
        sandbox: bool = True,
    ):
        self.sender = sender
        self.internal_recipients: Tuple[str, ...] = tuple(r.strip() for r in internal_recipients if r and r.strip())
        self.org_name = org_name
        self.sandbox = sandbox

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationComposer":
        return cls(
            sender=settings.from_email,
            internal_recipients=settings.internal_emails,
            org_name=settings.org_name,
            sandbox=settings.email_sandbox,
        )

    # --- Donateur ---
    def _donor_subject(self, event: DonationEvent) -> str:
        if event.source == "checkout_session":
            wording = "monthly" if event.frequency == "monthly" else "one-time"
            return f"Thank you for your {wording} donation!"
        if event.source == "invoice":
            return "Thank you for your monthly donation!"
        return "Thank you for your donation!"

    def compose_donor_message(self, event: DonationEvent) -> Optional[NotificationMessage]:
        """Message de remerciement; None si aucun e-mail donateur n'est connu."""
        if not event.donor_email:
            return None
        md = event.donor_metadata
        amount = format_amount(event.amount_cents)
        lines = [f"<p>Hi {escape(md.donor_name or 'Friend')},</p>"]
        if event.source == "invoice":
            lines.append(f"<p>We received your monthly donation of <strong>{amount}</strong>. Thank you!</p>")
        else:
            lines.append(f"<p>Thank you for your generous donation of <strong>{amount}</strong>.</p>")
        if md.dedication:
            lines.append(_p("Dedication", escape(md.dedication)))
        if event.source != "invoice":
            lines.append("<p>We truly appreciate your support.</p>")
        lines.append(f"<p>– The {escape(self.org_name)} Team</p>")
        return NotificationMessage(
            kind="donor",
            recipients=(event.donor_email,),
            sender=self.sender,
            subject=self._donor_subject(event),
            body_html="\n".join(lines),
            sandbox=self.sandbox,
        )

    # --- Interne ---
    def _internal_subject(self, event: DonationEvent) -> str:
        amount = format_amount(event.amount_cents)
        name = event.donor_metadata.donor_name or "Unknown"
        if event.source == "checkout_session":
            return f"New Donation via Stripe: {amount} from {name}"
        if event.source == "invoice":
            return f"Monthly Donation Received: {amount} from {name}"
        return f"New Donation: {amount} from {name}"

    def compose_internal_message(self, event: DonationEvent) -> Optional[NotificationMessage]:
        """Récapitulatif pour l'équipe; None si aucun destinataire interne n'est configuré."""
        if not self.internal_recipients:
            return None
        md = event.donor_metadata
        address = ", ".join(escape(part) for part in (md.address, md.city, md.state, md.zip))
        lines = [
            _p("Amount", format_amount(event.amount_cents)),
            _p("Frequency", event.frequency),
            _p("Name", escape(md.donor_name or "N/A")),
            _p("Email", escape(event.donor_email or "N/A")),
            _p("Phone", escape(md.phone or "N/A")),
            _p("Address", address),
        ]
        if md.dedication:
            lines.append(_p("Dedication", escape(md.dedication)))
        if md.notify_email:
            lines.append(_p("Acknowledgement Email To", escape(md.notify_email)))
        lines.append(_p("Subscribed to Newsletter", newsletter_label(md.subscribe_to_newsletter)))
        return NotificationMessage(
            kind="internal",
            recipients=self.internal_recipients,
            sender=self.sender,
            subject=self._internal_subject(event),
            body_html="\n".join(lines),
            sandbox=self.sandbox,
        )
