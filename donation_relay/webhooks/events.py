"""
Modèle des événements Stripe reçus par le webhook.

Chaque type reconnu a sa propre forme de payload (data.object); les types
inconnus deviennent un IgnoredEvent explicite au lieu d'être lus à l'aveugle.
DonationEvent est l'enregistrement normalisé utilisé pour composer les e-mails.
"""
from typing import Any, Dict, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Frequency = Literal["one_time", "monthly"]
DonationSource = Literal["checkout_session", "payment_intent", "invoice"]

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"


def _ref_id(ref: Any) -> Optional[str]:
    # Référence Stripe: identifiant brut ou objet déjà "expand"
    if isinstance(ref, Mapping):
        return ref.get("id") or None
    return str(ref) if ref else None


class DonorMetadata(BaseModel):
    """Métadonnées donateur telles que posées sur la session / l'intent / l'abonnement."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    donor_name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    dedication: str = ""
    notify_email: str = Field(default="", alias="notifyEmail")
    subscribe_to_newsletter: str = Field(default="No", alias="subscribeToNewsletter")

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> "DonorMetadata":
        """Tolérant: clés absentes => valeurs par défaut, None => chaîne vide."""
        cleaned = {k: ("" if v is None else str(v)) for k, v in dict(raw or {}).items()}
        return cls.model_validate(cleaned)


class DonationEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    amount_cents: int = Field(ge=0)
    currency: str = "usd"
    frequency: Frequency = "one_time"
    donor_email: Optional[str] = None
    donor_metadata: DonorMetadata = Field(default_factory=DonorMetadata)
    source: DonationSource
    event_id: str = ""


class _StripeObject(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    currency: str = "usd"
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("metadata", mode="before")
    @classmethod
    def empty_metadata(cls, v: Any) -> Any:
        return v or {}

    @field_validator("currency", mode="before")
    @classmethod
    def default_currency(cls, v: Any) -> Any:
        return v or "usd"


class CheckoutSessionObject(_StripeObject):
    customer_email: Optional[str] = None
    amount_total: int = 0

    @field_validator("amount_total", mode="before")
    @classmethod
    def zero_amount(cls, v: Any) -> Any:
        return v or 0


class PaymentIntentObject(_StripeObject):
    amount: int = 0
    receipt_email: Optional[str] = None
    invoice: Optional[Union[str, Dict[str, Any]]] = None

    @field_validator("amount", mode="before")
    @classmethod
    def zero_amount(cls, v: Any) -> Any:
        return v or 0

    @property
    def invoice_id(self) -> Optional[str]:
        return _ref_id(self.invoice)


class InvoiceObject(_StripeObject):
    amount_paid: int = 0
    customer_email: Optional[str] = None
    subscription: Optional[Union[str, Dict[str, Any]]] = None
    parent: Optional[Dict[str, Any]] = None

    @field_validator("amount_paid", mode="before")
    @classmethod
    def zero_amount(cls, v: Any) -> Any:
        return v or 0

    @property
    def subscription_id(self) -> Optional[str]:
        """
        Abonnement lié à la facture.
        - Champ historique `subscription` (id ou objet)
        - Versions récentes de l'API: parent.subscription_details.subscription
        """
        sub = _ref_id(self.subscription)
        if sub:
            return sub
        details = (self.parent or {}).get("subscription_details") or {}
        return _ref_id(details.get("subscription"))


class _BaseEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    type: str


class CheckoutSessionCompleted(_BaseEvent):
    type: Literal["checkout.session.completed"]
    object: CheckoutSessionObject

    def to_donation(self) -> DonationEvent:
        session = self.object
        frequency = "monthly" if session.metadata.get("frequency") == "monthly" else "one_time"
        return DonationEvent(
            amount_cents=session.amount_total,
            currency=session.currency,
            frequency=frequency,
            donor_email=session.customer_email or None,
            donor_metadata=DonorMetadata.from_raw(session.metadata),
            source="checkout_session",
            event_id=self.id,
        )


class PaymentIntentSucceeded(_BaseEvent):
    type: Literal["payment_intent.succeeded"]
    object: PaymentIntentObject

    @property
    def belongs_to_invoice(self) -> bool:
        # Les PI de facturation d'abonnement sont notifiés via invoice.payment_succeeded
        return bool(self.object.invoice_id)

    def to_donation(self) -> DonationEvent:
        pi = self.object
        return DonationEvent(
            amount_cents=pi.amount,
            currency=pi.currency,
            frequency="one_time",
            donor_email=pi.receipt_email or None,
            donor_metadata=DonorMetadata.from_raw(pi.metadata),
            source="payment_intent",
            event_id=self.id,
        )


class InvoicePaymentSucceeded(_BaseEvent):
    type: Literal["invoice.payment_succeeded"]
    object: InvoiceObject

    def to_donation(
        self,
        metadata: Optional[Mapping[str, Any]] = None,
        donor_email: Optional[str] = None,
    ) -> DonationEvent:
        """Les factures ne portent pas les métadonnées donateur: elles viennent de l'abonnement."""
        invoice = self.object
        return DonationEvent(
            amount_cents=invoice.amount_paid,
            currency=invoice.currency,
            frequency="monthly",
            donor_email=donor_email or invoice.customer_email or None,
            donor_metadata=DonorMetadata.from_raw(metadata),
            source="invoice",
            event_id=self.id,
        )


class IgnoredEvent(_BaseEvent):
    pass


WebhookEvent = Union[CheckoutSessionCompleted, PaymentIntentSucceeded, InvoicePaymentSucceeded, IgnoredEvent]

_EVENT_MODELS = {
    CHECKOUT_SESSION_COMPLETED: CheckoutSessionCompleted,
    PAYMENT_INTENT_SUCCEEDED: PaymentIntentSucceeded,
    INVOICE_PAYMENT_SUCCEEDED: InvoicePaymentSucceeded,
}


def parse_webhook_event(raw: Mapping[str, Any]) -> WebhookEvent:
    """
    Classe un événement Stripe (dict JSON déjà vérifié) dans sa variante.
    - event.data.object est aplati dans `object`
    - type inconnu => IgnoredEvent (pas d'accès spéculatif au payload)
    """
    event_type = str(raw.get("type") or "")
    event_id = str(raw.get("id") or "")
    model = _EVENT_MODELS.get(event_type)
    if model is None:
        return IgnoredEvent(id=event_id, type=event_type)
    data_obj = (raw.get("data") or {}).get("object") or {}
    return model.model_validate({"id": event_id, "type": event_type, "object": data_obj})
