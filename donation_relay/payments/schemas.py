"""
Corps JSON attendus par les endpoints de création (noms de champs du front conservés).
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class _FrontModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class DonorInfo(_FrontModel):
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    donor_email: Optional[str] = Field(default=None, alias="donorEmail")
    phone: Optional[str] = None
    address1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    dedication_text: Optional[str] = Field(default=None, alias="dedicationText")
    notify_email: Optional[str] = Field(default=None, alias="notifyEmail")
    subscribe_to_newsletter: bool = Field(default=False, alias="subscribeToNewsletter")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CheckoutSessionRequest(_FrontModel):
    amount: int = Field(ge=0)
    frequency: str = "one_time"
    donor_info: DonorInfo = Field(default_factory=DonorInfo, alias="donorInfo")


class PaymentIntentRequest(_FrontModel):
    amount_cents: Optional[int] = Field(default=None, alias="amountCents")
    currency: str = "usd"
    donor_email: Optional[str] = Field(default=None, alias="donorEmail")
    donor_name: Optional[str] = Field(default=None, alias="donorName")
    cover_fees: bool = Field(default=False, alias="coverFees")
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SetupIntentRequest(_FrontModel):
    donor_email: Optional[str] = Field(default=None, alias="donorEmail")


class SubscriptionRequest(_FrontModel):
    customer_id: str = Field(alias="customerId")
    payment_method_id: str = Field(alias="paymentMethodId")
    amount_cents: int = Field(alias="amountCents", ge=0)
    currency: str = "usd"
    interval: str = "month"
    metadata: Dict[str, Any] = Field(default_factory=dict)
