from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

MessageKind = Literal["donor", "internal"]


class NotificationMessage(BaseModel):
    """Message prêt à l'envoi; créé par le composer, consommé aussitôt par le transport."""

    model_config = ConfigDict(frozen=True)

    kind: MessageKind
    recipients: Tuple[str, ...]
    sender: str
    subject: str
    body_html: str
    sandbox: bool = False

    @field_validator("recipients")
    @classmethod
    def _at_least_one_recipient(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        if not v:
            raise ValueError("au moins un destinataire est requis")
        return v


class SendResult(BaseModel):
    kind: MessageKind
    ok: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
