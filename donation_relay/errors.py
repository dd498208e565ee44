"""
Taxonomie des erreurs du relais de dons.
- AuthenticityError: signature webhook invalide -> 400, aucun effet de bord
- EnrichmentLookupError: lookup abonnement/client échoué -> log + on continue
- NotificationSendError: envoi e-mail échoué -> log par message, réponse inchangée
- GatewayError: Stripe refuse une création (session, intent, abonnement) -> 400/500
- AmountValidationError: montant de base invalide (négatif, non entier) -> 400
"""
from typing import Any, Dict, Optional


class DonationRelayError(Exception):
    """Base commune des erreurs applicatives."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class AuthenticityError(DonationRelayError):
    pass


class EnrichmentLookupError(DonationRelayError):
    pass


class NotificationSendError(DonationRelayError):
    def __init__(self, message: str = "", response_body: Optional[str] = None):
        super().__init__(message)
        self.response_body = response_body


class GatewayError(DonationRelayError):
    """
    Refus du processeur (ou configuration manquante) lors d'une création.
    - status_code: 400 par défaut, 500 pour l'ancien flux Checkout
    - legacy_body: True => {"error": "..."} au lieu de {"error": {"message": "..."}}
    """

    def __init__(self, message: str = "", status_code: int = 400, legacy_body: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.legacy_body = legacy_body

    def to_payload(self) -> Dict[str, Any]:
        if self.legacy_body:
            return {"error": self.message}
        return {"error": {"message": self.message}}


class AmountValidationError(DonationRelayError, ValueError):
    pass
