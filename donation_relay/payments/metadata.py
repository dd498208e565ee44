"""
Métadonnées donateur posées côté Stripe (session, PaymentIntent, abonnement).
Le webhook les relit ensuite telles quelles (voir webhooks.events.DonorMetadata).
"""
from typing import Any, Dict, Mapping, Optional


def _s(v: Any) -> str:
    return "" if v is None else str(v)


def newsletter_flag(value: Any) -> str:
    """Le front envoie newsletter_opt_in sous forme bool ou chaîne: seul "true" vaut "Yes"."""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return "Yes" if _s(value) == "true" else "No"


def stringify_metadata(raw: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Stripe n'accepte que des valeurs chaînes; None est retiré."""
    out: Dict[str, str] = {}
    for key, value in (raw or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            out[str(key)] = "true" if value else "false"
        else:
            out[str(key)] = str(value)
    return out


def intent_metadata(donor_name: Optional[str], raw: Optional[Mapping[str, Any]], frequency: str) -> Dict[str, str]:
    """
    Métadonnées normalisées pour PaymentIntent / Subscription.
    Les clés brutes du front sont recopiées ensuite et gagnent en cas de conflit.
    """
    raw = raw or {}
    metadata = {
        "donor_name": _s(donor_name),
        "phone": _s(raw.get("phone")),
        "address": _s(raw.get("address1")),
        "city": _s(raw.get("city")),
        "state": _s(raw.get("state")),
        "zip": _s(raw.get("zip")),
        "dedication": _s(raw.get("dedication_text")),
        "notifyEmail": _s(raw.get("notify_email")),
        "subscribeToNewsletter": newsletter_flag(raw.get("newsletter_opt_in")),
        "frequency": frequency,
    }
    metadata.update(stringify_metadata(raw))
    return metadata


def subscription_donor_name(raw: Optional[Mapping[str, Any]]) -> str:
    raw = raw or {}
    return f"{_s(raw.get('first_name'))} {_s(raw.get('last_name'))}".strip()


def checkout_metadata(donor_name: str, donor_info: Mapping[str, Any], frequency: str) -> Dict[str, str]:
    """Métadonnées de l'ancien flux Checkout (donorInfo du formulaire)."""
    return {
        "donor_name": donor_name,
        "phone": _s(donor_info.get("phone")),
        "address": _s(donor_info.get("address1")),
        "city": _s(donor_info.get("city")),
        "state": _s(donor_info.get("state")),
        "zip": _s(donor_info.get("zip")),
        "dedication": _s(donor_info.get("dedicationText")),
        "notifyEmail": _s(donor_info.get("notifyEmail")),
        "subscribeToNewsletter": "Yes" if donor_info.get("subscribeToNewsletter") else "No",
        "frequency": "monthly" if frequency == "monthly" else "one_time",
    }
