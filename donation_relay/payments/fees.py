"""
Calcul du montant brut quand le donateur couvre les frais Stripe (2,9 % + 0,30 $).
"""
from decimal import Decimal, ROUND_CEILING

from donation_relay.errors import AmountValidationError

PERCENT_FEE = Decimal("0.029")
FIXED_FEE_CENTS = 30


def compute_gross_cents(base_amount_cents: int, cover_fees: bool) -> int:
    """
    Retourne le montant à débiter (en cents).
    - cover_fees=False: base_amount_cents inchangé
    - cover_fees=True: plus petit entier g tel que g - (2,9 % de g + 30) >= base,
      soit ceil((base + 30) / (1 - 0.029)); calcul en Decimal pour un plafond exact
    - Montant négatif ou non entier: AmountValidationError
    """
    if isinstance(base_amount_cents, bool) or not isinstance(base_amount_cents, int):
        raise AmountValidationError(f"base_amount_cents doit être un entier (reçu: {base_amount_cents!r})")
    if base_amount_cents < 0:
        raise AmountValidationError(f"base_amount_cents doit être >= 0 (reçu: {base_amount_cents})")
    if not cover_fees:
        return base_amount_cents
    gross = (Decimal(base_amount_cents + FIXED_FEE_CENTS) / (Decimal(1) - PERCENT_FEE))
    return int(gross.to_integral_value(rounding=ROUND_CEILING))
